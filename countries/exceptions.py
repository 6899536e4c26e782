class RefreshError(Exception):
    """Base class for every failure raised by the refresh pipeline."""


class UpstreamFetchError(RefreshError):
    """An external source could not be reached or answered with a non-2xx status."""

    def __init__(self, source, message, kind="fetch", status_code=None):
        super().__init__(f"{source}: {message}")
        self.source = source
        self.kind = kind
        self.status_code = status_code


class UpstreamParseError(RefreshError):
    """An external source answered, but the body is not the expected shape."""

    kind = "parse"

    def __init__(self, source, message):
        super().__init__(f"{source}: {message}")
        self.source = source


class PersistenceError(RefreshError):
    """The store rejected a write or could not be read back."""

    def __init__(self, message, name=None):
        super().__init__(message)
        self.name = name


class RenderError(RefreshError):
    """The summary image could not be generated or written."""


class RefreshInProgressError(RefreshError):
    """Another refresh run holds the lock."""
