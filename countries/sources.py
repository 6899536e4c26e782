import logging

import requests
from requests.exceptions import HTTPError, RequestException

from .exceptions import UpstreamFetchError, UpstreamParseError

logger = logging.getLogger(__name__)


class JSONSource:
    """Thin wrapper around one external JSON endpoint."""

    name = "external API"

    def __init__(self, url, timeout=15, session=None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests

    def get_json(self, url):
        logger.debug("GET %s", url)
        try:
            resp = self.session.get(url, timeout=self.timeout)
            resp.raise_for_status()
        except HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            raise UpstreamFetchError(
                self.name, f"HTTP {status_code}", kind="http_status", status_code=status_code
            ) from e
        except RequestException as e:
            raise UpstreamFetchError(self.name, f"could not fetch data: {e}") from e

        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamParseError(self.name, "response is not valid JSON") from e


class CountriesAPI(JSONSource):
    """Country directory (restcountries v2 shape)."""

    name = "Countries API"

    def fetch_countries(self):
        data = self.get_json(self.url)
        if not isinstance(data, list):
            raise UpstreamParseError(self.name, "expected a list of countries")
        return data


class ExchangeRatesAPI(JSONSource):
    """
    Exchange rates keyed by currency code, expressed as units of that
    currency per 1 unit of ``base``. ``url`` may contain a ``{base}`` field.
    """

    name = "Exchange rates API"

    def fetch_rates(self, base):
        data = self.get_json(self.url.format(base=base))
        if not isinstance(data, dict) or not isinstance(data.get("rates"), dict):
            raise UpstreamParseError(self.name, "expected an object with a 'rates' mapping")
        if data.get("result") == "error":
            raise UpstreamParseError(self.name, data.get("error-type") or "source reported an error")

        rates = {}
        for code, value in data["rates"].items():
            # bool is an int subclass
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                continue
            if value > 0:
                rates[code] = float(value)
        return rates
