import os
import random
from datetime import datetime, timezone

from django.conf import settings


# Fields every normalized country record carries, in this order.
COUNTRY_FIELDS = ("name", "capital", "region", "population", "currency_code", "flag_url")

# Keys the country directory is asked for.
RAW_COUNTRY_FIELDS = ["name", "capital", "region", "population", "currencies", "flag"]

MULTIPLIER_MIN = 1000
MULTIPLIER_MAX = 2000


def replace_missing(obj, required_keys=()):
    """
    Return a copy of ``obj`` where every nested dict/list is walked and every
    key listed in ``required_keys`` exists at the top level (``None`` if absent).

    Never raises: anything that is not a dict or list is returned as-is.
    """
    if isinstance(obj, dict):
        result = {key: replace_missing(value) for key, value in obj.items()}
        for key in required_keys:
            result.setdefault(key, None)
        return result
    if isinstance(obj, (list, tuple)):
        return [replace_missing(item) for item in obj]
    return obj


def first_currency_code(currencies):
    if not isinstance(currencies, list) or not currencies:
        return None
    first = currencies[0]
    if not isinstance(first, dict):
        return None
    return first.get("code") or None


def normalize_country(raw):
    """
    Turn one raw directory entry into a record with exactly COUNTRY_FIELDS.
    Missing values become None, the currency code is the first descriptor's.
    """
    data = replace_missing(raw if isinstance(raw, dict) else {}, RAW_COUNTRY_FIELDS)
    return {
        "name": data["name"],
        "capital": data["capital"],
        "region": data["region"],
        "population": data["population"],
        "currency_code": first_currency_code(data["currencies"]),
        "flag_url": data["flag"],
    }


def make_multiplier():
    return random.randint(MULTIPLIER_MIN, MULTIPLIER_MAX)


def estimate_gdp(population, currency_code, rate, multiplier=None):
    """
    estimated_gdp = population * multiplier / rate

    0 when the country has no currency, None when its currency has no rate.
    The multiplier is drawn fresh on each call unless given.
    """
    if currency_code is None:
        return 0
    if rate is None:
        return None
    if multiplier is None:
        multiplier = make_multiplier()
    return (population or 0) * (multiplier / rate)


def get_summary_image_path():
    """Return the absolute path of the summary image."""
    return os.path.abspath(settings.SUMMARY_IMAGE_PATH)


def get_now():
    """Return current UTC datetime (aware)."""
    return datetime.now(timezone.utc)
