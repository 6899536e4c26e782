# countries/tests/conftest.py

import pytest
import requests
from django.core.cache import cache

from countries.services import RefreshConfig


COUNTRIES_PAYLOAD = [
    {
        "name": "Nigeria",
        "capital": "Abuja",
        "region": "Africa",
        "population": 206139587,
        "flag": "https://flagcdn.com/ng.svg",
        "currencies": [{"code": "NGN", "name": "Nigerian naira", "symbol": "₦"}],
    },
    {
        "name": "France",
        "capital": "Paris",
        "region": "Europe",
        "population": 67391582,
        "flag": "https://flagcdn.com/fr.svg",
        "currencies": [{"code": "EUR", "name": "Euro", "symbol": "€"}],
    },
    {
        "name": "Antarctica",
        "region": "Polar",
        "population": 1000,
        "flag": "https://flagcdn.com/aq.svg",
    },
]

RATES_PAYLOAD = {
    "result": "success",
    "base_code": "USD",
    "rates": {"USD": 1, "NGN": 1600.23, "EUR": 0.92},
}


class DummyResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}", response=self)


class FakeCountries:
    def __init__(self, data=None, error=None):
        self.data = data or []
        self.error = error
        self.calls = 0

    def fetch_countries(self):
        self.calls += 1
        if self.error:
            raise self.error
        return self.data


class FakeRates:
    def __init__(self, rates=None, error=None):
        self.rates = rates or {}
        self.error = error
        self.bases = []

    def fetch_rates(self, base):
        self.bases.append(base)
        if self.error:
            raise self.error
        return self.rates


@pytest.fixture(autouse=True)
def image_path(settings, tmp_path):
    """Point the summary image at a per-test location."""
    path = tmp_path / "cache" / "summary.png"
    settings.SUMMARY_IMAGE_PATH = str(path)
    return path


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def config(image_path):
    return RefreshConfig(
        countries_url="https://countries.test/all",
        exchange_url="https://rates.test/latest/{base}",
        base_currency="USD",
        image_path=str(image_path),
    )


@pytest.fixture
def fake_upstream(monkeypatch):
    """
    Stub requests.get: restcountries URLs get COUNTRIES_PAYLOAD, exchange
    URLs get RATES_PAYLOAD. Tests can swap entries in the returned dict.
    """
    responses = {
        "restcountries": DummyResponse(COUNTRIES_PAYLOAD),
        "er-api": DummyResponse(RATES_PAYLOAD),
    }

    def fake_get(url, timeout=None):
        for key, response in responses.items():
            if key in url:
                if isinstance(response, Exception):
                    raise response
                return response
        raise AssertionError(f"unexpected URL {url}")

    monkeypatch.setattr("requests.get", fake_get)
    return responses
