from datetime import datetime, timezone

import pytest
import requests
from django.core.cache import cache
from rest_framework.test import APIClient

from countries.models import Country
from countries.services import REFRESH_LOCK_KEY

from .conftest import DummyResponse

pytestmark = pytest.mark.django_db

T0 = datetime(2025, 10, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def client():
    return APIClient()


@pytest.fixture
def countries():
    rows = [
        ("France", "Europe", "EUR", 2.0e12),
        ("Germany", "Europe", "EUR", None),
        ("Japan", "Asia", "JPY", 4.0e12),
        ("Nepal", "Asia", "NPR", 3.0e10),
    ]
    for name, region, code, gdp in rows:
        Country.objects.create(
            name=name, region=region, population=1000, currency_code=code,
            estimated_gdp=gdp, last_refreshed_at=T0,
        )


# --- GET /countries ---

def test_list_filters_by_region(client, countries):
    resp = client.get("/countries", {"region": "europe"})

    assert resp.status_code == 200
    data = resp.json()
    assert {c["name"] for c in data} == {"France", "Germany"}
    assert all(c["region"] == "Europe" for c in data)


def test_list_filters_by_currency(client, countries):
    resp = client.get("/countries", {"currency": "JPY"})
    assert [c["name"] for c in resp.json()] == ["Japan"]


def test_list_sorts_gdp_desc_with_nulls_last(client, countries):
    resp = client.get("/countries", {"sort": "gdp_desc"})

    gdps = [c["estimated_gdp"] for c in resp.json()]
    assert gdps[-1] is None
    non_null = gdps[:-1]
    assert non_null == sorted(non_null, reverse=True)


def test_list_empty_result_is_empty_list(client, countries):
    resp = client.get("/countries", {"region": "Oceania"})
    assert resp.status_code == 200
    assert resp.json() == []


@pytest.mark.parametrize("params", [{"colour": "red"}, {"region": ""}, {"sort": "gdp"}, {"sort": "flag_desc"}])
def test_list_rejects_bad_query(client, countries, params):
    resp = client.get("/countries", params)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Validation failed"


# --- /countries/<name> ---

def test_detail_is_case_insensitive(client, countries):
    resp = client.get("/countries/france")
    assert resp.status_code == 200
    assert resp.json()["name"] == "France"


def test_detail_not_found(client):
    resp = client.get("/countries/Atlantis")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Country not found"}


def test_delete_country(client, countries):
    assert client.delete("/countries/Japan").status_code == 204
    assert not Country.objects.filter(name="Japan").exists()
    assert client.delete("/countries/Japan").status_code == 404


# --- GET /status ---

def test_status_empty(client):
    resp = client.get("/status")
    assert resp.json() == {"total_countries": 0, "last_refreshed_at": None}


def test_status_counts_rows(client, countries):
    data = client.get("/status").json()
    assert data["total_countries"] == 4
    assert data["last_refreshed_at"].startswith("2025-10-01T12:00:00")


# --- GET /countries/image ---

def test_image_missing(client):
    resp = client.get("/countries/image")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Summary image not found"}


# --- POST /countries/refresh ---

def test_refresh_then_serve_image(client, fake_upstream):
    resp = client.post("/countries/refresh")

    assert resp.status_code == 201
    body = resp.json()
    assert body["inserted"] == 3
    assert body["total_countries"] == 3
    assert body["errors"] == []

    antarctica = client.get("/countries/Antarctica").json()
    assert antarctica["estimated_gdp"] == 0

    image = client.get("/countries/image")
    assert image.status_code == 200
    assert image["Content-Type"] == "image/png"
    assert b"".join(image.streaming_content).startswith(b"\x89PNG")


def test_refresh_upstream_failure_is_503(client, fake_upstream):
    fake_upstream["restcountries"] = requests.ConnectionError("down")

    resp = client.post("/countries/refresh")

    assert resp.status_code == 503
    assert resp.json()["error"] == "External data source unavailable"
    assert not Country.objects.exists()


def test_refresh_bad_rates_payload_is_503(client, fake_upstream):
    fake_upstream["er-api"] = DummyResponse({"unexpected": True})

    resp = client.post("/countries/refresh")

    assert resp.status_code == 503
    assert "Exchange rates API" in resp.json()["details"]


def test_refresh_while_running_is_409(client, fake_upstream):
    cache.add(REFRESH_LOCK_KEY, True, 60)

    resp = client.post("/countries/refresh")

    assert resp.status_code == 409


def test_unknown_endpoint_returns_json(client):
    resp = client.get("/nowhere")
    assert resp.status_code == 404
    assert "error" in resp.json()
