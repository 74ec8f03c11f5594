import requests

import geocoding
from schemas import Address, Coordinates

ADDRESS = Address(street="Calle Principal 123", city="Madrid", state="Madrid", postal_code="28001", country="ES")


class FakeResponse:
    def __init__(self, payload, status_error=None):
        self.payload = payload
        self.status_error = status_error

    def raise_for_status(self):
        if self.status_error:
            raise self.status_error

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


def test_returns_first_result(monkeypatch):
    calls = []

    def fake_get(url, params=None, timeout=None):
        calls.append((url, params, timeout))
        return FakeResponse({"status": "OK", "results": [
            {"geometry": {"location": {"lat": 40.4168, "lng": -3.7038}}},
            {"geometry": {"location": {"lat": 0, "lng": 0}}},
        ]})

    monkeypatch.setattr(requests, "get", fake_get)
    assert geocoding.geocode_address(ADDRESS) == Coordinates(lat=40.4168, lng=-3.7038)
    url, params, timeout = calls[0]
    assert url == geocoding.GEOCODE_URL
    assert params["address"] == "Calle Principal 123, Madrid, Madrid 28001, ES"
    assert timeout == geocoding.GEOCODE_TIMEOUT


def test_no_results(monkeypatch):
    monkeypatch.setattr(requests, "get", lambda *a, **kw: FakeResponse({"status": "ZERO_RESULTS", "results": []}))
    assert geocoding.geocode_address(ADDRESS) is None


def test_network_error(monkeypatch):
    def fail(*args, **kwargs):
        raise requests.ConnectionError("unreachable")

    monkeypatch.setattr(requests, "get", fail)
    assert geocoding.geocode_address(ADDRESS) is None


def test_http_error(monkeypatch):
    monkeypatch.setattr(requests, "get", lambda *a, **kw: FakeResponse({}, requests.HTTPError("500")))
    assert geocoding.geocode_address(ADDRESS) is None


def test_bad_json(monkeypatch):
    monkeypatch.setattr(requests, "get", lambda *a, **kw: FakeResponse(ValueError("not json")))
    assert geocoding.geocode_address(ADDRESS) is None
