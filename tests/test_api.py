"""
FastAPI endpoint tests for the Property Record Resolver API.

Uses httpx + FastAPI TestClient — no real server needed, no outbound calls.
The engine is wired to a scripted API source.
"""

from __future__ import annotations

from urllib.parse import parse_qsl, urlsplit

import api
import pytest
from api import app
from fastapi.testclient import TestClient

from property_resolver.config import ResolverConfig
from property_resolver.engine import ResolutionEngine
from property_resolver.sources import ApiSource
from property_resolver.transport import ApiResponse

client = TestClient(app)

CONFIG = ResolverConfig(
    api_base_url="https://api.example",
    provider_key="test-key",
    preferred_sources=("api",),
)

RECORD = {
    "zpid": 2077838,
    "zestimate": 245000,
    "bedrooms": 3,
    "bathrooms": 2,
    "address": {
        "streetAddress": "123 Main St",
        "city": "Springfield",
        "state": "IL",
        "zipcode": "62704",
    },
}

BODY = {"address": "123 Main St", "city": "Springfield", "state": "IL", "zip": "62704"}


def _fake_api(url: str, headers: dict[str, str], timeout: float) -> ApiResponse:
    params = dict(parse_qsl(urlsplit(url).query))
    if "Springfield" in " ".join(params.values()):
        return ApiResponse(200, {"data": RECORD})
    return ApiResponse(404, {"message": "Property not found"})


@pytest.fixture(scope="module", autouse=True)
def _warm_engine() -> None:
    """Initialise the engine once for all API tests (bypasses lifespan)."""
    api._engine = ResolutionEngine(CONFIG, sources=[ApiSource(_fake_api, CONFIG)])
    yield  # type: ignore[misc]
    api._engine = None


class TestHealthEndpoint:
    def test_health_returns_200(self) -> None:
        resp = client.get("/health")
        assert resp.status_code == 200

    def test_health_response_shape(self) -> None:
        data = client.get("/health").json()
        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0"
        assert data["sources"] == ["api"]


class TestResolveEndpoint:
    def test_resolves_record(self) -> None:
        resp = client.post("/resolve", json=BODY)
        assert resp.status_code == 200
        data = resp.json()
        assert data["ok"] is True
        assert data["canonical_record"]["zpid"] == 2077838
        assert data["canonical_record"]["zestimate"] == 245000
        assert data["match_confidence"] == 85

    def test_wire_field_names(self) -> None:
        record = client.post("/resolve", json=BODY).json()["canonical_record"]
        assert record["numBedrooms"] == 3
        assert record["numBathrooms"] == 2
        assert "lastSoldPrice" in record

    def test_source_description_is_url(self) -> None:
        data = client.post("/resolve", json=BODY).json()
        assert data["source_description"].startswith("https://api.example/")

    def test_no_match_is_200(self) -> None:
        resp = client.post("/resolve", json={**BODY, "city": "Shelbyville"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["ok"] is True
        assert data["canonical_record"] is None
        assert data["match_confidence"] == 0
        assert data["note"]

    def test_numeric_zip_accepted(self) -> None:
        resp = client.post("/resolve", json={**BODY, "zip": 62704})
        assert resp.status_code == 200
        data = resp.json()
        assert data["canonical_record"]["zpid"] == 2077838
        assert data["match_confidence"] == 85

    def test_zestimate_alias(self) -> None:
        resp = client.post("/zestimate", json=BODY)
        assert resp.status_code == 200
        assert resp.json()["canonical_record"]["zpid"] == 2077838


class TestRequestValidation:
    def test_missing_address_returns_400(self) -> None:
        resp = client.post("/resolve", json={"city": "Springfield", "state": "IL"})
        assert resp.status_code == 400
        data = resp.json()
        assert data["ok"] is False
        assert "address" in data["error"]

    def test_blank_city_returns_400(self) -> None:
        resp = client.post("/resolve", json={**BODY, "city": "   "})
        assert resp.status_code == 400

    def test_wrong_type_returns_422(self) -> None:
        resp = client.post("/resolve", json={**BODY, "city": ["Springfield"]})
        assert resp.status_code == 422


class TestClientKey:
    def test_open_when_unset(self) -> None:
        assert client.post("/resolve", json=BODY).status_code == 200

    def test_rejects_missing_key(self, monkeypatch) -> None:
        monkeypatch.setenv("RESOLVER_CLIENT_KEY", "s3cret")
        assert client.post("/resolve", json=BODY).status_code == 401

    def test_rejects_wrong_key(self, monkeypatch) -> None:
        monkeypatch.setenv("RESOLVER_CLIENT_KEY", "s3cret")
        resp = client.post("/resolve", json=BODY, headers={"x-api-key": "guess"})
        assert resp.status_code == 401

    def test_accepts_matching_key(self, monkeypatch) -> None:
        monkeypatch.setenv("RESOLVER_CLIENT_KEY", "s3cret")
        resp = client.post("/resolve", json=BODY, headers={"x-api-key": "s3cret"})
        assert resp.status_code == 200

    def test_health_is_not_gated(self, monkeypatch) -> None:
        monkeypatch.setenv("RESOLVER_CLIENT_KEY", "s3cret")
        assert client.get("/health").status_code == 200
