"""
Tests for the httpx transport, driven by httpx.MockTransport (no network).
"""

from __future__ import annotations

import json

import httpx
import pytest

from property_resolver.config import ResolverConfig
from property_resolver.exceptions import MalformedSource, SourceUnavailable
from property_resolver.transport import ApiResponse, HttpTransport, extract_embedded_blob

CONFIG = ResolverConfig(attempt_timeout_seconds=5.0)

BLOB = {"props": {"pageProps": {"zpid": 2077838}}}
PAGE = (
    "<html><head></head><body>"
    f'<script id="__NEXT_DATA__" type="application/json">{json.dumps(BLOB)}</script>'
    "</body></html>"
)


def _transport(handler) -> HttpTransport:
    return HttpTransport(CONFIG, client=httpx.Client(transport=httpx.MockTransport(handler)))


# ═══════════════════════════════════════════════════════════════════════
# EMBEDDED BLOB EXTRACTION
# ═══════════════════════════════════════════════════════════════════════


class TestExtractEmbeddedBlob:
    def test_next_data_container(self):
        assert extract_embedded_blob(PAGE) == BLOB

    def test_apollo_container(self):
        page = f"<script type='application/json' id='hdpApolloPreloadedData'>{json.dumps(BLOB)}</script>"
        assert extract_embedded_blob(page) == BLOB

    def test_no_container(self):
        assert extract_embedded_blob("<html><body>Access denied</body></html>") is None

    def test_empty_container(self):
        assert extract_embedded_blob('<script id="__NEXT_DATA__">{}</script>') is None

    def test_invalid_json_container(self):
        with pytest.raises(MalformedSource):
            extract_embedded_blob('<script id="__NEXT_DATA__">{not json</script>', "https://x.test")


# ═══════════════════════════════════════════════════════════════════════
# DOCUMENT FETCH
# ═══════════════════════════════════════════════════════════════════════


class TestFetchDocument:
    def test_returns_blob(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text=PAGE)

        with _transport(handler) as transport:
            assert transport.fetch_document("https://www.zillow.com/homes/x_rb/") == BLOB
        assert seen[0].url.path == "/homes/x_rb/"

    def test_timeout_defaults_to_config_and_can_be_overridden(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text=PAGE)

        with _transport(handler) as transport:
            transport.fetch_document("https://www.zillow.com/homes/x_rb/")
            transport.fetch_document("https://www.zillow.com/homedetails/1_zpid/", 2.5)
        assert seen[0].extensions["timeout"]["read"] == 5.0
        assert seen[1].extensions["timeout"]["read"] == 2.5

    def test_non_success_status(self):
        with _transport(lambda request: httpx.Response(403, text="blocked")) as transport:
            with pytest.raises(SourceUnavailable) as exc:
                transport.fetch_document("https://www.zillow.com/homes/x_rb/")
        assert exc.value.details["status"] == 403
        assert exc.value.code == "SOURCE_UNAVAILABLE"

    def test_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with _transport(handler) as transport:
            with pytest.raises(SourceUnavailable, match="Timed out"):
                transport.fetch_document("https://www.zillow.com/homes/x_rb/")

    def test_connection_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with _transport(handler) as transport:
            with pytest.raises(SourceUnavailable, match="Transport error"):
                transport.fetch_document("https://www.zillow.com/homes/x_rb/")


# ═══════════════════════════════════════════════════════════════════════
# API FETCH
# ═══════════════════════════════════════════════════════════════════════


class TestFetchApi:
    def test_json_body_and_headers(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"zpid": 1})

        with _transport(handler) as transport:
            response = transport.fetch_api(
                "https://api.test/property?address=1", {"X-RapidAPI-Key": "k"}, 3.0
            )
        assert response == ApiResponse(200, {"zpid": 1})
        assert response.is_success
        assert seen[0].headers["X-RapidAPI-Key"] == "k"

    def test_error_status_is_returned_not_raised(self):
        with _transport(lambda request: httpx.Response(404, json={"message": "nope"})) as transport:
            response = transport.fetch_api("https://api.test/property", {}, 3.0)
        assert response.status == 404
        assert not response.is_success

    def test_empty_body(self):
        with _transport(lambda request: httpx.Response(204)) as transport:
            assert transport.fetch_api("https://api.test/property", {}, 3.0).body is None

    def test_non_json_body(self):
        with _transport(lambda request: httpx.Response(200, text="<html>oops</html>")) as transport:
            with pytest.raises(MalformedSource):
                transport.fetch_api("https://api.test/property", {}, 3.0)

    def test_malformed_is_a_kind_of_unavailable(self):
        assert issubclass(MalformedSource, SourceUnavailable)


class TestLifecycle:
    def test_context_manager_closes_client(self):
        client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
        with HttpTransport(CONFIG, client=client):
            assert not client.is_closed
        assert client.is_closed
