"""
Thin HTTP transport — the two fetch capabilities the sources consume.

    DocumentFetch(url, timeout)          → embedded data blob (dict) | None
    ApiFetch(url, headers, timeout)      → ApiResponse(status, body)

Both raise SourceUnavailable on timeout / transport failure and
MalformedSource when the payload cannot be parsed. The engine treats either
as "no candidate from this attempt" and moves on.

One httpx.Client per resolution request; the client is a context manager so
connections are released on every exit path, including timeouts.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

import httpx

from .config import ResolverConfig
from .exceptions import MalformedSource, SourceUnavailable

logger = logging.getLogger(__name__)

# Script containers that carry a page's embedded data, in preference order.
DOCUMENT_CONTAINER_IDS: tuple[str, ...] = ("__NEXT_DATA__", "hdpApolloPreloadedData")


@dataclass(frozen=True)
class ApiResponse:
    """Status code and decoded JSON body of one API call."""

    status: int
    body: Any

    @property
    def is_success(self) -> bool:
        return 200 <= self.status < 300


class HttpTransport:
    """httpx-backed implementation of DocumentFetch and ApiFetch.

    Usage:
        with HttpTransport(config) as transport:
            blob = transport.fetch_document(url, timeout=20)
            response = transport.fetch_api(url, headers, timeout=20)
    """

    def __init__(self, config: ResolverConfig, client: httpx.Client | None = None):
        self.config = config
        self._client = client or httpx.Client(
            follow_redirects=True,
            headers={"User-Agent": config.user_agent, "Accept-Language": "en-US,en;q=0.9"},
        )

    def __enter__(self) -> HttpTransport:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    # ─── DocumentFetch ───────────────────────────────────────────────

    def fetch_document(self, url: str, timeout: float | None = None) -> dict[str, Any] | None:
        """GET a page and return the first embedded JSON data blob it carries.

        `timeout` defaults to the configured per-attempt timeout.
        """
        if timeout is None:
            timeout = self.config.attempt_timeout_seconds
        response = self._get(url, timeout=timeout)
        if not response.is_success:
            raise SourceUnavailable(
                f"Document fetch returned HTTP {response.status_code}",
                {"url": url, "status": response.status_code},
            )
        return extract_embedded_blob(response.text, url)

    # ─── ApiFetch ────────────────────────────────────────────────────

    def fetch_api(self, url: str, headers: dict[str, str], timeout: float) -> ApiResponse:
        """GET a JSON endpoint with its own bounded timeout."""
        response = self._get(url, headers=headers, timeout=timeout)
        if not response.content:
            return ApiResponse(status=response.status_code, body=None)
        try:
            body = response.json()
        except ValueError as e:
            raise MalformedSource(
                f"API returned non-JSON body: {e}", {"url": url, "status": response.status_code}
            ) from e
        return ApiResponse(status=response.status_code, body=body)

    # ─── Internal ────────────────────────────────────────────────────

    def _get(self, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._client.get(url, **kwargs)
        except httpx.TimeoutException as e:
            raise SourceUnavailable(f"Timed out fetching {url}", {"url": url}) from e
        except httpx.HTTPError as e:
            raise SourceUnavailable(f"Transport error fetching {url}: {e}", {"url": url}) from e


def extract_embedded_blob(html: str, url: str = "") -> dict[str, Any] | None:
    """Find and decode the first known data container in an HTML page.

    Returns None when the page has no container (nothing to parse yet).
    Raises MalformedSource when a container is present but is not valid JSON.
    """
    for container_id in DOCUMENT_CONTAINER_IDS:
        pattern = re.compile(
            rf"<script[^>]*id=[\"']{re.escape(container_id)}[\"'][^>]*>(.*?)</script>",
            re.IGNORECASE | re.DOTALL,
        )
        match = pattern.search(html)
        if not match:
            continue
        try:
            blob = json.loads(match.group(1))
        except json.JSONDecodeError as e:
            raise MalformedSource(
                f"Container '{container_id}' is not valid JSON", {"url": url}
            ) from e
        if isinstance(blob, dict) and blob:
            return blob
        logger.debug("Container '%s' on %s is empty", container_id, url)
    return None
