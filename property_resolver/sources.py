"""
Sources — the places a candidate record can come from.

Every source satisfies the same small protocol:

    fetch(attempt, query) → SourceHit | None

  - SourceHit  : a candidate was found and scored (acceptable or not)
  - None       : the source answered, but had nothing usable
  - raises SourceUnavailable / MalformedSource : this attempt failed

Two variants:
  DocumentSource — search page → fuzzy pick → detail page → embedded property blob
  ApiSource      — one JSON GET per endpoint shape, validated strictly

Attempts are enumerated here too (`enumerate_attempts`), in a fixed,
documented order.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable, Sequence
from typing import Any, Optional, Protocol
from urllib.parse import urlencode

from .config import EndpointShape, ResolverConfig
from .exceptions import MalformedSource, SourceUnavailable
from .models import AttemptOrder, Query, RawCandidate, SourceAttempt, SourceHit, SourceKind
from .normalizer import slugify
from .paths import extract_list, extract_str, walk
from .scoring import score_strict, select_fuzzy
from .transport import ApiResponse

logger = logging.getLogger(__name__)

# External capabilities (see transport.HttpTransport)
DocumentFetch = Callable[[str, float], Optional[dict[str, Any]]]
ApiFetch = Callable[[str, dict[str, str], float], ApiResponse]


# ─── Payload Paths ───────────────────────────────────────────────────

SEARCH_RESULT_PATHS: tuple[str, ...] = (
    "props.pageProps.searchPageState.cat1.searchResults.listResults",
    "props.pageProps.searchPageState.cat1.searchResults.mapResults",
    "searchPageState.cat1.searchResults.listResults",
    "cat1.searchResults.listResults",
)

DETAIL_URL_PATHS: tuple[str, ...] = ("detailUrl", "hdpUrl", "url")

# Where a detail page keeps its property payload. Varies by page version.
DETAIL_CONTAINER_PATHS: tuple[str, ...] = (
    "props.pageProps.componentProps.gdpClientCache",
    "props.pageProps.gdpClientCache",
    "props.pageProps.componentProps.initialReduxState.homeDetails",
    "props.pageProps.initialReduxState.homeDetails",
    "props.pageProps.initialData.property",
    "props.pageProps",
)

# Where an API response keeps its record.
API_RECORD_PATHS: tuple[str, ...] = (
    "data.property",
    "property",
    "data",
    "props.0",
    "results.0",
    "data.0",
)


# ─── Protocol ────────────────────────────────────────────────────────


class SourceQuery(Protocol):
    """A polymorphic candidate source."""

    source_id: str
    kind: SourceKind

    def shapes(self) -> Sequence[str | None]: ...

    def describe(self, attempt: SourceAttempt, query: Query) -> str: ...

    def fetch(self, attempt: SourceAttempt, query: Query) -> SourceHit | None: ...


# ─── Attempt Enumeration ─────────────────────────────────────────────


def enumerate_attempts(
    variants: Sequence[str],
    sources: Sequence[SourceQuery],
    order: AttemptOrder = AttemptOrder.VARIANT_MAJOR,
) -> list[SourceAttempt]:
    """List every (source, variant, shape) attempt in try-order.

    VARIANT_MAJOR: for each variant → each source → each shape.
        The unmodified address is tried against every source and shape
        before any rewritten spelling is attempted.
    SOURCE_MAJOR: for each source → each variant → each shape.
    """
    if order == AttemptOrder.VARIANT_MAJOR:
        pairs = [(variant, source) for variant in variants for source in sources]
    else:
        pairs = [(variant, source) for source in sources for variant in variants]

    attempts: list[SourceAttempt] = []
    for variant, source in pairs:
        for shape in source.shapes():
            attempts.append(
                SourceAttempt(
                    index=len(attempts),
                    source_id=source.source_id,
                    variant=variant,
                    shape=shape,
                )
            )
    return attempts


# ─── Document Source ─────────────────────────────────────────────────


class DocumentSource:
    """Scrapes the embedded data blob of a search page, then of the chosen detail page."""

    source_id = "document"
    kind = SourceKind.DOCUMENT

    def __init__(
        self,
        fetch_document: DocumentFetch,
        config: ResolverConfig,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._fetch_document = fetch_document
        self.config = config
        self._clock = clock

    def shapes(self) -> Sequence[str | None]:
        return (None,)

    def describe(self, attempt: SourceAttempt, query: Query) -> str:
        return self.search_url(attempt.variant, query)

    def search_url(self, variant: str, query: Query) -> str:
        parts = [slugify(variant), slugify(query.city), slugify(query.state)]
        if query.zip:
            parts.append(slugify(query.zip))
        return f"{self.config.document_base_url}/homes/{'-'.join(parts)}_rb/"

    def fetch(self, attempt: SourceAttempt, query: Query) -> SourceHit | None:
        # Search page and detail page share one attempt budget.
        budget = self.config.attempt_timeout_seconds
        deadline = self._clock() + budget

        search_url = self.search_url(attempt.variant, query)
        blob = self._fetch_document(search_url, budget)
        if not blob:
            raise MalformedSource("Search page carried no data blob", {"url": search_url})

        results = extract_list(blob, SEARCH_RESULT_PATHS)
        if not results:
            logger.info("No search results on %s", search_url)
            return None

        scored = select_fuzzy(
            attempt.variant,
            query.city,
            results,
            accept_zero_score=self.config.accept_zero_score_fuzzy,
        )
        if scored is None:
            return None

        detail_url = self._absolute(extract_str(scored.raw, DETAIL_URL_PATHS))
        hit = SourceHit(scored=scored, url=search_url, document=scored.raw, property_url=detail_url)
        if not scored.acceptable or detail_url is None:
            return hit

        remaining = deadline - self._clock()
        if remaining <= 0:
            logger.warning("No time left for detail page %s; using search entry", detail_url)
            return hit

        detail = self._fetch_detail(detail_url, remaining)
        if detail is None:
            return hit

        payload = locate_property(detail)
        if payload is None:
            logger.info("Detail page %s has no property payload; using search entry", detail_url)
            return hit.model_copy(update={"document": detail})

        return SourceHit(
            scored=scored.model_copy(update={"raw": payload}),
            url=search_url,
            document=detail,
            property_url=detail_url,
        )

    def _fetch_detail(self, detail_url: str, timeout: float) -> dict[str, Any] | None:
        # The search entry is still a usable candidate when the detail page fails.
        try:
            return self._fetch_document(detail_url, timeout) or None
        except SourceUnavailable as e:
            logger.warning("Detail page unavailable (%s); falling back to search entry", e)
            return None

    def _absolute(self, url: str | None) -> str | None:
        if not url:
            return None
        if url.startswith("http"):
            return url
        return f"{self.config.document_base_url}/{url.lstrip('/')}"


def locate_property(detail: RawCandidate) -> RawCandidate | None:
    """Find the property payload inside a detail page blob.

    Some containers are JSON-encoded strings keyed by an opaque cache key,
    each value holding a "property" object; others hold the property directly.
    """
    for path in DETAIL_CONTAINER_PATHS:
        node = walk(detail, path)
        if isinstance(node, str):
            try:
                node = json.loads(node)
            except json.JSONDecodeError:
                continue
        if not isinstance(node, dict):
            continue
        found = _property_node(node)
        if found is not None:
            return found
    return None


def _property_node(node: dict[str, Any]) -> RawCandidate | None:
    if isinstance(node.get("property"), dict):
        return node["property"]
    if "zpid" in node or "zestimate" in node:
        return node
    for value in node.values():
        if isinstance(value, dict) and isinstance(value.get("property"), dict):
            return value["property"]
    return None


# ─── API Source ──────────────────────────────────────────────────────


class ApiSource:
    """Queries a JSON property API once per endpoint shape."""

    source_id = "api"
    kind = SourceKind.API

    def __init__(self, fetch_api: ApiFetch, config: ResolverConfig):
        self._fetch_api = fetch_api
        self.config = config
        self._shapes = {shape.name: shape for shape in config.endpoint_shapes}

    def shapes(self) -> Sequence[str | None]:
        return tuple(self._shapes)

    def describe(self, attempt: SourceAttempt, query: Query) -> str:
        return self.url_for(self._shape(attempt), attempt.variant, query)

    def url_for(self, shape: EndpointShape, variant: str, query: Query) -> str:
        params = shape.build_params(variant, query.city, query.state, query.zip or "")
        return f"{self.config.api_base_url or ''}{shape.path}?{urlencode(params)}"

    def fetch(self, attempt: SourceAttempt, query: Query) -> SourceHit | None:
        url = self.describe(attempt, query)
        response = self._fetch_api(
            url, self.config.provider_headers(), self.config.attempt_timeout_seconds
        )
        if not response.is_success:
            raise SourceUnavailable(
                f"API returned HTTP {response.status}", {"url": url, "status": response.status}
            )
        body = response.body
        if not isinstance(body, dict) or not body:
            raise MalformedSource("API body is empty or not an object", {"url": url})

        record = unwrap_record(body)
        return SourceHit(
            scored=score_strict(query, record, variant=attempt.variant),
            url=url,
            document=body,
        )

    def _shape(self, attempt: SourceAttempt) -> EndpointShape:
        return self._shapes[attempt.shape or ""]


def unwrap_record(body: dict[str, Any]) -> RawCandidate:
    """The record inside an API envelope, or the body itself if unwrapped."""
    for path in API_RECORD_PATHS:
        node = walk(body, path)
        if isinstance(node, dict) and node:
            return node
    return body
