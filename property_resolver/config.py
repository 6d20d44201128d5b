"""
Immutable resolver configuration.

Everything the engine needs to know about its environment — base URLs,
provider credentials, timeouts, ordering policy, endpoint shapes — lives in one
frozen object built once at startup and passed in. Nothing downstream reads
environment variables.

Environment variables (all optional):
    RESOLVER_DOCUMENT_BASE_URL     Site whose pages carry embedded data (default zillow.com)
    RESOLVER_API_BASE_URL          Property API base URL (API source disabled if unset)
    RESOLVER_PROVIDER_KEY          Property API key (API source disabled if unset)
    RESOLVER_PROVIDER_HOST         Value for the X-RapidAPI-Host header
    RESOLVER_ATTEMPT_TIMEOUT       Seconds per attempt (default 20). A document attempt
                                   spends this once across its search and detail fetches.
    RESOLVER_ATTEMPT_ORDER         "variant_major" (default) or "source_major"
    RESOLVER_SOURCES               Comma-separated source order (default "document,api")
    RESOLVER_ACCEPT_ZERO_SCORE     "true" (default) / "false"
"""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

from .models import AttemptOrder

# (variant, city, state, zip) → query parameters
ParamBuilder = Callable[[str, str, str, str], dict[str, str]]

DEFAULT_DOCUMENT_BASE_URL = "https://www.zillow.com"
DEFAULT_ATTEMPT_TIMEOUT_SECONDS = 20.0
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


# ─── Endpoint Shapes ─────────────────────────────────────────────────
# The provider's accepted parameter shape is not reliably documented and
# varies by property type and region, so each shape is tried in turn.


@dataclass(frozen=True)
class EndpointShape:
    """One way of packaging a query for the property API."""

    name: str
    path: str
    build_params: ParamBuilder


def _one_line(variant: str, city: str, state: str, zip_code: str) -> str:
    return f"{variant}, {city}, {state} {zip_code}".strip()


def _by_address(variant: str, city: str, state: str, zip_code: str) -> dict[str, str]:
    return {"address": _one_line(variant, city, state, zip_code)}


def _by_parts(variant: str, city: str, state: str, zip_code: str) -> dict[str, str]:
    params = {"street": variant, "city": city, "state": state}
    if zip_code:
        params["zipcode"] = zip_code
    return params


def _by_location(variant: str, city: str, state: str, zip_code: str) -> dict[str, str]:
    return {"location": _one_line(variant, city, state, zip_code)}


def _by_citystatezip(variant: str, city: str, state: str, zip_code: str) -> dict[str, str]:
    return {"address": variant, "citystatezip": f"{city}, {state} {zip_code}".strip()}


DEFAULT_ENDPOINT_SHAPES: tuple[EndpointShape, ...] = (
    EndpointShape("property-by-address", "/property", _by_address),
    EndpointShape("property-by-parts", "/property", _by_parts),
    EndpointShape("extended-search", "/propertyExtendedSearch", _by_location),
    EndpointShape("zestimate-by-address", "/zestimate", _by_citystatezip),
)


# ─── Configuration ───────────────────────────────────────────────────


@dataclass(frozen=True)
class ResolverConfig:
    """Static configuration; immutable after construction."""

    document_base_url: str = DEFAULT_DOCUMENT_BASE_URL
    api_base_url: str | None = None
    provider_key: str | None = None
    provider_host: str | None = None
    attempt_timeout_seconds: float = DEFAULT_ATTEMPT_TIMEOUT_SECONDS
    attempt_order: AttemptOrder = AttemptOrder.VARIANT_MAJOR
    preferred_sources: tuple[str, ...] = ("document", "api")
    accept_zero_score_fuzzy: bool = True
    endpoint_shapes: tuple[EndpointShape, ...] = field(default=DEFAULT_ENDPOINT_SHAPES)
    user_agent: str = DEFAULT_USER_AGENT

    @property
    def api_enabled(self) -> bool:
        """The API source needs both a base URL and a key."""
        return bool(self.api_base_url and self.provider_key)

    def provider_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.provider_key:
            headers["X-RapidAPI-Key"] = self.provider_key
        if self.provider_host:
            headers["X-RapidAPI-Host"] = self.provider_host
        return headers


def load_config(environ: Mapping[str, str] | None = None) -> ResolverConfig:
    """Build a ResolverConfig from environment variables.

    Args:
        environ: Mapping to read from. Defaults to os.environ.
    """
    env = os.environ if environ is None else environ

    sources = tuple(
        name.strip().lower()
        for name in env.get("RESOLVER_SOURCES", "document,api").split(",")
        if name.strip()
    )

    return ResolverConfig(
        document_base_url=env.get("RESOLVER_DOCUMENT_BASE_URL", DEFAULT_DOCUMENT_BASE_URL).rstrip("/"),
        api_base_url=(env.get("RESOLVER_API_BASE_URL") or "").rstrip("/") or None,
        provider_key=env.get("RESOLVER_PROVIDER_KEY") or None,
        provider_host=env.get("RESOLVER_PROVIDER_HOST") or None,
        attempt_timeout_seconds=float(
            env.get("RESOLVER_ATTEMPT_TIMEOUT", DEFAULT_ATTEMPT_TIMEOUT_SECONDS)
        ),
        attempt_order=AttemptOrder(
            env.get("RESOLVER_ATTEMPT_ORDER", AttemptOrder.VARIANT_MAJOR.value).lower()
        ),
        preferred_sources=sources,
        accept_zero_score_fuzzy=env.get("RESOLVER_ACCEPT_ZERO_SCORE", "true").lower()
        in {"true", "1", "yes"},
    )
