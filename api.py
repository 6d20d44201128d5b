"""
Property Record Resolver — FastAPI Server
=========================================

RESTful API for resolving a street address into a canonical property record.

Endpoints:
    POST /resolve           Resolve an address (address, city, state, zip)
    POST /zestimate         Alias of /resolve
    GET  /health            Health check / readiness probe

Auth:
    If RESOLVER_CLIENT_KEY is set, requests must send it in the `x-api-key` header.

Run:
    uvicorn api:app --reload              # Dev (http://localhost:8000)
    uvicorn api:app --host 0.0.0.0        # Production

Docs:
    http://localhost:8000/docs             # Swagger UI (auto-generated)
"""

from __future__ import annotations

import hmac
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Header, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from property_resolver import __version__
from property_resolver.config import load_config
from property_resolver.engine import ResolutionEngine
from property_resolver.exceptions import InputError
from property_resolver.models import Query, ResolutionResult

load_dotenv()
logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").upper())


# ─── Application Lifespan (pre-build engine) ─────────────────────────

_engine: ResolutionEngine | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the engine (and its frozen config) once on startup."""
    global _engine  # noqa: PLW0603
    _engine = ResolutionEngine(load_config())
    yield
    _engine = None


# ─── FastAPI App ─────────────────────────────────────────────────────

app = FastAPI(
    title="Property Record Resolver API",
    description=(
        "Resolves a street address into one canonical property record. "
        "Address variants, ordered multi-source attempts, ranked-path field "
        "extraction, and a 0-100 match confidence."
    ),
    version=__version__,
    lifespan=lifespan,
)


# ─── Request / Response Schemas ─────────────────────────────────────


class ResolveRequest(Query):
    """Request body for /resolve."""

    model_config = {
        "str_strip_whitespace": True,
        "json_schema_extra": {
            "example": {
                "address": "123 Main St",
                "city": "Springfield",
                "state": "IL",
                "zip": "62704",
            }
        },
    }


class ErrorResponse(BaseModel):
    ok: bool = False
    error: str


class HealthResponse(BaseModel):
    status: str
    version: str
    sources: list[str]


# ─── Helpers ─────────────────────────────────────────────────────────


def _get_engine() -> ResolutionEngine:
    if _engine is None:
        raise HTTPException(status_code=503, detail="Engine not initialised")
    return _engine


def _check_client_key(x_api_key: Optional[str] = Header(default=None)) -> None:
    """Optional shared-secret gate. Disabled when RESOLVER_CLIENT_KEY is unset."""
    expected = os.environ.get("RESOLVER_CLIENT_KEY")
    if not expected:
        return
    if not x_api_key or not hmac.compare_digest(x_api_key, expected):
        raise HTTPException(status_code=401, detail="Invalid or missing API key")


# ─── Endpoints ───────────────────────────────────────────────────────


@app.post(
    "/resolve",
    summary="Resolve an address to a canonical property record",
    tags=["Resolution"],
    dependencies=[Depends(_check_client_key)],
    responses={
        400: {"model": ErrorResponse, "description": "address, city or state missing"},
        401: {"description": "Invalid or missing API key"},
        503: {"description": "Engine not yet initialised"},
    },
)
@app.post("/zestimate", include_in_schema=False, dependencies=[Depends(_check_client_key)])
def resolve(request: ResolveRequest) -> ResolutionResult:
    """Resolve one address.

    Returns:
    - **ok**: `false` only if something unexpected broke
    - **canonical_record**: the property record, or `null` when nothing matched
    - **match_confidence**: 0-100
    - **note**: why nothing matched, or which address variant matched
    """
    engine = _get_engine()
    try:
        return engine.run(request)
    except InputError as e:
        return JSONResponse(status_code=400, content={"ok": False, "error": str(e)})


@app.get(
    "/health",
    summary="Health check",
    tags=["System"],
    responses={503: {"description": "Engine not yet initialised"}},
)
def health_check() -> HealthResponse:
    """Returns service status and the sources that will be queried."""
    engine = _get_engine()
    return HealthResponse(status="healthy", version=__version__, sources=engine.source_ids)
