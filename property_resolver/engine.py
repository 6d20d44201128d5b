"""
Resolution engine — orchestrates the full workflow.

Flow:
  ┌─────────┐
  │  Query  │   ← address / city / state / zip
  └────┬────┘
       │
  ┌────▼────────┐
  │ Normalizer  │   ← ordered address variants, original first
  └────┬────────┘
       │
  ┌────▼────────┐
  │  Attempts   │   ← (variant × source × shape), fixed order
  └────┬────────┘
       │   one at a time; failures skip to the next attempt
  ┌────▼────────┐
  │   Scorer    │   ← strict (API) / fuzzy (document)
  └────┬────────┘
       │   stop at the first acceptable candidate
  ┌────▼────────┐
  │ Field Mapper│   ← ranked paths → CanonicalRecord
  └────┬────────┘
       │
  ┌────▼────────┐
  │   Result    │   ← record + confidence 0–100
  └─────────────┘

Design principles:
  - Attempts are sequential. They are speculative and cheap to stop early,
    and parallel fan-out would burn quota on rate-limited endpoints.
  - A failed attempt is not an error. It just advances enumeration.
  - No match is a normal outcome: ok=True, no record, confidence 0.
  - Nothing is shared between calls except the frozen config.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager

from .config import ResolverConfig, load_config
from .exceptions import InputError, SourceUnavailable
from .mapper import map_candidate
from .models import (
    CanonicalRecord,
    MatchMode,
    Query,
    ResolutionResult,
    SourceHit,
    SourceKind,
)
from .normalizer import normalize_address
from .sources import ApiSource, DocumentSource, SourceQuery, enumerate_attempts
from .transport import HttpTransport

logger = logging.getLogger(__name__)

# ─── Confidence Policy ──────────────────────────────────────────────

DOCUMENT_VALUATION_CONFIDENCE = 90
API_VALUATION_CONFIDENCE = 85  # Discounted: no direct page verification
STRICT_MATCH_CONFIDENCE = 60
FUZZY_FLOOR_CONFIDENCE = 20
FUZZY_POINT_CONFIDENCE = 10

NO_MATCH_NOTE = "No matching property found for any address variant."

TransportFactory = Callable[[ResolverConfig], HttpTransport]


class ResolutionEngine:
    """Resolves a Query into a canonical property record.

    Usage:
        engine = ResolutionEngine(load_config())
        result = engine.run(Query(address="123 Main St", city="Springfield", state="IL"))
        if result.canonical_record:
            print(result.canonical_record.zestimate, result.match_confidence)

    Pass `sources` to run against a fixed set of sources (stubs in tests);
    otherwise a transport is opened per request and the default sources are
    built on it.
    """

    def __init__(
        self,
        config: ResolverConfig | None = None,
        sources: Sequence[SourceQuery] | None = None,
        transport_factory: TransportFactory = HttpTransport,
    ):
        self.config = config or load_config()
        self._sources = tuple(sources) if sources is not None else None
        self._transport_factory = transport_factory

    @property
    def source_ids(self) -> list[str]:
        if self._sources is not None:
            return [source.source_id for source in self._sources]
        return [name for name in self.config.preferred_sources if self._source_enabled(name)]

    # ─── Request Boundary ────────────────────────────────────────────

    def run(self, query: Query) -> ResolutionResult:
        """Resolve, converting any unexpected failure into an ok=False result.

        InputError still propagates: malformed input is the caller's problem.
        """
        try:
            return self.resolve(query)
        except InputError:
            raise
        except Exception as e:
            logger.exception("Resolution failed unexpectedly for %r", query.address)
            return ResolutionResult(ok=False, error=str(e) or e.__class__.__name__)

    # ─── Resolution ──────────────────────────────────────────────────

    def resolve(self, query: Query) -> ResolutionResult:
        """Execute the full resolution workflow.

        Args:
            query: Address, city, state and optional zip.

        Returns:
            ResolutionResult; canonical_record is None when nothing matched.

        Raises:
            InputError: address, city or state is blank.
        """
        self._validate(query)

        # ── Step 1: Address variants ────────────────────────────────
        variants = normalize_address(query.address)
        logger.info("Resolving %r with %d variant(s)", query.address, len(variants))

        with self._open_sources() as sources:
            if not sources:
                return self._no_match("No sources are enabled.", attempts=0)

            # ── Step 2: Enumerate attempts in fixed order ───────────
            attempts = enumerate_attempts(variants, sources, self.config.attempt_order)
            by_id = {source.source_id: source for source in sources}

            # ── Step 3: Try each attempt until one is acceptable ────
            for attempt in attempts:
                source = by_id[attempt.source_id]
                try:
                    hit = source.fetch(attempt, query)
                except SourceUnavailable as e:
                    logger.warning(
                        "Attempt %d (%s, %r, %s) skipped: [%s] %s",
                        attempt.index, attempt.source_id, attempt.variant, attempt.shape, e.code, e,
                    )
                    continue

                if hit is None or not hit.scored.acceptable:
                    logger.info(
                        "Attempt %d (%s, %r, %s): no acceptable candidate",
                        attempt.index, attempt.source_id, attempt.variant, attempt.shape,
                    )
                    continue

                # ── Step 4: Map and score confidence ────────────────
                record = map_candidate(
                    hit.candidate,
                    source.kind,
                    document=hit.document,
                    property_url=hit.property_url,
                    base_url=self.config.document_base_url,
                )
                confidence = compute_confidence(record, hit, source.kind)
                logger.info(
                    "Matched on attempt %d via %s (confidence %d)",
                    attempt.index, attempt.source_id, confidence,
                )

                return ResolutionResult(
                    ok=True,
                    canonical_record=record,
                    source_description=hit.url,
                    match_confidence=confidence,
                    note=self._variant_note(attempt.variant, variants[0]),
                    matched_variant=attempt.variant,
                    attempts=attempt.index + 1,
                )

            return self._no_match(
                f"{NO_MATCH_NOTE} Tried {len(variants)} variant(s) across "
                f"{', '.join(by_id)} in {len(attempts)} attempt(s).",
                attempts=len(attempts),
                source_description=", ".join(by_id),
            )

    # ─── Sources ─────────────────────────────────────────────────────

    @contextmanager
    def _open_sources(self) -> Iterator[list[SourceQuery]]:
        """Yield the sources for one request; the transport is always closed."""
        if self._sources is not None:
            yield list(self._sources)
            return

        with self._transport_factory(self.config) as transport:
            built: dict[str, SourceQuery] = {
                "document": DocumentSource(transport.fetch_document, self.config),
                "api": ApiSource(transport.fetch_api, self.config),
            }
            yield [
                built[name]
                for name in self.config.preferred_sources
                if name in built and self._source_enabled(name)
            ]

    def _source_enabled(self, name: str) -> bool:
        if name == "api":
            return self.config.api_enabled
        return name == "document"

    # ─── Helpers ─────────────────────────────────────────────────────

    @staticmethod
    def _validate(query: Query) -> None:
        missing = [
            name for name in ("address", "city", "state") if not getattr(query, name).strip()
        ]
        if missing:
            raise InputError(
                f"{', '.join(missing)} required",
                {"missing": missing},
            )

    @staticmethod
    def _variant_note(variant: str, original: str) -> str | None:
        if variant == original:
            return None
        return f"Matched using address variant '{variant}'."

    @staticmethod
    def _no_match(note: str, attempts: int, source_description: str = "") -> ResolutionResult:
        return ResolutionResult(
            ok=True,
            canonical_record=None,
            source_description=source_description,
            match_confidence=0,
            note=note,
            attempts=attempts,
        )


def compute_confidence(record: CanonicalRecord, hit: SourceHit, kind: SourceKind) -> int:
    """Confidence policy.

    valuation present      → 90 (document) / 85 (API)
    fuzzy document pick    → max(20, fuzzy score × 10)
    strict match, no value → 60
    """
    if record.zestimate is not None:
        return DOCUMENT_VALUATION_CONFIDENCE if kind == SourceKind.DOCUMENT else API_VALUATION_CONFIDENCE
    if hit.scored.mode == MatchMode.FUZZY:
        return max(FUZZY_FLOOR_CONFIDENCE, hit.scored.address_match_score * FUZZY_POINT_CONFIDENCE)
    return STRICT_MATCH_CONFIDENCE
