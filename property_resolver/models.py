"""
Pydantic models for resolution data.

The query and the outputs are strictly typed. Raw source payloads are NOT:
they stay plain nested dicts and are only ever read through the ranked-path
extractor in `paths.py`, because no two sources agree on their shape.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# A source payload: string keys, arbitrarily nested dicts/lists/scalars.
RawCandidate = dict[str, Any]


# ─── Enumerations ───────────────────────────────────────────────────


class SourceKind(str, Enum):
    """How a source delivers its data."""

    DOCUMENT = "document"  # Embedded data blob scraped from a page
    API = "api"  # JSON record from a remote endpoint


class MatchMode(str, Enum):
    """Which scorer validated a candidate."""

    STRICT = "strict"  # City/state/zip equality + numeric data present
    FUZZY = "fuzzy"  # Best substring match among search results


class AttemptOrder(str, Enum):
    """Enumeration order for (variant, source, shape) attempts."""

    VARIANT_MAJOR = "variant_major"  # Every source/shape for a variant before the next variant
    SOURCE_MAJOR = "source_major"  # Every variant/shape for a source before the next source


# ─── Query ──────────────────────────────────────────────────────────


class Query(BaseModel):
    """What the caller wants resolved.

    Fields default to empty so that a missing field is reported by the engine
    as an InputError instead of a schema error.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    address: str = ""
    city: str = ""
    state: str = ""
    zip: Optional[str] = None

    @field_validator("zip", mode="before")
    @classmethod
    def zip_as_text(cls, value: Any) -> Any:
        # JSON clients often send the zip as a number; restore dropped leading zeros.
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value).zfill(5)
        return value


# ─── Attempts & Candidates ──────────────────────────────────────────


class SourceAttempt(BaseModel):
    """One concrete (source, variant, shape) pairing to try."""

    model_config = ConfigDict(frozen=True)

    index: int
    source_id: str
    variant: str
    shape: Optional[str] = None  # None for sources with a single fixed shape


class ScoredCandidate(BaseModel):
    """A fetched candidate plus the scorer's verdict."""

    raw: RawCandidate
    mode: MatchMode
    address_match_score: int = 0
    city_match: bool = False
    state_match: bool = False
    zip_match: bool = False
    acceptable: bool = False


class SourceHit(BaseModel):
    """What a source hands back for one attempt: the candidate and where it came from."""

    scored: ScoredCandidate
    url: str
    document: Optional[RawCandidate] = None  # Full fetched blob, for numeric rescue scans
    property_url: Optional[str] = None

    @property
    def candidate(self) -> RawCandidate:
        return self.scored.raw


# ─── Canonical Record ───────────────────────────────────────────────


class PriceHistoryEntry(BaseModel):
    """One event in a property's price history."""

    event: Optional[str] = None
    date: Optional[str] = None
    price: Optional[int] = None


class CanonicalRecord(BaseModel):
    """The fixed, source-independent output schema.

    Field names are the wire names. Every field is optional: no single source
    populates all of them.
    """

    # Identifiers & type
    zpid: Optional[int] = None
    homeType: Optional[str] = None
    homeStatus: Optional[str] = None

    # Structural facts
    yearBuilt: Optional[int] = None
    lotSize: Optional[float] = None
    livingArea: Optional[int] = None
    numBedrooms: Optional[int] = None
    numBathrooms: Optional[float] = None
    numFloors: Optional[int] = None
    numParkingSpaces: Optional[int] = None
    parking: Optional[str] = None
    parkingFeatures: Optional[list[str]] = None
    garageSpaces: Optional[int] = None
    pool: Optional[bool] = None
    roofType: Optional[str] = None
    sewer: Optional[list[str]] = None
    water: Optional[list[str]] = None

    # Location
    county: Optional[str] = None

    # Valuation
    zestimate: Optional[int] = None
    zestimateLow: Optional[int] = None
    zestimateHigh: Optional[int] = None
    rentZestimate: Optional[int] = None
    taxAnnualAmount: Optional[float] = None
    taxAssessedValue: Optional[int] = None
    monthlyHoaFee: Optional[float] = None

    # History
    lastSoldPrice: Optional[int] = None
    lastSoldDate: Optional[str] = None
    priceHistory: Optional[list[PriceHistoryEntry]] = None

    # Media
    imgSrc: Optional[str] = None
    photos: Optional[list[str]] = None
    property_url: Optional[str] = None


# ─── Resolution Result ──────────────────────────────────────────────


class ResolutionResult(BaseModel):
    """The final output of one resolution call.

    An unmatched address is ok=True with no record and confidence 0.
    Only an unexpected failure produces ok=False (with `error` set).
    """

    ok: bool
    canonical_record: Optional[CanonicalRecord] = None
    source_description: str = ""
    match_confidence: int = Field(default=0, ge=0, le=100)
    note: Optional[str] = None
    error: Optional[str] = None
    matched_variant: Optional[str] = None
    attempts: int = 0
