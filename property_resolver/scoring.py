"""
Candidate scoring — decides whether a fetched record is the property asked for.

Two modes:
  STRICT  (API attempts): the candidate must agree with the query on city,
          state and (if given) zip, AND carry a valuation or an identifier.
          Equality only — never substring — because an API answers with exactly
          one record and a near miss is the wrong house.
  FUZZY   (document search results): rank a list of results by substring
          containment of the address and city; best score wins, first seen
          breaks ties. A search page may list neighbours, so we pick the best
          of what is there.

All comparisons use `normalize_for_match`: lowercase, alphanumerics only.
"""

from __future__ import annotations

import re
from typing import Any

from .models import MatchMode, Query, RawCandidate, ScoredCandidate
from .paths import extract, extract_int, extract_str, walk

# ─── Candidate Field Paths ───────────────────────────────────────────

CITY_PATHS: tuple[str, ...] = (
    "address.city",
    "city",
    "propertyAddress.city",
    "location.city",
)
STATE_PATHS: tuple[str, ...] = (
    "address.state",
    "state",
    "propertyAddress.state",
    "location.state",
)
ZIP_PATHS: tuple[str, ...] = (
    "address.zipcode",
    "zipcode",
    "address.zip",
    "zip",
    "propertyAddress.zipcode",
    "postalCode",
    "location.postalCode",
)
STREET_PATHS: tuple[str, ...] = (
    "address.streetAddress",
    "streetAddress",
    "address",
    "addressStreet",
    "propertyAddress.streetAddress",
    "hdpData.homeInfo.streetAddress",
)
VALUATION_PATHS: tuple[str, ...] = (
    "zestimate",
    "price.zestimate",
    "hdpData.homeInfo.zestimate",
    "estimate.value",
    "valuation",
)
IDENTIFIER_PATHS: tuple[str, ...] = (
    "zpid",
    "property.zpid",
    "hdpData.homeInfo.zpid",
    "id",
)

# Score weights for fuzzy selection
ADDRESS_HIT_SCORE = 2
CITY_HIT_SCORE = 1


# ─── Public API ──────────────────────────────────────────────────────


def normalize_for_match(value: Any) -> str:
    """Lowercase and strip everything that is not a letter or digit."""
    if value is None:
        return ""
    return re.sub(r"[^a-z0-9]", "", str(value).lower())


def score_strict(query: Query, candidate: RawCandidate, variant: str | None = None) -> ScoredCandidate:
    """Validate a single API record against the query.

    Args:
        query: The resolution query.
        candidate: The unwrapped API record.
        variant: The address variant that was sent (for the informational
            address score). Defaults to the query address.

    Returns:
        ScoredCandidate with `acceptable` set per the strict rule.
    """
    city_match = _equal(extract(candidate, CITY_PATHS), query.city)
    state_match = _equal(extract(candidate, STATE_PATHS), query.state)

    query_zip = normalize_for_match(query.zip)
    zip_match = not query_zip or _zip_equal(extract(candidate, ZIP_PATHS), query_zip)

    has_valuation = extract_int(candidate, VALUATION_PATHS) is not None
    has_identifier = extract_str(candidate, IDENTIFIER_PATHS) is not None

    return ScoredCandidate(
        raw=candidate,
        mode=MatchMode.STRICT,
        address_match_score=address_score(
            _candidate_address(candidate), variant or query.address, query.city
        ),
        city_match=city_match,
        state_match=state_match,
        zip_match=zip_match,
        acceptable=(
            city_match and state_match and zip_match and (has_valuation or has_identifier)
        ),
    )


def address_score(candidate_address: str, address: str, city: str) -> int:
    """2 if the candidate contains the address, +1 if it contains the city."""
    haystack = normalize_for_match(candidate_address)
    if not haystack:
        return 0
    score = 0
    needle = normalize_for_match(address)
    if needle and needle in haystack:
        score += ADDRESS_HIT_SCORE
    city_needle = normalize_for_match(city)
    if city_needle and city_needle in haystack:
        score += CITY_HIT_SCORE
    return score


def select_fuzzy(
    address: str,
    city: str,
    results: list[Any],
    accept_zero_score: bool = True,
) -> ScoredCandidate | None:
    """Pick the best-matching entry from a search result list.

    A best score of 0 still selects the first result; `accept_zero_score`
    decides whether that best-effort pick is `acceptable`.

    Returns:
        The winning ScoredCandidate, or None if no entry is a record at all.
    """
    best: ScoredCandidate | None = None

    for entry in results:
        if not isinstance(entry, dict):
            continue
        score = address_score(_candidate_address(entry), address, city)
        if best is None or score > best.address_match_score:
            best = ScoredCandidate(
                raw=entry,
                mode=MatchMode.FUZZY,
                address_match_score=score,
                acceptable=score > 0 or accept_zero_score,
            )

    return best


# ─── Internal Helpers ────────────────────────────────────────────────


def _equal(candidate_value: Any, query_value: str | None) -> bool:
    expected = normalize_for_match(query_value)
    return bool(expected) and normalize_for_match(candidate_value) == expected


def _zip_equal(candidate_value: Any, query_zip: str) -> bool:
    """Normalized equality; a plain 5-digit ZIP on either side matches any ZIP+4 extension.

    "62704" vs "62704-1234" → match, "62704-1234" vs "62704-9999" → no match.
    """
    candidate_zip = normalize_for_match(candidate_value)
    if not candidate_zip:
        return False
    if len(candidate_zip) == 5 or len(query_zip) == 5:
        return candidate_zip[:5] == query_zip[:5]
    return candidate_zip == query_zip


def _candidate_address(candidate: RawCandidate) -> str:
    """Best-effort single-line address for a candidate, whatever its shape."""
    for path in STREET_PATHS:
        value = walk(candidate, path)
        if isinstance(value, str) and value.strip():
            return value
    return ""
