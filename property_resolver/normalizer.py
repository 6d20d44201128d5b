"""
Address normalization and variant generation.

Sources disagree on how a street address is spelled ("Main St" vs "Main Street",
with or without a directional). Rather than guess the one true spelling, we
generate a small, ordered set of plausible spellings and let the engine try them
in turn — always starting with exactly what the user typed.

Variant order:
  1. The trimmed input
  2. Long suffixes abbreviated   ("Street" → "St")
  3. Short suffixes expanded     ("St" → "Street")
  4. Directionals inserted after the house number (E, W, N, S), only when the
     address has none and starts with a house number
"""

from __future__ import annotations

import re

# ─── Abbreviation Table ──────────────────────────────────────────────
# (long form, short form). Used in both directions.

_SUFFIX_PAIRS: tuple[tuple[str, str], ...] = (
    ("Street", "St"),
    ("Avenue", "Ave"),
    ("Boulevard", "Blvd"),
    ("Drive", "Dr"),
    ("Road", "Rd"),
    ("Lane", "Ln"),
    ("Court", "Ct"),
    ("Place", "Pl"),
    ("Terrace", "Ter"),
    ("Circle", "Cir"),
)

_DIRECTIONALS: frozenset[str] = frozenset({"N", "S", "E", "W", "NE", "NW", "SE", "SW"})

# Inserted in this order when the address has no directional.
_INSERTED_DIRECTIONALS: tuple[str, ...] = ("E", "W", "N", "S")

_HOUSE_NUMBER_RE = re.compile(r"^(\d+)\s+(\S.*)$")


def _word_pattern(word: str) -> re.Pattern[str]:
    # Preceded by whitespace, optional trailing period, followed by whitespace or comma.
    return re.compile(rf"(\s){re.escape(word)}\.?(?=[\s,])", re.IGNORECASE)


_ABBREVIATE: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (_word_pattern(long), short) for long, short in _SUFFIX_PAIRS
)
_EXPAND: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (_word_pattern(short), long) for long, short in _SUFFIX_PAIRS
)


# ─── Public API ──────────────────────────────────────────────────────


def normalize_address(address: str) -> list[str]:
    """Expand a free-text street address into an ordered, deduplicated variant list.

    Args:
        address: The street line as the user typed it (e.g. "123 Main St").

    Returns:
        Variants in try-order, the trimmed input first. Empty for blank input.
    """
    original = (address or "").strip()
    if not original:
        return []

    variants: list[str] = [original]

    def add(candidate: str) -> None:
        if candidate and candidate not in variants:
            variants.append(candidate)

    add(_substitute(original, _ABBREVIATE))
    add(_substitute(original, _EXPAND))

    if not has_directional(original):
        for variant in directional_variants(original):
            add(variant)

    return variants


def has_directional(address: str) -> bool:
    """True if any whole word of the address is a compass directional."""
    return any(token.rstrip(".,").upper() in _DIRECTIONALS for token in address.split())


def directional_variants(address: str) -> list[str]:
    """Insert E/W/N/S after the house number: "413 5th St" → "413 E 5th St", ...

    Returns an empty list when the address does not start with a house number.
    """
    match = _HOUSE_NUMBER_RE.match(address.strip())
    if not match:
        return []
    number, street = match.groups()
    return [f"{number} {direction} {street}" for direction in _INSERTED_DIRECTIONALS]


def slugify(text: str | None) -> str:
    """Hyphenate an address part for search URLs: "123 Main St." → "123-main-st"."""
    value = re.sub(r"[.,]", "", str(text or "").strip())
    return re.sub(r"\s+", "-", value).lower()


# ─── Internal Helpers ────────────────────────────────────────────────


def _substitute(address: str, table: tuple[tuple[re.Pattern[str], str], ...]) -> str:
    """Apply every whole-word substitution in `table` to the padded address."""
    padded = f" {address} "
    for pattern, replacement in table:
        padded = pattern.sub(lambda m, r=replacement: f"{m.group(1)}{r}", padded)
    return re.sub(r"\s+", " ", padded).strip()
