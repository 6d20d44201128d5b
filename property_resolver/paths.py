"""
Ranked-path extraction from untyped source payloads.

Every source nests the same fact somewhere different ("zestimate" vs
"price.zestimate" vs "hdpData.homeInfo.zestimate"). Instead of binding to one
structure, every field is read through an ORDERED list of dotted paths: the
first path that walks all the way to a non-null value wins.

Design:
  - A missing intermediate key simply fails that path. Nothing raises.
  - All-digit segments index into lists ("props.0.zpid").
  - Numeric coercion treats 0 and garbage as absent.
  - The regex rescue scan is for numeric fields only — a loose string match
    over a serialized blob is too likely to grab the wrong text.
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

_MISSING = object()


# ─── Path Walking ────────────────────────────────────────────────────


def walk(record: Any, path: str) -> Any:
    """Follow one dotted path. Returns None if any segment is missing."""
    node = record
    for segment in path.split("."):
        if isinstance(node, Mapping):
            node = node.get(segment, _MISSING)
        elif isinstance(node, Sequence) and not isinstance(node, str) and segment.isdigit():
            index = int(segment)
            node = node[index] if index < len(node) else _MISSING
        else:
            return None
        if node is _MISSING or node is None:
            return None
    return node


def extract(record: Any, paths: Iterable[str]) -> Any:
    """Return the value at the first path that resolves to something non-null.

    Example:
        extract({"c": 5}, ["a.b", "c"]) → 5
    """
    for path in paths:
        value = walk(record, path)
        if value is not None:
            return value
    return None


def extract_numeric_fallback(
    record: Any, field_name: str, length_range: tuple[int, int] = (4, 9)
) -> int | None:
    """Last-resort scan: find `"field_name": 1234567` anywhere in the serialized record.

    Only integers with a digit count inside `length_range` are accepted. A quoted
    integer (`"zpid": "2077838"`) also counts, since identifiers are often
    serialized as strings.
    """
    if record is None:
        return None
    try:
        text = json.dumps(record, default=str)
    except (TypeError, ValueError):
        return None

    low, high = length_range
    pattern = rf'"{re.escape(field_name)}"\s*:\s*"?(\d{{{low},{high}}})(?![\d.])"?'
    match = re.search(pattern, text)
    if not match:
        return None
    return coerce_int(match.group(1))


# ─── Coercion ────────────────────────────────────────────────────────


def coerce_int(value: Any) -> int | None:
    """Coerce to a positive-looking integer. 0, NaN, and unparsable input → None.

    Strings are stripped of every non-digit character first ("$412,300" → 412300).
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        result = int(round(value))
        return result or None
    digits = re.sub(r"\D", "", str(value))
    if not digits:
        return None
    return int(digits) or None


def coerce_float(value: Any) -> float | None:
    """Like coerce_int, but keeps the decimal point ("2.5 baths" → 2.5)."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        result = float(value)
    else:
        cleaned = re.sub(r"[^\d.]", "", str(value))
        try:
            result = float(cleaned)
        except ValueError:
            return None
    if not math.isfinite(result) or result == 0:
        return None
    return result


def coerce_bool(value: Any) -> bool | None:
    """Booleans pass through; "yes"/"true"/"no"/"false" strings are recognised."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "y", "1"}:
            return True
        if lowered in {"false", "no", "n", "0"}:
            return False
    return None


def coerce_str(value: Any) -> str | None:
    """Scalars become stripped strings; empty strings and containers are absent."""
    if value is None or isinstance(value, (Mapping, list, tuple)):
        return None
    text = str(value).strip()
    return text or None


def coerce_str_list(value: Any) -> list[str] | None:
    """A list of scalars, or a single comma-separated string, becomes a list of strings."""
    if isinstance(value, str):
        items = [part.strip() for part in value.split(",")]
    elif isinstance(value, (list, tuple)):
        items = [coerce_str(item) or "" for item in value]
    else:
        return None
    items = [item for item in items if item]
    return items or None


# ─── Typed Extractors ────────────────────────────────────────────────
# Each tries the paths in order and returns the first value that survives
# coercion, so a "0" placeholder at a preferred path does not hide a real
# value further down the list.


def _extract_coerced(record: Any, paths: Iterable[str], coerce) -> Any:
    for path in paths:
        value = coerce(walk(record, path))
        if value is not None:
            return value
    return None


def extract_int(record: Any, paths: Iterable[str]) -> int | None:
    return _extract_coerced(record, paths, coerce_int)


def extract_float(record: Any, paths: Iterable[str]) -> float | None:
    return _extract_coerced(record, paths, coerce_float)


def extract_bool(record: Any, paths: Iterable[str]) -> bool | None:
    return _extract_coerced(record, paths, coerce_bool)


def extract_str(record: Any, paths: Iterable[str]) -> str | None:
    return _extract_coerced(record, paths, coerce_str)


def extract_str_list(record: Any, paths: Iterable[str]) -> list[str] | None:
    return _extract_coerced(record, paths, coerce_str_list)


def extract_list(record: Any, paths: Iterable[str]) -> list[Any] | None:
    """First path whose value is a non-empty list."""
    return _extract_coerced(
        record, paths, lambda v: v if isinstance(v, list) and v else None
    )
