#!/usr/bin/env python3
"""
Property Record Resolver — Entry Point
======================================

Resolves one address from the command line and prints the canonical record.

Usage:
    python main.py                                           # Sample address
    python main.py "123 Main St" Springfield IL 62704        # Your address
    RESOLVER_API_BASE_URL=... RESOLVER_PROVIDER_KEY=... python main.py ...   # + API source
"""

from __future__ import annotations

import logging
import os
import sys

from dotenv import load_dotenv

from property_resolver.config import load_config
from property_resolver.engine import ResolutionEngine
from property_resolver.exceptions import InputError
from property_resolver.models import CanonicalRecord, Query, ResolutionResult

load_dotenv()

SAMPLE_QUERY = Query(address="123 Main St", city="Springfield", state="IL", zip="62704")


# ─── ANSI Color Constants ───────────────────────────────────────────

_RED = "\033[91m"
_YELLOW = "\033[93m"
_GREEN = "\033[92m"
_CYAN = "\033[96m"
_DIM = "\033[2m"
_BOLD = "\033[1m"
_RESET = "\033[0m"
_WIDTH = 72


# ─── Pretty Printer Helpers ─────────────────────────────────────────


def _money(value: int | float | None) -> str:
    return f"${value:,.0f}" if value is not None else f"{_DIM}n/a{_RESET}"


def _print_record(record: CanonicalRecord) -> None:
    """Print the headline fields of a canonical record."""
    print(f"  ZPID:        {record.zpid}")
    print(f"  Type:        {record.homeType}  {_DIM}({record.homeStatus}){_RESET}")
    print(f"  Zestimate:   {_BOLD}{_money(record.zestimate)}{_RESET}")
    if record.zestimateLow or record.zestimateHigh:
        print(f"  Range:       {_money(record.zestimateLow)} - {_money(record.zestimateHigh)}")
    print(f"  Rent est.:   {_money(record.rentZestimate)}")
    print(f"  Beds/Baths:  {record.numBedrooms} / {record.numBathrooms}")
    print(f"  Living area: {record.livingArea}")
    print(f"  Year built:  {record.yearBuilt}")
    if record.lastSoldPrice:
        print(f"  Last sold:   {_money(record.lastSoldPrice)} on {record.lastSoldDate}")
    if record.priceHistory:
        print(f"  History:     {len(record.priceHistory)} event(s)")
    if record.property_url:
        print(f"  URL:         {record.property_url}")


# ─── Pretty Printer ─────────────────────────────────────────────────


def print_result(result: ResolutionResult) -> int:
    """Pretty-print a resolution result.

    Returns:
        0 if a record was found, 1 otherwise.
    """
    print(f"\n{'=' * _WIDTH}")
    print(f"{_BOLD}{_CYAN}  PROPERTY RESOLUTION{_RESET}")
    print(f"{'=' * _WIDTH}")
    print(f"  Source:      {result.source_description or '-'}")
    print(f"  Attempts:    {result.attempts}")
    if result.matched_variant:
        print(f"  Variant:     {result.matched_variant}")
    print(f"{'─' * _WIDTH}")

    if result.canonical_record:
        _print_record(result.canonical_record)
        print(f"{'─' * _WIDTH}")

    if result.note:
        print(f"  {_YELLOW}{result.note}{_RESET}")

    print(f"{'=' * _WIDTH}")
    if not result.ok:
        print(f"  {_RED}{_BOLD}FAILED  --  {result.error}{_RESET}")
    elif result.canonical_record:
        print(f"  {_GREEN}{_BOLD}MATCHED  --  confidence {result.match_confidence}/100{_RESET}")
    else:
        print(f"  {_YELLOW}{_BOLD}NO MATCH{_RESET}")
    print(f"{'=' * _WIDTH}\n")

    return 0 if result.ok and result.canonical_record else 1


# ─── Main ────────────────────────────────────────────────────────────


def _query_from_args(args: list[str]) -> Query:
    if not args:
        return SAMPLE_QUERY
    fields = ["address", "city", "state", "zip"]
    return Query(**dict(zip(fields, args)))


def main():
    """Resolve the address given on the command line and print the result."""
    logging.basicConfig(level=os.environ.get("LOG_LEVEL", "WARNING").upper())
    query = _query_from_args(sys.argv[1:])

    print(f"\n  Resolving {query.address}, {query.city}, {query.state} {query.zip or ''}...\n")

    engine = ResolutionEngine(load_config())
    try:
        result = engine.run(query)
    except InputError as e:
        print(f"  {_RED}{e}{_RESET}")
        print("  Usage: python main.py \"<address>\" <city> <state> [zip]\n")
        sys.exit(2)

    sys.exit(print_result(result))


if __name__ == "__main__":
    main()
