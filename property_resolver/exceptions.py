"""
Custom exception hierarchy for record resolution.

Each exception type maps to one category of failure so the engine can decide
precisely what is fatal (bad input) and what merely skips an attempt
(an unreachable or garbled source).
"""

from __future__ import annotations


class ResolverError(Exception):
    """Base exception for all resolution failures."""

    def __init__(self, code: str, message: str, details: dict | None = None):
        self.code = code
        self.details = details or {}
        super().__init__(message)


class InputError(ResolverError):
    """The query is missing address, city or state. Resolution never starts."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("INPUT_INVALID", message, details)


class SourceUnavailable(ResolverError):
    """One attempt timed out, failed in transport, or got a non-success status."""

    def __init__(self, message: str, details: dict | None = None, code: str = "SOURCE_UNAVAILABLE"):
        super().__init__(code, message, details)


class MalformedSource(SourceUnavailable):
    """A fetched page or JSON body could not be parsed, or was structurally empty."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, details, code="SOURCE_MALFORMED")
