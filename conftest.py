"""Pytest configuration — ensures the project root is importable."""

import os
import sys
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest

sys.path.insert(0, str(Path(__file__).parent))


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch):
    """Strip resolver settings from the environment so every test starts from defaults."""
    for name in list(os.environ):
        if name.startswith("RESOLVER_"):
            monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture(autouse=True)
def _no_network_calls():
    """Prevent real HTTP traffic during tests — keeps the suite fast and offline.

    httpx.MockTransport is unaffected, so transport tests can still script responses.
    """
    def _refuse(self, request):
        raise httpx.ConnectError("network disabled in tests", request=request)

    with patch.object(httpx.HTTPTransport, "handle_request", _refuse):
        yield
