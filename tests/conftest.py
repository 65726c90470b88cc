"""Shared fixtures for OMATrust core tests.

No test touches the network: HTTP goes through httpx.MockTransport and
DNS through a stub resolver.
"""

from contextlib import contextmanager
from typing import Callable, Iterable, List
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

_RealAsyncClient = httpx.AsyncClient


@contextmanager
def mock_http(module: str, handler: Callable[[httpx.Request], httpx.Response]):
    """Route every httpx.AsyncClient created in module through handler.

    Yields the list of requests seen, in order.
    """
    seen: List[httpx.Request] = []

    def recording(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    def factory(*args, **kwargs):
        kwargs["transport"] = httpx.MockTransport(recording)
        return _RealAsyncClient(*args, **kwargs)

    with patch(f"{module}.httpx.AsyncClient", side_effect=factory):
        yield seen


def txt_rdata(*strings: str) -> MagicMock:
    """Fake TXT rdata with the given character-strings."""
    rdata = MagicMock()
    rdata.strings = tuple(s.encode("utf-8") for s in strings)
    return rdata


def stub_resolver(records: Iterable = (), side_effect: Exception = None) -> MagicMock:
    """Resolver whose resolve() returns TXT rdatas or raises side_effect."""
    resolver = MagicMock()
    if side_effect is not None:
        resolver.resolve = AsyncMock(side_effect=side_effect)
    else:
        resolver.resolve = AsyncMock(return_value=list(records))
    return resolver


@pytest.fixture
def evm_address():
    """An EIP-55 test vector."""
    return "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"


@pytest.fixture
def http_mock():
    """mock_http context manager: ``with http_mock("app.omatrust.x", handler) as seen:``"""
    return mock_http


@pytest.fixture
def dns_stub():
    """Builders for stub resolvers: ``dns_stub.resolver(...)``, ``dns_stub.txt(...)``."""
    stub = MagicMock()
    stub.resolver = stub_resolver
    stub.txt = txt_rdata
    return stub
