"""Shared pytest configuration and fixtures for floe-cts tests.

Provides:
- pytester for running the pytest plugin against generated suites
- registry isolation: the default registry is reset around every test
- small builders for function identities and registrations
"""

from __future__ import annotations

from collections.abc import Callable, Iterator

import pytest

from floe_cts.models import FunctionIdentity
from floe_cts.registry import Registry, _reset_registry, get_registry

pytest_plugins = ["pytester"]


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers",
        "requirement(id): Mark test with requirement ID for traceability",
    )


@pytest.fixture(autouse=True)
def reset_registry() -> Iterator[None]:
    """Give every test a fresh default registry."""
    _reset_registry()
    yield
    _reset_registry()


@pytest.fixture
def registry() -> Registry:
    """The (fresh) default registry."""
    return get_registry()


@pytest.fixture
def fid() -> Callable[[str, str], FunctionIdentity]:
    """Factory for FunctionIdentity values.

    Example:
        >>> def test_x(fid):
        ...     a = fid("A", "v1")
    """

    def _make(function_id: str, version: str = "v1") -> FunctionIdentity:
        return FunctionIdentity(function_id=function_id, version=version)

    return _make
