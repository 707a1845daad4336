"""Declaration of CTS test cases.

cts_case() registers, at import time of the test module, which function a
test covers, and optionally its verification hooks and deadline.

Usage:
    @cts_case("MATH_ADD", "v1.0")
    def test_addition() -> None:
        assert 2 + 3 == 5

    class TestPerformance:
        @cts_case("PERF_SLOW", "v1.0", timeout_ms=800)
        def test_slow_operation(self) -> None:
            time.sleep(1.2)  # reported as timed out

    @cts_case("NETWORK_BAD", "v2.0", post_check=connection_closed)
    def test_bad_connection() -> None:
        set_scratch("connection_status", "open")

The full test name is "<suite>.<case>", where suite is the enclosing class
(qualified name) or, for module-level tests, the module's short name.
"""

from __future__ import annotations

import functools
from collections.abc import Callable
from typing import Any, TypeVar

import pytest
import structlog
from pydantic import ValidationError

from floe_cts.models import CheckFunc, FunctionIdentity
from floe_cts.registry import Registry, full_test_name, get_registry
from floe_cts.supervisor import run_with_timeout

logger = structlog.get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

# Marker attached to every declared case, read by the pytest plugin
CTS_MARKER = "cts"


def suite_name(func: Callable[..., Any]) -> str:
    """Suite of a test function: enclosing class, else module short name."""
    qualname = func.__qualname__
    owner, sep, _ = qualname.rpartition(".")
    if sep:
        return owner
    return func.__module__.rpartition(".")[2]


def cts_case(
    function_id: str,
    version: str,
    *,
    pre_check: CheckFunc | None = None,
    post_check: CheckFunc | None = None,
    timeout_ms: int | None = None,
    suite: str | None = None,
    registry: Registry | None = None,
) -> Callable[[F], F]:
    """Declare the function a test case covers.

    Args:
        function_id: Covered function id.
        version: Covered function version.
        pre_check: Optional hook run before the body.
        post_check: Optional hook run after the body.
        timeout_ms: Optional deadline; the body then runs under the timeout
            supervisor and fails the test when it does not pass in time.
        suite: Override the derived suite name.
        registry: Registry to record into. Defaults to get_registry().

    Returns:
        Decorator returning the (possibly wrapped) test. The test is marked
        and registered unless function_id or version is empty; such a
        declaration is logged and the test runs as a plain test.
    """
    try:
        identity: FunctionIdentity | None = FunctionIdentity(
            function_id=function_id,
            version=version,
        )
    except ValidationError as e:
        # Raising here would turn into a collection error for the whole module
        logger.error(
            "cases.identity_rejected",
            function_id=function_id,
            version=version,
            errors=[err["msg"] for err in e.errors()],
        )
        identity = None

    def decorator(func: F) -> F:
        test_name = full_test_name(suite or suite_name(func), func.__name__)

        target: Callable[..., Any] = func
        if timeout_ms is not None:
            target = _supervised(func, timeout_ms)

        if identity is None:
            return target  # type: ignore[return-value]

        target_registry = registry if registry is not None else get_registry()
        target_registry.register_case(test_name, identity, pre_check, post_check)

        marker = getattr(pytest.mark, CTS_MARKER)(
            test_name=test_name,
            identity=identity,
            timeout_ms=timeout_ms,
        )
        return marker(target)  # type: ignore[no-any-return]

    return decorator


def _supervised(func: Callable[..., Any], timeout_ms: int) -> Callable[..., Any]:
    """Wrap a test so its body runs under the timeout supervisor."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> None:
        outcome = run_with_timeout(lambda: func(*args, **kwargs), timeout_ms)
        if not outcome.passed:
            if outcome.timed_out:
                pytest.fail(f"Test timed out after {timeout_ms} ms", pytrace=False)
            pytest.fail(
                f"Test {outcome.status.value} (timeout {timeout_ms} ms): {outcome.message}",
                pytrace=False,
            )

    return wrapper


__all__ = [
    "CTS_MARKER",
    "cts_case",
    "suite_name",
]
