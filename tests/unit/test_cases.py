"""Unit tests for floe_cts.cases (cts_case declaration)."""

from __future__ import annotations

import time
from collections.abc import Callable

import pytest

from floe_cts.cases import CTS_MARKER, cts_case, suite_name
from floe_cts.models import FunctionIdentity
from floe_cts.registry import Registry

FidFactory = Callable[..., FunctionIdentity]


class BasicMath:
    def test_addition(self) -> None:
        pass


def sample_case() -> None:
    pass


class TestSuiteName:
    """Tests for suite_name()."""

    @pytest.mark.requirement("CTS-FR-003")
    def test_method_uses_class(self) -> None:
        """Test methods belong to their enclosing class."""
        assert suite_name(BasicMath.test_addition) == "BasicMath"

    @pytest.mark.requirement("CTS-FR-003")
    def test_function_uses_module_short_name(self) -> None:
        """Test module-level functions belong to their module."""
        assert suite_name(sample_case) == "test_cases"


class TestCtsCase:
    """Tests for the cts_case decorator."""

    @pytest.mark.requirement("CTS-FR-003")
    def test_registers_at_decoration(self, fid: FidFactory) -> None:
        """Test decoration records the case under suite.case."""
        registry = Registry()

        def check() -> None:
            pass

        class Calc:
            @cts_case("MATH_ADD", "v1.0", post_check=check, registry=registry)
            def test_add(self) -> None:
                pass

        registration = registry.lookup(f"{Calc.__qualname__}.test_add")
        assert registration is not None
        assert registration.identity == fid("MATH_ADD", "v1.0")
        assert registration.post_check is check

    @pytest.mark.requirement("CTS-FR-003")
    def test_default_registry(self, registry: Registry, fid: FidFactory) -> None:
        """Test the default registry is used when none is given."""

        @cts_case("MATH_ADD", "v1.0", suite="BasicMath")
        def test_addition() -> None:
            pass

        assert registry.lookup("BasicMath.test_addition") is not None

    @pytest.mark.requirement("CTS-FR-003")
    def test_marker_attached(self, fid: FidFactory) -> None:
        """Test the cts marker carries the name and identity."""

        @cts_case("PERF_QUICK", "v1.0", timeout_ms=1000, suite="Perf", registry=Registry())
        def test_quick() -> None:
            pass

        marks = [m for m in test_quick.pytestmark if m.name == CTS_MARKER]  # type: ignore[attr-defined]
        assert len(marks) == 1
        assert marks[0].kwargs == {
            "test_name": "Perf.test_quick",
            "identity": fid("PERF_QUICK", "v1.0"),
            "timeout_ms": 1000,
        }

    @pytest.mark.requirement("CTS-FR-003")
    def test_without_timeout_function_is_unwrapped(self) -> None:
        """Test no deadline leaves the test function itself in place."""

        def test_plain() -> None:
            pass

        decorated = cts_case("A", "v1", registry=Registry())(test_plain)
        assert decorated is test_plain

    @pytest.mark.requirement("CTS-FR-003")
    @pytest.mark.parametrize(("function_id", "version"), [("", "v1.0"), ("MATH_ADD", "")])
    def test_empty_identity_leaves_plain_test(self, function_id: str, version: str) -> None:
        """Test an empty id or version neither raises nor registers."""
        registry = Registry()

        def test_plain() -> None:
            pass

        decorated = cts_case(function_id, version, registry=registry)(test_plain)

        assert decorated is test_plain
        assert not hasattr(decorated, "pytestmark")
        assert len(registry) == 0

    @pytest.mark.requirement("CTS-FR-003")
    def test_empty_identity_keeps_deadline(self) -> None:
        """Test the deadline still applies when the identity is rejected."""

        @cts_case("", "v1.0", timeout_ms=50, registry=Registry())
        def test_slow() -> None:
            time.sleep(0.5)

        with pytest.raises(pytest.fail.Exception, match="timed out after 50 ms"):
            test_slow()


class TestSupervisedCase:
    """Tests for cases declared with timeout_ms."""

    @pytest.mark.requirement("CTS-FR-004")
    def test_quick_body_passes(self) -> None:
        """Test a body inside its deadline returns normally."""
        calls: list[int] = []

        @cts_case("PERF_QUICK", "v1.0", timeout_ms=1000, registry=Registry())
        def test_quick(value: int) -> None:
            time.sleep(0.05)
            calls.append(value)

        test_quick(7)
        assert calls == [7]
        assert test_quick.__name__ == "test_quick"

    @pytest.mark.requirement("CTS-FR-004")
    def test_slow_body_fails_test(self) -> None:
        """Test a body outliving its deadline fails the test."""

        @cts_case("PERF_SLOW", "v1.0", timeout_ms=50, registry=Registry())
        def test_slow() -> None:
            time.sleep(0.5)

        with pytest.raises(pytest.fail.Exception, match="timed out after 50 ms"):
            test_slow()

    @pytest.mark.requirement("CTS-FR-004")
    def test_assertion_in_body_fails_test(self) -> None:
        """Test a failing assertion surfaces with its message."""

        @cts_case("MATH_ADD", "v1.0", timeout_ms=500, registry=Registry())
        def test_wrong() -> None:
            assert 2 + 2 == 5, "math is broken"

        with pytest.raises(pytest.fail.Exception, match="math is broken"):
            test_wrong()
