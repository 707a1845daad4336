"""Unit tests for floe_cts.hooks.

Tests per-phase fault isolation of pre-checks, bodies and post-checks.
"""

from __future__ import annotations

from collections.abc import Callable

import pytest

from floe_cts.hooks import HookRunner, run_body, run_phase
from floe_cts.models import CasePhase, FunctionIdentity, OutcomeStatus
from floe_cts.registry import Registry
from floe_cts.scratchpad import get_scratch, set_scratch
from floe_cts.supervisor import current_cancel_token

FidFactory = Callable[..., FunctionIdentity]


def _raise(message: str) -> Callable[[], None]:
    def hook() -> None:
        raise RuntimeError(message)

    return hook


class TestRunPhase:
    """Tests for run_phase()."""

    @pytest.mark.requirement("CTS-FR-005")
    def test_missing_hook_is_skipped(self) -> None:
        """Test None means nothing ran and nothing failed."""
        result = run_phase(CasePhase.PRE_CHECK, None, "S.c")
        assert not result.ran
        assert result.ok

    @pytest.mark.requirement("CTS-FR-005")
    def test_fault_becomes_failed_result(self) -> None:
        """Test exceptions are converted, not raised."""
        result = run_phase(CasePhase.POST_CHECK, _raise("broken"), "S.c")
        assert result.ran
        assert not result.ok
        assert result.message == "RuntimeError: broken"

    @pytest.mark.requirement("CTS-FR-005")
    def test_system_exit_propagates(self) -> None:
        """Test hooks do not swallow process termination."""

        def hook() -> None:
            raise SystemExit(3)

        with pytest.raises(SystemExit):
            run_phase(CasePhase.POST_CHECK, hook, "S.c")


class TestRunBody:
    """Tests for run_body()."""

    @pytest.mark.requirement("CTS-FR-005")
    @pytest.mark.parametrize(
        ("body", "status"),
        [
            (lambda: None, OutcomeStatus.PASSED),
            (lambda: False, OutcomeStatus.FAILED),
        ],
    )
    def test_return_values(self, body: Callable[[], object], status: OutcomeStatus) -> None:
        """Test None passes and False fails."""
        assert run_body(body).status is status

    @pytest.mark.requirement("CTS-FR-005")
    def test_assertion_vs_fault(self) -> None:
        """Test AssertionError fails while other errors fault."""

        def failing() -> None:
            raise AssertionError("nope")

        assert run_body(failing).status is OutcomeStatus.FAILED
        assert run_body(_raise("x")).status is OutcomeStatus.FAULTED


class TestHookRunner:
    """Tests for HookRunner lookups and run_case()."""

    @pytest.mark.requirement("CTS-FR-005")
    def test_unregistered_test_skips_hooks(self) -> None:
        """Test unknown tests have nothing to run."""
        runner = HookRunner(Registry())
        assert not runner.run_pre_check("S.c").ran
        assert not runner.run_post_check("S.c").ran

    @pytest.mark.requirement("CTS-FR-005")
    def test_hooks_run_for_registered_test(self, fid: FidFactory) -> None:
        """Test registered hooks are found by test name and run."""
        calls: list[str] = []
        registry = Registry()
        registry.register_case(
            "S.c",
            fid("A"),
            pre_check=lambda: calls.append("pre"),
            post_check=lambda: calls.append("post"),
        )
        runner = HookRunner(registry)

        assert runner.run_pre_check("S.c").ok
        assert runner.run_post_check("S.c").ok
        assert calls == ["pre", "post"]

    @pytest.mark.requirement("CTS-FR-005")
    def test_phase_order(self, fid: FidFactory) -> None:
        """Test pre-check precedes body precedes post-check."""
        calls: list[str] = []
        registry = Registry()
        registry.register_case(
            "S.c",
            fid("A"),
            pre_check=lambda: calls.append("pre"),
            post_check=lambda: calls.append("post"),
        )

        result = HookRunner(registry).run_case("S.c", lambda: calls.append("body"))

        assert result.passed
        assert calls == ["pre", "body", "post"]

    @pytest.mark.requirement("CTS-FR-005")
    def test_failed_pre_check_does_not_stop_body_or_post_check(
        self, fid: FidFactory
    ) -> None:
        """Test a broken pre-check is recorded while later phases still run."""
        calls: list[str] = []
        registry = Registry()
        registry.register_case(
            "S.c",
            fid("A"),
            pre_check=_raise("setup broken"),
            post_check=lambda: calls.append("post"),
        )

        result = HookRunner(registry).run_case("S.c", lambda: calls.append("body"))

        assert not result.pre_check.ok
        assert result.body.passed
        assert result.post_check.ok
        assert calls == ["body", "post"]
        assert not result.passed

    @pytest.mark.requirement("CTS-FR-005")
    def test_post_check_runs_after_failing_body(self, fid: FidFactory) -> None:
        """Test post-check runs and both failures stay visible."""
        registry = Registry()
        registry.register_case("S.c", fid("A"), post_check=_raise("leak"))

        def body() -> None:
            raise AssertionError("wrong result")

        result = HookRunner(registry).run_case("S.c", body)

        assert result.body.status is OutcomeStatus.FAILED
        assert result.post_check.ran
        assert not result.post_check.ok
        assert result.failures() == [
            "body (failed): AssertionError: wrong result",
            "post_check: RuntimeError: leak",
        ]

    @pytest.mark.requirement("CTS-FR-007")
    def test_post_check_reads_body_scratch(self, fid: FidFactory) -> None:
        """Test the scratchpad carries values from body to post-check."""

        def connection_closed() -> None:
            assert get_scratch("connection_status") != "open", "connection left open"

        registry = Registry()
        registry.register_case("Network.good", fid("NET_GOOD"), post_check=connection_closed)
        registry.register_case("Network.bad", fid("NET_BAD"), post_check=connection_closed)
        runner = HookRunner(registry)

        def good() -> None:
            set_scratch("connection_status", "open")
            set_scratch("connection_status", "closed")

        good_result = runner.run_case("Network.good", good)
        bad_result = runner.run_case(
            "Network.bad", lambda: set_scratch("connection_status", "open")
        )

        assert good_result.passed
        assert bad_result.body.passed
        assert not bad_result.post_check.ok
        assert "connection left open" in bad_result.post_check.message

    @pytest.mark.requirement("CTS-FR-004")
    def test_supervised_body_timeout_still_runs_post_check(self, fid: FidFactory) -> None:
        """Test a timed-out body is followed by its post-check."""
        calls: list[str] = []
        registry = Registry()
        registry.register_case("S.slow", fid("A"), post_check=lambda: calls.append("post"))

        result = HookRunner(registry).run_case(
            "S.slow",
            lambda: current_cancel_token().wait(2.0),
            timeout_ms=50,
        )

        assert result.body.status is OutcomeStatus.TIMED_OUT
        assert calls == ["post"]
