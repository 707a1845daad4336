"""Pre-check / post-check execution around test bodies.

The HookRunner looks up the registration of the test currently executing
and runs its hooks:

- pre-check runs before the body begins,
- post-check runs after the body, whether it passed or failed.

Every phase is isolated: a fault inside a hook is converted into a failed
PhaseResult (with the fault message) and never prevents the remaining
phases from running. KeyboardInterrupt and SystemExit are not caught, so no
hook runs while the process is terminating.

Example:
    >>> runner = HookRunner(registry)
    >>> result = runner.run_case("NetworkFixture.bad_connection", body)
    >>> result.failures()
    ['post_check: AssertionError: connection left open']
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

import structlog

from floe_cts.models import (
    CasePhase,
    CaseResult,
    ExecutionOutcome,
    OutcomeStatus,
    PhaseResult,
    describe_exception,
)
from floe_cts.registry import Registry, get_registry
from floe_cts.scratchpad import scratch_scope
from floe_cts.supervisor import TimeoutSupervisor, get_supervisor

logger = structlog.get_logger(__name__)


def run_phase(phase: CasePhase, func: Callable[[], Any] | None, test_name: str) -> PhaseResult:
    """Run one verification phase, converting faults into a failed result.

    Args:
        phase: Phase being run.
        func: The hook; None means there is nothing to run.
        test_name: Full test name, for diagnostics.

    Returns:
        PhaseResult for the phase.
    """
    if func is None:
        return PhaseResult.skipped(phase)

    try:
        func()
    except Exception as e:
        message = describe_exception(e)
        logger.warning(
            "hooks.phase_failed",
            phase=phase.value,
            test_name=test_name,
            error=message,
        )
        return PhaseResult(phase=phase, ran=True, ok=False, message=message)

    return PhaseResult(phase=phase, ran=True, ok=True)


def run_body(body: Callable[[], Any]) -> ExecutionOutcome:
    """Run a body inline, without deadline, and classify its outcome.

    Same classification as the timeout supervisor: False or AssertionError
    is a failure, any other exception a fault.
    """
    start = time.monotonic()
    try:
        result = body()
    except AssertionError as e:
        status, message = OutcomeStatus.FAILED, describe_exception(e)
    except Exception as e:
        status, message = OutcomeStatus.FAULTED, describe_exception(e)
    else:
        if result is False:
            status, message = OutcomeStatus.FAILED, "Body reported failure"
        else:
            status, message = OutcomeStatus.PASSED, ""
    elapsed_ms = (time.monotonic() - start) * 1000.0
    return ExecutionOutcome(status=status, message=message, elapsed_ms=elapsed_ms)


class HookRunner:
    """Runs registered pre-checks and post-checks for test cases.

    Args:
        registry: Registry to look hooks up in. Defaults to get_registry().
        supervisor: Supervisor for deadline-guarded bodies. Defaults to the
            module default.
    """

    def __init__(
        self,
        registry: Registry | None = None,
        supervisor: TimeoutSupervisor | None = None,
    ) -> None:
        self._registry = registry if registry is not None else get_registry()
        self._supervisor = supervisor if supervisor is not None else get_supervisor()

    @property
    def registry(self) -> Registry:
        return self._registry

    def run_pre_check(self, test_name: str) -> PhaseResult:
        """Run the pre-check registered for test_name, if any."""
        return self._run_hook(CasePhase.PRE_CHECK, test_name)

    def run_post_check(self, test_name: str) -> PhaseResult:
        """Run the post-check registered for test_name, if any."""
        return self._run_hook(CasePhase.POST_CHECK, test_name)

    def _run_hook(self, phase: CasePhase, test_name: str) -> PhaseResult:
        registration = self._registry.lookup(test_name)
        if registration is None:
            return PhaseResult.skipped(phase)

        func = (
            registration.pre_check if phase is CasePhase.PRE_CHECK else registration.post_check
        )
        if func is None:
            return PhaseResult.skipped(phase)

        logger.info(
            f"hooks.{phase.value}_started",
            test_name=test_name,
            identity=str(registration.identity),
        )
        return run_phase(phase, func, test_name)

    def run_case(
        self,
        test_name: str,
        body: Callable[[], Any],
        timeout_ms: int | None = None,
    ) -> CaseResult:
        """Run pre-check, body and post-check of one test case.

        All three phases are attempted regardless of earlier failures, inside
        a fresh scratchpad scope shared by the body and its hooks.

        Args:
            test_name: Full test name ("suite.case").
            body: The test body.
            timeout_ms: Optional deadline for the body.

        Returns:
            CaseResult with each phase's outcome.
        """
        with scratch_scope():
            pre = self.run_pre_check(test_name)
            if timeout_ms is None:
                outcome = run_body(body)
            else:
                outcome = self._supervisor.run(body, timeout_ms)
            post = self.run_post_check(test_name)

        result = CaseResult(test_name=test_name, pre_check=pre, body=outcome, post_check=post)
        logger.debug(
            "hooks.case_finished",
            test_name=test_name,
            passed=result.passed,
            body=outcome.status.value,
        )
        return result


__all__ = [
    "HookRunner",
    "run_body",
    "run_phase",
]
