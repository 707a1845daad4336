"""Value types shared across floe-cts.

Models:
    FunctionIdentity: (id, version) of one functional requirement
    CaseRegistration: Test name -> FunctionIdentity (+ verification hooks)
    ExecutionOutcome: Result of a timeout-supervised body
    PhaseResult: Result of one verification phase (pre-check, post-check, ...)
    CaseResult: All phase results of one test case execution

Example:
    >>> add = FunctionIdentity(function_id="MATH_ADD", version="v1.0")
    >>> str(add)
    'MATH_ADD:v1.0'
    >>> add == FunctionIdentity.parse("MATH_ADD:v1.0")
    True
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Hook signature: no arguments, result ignored, failure signalled by raising
CheckFunc = Callable[[], Any]


class FunctionIdentity(BaseModel):
    """Identity of one functional requirement.

    Equality and hashing depend on both fields; the same id with a different
    version is a different function.

    Attributes:
        function_id: Requirement identifier (e.g., "MATH_ADD").
        version: Requirement version (e.g., "v1.0").
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    function_id: str = Field(..., min_length=1, alias="id", description="Function identifier")
    version: str = Field(..., min_length=1, description="Function version")

    @classmethod
    def parse(cls, value: str) -> FunctionIdentity:
        """Build an identity from its "id:version" rendering.

        Args:
            value: String in "id:version" form. The last colon separates
                the version, so ids may themselves contain colons.

        Returns:
            The parsed FunctionIdentity.

        Raises:
            ValueError: If the string has no version part.
        """
        function_id, sep, version = value.rpartition(":")
        if not sep or not function_id or not version:
            msg = f"Expected 'id:version', got {value!r}"
            raise ValueError(msg)
        return cls(function_id=function_id, version=version)

    @property
    def sort_key(self) -> tuple[str, str]:
        """Stable ordering key: id, then version."""
        return (self.function_id, self.version)

    def __str__(self) -> str:
        return f"{self.function_id}:{self.version}"


class CaseRegistration(BaseModel):
    """Association of a full test name to the function it covers.

    Created once per declared test case and never mutated.

    Attributes:
        test_name: Full test name ("suite.case").
        identity: The function the test covers.
        pre_check: Optional hook run before the body.
        post_check: Optional hook run after the body.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    test_name: str = Field(..., min_length=1)
    identity: FunctionIdentity
    pre_check: CheckFunc | None = None
    post_check: CheckFunc | None = None

    @property
    def has_hooks(self) -> bool:
        """Check if the registration carries any verification hook."""
        return self.pre_check is not None or self.post_check is not None


class OutcomeStatus(Enum):
    """Outcome of a supervised body.

    - PASSED: Body completed and did not report failure
    - FAILED: Body returned False or raised AssertionError
    - FAULTED: Body raised any other exception
    - TIMED_OUT: Deadline elapsed first; the worker was abandoned
    """

    PASSED = "passed"
    FAILED = "failed"
    FAULTED = "faulted"
    TIMED_OUT = "timed_out"


class ExecutionOutcome(BaseModel):
    """Result of running a body under a deadline.

    Attributes:
        status: The outcome status.
        message: Failure/fault message, empty when passed.
        elapsed_ms: Wall-clock time the caller waited.
        timeout_ms: The deadline that applied.
    """

    model_config = ConfigDict(frozen=True)

    status: OutcomeStatus
    message: str = ""
    elapsed_ms: float = Field(0.0, ge=0.0)
    timeout_ms: int = 0

    @property
    def passed(self) -> bool:
        """Check if the body passed."""
        return self.status is OutcomeStatus.PASSED

    @property
    def timed_out(self) -> bool:
        """Check if the deadline elapsed before the body completed."""
        return self.status is OutcomeStatus.TIMED_OUT


class CasePhase(Enum):
    """Phases of one test case execution, in order."""

    SET_UP = "set_up"
    PRE_CHECK = "pre_check"
    BODY = "body"
    POST_CHECK = "post_check"
    TEAR_DOWN = "tear_down"


class PhaseResult(BaseModel):
    """Result of one phase.

    Attributes:
        phase: Which phase this is.
        ran: False when there was nothing to run (e.g., no hook registered).
        ok: False when the phase faulted.
        message: Fault message, empty when ok.
    """

    model_config = ConfigDict(frozen=True)

    phase: CasePhase
    ran: bool = False
    ok: bool = True
    message: str = ""

    @classmethod
    def skipped(cls, phase: CasePhase) -> PhaseResult:
        """Result for a phase with nothing to run."""
        return cls(phase=phase, ran=False, ok=True)


class CaseResult(BaseModel):
    """Per-phase results of one test case.

    Phase outcomes are kept separately: a failing post-check never masks the
    body's own outcome and vice versa.
    """

    model_config = ConfigDict(frozen=True)

    test_name: str
    pre_check: PhaseResult
    body: ExecutionOutcome
    post_check: PhaseResult

    @property
    def passed(self) -> bool:
        """Check if every phase succeeded."""
        return self.body.passed and self.pre_check.ok and self.post_check.ok

    def failures(self) -> list[str]:
        """Human-readable failure lines, in phase order."""
        lines: list[str] = []
        if not self.pre_check.ok:
            lines.append(f"pre_check: {self.pre_check.message}")
        if not self.body.passed:
            lines.append(f"body ({self.body.status.value}): {self.body.message}")
        if not self.post_check.ok:
            lines.append(f"post_check: {self.post_check.message}")
        return lines


def describe_exception(exc: BaseException) -> str:
    """Render an exception for diagnostics as "Type: message"."""
    text = str(exc)
    name = type(exc).__name__
    return f"{name}: {text}" if text else name


__all__ = [
    "CasePhase",
    "CaseRegistration",
    "CaseResult",
    "CheckFunc",
    "ExecutionOutcome",
    "FunctionIdentity",
    "OutcomeStatus",
    "PhaseResult",
    "describe_exception",
]
