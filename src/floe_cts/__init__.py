"""floe-cts: function coverage tracking for pytest suites.

Tracks which functional requirements ("functions", identified by id and
version) are exercised by which test cases, computes coverage of the
declared universe of functions, runs pre-check/post-check verification hooks
around test bodies, and enforces wall-clock deadlines on test bodies.

Components:
    registry: Universe and case registrations (Registry, get_registry)
    cases: cts_case() declaration decorator
    supervisor: Timeout-supervised execution (run_with_timeout)
    hooks: Pre-check/post-check execution (HookRunner)
    scratchpad: Per-test values shared by a body and its post-check
    coverage: Coverage report computation and rendering
    pytest_plugin: pytest adapter (-p floe_cts.pytest_plugin)

Usage:
    from floe_cts import FunctionIdentity, cts_case, get_registry

    get_registry().register_universe({
        FunctionIdentity(function_id="MATH_ADD", version="v1.0"),
    })

    @cts_case("MATH_ADD", "v1.0")
    def test_addition() -> None:
        assert 2 + 3 == 5
"""

from __future__ import annotations

from floe_cts.cases import cts_case
from floe_cts.coverage import (
    CoverageReport,
    FunctionCoverage,
    compute_coverage_report,
    render_json,
    render_report,
)
from floe_cts.errors import (
    CTSError,
    HookPhaseError,
    RegistrationAmbiguityWarning,
    RegistryError,
    RegistryFrozenError,
    ScratchpadError,
    UniverseLoadError,
)
from floe_cts.fixtures import CTSFixture
from floe_cts.hooks import HookRunner
from floe_cts.models import (
    CasePhase,
    CaseRegistration,
    CaseResult,
    ExecutionOutcome,
    FunctionIdentity,
    OutcomeStatus,
    PhaseResult,
)
from floe_cts.registry import Registry, full_test_name, get_registry
from floe_cts.scratchpad import get_scratch, scratch_scope, set_scratch
from floe_cts.supervisor import (
    CancelToken,
    TimeoutSupervisor,
    current_cancel_token,
    run_with_timeout,
)

__version__ = "0.1.0"

__all__ = [
    "CTSError",
    "CTSFixture",
    "CancelToken",
    "CasePhase",
    "CaseRegistration",
    "CaseResult",
    "CoverageReport",
    "ExecutionOutcome",
    "FunctionCoverage",
    "FunctionIdentity",
    "HookPhaseError",
    "HookRunner",
    "OutcomeStatus",
    "PhaseResult",
    "RegistrationAmbiguityWarning",
    "Registry",
    "RegistryError",
    "RegistryFrozenError",
    "ScratchpadError",
    "TimeoutSupervisor",
    "UniverseLoadError",
    "compute_coverage_report",
    "cts_case",
    "current_cancel_token",
    "full_test_name",
    "get_registry",
    "get_scratch",
    "render_json",
    "render_report",
    "run_with_timeout",
    "scratch_scope",
    "set_scratch",
]
