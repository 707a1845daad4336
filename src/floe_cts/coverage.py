"""Function coverage computation and rendering.

Derives, from the universe and the case registrations:
- uncovered functions (universe minus covered set),
- duplicate registrations (one function covered by several test names),
- the coverage percentage (0 when the universe is empty).

All lists are sorted by (id, version) so output is deterministic.

Functions:
    compute_coverage_report: Pure computation of a CoverageReport
    render_report: Human-readable text report
    render_json: JSON report

Example:
    >>> report = compute_coverage_report(universe, registry.registrations())
    >>> print(render_report(report, threshold=80.0))
"""

from __future__ import annotations

import json
from collections import defaultdict
from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field

from floe_cts.models import CaseRegistration, FunctionIdentity


class FunctionCoverage(BaseModel):
    """Coverage of a single registered function.

    Attributes:
        identity: The function.
        tests: Full names of the test cases covering it, sorted.
        in_universe: Whether the function belongs to the universe.
    """

    model_config = ConfigDict(frozen=True)

    identity: FunctionIdentity
    tests: list[str] = Field(default_factory=list)
    in_universe: bool = True

    @property
    def duplicated(self) -> bool:
        """Check if more than one test case covers the function."""
        return len(self.tests) > 1


class CoverageReport(BaseModel):
    """Coverage of the function universe by registered test cases.

    Attributes:
        total_functions: Size of the universe.
        covered_functions: Universe members covered by at least one test.
        registered_cases: Number of registered test cases.
        coverage_percentage: covered_functions / total_functions * 100.
        uncovered: Universe members without any test.
        duplicates: Function -> number of test cases, for counts above one.
        not_in_universe: Covered functions that the universe does not list.
        functions: Per-function detail for every covered function.
    """

    model_config = ConfigDict(frozen=True)

    total_functions: int = Field(0, ge=0)
    covered_functions: int = Field(0, ge=0)
    registered_cases: int = Field(0, ge=0)
    coverage_percentage: float = Field(0.0, ge=0.0, le=100.0)
    uncovered: list[FunctionIdentity] = Field(default_factory=list)
    duplicates: dict[FunctionIdentity, int] = Field(default_factory=dict)
    not_in_universe: list[FunctionIdentity] = Field(default_factory=list)
    functions: list[FunctionCoverage] = Field(default_factory=list)

    @property
    def fully_covered(self) -> bool:
        """Check if every universe member is covered."""
        return not self.uncovered

    def meets_threshold(self, threshold: float) -> bool:
        """Check if coverage reaches threshold percent."""
        return self.coverage_percentage >= threshold


def compute_coverage_report(
    universe: Iterable[FunctionIdentity],
    registrations: Iterable[CaseRegistration],
) -> CoverageReport:
    """Compute coverage of universe by registrations.

    Args:
        universe: Every known function.
        registrations: Case registrations (one per test name).

    Returns:
        CoverageReport with sorted, deterministic contents.
    """
    all_functions = set(universe)

    tests_by_identity: dict[FunctionIdentity, set[str]] = defaultdict(set)
    test_names: set[str] = set()
    for registration in registrations:
        tests_by_identity[registration.identity].add(registration.test_name)
        test_names.add(registration.test_name)

    covered = set(tests_by_identity)
    uncovered = sorted(all_functions - covered, key=lambda f: f.sort_key)
    covered_in_universe = len(all_functions & covered)
    percentage = (covered_in_universe / len(all_functions) * 100) if all_functions else 0.0

    ordered = sorted(covered, key=lambda f: f.sort_key)
    duplicates = {
        identity: len(tests_by_identity[identity])
        for identity in ordered
        if len(tests_by_identity[identity]) > 1
    }

    return CoverageReport(
        total_functions=len(all_functions),
        covered_functions=covered_in_universe,
        registered_cases=len(test_names),
        coverage_percentage=percentage,
        uncovered=uncovered,
        duplicates=duplicates,
        not_in_universe=[f for f in ordered if f not in all_functions],
        functions=[
            FunctionCoverage(
                identity=identity,
                tests=sorted(tests_by_identity[identity]),
                in_universe=identity in all_functions,
            )
            for identity in ordered
        ],
    )


def render_report(
    report: CoverageReport,
    threshold: float | None = None,
    verbose: bool = False,
) -> str:
    """Render the report as text.

    The threshold line is informational only.

    Args:
        report: The coverage report.
        threshold: Optional coverage percentage to compare against.
        verbose: Also list the test cases covering each function.

    Returns:
        Multi-line report string.
    """
    lines: list[str] = []

    lines.append("=" * 60)
    lines.append("CTS COVERAGE REPORT")
    lines.append("=" * 60)
    lines.append("")

    lines.append(f"Total functions defined: {report.total_functions}")
    lines.append(f"Test cases registered: {report.registered_cases}")
    lines.append(f"Functions covered: {report.covered_functions}")
    lines.append("")

    if report.fully_covered:
        lines.append("All functions are covered!")
    else:
        lines.append(f"UNCOVERED FUNCTIONS ({len(report.uncovered)}):")
        for identity in report.uncovered:
            lines.append(f"  - {identity}")
    lines.append("")

    for identity, count in report.duplicates.items():
        lines.append(
            f"RegistrationAmbiguityWarning: Function {identity} is registered by {count} test cases"
        )
    if report.duplicates:
        lines.append("")

    if report.functions:
        lines.append("REGISTERED FUNCTIONS:")
        for entry in report.functions:
            line = f"  - {entry.identity}"
            if entry.duplicated:
                line += f" (WARNING: registered {len(entry.tests)} times)"
            if not entry.in_universe:
                line += " (not in universe)"
            lines.append(line)
            if verbose:
                for test in entry.tests:
                    lines.append(f"      {test}")
        lines.append("")

    lines.append(f"Coverage: {report.coverage_percentage:.1f}%")
    if threshold is not None:
        if report.meets_threshold(threshold):
            lines.append(
                f"Good coverage achieved ({report.coverage_percentage:.1f}% >= {threshold:.1f}%)"
            )
        else:
            lines.append(
                f"Consider adding more test cases to improve coverage "
                f"({report.coverage_percentage:.1f}% < {threshold:.1f}%)"
            )

    lines.append("=" * 60)

    return "\n".join(lines)


def render_json(report: CoverageReport, threshold: float | None = None) -> str:
    """Render the report as JSON.

    Args:
        report: The coverage report.
        threshold: Optional coverage percentage to compare against.

    Returns:
        JSON string.
    """
    data = {
        "total_functions": report.total_functions,
        "covered_functions": report.covered_functions,
        "registered_cases": report.registered_cases,
        "coverage_percentage": round(report.coverage_percentage, 2),
        "threshold": threshold,
        "meets_threshold": None if threshold is None else report.meets_threshold(threshold),
        "uncovered": [str(f) for f in report.uncovered],
        "duplicates": {str(f): count for f, count in report.duplicates.items()},
        "not_in_universe": [str(f) for f in report.not_in_universe],
        "functions": {str(entry.identity): entry.tests for entry in report.functions},
    }
    return json.dumps(data, indent=2)


__all__ = [
    "CoverageReport",
    "FunctionCoverage",
    "compute_coverage_report",
    "render_json",
    "render_report",
]
