"""pytest adapter for floe-cts.

Enable with ``-p floe_cts.pytest_plugin`` or, in the root conftest.py:

    pytest_plugins = ["floe_cts.pytest_plugin"]

What it does:
    - loads the function universe (--cts-universe or FLOE_CTS_UNIVERSE_FILE)
    - freezes the registry once collection is finished
    - gives every test its own result scratchpad
    - setup:    CTSFixture.set_up() -> registered pre-check
    - teardown: registered post-check -> CTSFixture.post_check() -> tear_down()
    - reports failed phases as a HookPhaseError at the end of teardown, so
      the body's own result stays visible next to it
    - prints the coverage report in the terminal summary

The coverage report is advisory: the plugin never changes the exit status.
It is not printed for --collect-only runs unless --cts-report is given.

Options:
    --cts-universe PATH   YAML file with the function universe
    --cts-report          Print the coverage report even if nothing registered
    --cts-threshold PCT   Informational coverage threshold
    --cts-json PATH       Also write the report as JSON
"""

from __future__ import annotations

import warnings
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest
import structlog

from floe_cts.cases import CTS_MARKER
from floe_cts.config import CTSSettings, configure_logging, get_settings, load_universe
from floe_cts.coverage import render_json, render_report
from floe_cts.errors import HookPhaseError, RegistrationAmbiguityWarning, UniverseLoadError
from floe_cts.fixtures import CTSFixture
from floe_cts.hooks import HookRunner, run_phase
from floe_cts.models import CasePhase, PhaseResult
from floe_cts.registry import full_test_name, get_registry
from floe_cts.scratchpad import ResultScratchpad, scratch_scope
from floe_cts.supervisor import get_supervisor

logger = structlog.get_logger(__name__)

_settings_key = pytest.StashKey[CTSSettings]()
_scratch_key = pytest.StashKey[ResultScratchpad]()
_phases_key = pytest.StashKey[list[PhaseResult]]()


def pytest_addoption(parser: pytest.Parser) -> None:
    """Register floe-cts command line options."""
    group = parser.getgroup("floe-cts", "function coverage tracking")
    group.addoption(
        "--cts-universe",
        action="store",
        default=None,
        metavar="PATH",
        help="YAML file listing the function universe",
    )
    group.addoption(
        "--cts-report",
        action="store_true",
        default=False,
        help="Always print the function coverage report",
    )
    group.addoption(
        "--cts-threshold",
        action="store",
        type=float,
        default=None,
        metavar="PCT",
        help="Informational coverage threshold (does not affect exit status)",
    )
    group.addoption(
        "--cts-json",
        action="store",
        default=None,
        metavar="PATH",
        help="Write the function coverage report as JSON to PATH",
    )


def pytest_configure(config: pytest.Config) -> None:
    """Register the marker and load the universe."""
    config.addinivalue_line(
        "markers",
        f"{CTS_MARKER}(test_name, identity, timeout_ms): CTS case declared with cts_case()",
    )

    settings = get_settings()
    config.stash[_settings_key] = settings
    if not structlog.is_configured():
        configure_logging(settings.log_level)

    option = config.getoption("cts_universe")
    universe_path = Path(option) if option else settings.universe_file
    if universe_path is not None:
        try:
            universe = load_universe(universe_path)
        except UniverseLoadError as e:
            raise pytest.UsageError(f"floe-cts: {e}") from e
        get_registry().register_universe(universe)


def pytest_collection_finish(session: pytest.Session) -> None:
    """End the registration phase and flag functions covered more than once."""
    registry = get_registry()
    registry.freeze()

    report = registry.report()
    for identity, count in report.duplicates.items():
        warnings.warn(
            RegistrationAmbiguityWarning(
                f"Function {identity} is registered by {count} test cases"
            ),
            stacklevel=1,
        )


def _test_name(item: pytest.Item) -> str | None:
    """Full test name of an item ("suite.case"), None for non-function items."""
    marker = item.get_closest_marker(CTS_MARKER)
    if marker is not None and "test_name" in marker.kwargs:
        return str(marker.kwargs["test_name"])

    if not isinstance(item, pytest.Function):
        return None
    if item.cls is not None:
        suite = item.cls.__qualname__
    else:
        suite = item.module.__name__.rpartition(".")[2]
    return full_test_name(suite, item.originalname)


def _fixture_instance(item: pytest.Item) -> CTSFixture | None:
    instance = getattr(item, "instance", None)
    return instance if isinstance(instance, CTSFixture) else None


@pytest.hookimpl(wrapper=True)
def pytest_runtest_setup(item: pytest.Item) -> Generator[None, Any, Any]:
    """Run set_up() and the pre-check once pytest fixtures are ready."""
    pad = ResultScratchpad()
    phases: list[PhaseResult] = []
    item.stash[_scratch_key] = pad
    item.stash[_phases_key] = phases

    result = yield

    test_name = _test_name(item)
    fixture = _fixture_instance(item)
    with scratch_scope(pad):
        if fixture is not None:
            phases.append(run_phase(CasePhase.SET_UP, fixture.set_up, item.nodeid))
        if test_name is not None:
            phases.append(HookRunner().run_pre_check(test_name))
    return result


@pytest.hookimpl(wrapper=True)
def pytest_runtest_call(item: pytest.Item) -> Generator[None, Any, Any]:
    """Run the test body with its scratchpad current."""
    pad = item.stash.get(_scratch_key, None)
    if pad is None:
        return (yield)
    with scratch_scope(pad):
        return (yield)


@pytest.hookimpl(wrapper=True)
def pytest_runtest_teardown(
    item: pytest.Item,
    nextitem: pytest.Item | None,
) -> Generator[None, Any, Any]:
    """Run the post-check, post_check() and tear_down(), then report failures."""
    phases = item.stash.get(_phases_key, None)
    pad = item.stash.get(_scratch_key, None)
    if phases is None or pad is None:
        return (yield)

    test_name = _test_name(item)
    fixture = _fixture_instance(item)
    with scratch_scope(pad):
        if test_name is not None:
            phases.append(HookRunner().run_post_check(test_name))
        if fixture is not None:
            phases.append(run_phase(CasePhase.POST_CHECK, fixture.post_check, item.nodeid))
            phases.append(run_phase(CasePhase.TEAR_DOWN, fixture.tear_down, item.nodeid))

    result = yield

    failures = [phase for phase in phases if not phase.ok]
    if failures:
        raise HookPhaseError(test_name or item.nodeid, failures)
    return result


def pytest_terminal_summary(
    terminalreporter: Any,
    exitstatus: int,
    config: pytest.Config,
) -> None:
    """Print the function coverage report."""
    registry = get_registry()
    requested = config.getoption("cts_report") or config.getoption("cts_json")
    if not requested:
        if config.getoption("collectonly"):
            return
        if not len(registry) and not registry.universe():
            return

    settings = config.stash.get(_settings_key, None)
    threshold = config.getoption("cts_threshold")
    if threshold is None and settings is not None:
        threshold = settings.coverage_threshold

    report = registry.report()
    terminalreporter.write_sep("=", "cts function coverage")
    terminalreporter.write_line(render_report(report, threshold=threshold))

    abandoned = get_supervisor().abandoned_workers()
    if abandoned:
        terminalreporter.write_line(
            f"WARNING: {abandoned} timed-out test body(ies) still running in the background",
            yellow=True,
        )

    json_path = config.getoption("cts_json")
    if json_path:
        Path(json_path).write_text(render_json(report, threshold=threshold))
        terminalreporter.write_line(f"Coverage JSON written to {json_path}")

    logger.info(
        "plugin.coverage_reported",
        coverage=round(report.coverage_percentage, 1),
        uncovered=len(report.uncovered),
        duplicates=len(report.duplicates),
        exitstatus=exitstatus,
    )
