"""CLI entry point for floe-cts.

Usage:
    floe-cts --help
    floe-cts coverage [TEST_PATH] [--universe PATH] [--threshold PCT] [--json]
    floe-cts universe PATH
    floe-cts run [PYTEST_ARGS]...

Exit codes:
    coverage: 0 (report printed, whatever the coverage), 2 (error)
    universe: 0 (valid), 2 (invalid)
    run:      pytest's exit status

Example:
    >>> floe-cts coverage tests --universe cts-universe.yaml --threshold 80
    >>> floe-cts run tests -x --cts-universe cts-universe.yaml
"""

from __future__ import annotations

import contextlib
import io
from pathlib import Path
from typing import Annotated

import pytest
import structlog
import typer

from floe_cts.config import configure_logging, get_settings, load_universe
from floe_cts.coverage import render_json, render_report
from floe_cts.errors import CTSError
from floe_cts.registry import get_registry

logger = structlog.get_logger(__name__)

PLUGIN_MODULE = "floe_cts.pytest_plugin"

app = typer.Typer(
    name="floe-cts",
    help="Function coverage tracking and deadline enforcement for pytest suites.",
    no_args_is_help=True,
)


def _exit_with_error(message: str, code: int = 2) -> None:
    """Print error message and exit.

    Args:
        message: Error message to display.
        code: Exit code (default 2).
    """
    typer.secho(f"Error: {message}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=code)


@app.command()
def coverage(
    test_path: Annotated[
        Path,
        typer.Argument(help="Tests directory or file to collect"),
    ] = Path("tests"),
    universe: Annotated[
        Path | None,
        typer.Option("--universe", "-u", help="YAML file with the function universe"),
    ] = None,
    threshold: Annotated[
        float | None,
        typer.Option("--threshold", "-t", help="Informational coverage threshold (percent)"),
    ] = None,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Output report as JSON"),
    ] = False,
    verbose_report: Annotated[
        bool,
        typer.Option("--details", "-d", help="List the test cases covering each function"),
    ] = False,
) -> None:
    """Collect tests and report function coverage without running them.

    Test modules register their cases at import, so collection alone is
    enough. Cases registered by modules imported earlier in the same process
    are kept, since collection does not import those modules again. The exit
    code does not depend on the coverage reached.
    """
    settings = get_settings()
    registry = get_registry()
    registry.clear(keep_cases=True)

    universe_path = universe or settings.universe_file
    try:
        if universe_path is not None:
            registry.register_universe(load_universe(universe_path))
    except CTSError as e:
        _exit_with_error(str(e))

    if not test_path.exists():
        _exit_with_error(f"Test path not found: {test_path}")

    args = [str(test_path), "--collect-only", "-qq", "-p", PLUGIN_MODULE]
    if universe_path is not None:
        args += ["--cts-universe", str(universe_path)]

    # pytest's console output would interleave with the report
    collect_output = io.StringIO()
    with contextlib.redirect_stdout(collect_output):
        exit_code = pytest.main(args)
    if exit_code not in (pytest.ExitCode.OK, pytest.ExitCode.NO_TESTS_COLLECTED):
        typer.echo(collect_output.getvalue(), err=True)
        _exit_with_error(f"Test collection failed (pytest exit code {int(exit_code)})")

    report = registry.report()
    effective_threshold = threshold if threshold is not None else settings.coverage_threshold
    logger.debug(
        "cli.coverage_computed",
        cases=report.registered_cases,
        coverage=report.coverage_percentage,
    )

    if as_json:
        typer.echo(render_json(report, threshold=effective_threshold))
    else:
        typer.echo(render_report(report, threshold=effective_threshold, verbose=verbose_report))


@app.command()
def universe(
    path: Annotated[Path, typer.Argument(help="YAML file with the function universe")],
) -> None:
    """Validate a universe file and list its functions."""
    try:
        functions = load_universe(path)
    except CTSError as e:
        _exit_with_error(str(e))
        return

    typer.secho(f"{len(functions)} function(s) in {path}", fg=typer.colors.GREEN)
    for identity in sorted(functions, key=lambda f: f.sort_key):
        typer.echo(f"  - {identity}")


@app.command(
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)
def run(ctx: typer.Context) -> None:
    """Run pytest with the floe-cts plugin; extra arguments go to pytest."""
    exit_code = pytest.main(["-p", PLUGIN_MODULE, *ctx.args])
    raise typer.Exit(code=int(exit_code))


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose output"),
    ] = False,
) -> None:
    """Function coverage tracking and deadline enforcement for pytest suites."""
    configure_logging("DEBUG" if verbose else get_settings().log_level)


if __name__ == "__main__":
    app()
