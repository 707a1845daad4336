"""Sample CTS suite configuration.

Loads the floe-cts plugin and declares the function universe in code. The
same universe is kept in cts-universe.yaml for the command line:

    floe-cts coverage examples --universe examples/cts-universe.yaml
"""

from __future__ import annotations

import pytest

from floe_cts import FunctionIdentity, get_registry

pytest_plugins = ["floe_cts.pytest_plugin"]

UNIVERSE = {
    FunctionIdentity(function_id="MATH_ADD", version="v1.0"),
    FunctionIdentity(function_id="MATH_MULTIPLY", version="v1.0"),
    FunctionIdentity(function_id="MATH_DIVIDE", version="v1.0"),
    FunctionIdentity(function_id="PERF_QUICK", version="v1.0"),
    FunctionIdentity(function_id="PERF_SLOW", version="v1.0"),
    FunctionIdentity(function_id="PERF_MEDIUM", version="v1.0"),
    FunctionIdentity(function_id="FIXTURE_CALC", version="v1.0"),
    FunctionIdentity(function_id="FIXTURE_SLOW", version="v1.0"),
    FunctionIdentity(function_id="NETWORK_GOOD", version="v2.0"),
    FunctionIdentity(function_id="NETWORK_BAD", version="v2.0"),
    FunctionIdentity(function_id="NETWORK_ADVANCED", version="v2.1"),
}


def pytest_configure(config: pytest.Config) -> None:
    """Register the function universe before collection."""
    if not config.getoption("cts_universe"):
        get_registry().register_universe(UNIVERSE)
