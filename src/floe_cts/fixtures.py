"""Fixture capability interface for CTS test classes.

Test classes inherit from CTSFixture and override the capabilities they need.
The floe-cts pytest plugin composes them around each test:

    setup:     set_up() -> registered pre-check
    call:      test body
    teardown:  registered post-check -> post_check() -> tear_down()

A fault in any of these is recorded as a failure of the test without
preventing the remaining phases.

Example:
    class NetworkFixture(CTSFixture):
        def post_check(self) -> None:
            status = self.get_test_result("connection_status")
            assert status != "open", "connection should be closed after test"

    class TestNetwork(NetworkFixture):
        @cts_case("NETWORK_GOOD", "v2.0")
        def test_good_connection(self) -> None:
            self.set_test_result("connection_status", "open")
            ...
            self.set_test_result("connection_status", "closed")
"""

from __future__ import annotations

from typing import Any

from floe_cts.scratchpad import get_scratch, set_scratch


class CTSFixture:
    """Base class for test classes with set-up, tear-down and post-check.

    No __init__ is defined so pytest keeps collecting subclasses.
    """

    def set_up(self) -> None:
        """Prepare state for the test body. Runs before the pre-check."""

    def tear_down(self) -> None:
        """Release state after the test. Always runs last."""

    def post_check(self) -> None:
        """Verify values the body left in the scratchpad. Raise to fail."""

    def set_test_result(self, key: str, value: Any) -> None:
        """Store a value for post_check()."""
        set_scratch(key, value)

    def get_test_result(self, key: str, default: Any = None) -> Any:
        """Read a value stored by the body of the current test."""
        return get_scratch(key, default)


__all__ = ["CTSFixture"]
