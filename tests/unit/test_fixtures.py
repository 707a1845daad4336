"""Unit tests for floe_cts.fixtures."""

from __future__ import annotations

import pytest

from floe_cts.errors import ScratchpadError
from floe_cts.fixtures import CTSFixture
from floe_cts.scratchpad import scratch_scope


class SampleFixture(CTSFixture):
    def set_up(self) -> None:
        self.set_test_result("test_value", 42)

    def post_check(self) -> None:
        assert self.get_test_result("calculation_result", 0) > 0


class TestCTSFixture:
    """Tests for CTSFixture capabilities."""

    @pytest.mark.requirement("CTS-FR-007")
    def test_defaults_are_noops(self) -> None:
        """Test the base capabilities do nothing."""
        fixture = CTSFixture()
        with scratch_scope() as pad:
            fixture.set_up()
            fixture.post_check()
            fixture.tear_down()
        assert len(pad) == 0

    @pytest.mark.requirement("CTS-FR-007")
    def test_results_flow_from_set_up_to_post_check(self) -> None:
        """Test values stored in one phase are visible to later phases."""
        fixture = SampleFixture()
        with scratch_scope():
            fixture.set_up()
            value = fixture.get_test_result("test_value")
            fixture.set_test_result("calculation_result", value + 10)
            fixture.post_check()
            assert fixture.get_test_result("calculation_result") == 52

    @pytest.mark.requirement("CTS-FR-007")
    def test_post_check_fails_without_result(self) -> None:
        """Test a missing result makes the post-check fail."""
        with scratch_scope(), pytest.raises(AssertionError):
            SampleFixture().post_check()

    @pytest.mark.requirement("CTS-FR-007")
    def test_set_outside_test_raises(self) -> None:
        """Test results cannot be stored outside a test execution."""
        with pytest.raises(ScratchpadError):
            CTSFixture().set_test_result("k", "v")
