"""
Unit tests for the tool guard configuration schema.
"""

import pytest

from src.toolguard.config.schema import GuardConfig, ToolRouting


class TestToolRouting:
    """Tests for ToolRouting validation."""

    def test_defaults(self) -> None:
        """Test default routing."""
        routing = ToolRouting()
        assert routing.shell == ("bash",)
        assert routing.write == ("write", "edit", "multiedit")
        assert routing.browser == ("browser",)
        assert routing.navigate_action == "navigate"

    def test_empty_group_rejected(self) -> None:
        """Test every group needs a pattern."""
        with pytest.raises(ValueError, match="'shell' must list at least one pattern"):
            ToolRouting(shell=())

    @pytest.mark.parametrize("pattern", ["", "   "], ids=["empty", "blank"])
    def test_blank_pattern_rejected(self, pattern: str) -> None:
        """Test blank patterns are rejected."""
        with pytest.raises(ValueError, match="empty pattern"):
            ToolRouting(browser=("browser", pattern))

    def test_overlapping_groups_rejected(self) -> None:
        """Test a pattern cannot route to two guards."""
        with pytest.raises(ValueError, match="routed to both"):
            ToolRouting(shell=("bash", "Write"))

    def test_empty_navigate_action_rejected(self) -> None:
        """Test navigate_action is required."""
        with pytest.raises(ValueError, match="navigate_action"):
            ToolRouting(navigate_action="")


class TestGuardConfig:
    """Tests for GuardConfig validation."""

    def test_defaults(self) -> None:
        """Test default configuration."""
        config = GuardConfig()
        assert config.routing == ToolRouting()
        assert config.home_dir is None

    def test_relative_home_rejected(self) -> None:
        """Test home_dir must be absolute."""
        with pytest.raises(ValueError, match="absolute"):
            GuardConfig(home_dir="home/user")
