"""
Tests for the slash command registry check.
"""

import os
import sys
from types import SimpleNamespace

import pytest

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.dirname(os.path.dirname(__file__))))

from utils.command_registry import (
    COMMAND_EXTENSIONS,
    REQUIRED_TIER,
    CommandTag,
    extensions,
    verify_registry,
)
from utils.exceptions import ConfigurationError
from utils.permissions import Tier


class FakeTree:
    def __init__(self, names):
        self.names = names

    def get_commands(self):
        return [SimpleNamespace(name=name) for name in self.names]


class TestRegistry:
    def test_every_tag_has_an_extension_and_tier(self):
        assert set(COMMAND_EXTENSIONS) == set(CommandTag)
        assert set(REQUIRED_TIER) == set(CommandTag)

    def test_report_is_the_only_verified_command(self):
        verified = [tag for tag, tier in REQUIRED_TIER.items() if tier is Tier.VERIFIED]
        assert verified == [CommandTag.REPORT]

    def test_extensions_are_unique_and_ordered(self):
        assert extensions() == ["cogs.report", "cogs.review", "cogs.mods", "cogs.admin", "cogs.settings"]

    def test_matching_tree_passes(self):
        verify_registry(FakeTree([tag.value for tag in CommandTag]))

    def test_missing_command_fails(self):
        names = [tag.value for tag in CommandTag if tag is not CommandTag.BAN]

        with pytest.raises(ConfigurationError, match="missing: ban"):
            verify_registry(FakeTree(names))

    def test_unregistered_command_fails(self):
        names = [tag.value for tag in CommandTag] + ["purge"]

        with pytest.raises(ConfigurationError, match="unregistered: purge"):
            verify_registry(FakeTree(names))
