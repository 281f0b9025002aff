"""Tests for the keyword predicate."""

from __future__ import annotations

import pytest

from memberwatch.config import Settings
from memberwatch.targeting import is_target_group


class TestIsTargetGroup:
    @pytest.mark.parametrize(
        "name",
        ["Neol Friends", "NEOL", "neol", "the neolithic club", "Team nEoL 2024"],
    )
    def test_matches_keyword_in_any_case(self, name):
        assert is_target_group(name)

    @pytest.mark.parametrize("name", ["Random Chat", "ne ol", "Noel", "family"])
    def test_rejects_names_without_keyword(self, name):
        assert not is_target_group(name)

    def test_rejects_absent_or_empty_name(self):
        assert not is_target_group(None)
        assert not is_target_group("")

    def test_default_keyword_is_fixed_on_settings(self):
        assert Settings.TARGET_KEYWORD == "neol"

    def test_explicit_keyword_is_case_insensitive_too(self):
        assert is_target_group("Chess Club", keyword="CHESS")
        assert not is_target_group("Neol Friends", keyword="chess")
