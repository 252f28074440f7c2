"""
Unit tests for scorecast.normalization.scores.
"""

import pytest

from scorecast.exceptions import ValidationError
from scorecast.normalization.scores import (
    classify_score,
    determine_winner,
    format_score,
    goals_difference,
    is_extreme,
    is_valid_score,
    parse_score,
    round_half_up,
)


class TestParseScore:
    """Tests for parse_score."""

    def test_well_formed(self):
        assert parse_score("2-1") == (2, 1)
        assert parse_score(" 10 - 0 ") == (10, 0)

    @pytest.mark.parametrize("value", ["", "1-", "-1", "a-b", "1:0", "1-0-0", None, 21])
    def test_malformed(self, value):
        assert parse_score(value) is None
        assert is_valid_score(value) is False


class TestClassifyScore:
    """Tests for classify_score."""

    @pytest.mark.parametrize("score,expected", [
        ("5-0", "extreme"),
        ("0-5", "extreme"),
        ("6-2", "extreme"),
        ("3-3", "attacking"),
        ("4-2", "attacking"),
        ("0-0", "defensive"),
        ("1-1", "defensive"),
        ("2-0", "defensive"),
        ("3-0", "unbalanced"),
        ("0-4", "unbalanced"),
        ("2-1", "balanced"),
        ("2-2", "balanced"),
    ])
    def test_score_types(self, score, expected):
        assert classify_score(score).score_type == expected

    def test_profile_fields(self):
        profile = classify_score("3-1")
        assert profile.home == 3
        assert profile.away == 1
        assert profile.total == 4
        assert profile.difference == 2

    def test_malformed_raises(self):
        with pytest.raises(ValidationError):
            classify_score("three-one")

    def test_is_extreme(self):
        assert is_extreme("0-6") is True
        assert is_extreme("4-0") is False
        assert is_extreme("garbage") is False


class TestDetermineWinner:
    """Tests for determine_winner."""

    def test_outcomes(self):
        assert determine_winner("2-1") == "Home"
        assert determine_winner("0-1") == "Away"
        assert determine_winner("1-1") == "Draw"

    @pytest.mark.parametrize("value", ["abc", "", None, "1-"])
    def test_malformed_is_indeterminate(self, value):
        assert determine_winner(value) == "Indeterminate"


class TestFormatting:
    """Tests for rounding, clamping and score differences."""

    def test_round_half_up(self):
        assert round_half_up(0.5) == 1
        assert round_half_up(2.5) == 3
        assert round_half_up(2.49) == 2
        assert round_half_up(0.0) == 0

    def test_format_score_clamps(self):
        assert format_score(8, -1) == "7-0"
        assert format_score(1.5, 2.49) == "2-2"
        assert format_score(12, 3, max_goals=9) == "9-3"

    def test_goals_difference(self):
        assert goals_difference("2-1", "1-1") == 1
        assert goals_difference("0-0", "3-2") == 5
        assert goals_difference("1-0", "1-0") == 0

    def test_goals_difference_rejects_malformed(self):
        with pytest.raises(ValidationError):
            goals_difference("1-0", "x")
