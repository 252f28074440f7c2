"""
Unit tests for scorecast.live.tracking.

Tests:
- Match status transitions of LiveMatchTracker
- Per-minute goal rates and Poisson exact-score probabilities
- Expected progression and live confidence adjustment
- Final-score projections and live snapshots
"""

import pytest

from scorecast.exceptions import ValidationError
from scorecast.ingestion.results import LookupResult
from scorecast.live.tracking import (
    LiveMatchTracker,
    MatchStatus,
    adjust_live_confidence,
    base_goal_rate,
    build_live_snapshot,
    exact_match_probability,
    expected_progression,
    next_goal_probability,
    poisson_probability,
    prediction_viability,
    probability_percent,
    project_final_scores,
    remaining_minutes,
)
from tests.mocks import make_prediction


class TestLiveMatchTracker:
    """Tests for LiveMatchTracker."""

    def test_scheduled_to_finished(self):
        tracker = LiveMatchTracker(1)
        assert tracker.status == MatchStatus.SCHEDULED
        tracker.advance(LookupResult(status="live", current_score="1-0", minute=30))
        assert tracker.status == MatchStatus.LIVE
        assert tracker.current_score == "1-0"
        assert tracker.minute == 30
        tracker.advance(LookupResult(status="finished", final_score="2-1"))
        assert tracker.status == MatchStatus.FINISHED
        assert tracker.current_score == "2-1"
        assert tracker.is_terminal

    def test_regressions_ignored(self):
        tracker = LiveMatchTracker(1)
        tracker.advance(LookupResult(status="finished", final_score="0-0"))
        tracker.advance(LookupResult(status="live", current_score="0-0", minute=10))
        tracker.advance(LookupResult(status="scheduled"))
        assert tracker.status == MatchStatus.FINISHED

    def test_minute_never_goes_backwards(self):
        tracker = LiveMatchTracker(1)
        tracker.advance(LookupResult(status="live", current_score="1-0", minute=60))
        tracker.advance(LookupResult(status="live", current_score="1-0", minute=55))
        assert tracker.minute == 60

    def test_error_is_absorbing_until_reset(self):
        tracker = LiveMatchTracker(1)
        tracker.advance(LookupResult(status="live", current_score="0-0", minute=5))
        tracker.advance(LookupResult(status="error"))
        assert tracker.status == MatchStatus.ERROR
        tracker.advance(LookupResult(status="finished", final_score="1-0"))
        assert tracker.status == MatchStatus.ERROR
        assert tracker.reset() == MatchStatus.LIVE

    def test_unknown_status_is_error(self):
        tracker = LiveMatchTracker(1)
        tracker.advance(LookupResult(status="postponed"))
        assert tracker.status == MatchStatus.ERROR


class TestGoalRates:
    """Tests for base_goal_rate and remaining_minutes."""

    def test_opening_phase(self):
        assert base_goal_rate(10, "0-0", "home") == pytest.approx(0.036)

    def test_halftime_lull(self):
        assert base_goal_rate(47, "0-0", "home") == pytest.approx(0.024)

    def test_level_late_game(self):
        assert base_goal_rate(80, "0-0", "away") == pytest.approx(0.03 * 1.2 * 1.3)

    def test_leader_slows_and_trailer_pushes(self):
        assert base_goal_rate(30, "2-0", "home") == pytest.approx(0.03 * 0.7 * 0.9)
        assert base_goal_rate(30, "2-0", "away") == pytest.approx(0.03 * 0.7 * 1.2)

    def test_remaining_minutes(self):
        assert remaining_minutes(30) == 60
        assert remaining_minutes(95) == 0


class TestExactMatchProbability:
    """Tests for exact_match_probability."""

    def test_poisson(self):
        assert poisson_probability(0, 0.0) == 1.0
        assert poisson_probability(1, 0.0) == 0.0
        assert poisson_probability(-1, 1.0) == 0.0
        assert poisson_probability(2, 1.0) == pytest.approx(0.18394, abs=1e-5)

    def test_hand_checked_values(self):
        assert exact_match_probability("2-1", "1-0", 80) == pytest.approx(0.0592, abs=1e-3)
        assert exact_match_probability("2-1", "1-0", 50) == pytest.approx(0.1193, abs=1e-3)

    def test_less_time_less_chance(self):
        assert exact_match_probability("2-1", "1-0", 80) < exact_match_probability("2-1", "1-0", 50)

    def test_exceeded_score_is_impossible(self):
        assert exact_match_probability("1-0", "2-0", 30) == 0.0

    def test_full_time(self):
        assert exact_match_probability("1-1", "1-1", 90) == 1.0
        assert exact_match_probability("2-1", "1-1", 90) == 0.0

    def test_accepts_tuples(self):
        assert exact_match_probability((2, 1), (1, 0), 80) == exact_match_probability("2-1", "1-0", 80)

    def test_malformed_score(self):
        with pytest.raises(ValidationError):
            exact_match_probability("2-1", "one-nil", 30)

    def test_percent_clamped(self):
        assert probability_percent(0.0) == 1
        assert probability_percent(1.0) == 95
        assert probability_percent(0.123) == 12


class TestProgression:
    """Tests for expected_progression."""

    def test_anchor_points(self):
        assert expected_progression("2-2", 0).share == 0.0
        assert expected_progression("2-2", 45).share == pytest.approx(0.4)
        assert expected_progression("2-2", 90).share == pytest.approx(1.0)

    def test_interpolated(self):
        progression = expected_progression("2-2", 37.5)
        assert progression.share == pytest.approx(0.325)
        assert progression.expected_total == pytest.approx(4 * 0.325)

    def test_monotone(self):
        shares = [expected_progression("3-1", m).share for m in range(0, 91, 5)]
        assert shares == sorted(shares)


class TestAdjustLiveConfidence:
    """Tests for adjust_live_confidence."""

    def test_on_track_late(self):
        assert adjust_live_confidence(80, "2-1", "2-1", 85) == 84

    def test_goalless_late(self):
        assert adjust_live_confidence(80, "2-1", "0-0", 85) == 49

    def test_bounds(self):
        assert adjust_live_confidence(100, "1-0", "1-0", 90) <= 95
        assert adjust_live_confidence(1, "3-3", "0-5", 88) >= 5


class TestProjections:
    """Tests for project_final_scores, next_goal_probability and prediction_viability."""

    def test_late_goalless_stays_goalless(self):
        projections = project_final_scores("0-0", 89)
        assert projections[0]["score"] == "0-0"
        probabilities = [row["probability"] for row in projections]
        assert probabilities == sorted(probabilities, reverse=True)
        assert sum(probabilities) <= 1.0 + 1e-6

    def test_projected_scores_never_below_current(self):
        for row in project_final_scores("2-1", 60, limit=10):
            home, away = map(int, row["score"].split("-"))
            assert home >= 2 and away >= 1

    def test_next_goal_sums_to_one(self):
        split = next_goal_probability("1-0", 60)
        assert split["home"] + split["away"] + split["none"] == pytest.approx(1.0, abs=1e-3)
        assert split["away"] > split["home"]

    def test_no_time_left(self):
        assert next_goal_probability("1-0", 90) == {"home": 0.0, "away": 0.0, "none": 1.0}

    def test_viability_states(self):
        assert prediction_viability("2-1", "3-0", 60)["state"] == "impossible"
        assert prediction_viability("2-1", "2-1", 60)["state"] == "achieved"
        assert prediction_viability("2-1", "1-0", 30)["state"] == "on_track"
        needs = prediction_viability("2-1", "1-0", 80)
        assert needs["state"] == "needs_goals"
        assert needs["goals_needed_home"] == 1
        assert needs["goals_needed_away"] == 1
        assert needs["viable"] is True


class TestLiveSnapshot:
    """Tests for build_live_snapshot."""

    def test_snapshot(self):
        prediction = make_prediction(predicted_score="2-1", confidence=70, prediction_id=3)
        snapshot = build_live_snapshot(prediction, "1-0", 50)
        payload = snapshot.to_dict()
        assert payload["prediction_id"] == 3
        assert payload["exact_match_percent"] == 12
        assert 5 <= payload["adjusted_confidence"] <= 95
        assert payload["viability"]["state"] == "needs_goals"
        assert len(payload["projections"]) == 5

    def test_minute_clamped(self):
        snapshot = build_live_snapshot(make_prediction(), "0-0", 130)
        assert snapshot.minute == 90
