"""
Pytest configuration and shared fixtures for scorecast tests.
"""

from datetime import datetime, timezone

import pytest

from scorecast.config import Config
from scorecast.evaluation.weights import WeightStore
from scorecast.models.features import MatchContext, StaticFeatureProvider, TeamFeatures
from scorecast.ops.metrics import InMemoryMetricsRecorder
from scorecast.service import PredictionEngine, PredictionService
from scorecast.storage.json_storage import JsonStorage
from scorecast.storage.repository import PredictionRepository
from tests.mocks import FakeResultLookup, FixedClock


@pytest.fixture
def config():
    return Config()


@pytest.fixture
def scenario_odds():
    """Three-entry market where 1-0 is the favourite."""
    return [
        {"score": "1-0", "coefficient": 2.0},
        {"score": "2-1", "coefficient": 3.0},
        {"score": "1-1", "coefficient": 4.0},
    ]


@pytest.fixture
def match_form():
    """A complete, valid match form."""
    return {
        "home_team": "Lyon",
        "away_team": "Nantes",
        "match_datetime": "2024-05-02T18:00:00Z",
        "score_odds": [
            {"score": "1-0", "coefficient": 6.5},
            {"score": "2-1", "coefficient": 8.0},
            {"score": "2-0", "coefficient": 8.5},
            {"score": "1-1", "coefficient": 7.0},
            {"score": "0-0", "coefficient": 11.0},
            {"score": "0-1", "coefficient": 12.0},
            {"score": "3-1", "coefficient": 15.0},
        ],
        "halftime_score_odds": [
            {"score": "0-0", "coefficient": 2.8},
            {"score": "1-0", "coefficient": 3.2},
            {"score": "0-1", "coefficient": 5.0},
        ],
        "confrontations": [1.8, 3.6, 4.2, 2.1, 1.9],
        "confrontation_halftime_odds": [
            {"score": "0-0", "coefficient": 2.9},
            {"score": "1-0", "coefficient": 3.4},
            {"score": "1-1", "coefficient": 5.5},
            {"score": "2-0", "coefficient": 9.0},
        ],
    }


@pytest.fixture
def features():
    teams = {
        "Lyon": TeamFeatures(overall=84, attack=86, defense=82, goals_per_match=1.8, home_advantage=0.5),
        "Nantes": TeamFeatures(overall=74, attack=72, defense=75, goals_per_match=1.2, home_advantage=0.0),
    }
    return StaticFeatureProvider(teams=teams, context=MatchContext(hours_to_kickoff=30.0, halftime_fraction=0.45))


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def lookup():
    return FakeResultLookup()


@pytest.fixture
def metrics():
    return InMemoryMetricsRecorder()


@pytest.fixture
def service(tmp_path, config, features, lookup, metrics, clock):
    """Service over a temporary JSON store with scripted result lookups."""
    return PredictionService(
        repository=PredictionRepository(JsonStorage(tmp_path / "store")),
        engine=PredictionEngine(config, features),
        lookup=lookup,
        weight_store=WeightStore(tmp_path / "store" / "performance_weights.json"),
        config=config,
        metrics=metrics,
        clock=clock,
    )
