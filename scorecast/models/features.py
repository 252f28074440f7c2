"""Team features and match context supplied to the algorithm bank.

No team ratings are scraped or trained here: values come from an injectable
provider. ``StochasticFeatureProvider`` draws bounded values from a numpy
``Generator`` (seedable); ``StaticFeatureProvider`` returns fixed values.
"""

from dataclasses import dataclass, asdict, replace
from datetime import datetime
from typing import Any, Dict, Optional
import logging

import numpy as np

from scorecast.config import Config
from scorecast.exceptions import ValidationError
from scorecast.utils.dates import hours_until

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TeamFeatures:
    overall: float = 80.0
    attack: float = 80.0
    defense: float = 80.0
    goals_per_match: float = 1.5
    home_advantage: float = 0.5
    form: float = 5.0
    extreme_frequency: float = 0.1
    attacking_momentum: float = 1.0
    defensive_stability: float = 1.0

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TeamFeatures":
        known = {k: float(v) for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


@dataclass(frozen=True)
class MatchContext:
    hours_to_kickoff: float = 24.0
    home_injury_impact: float = 0.0
    away_injury_impact: float = 0.0
    weather_impact: float = 0.0
    market_volatility: float = 0.0
    halftime_fraction: float = 0.45

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def strength_gap(home: TeamFeatures, away: TeamFeatures) -> float:
    return abs(home.overall - away.overall)


class FeatureProvider:
    """Source of team features and match context."""

    def team_features(self, team: str, is_home: bool) -> TeamFeatures:
        raise NotImplementedError

    def match_context(self, match_datetime: str, now: Optional[datetime] = None) -> MatchContext:
        raise NotImplementedError


class StochasticFeatureProvider(FeatureProvider):
    def __init__(self, config: Optional[Config] = None, seed: Optional[int] = None) -> None:
        self._config = config or Config()
        self._rng = np.random.default_rng(seed)

    def _uniform(self, low: float, high: float) -> float:
        return float(self._rng.uniform(low, high))

    def team_features(self, team: str, is_home: bool) -> TeamFeatures:
        overall = self._uniform(70.0, 90.0)
        return TeamFeatures(
            overall=overall,
            attack=overall + self._uniform(-5.0, 5.0),
            defense=overall + self._uniform(-5.0, 5.0),
            goals_per_match=self._uniform(1.0, 3.0),
            home_advantage=self._uniform(0.3, 0.7) if is_home else 0.0,
            form=self._uniform(1.0, 10.0),
            extreme_frequency=self._uniform(0.0, 0.3),
            attacking_momentum=self._uniform(0.8, 1.2),
            defensive_stability=self._uniform(0.8, 1.2),
        )

    def match_context(self, match_datetime: str, now: Optional[datetime] = None) -> MatchContext:
        return MatchContext(
            hours_to_kickoff=hours_until(match_datetime, now),
            home_injury_impact=self._uniform(0.0, 0.15),
            away_injury_impact=self._uniform(0.0, 0.15),
            weather_impact=self._uniform(0.0, 0.1),
            market_volatility=self._uniform(0.0, 0.3),
            halftime_fraction=self._uniform(
                self._config.halftime_fraction_min, self._config.halftime_fraction_max
            ),
        )


class StaticFeatureProvider(FeatureProvider):
    """Fixed features per team; unknown teams get ``default``."""

    def __init__(
        self,
        teams: Optional[Dict[str, TeamFeatures]] = None,
        default: Optional[TeamFeatures] = None,
        context: Optional[MatchContext] = None,
    ) -> None:
        self._teams = dict(teams or {})
        self._default = default or TeamFeatures()
        self._context = context or MatchContext()

    def team_features(self, team: str, is_home: bool) -> TeamFeatures:
        features = self._teams.get(team, self._default)
        if not is_home and team not in self._teams:
            features = replace(features, home_advantage=0.0)
        return features

    def match_context(self, match_datetime: str, now: Optional[datetime] = None) -> MatchContext:
        if now is None:
            return self._context
        try:
            hours = hours_until(match_datetime, now)
        except ValidationError:
            logger.debug("Keeping static kickoff distance for %r", match_datetime)
            return self._context
        return replace(self._context, hours_to_kickoff=hours)
