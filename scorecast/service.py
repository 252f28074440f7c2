"""Prediction pipeline and the service that owns stored predictions."""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import logging
import threading

from scorecast.config import Config
from scorecast.constants import (
    ENGINE_VERSION,
    RISK_HIGH,
    STATUS_SCHEDULED,
    STATUS_LIVE,
    STATUS_FINISHED,
    STATUS_ERROR,
)
from scorecast.evaluation.evaluator import canonical_score, evaluate_prediction
from scorecast.evaluation.stats import AccuracyStats, compute_accuracy_stats
from scorecast.evaluation.weights import WeightStore
from scorecast.exceptions import LookupFailure, ScorecastError, ValidationError
from scorecast.ingestion.results import (
    CachedResultLookup,
    HttpResultLookup,
    LookupResult,
    ResultLookup,
    estimate_match_status,
)
from scorecast.live.tracking import LiveMatchTracker, LiveSnapshot, MatchStatus, build_live_snapshot
from scorecast.models.algorithms import AlgorithmContext, HistoryRecord, run_algorithm_bank
from scorecast.models.calibration import assess_risk, calibrate_confidence
from scorecast.models.ensemble import PerformanceState, combine, context_adjustments, dynamic_weights
from scorecast.models.features import FeatureProvider, StochasticFeatureProvider
from scorecast.models.halftime import derive_halftime, halftime_score
from scorecast.models.schema import MatchInput, Prediction
from scorecast.normalization.odds import analyze_odds, extreme_share, parse_odds_entries
from scorecast.normalization.scores import determine_winner, round_half_up
from scorecast.ops.metrics import MetricsRecorder, get_metrics_recorder
from scorecast.storage.cache import FileCache
from scorecast.storage.json_storage import JsonStorage
from scorecast.storage.repository import PredictionRepository
from scorecast.utils.dates import isoformat, parse_match_datetime, utc_now

logger = logging.getLogger(__name__)


# =============================================================================
# INPUT VALIDATION
# =============================================================================

def _positive_number(value) -> bool:
    if isinstance(value, bool):
        return False
    try:
        return float(value) > 0
    except (TypeError, ValueError):
        return False


def validate_match_input(raw: Union[MatchInput, Dict[str, Any]], config: Optional[Config] = None) -> MatchInput:
    """
    Check a match form before any computation.

    Raises:
        ValidationError: listing every problem found
    """
    config = config or Config()
    match = raw if isinstance(raw, MatchInput) else MatchInput.from_dict(raw or {})
    errors = []

    if not match.home_team:
        errors.append("home team is required")
    if not match.away_team:
        errors.append("away team is required")
    if match.home_team and match.home_team.lower() == match.away_team.lower():
        errors.append("home and away teams must differ")
    try:
        parse_match_datetime(match.match_datetime)
    except ValidationError:
        errors.append("match datetime is missing or invalid")

    fulltime = parse_odds_entries(match.score_odds)
    if len(fulltime) < config.min_fulltime_entries:
        errors.append(f"at least {config.min_fulltime_entries} valid full-time score odds are required")
    halftime = parse_odds_entries(match.halftime_score_odds)
    if len(halftime) < config.min_halftime_entries:
        errors.append(f"at least {config.min_halftime_entries} valid half-time score odds are required")
    if len(match.confrontations) != config.confrontation_count or not all(
        _positive_number(c) for c in match.confrontations
    ):
        errors.append(f"exactly {config.confrontation_count} positive confrontation coefficients are required")
    confrontation_halftime = parse_odds_entries(match.confrontation_halftime_odds)
    if len(confrontation_halftime) < config.min_confrontation_halftime_entries:
        errors.append(
            f"at least {config.min_confrontation_halftime_entries} valid confrontation half-time odds are required"
        )

    if errors:
        raise ValidationError("Invalid match input", field="match", errors=errors)
    return match


# =============================================================================
# ENGINE
# =============================================================================

class PredictionEngine:
    """Runs normalization, the algorithm bank, the ensemble and calibration for one match."""

    def __init__(
        self,
        config: Optional[Config] = None,
        features: Optional[FeatureProvider] = None,
        max_workers: Optional[int] = None,
    ) -> None:
        self.config = config or Config()
        self.features = features or StochasticFeatureProvider(self.config)
        self.max_workers = max_workers

    def _fallback(self, match: MatchInput, timestamp: str) -> Prediction:
        config = self.config
        halftime = halftime_score(config.fallback_score, config.halftime_fraction_min, config.max_goals)
        return Prediction(
            home_team=match.home_team,
            away_team=match.away_team,
            match_datetime=match.match_datetime,
            predicted_score=config.fallback_score,
            predicted_winner=determine_winner(config.fallback_score),
            confidence=config.fallback_confidence,
            predicted_halftime_score=halftime,
            predicted_halftime_winner=determine_winner(halftime),
            halftime_confidence=round_half_up(config.fallback_confidence * config.halftime_confidence_factor),
            risk_level=RISK_HIGH,
            confrontations=[float(c) for c in match.confrontations if _positive_number(c)],
            fallback=True,
            engine_version=ENGINE_VERSION,
            timestamp=timestamp,
        )

    def predict(
        self,
        match: MatchInput,
        performance: Optional[PerformanceState] = None,
        history: Optional[List[HistoryRecord]] = None,
        now: Optional[datetime] = None,
    ) -> Prediction:
        """Build an unsaved ``Prediction`` for ``match``."""
        config = self.config
        now = now or utc_now()
        timestamp = isoformat(now)
        entries = parse_odds_entries(match.score_odds)
        analysis = analyze_odds(entries, config)
        if analysis.fallback:
            logger.info("No usable odds for %s vs %s; using fallback", match.home_team, match.away_team)
            return self._fallback(match, timestamp)

        home = self.features.team_features(match.home_team, True)
        away = self.features.team_features(match.away_team, False)
        context = self.features.match_context(match.match_datetime, now)
        confrontations = [float(c) for c in match.confrontations if _positive_number(c)]

        ctx = AlgorithmContext(
            normalized=analysis.normalized,
            home=home,
            away=away,
            match=context,
            history=list(history or []),
            confrontations=confrontations,
            odds_extreme_share=extreme_share(entries),
            config=config,
        )
        results = run_algorithm_bank(ctx, max_workers=self.max_workers)
        weights = dynamic_weights(performance, context_adjustments(ctx), config)
        outcome = combine(results, weights)
        confidence = calibrate_confidence(outcome, analysis.normalized, config)
        halftime = derive_halftime(
            outcome.results,
            weights,
            context.halftime_fraction,
            match.halftime_score_odds,
            match.confrontation_halftime_odds,
            config,
        )
        alternatives = [
            {"score": row["score"], "probability": row["probability"], "risk": row["risk"]}
            for row in analysis.top_predictions
            if row["score"] != outcome.score
        ]
        logger.info(
            "Predicted %s vs %s: %s at %d%%", match.home_team, match.away_team, outcome.score, confidence
        )
        return Prediction(
            home_team=match.home_team,
            away_team=match.away_team,
            match_datetime=match.match_datetime,
            score_odds=entries,
            halftime_score_odds=parse_odds_entries(match.halftime_score_odds),
            confrontations=confrontations,
            confrontation_halftime_odds=parse_odds_entries(match.confrontation_halftime_odds),
            predicted_score=outcome.score,
            predicted_winner=determine_winner(outcome.score),
            confidence=confidence,
            predicted_halftime_score=halftime.score,
            predicted_halftime_winner=halftime.winner,
            halftime_confidence=halftime.confidence,
            top_predictions=analysis.top_predictions,
            halftime_top_predictions=halftime.top_predictions,
            alternative_scenarios=alternatives,
            algorithm_breakdown=outcome.breakdown(),
            risk_level=assess_risk(home, away, config),
            strength_gap=round(home.overall - away.overall, 2),
            engine_version=ENGINE_VERSION,
            timestamp=timestamp,
        )


# =============================================================================
# SERVICE
# =============================================================================

@dataclass
class CheckResult:
    prediction_id: Optional[int]
    status: str
    message: str = ""
    actual_score: Optional[str] = None
    correct: Optional[bool] = None
    current_score: Optional[str] = None
    minute: Optional[int] = None
    scheduled_time: Optional[str] = None
    live: Optional[Dict[str, Any]] = None
    fallback_mode: bool = False
    estimated_status: Optional[str] = None
    degraded_confidence: Optional[int] = None
    error: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "prediction_id": self.prediction_id,
            "status": self.status,
            "message": self.message,
            "fallback_mode": self.fallback_mode,
        }
        optional = {
            "actual_score": self.actual_score,
            "correct": self.correct,
            "current_score": self.current_score,
            "minute": self.minute,
            "scheduled_time": self.scheduled_time,
            "live": self.live,
            "estimated_status": self.estimated_status,
            "degraded_confidence": self.degraded_confidence,
            "error": self.error,
        }
        payload.update({k: v for k, v in optional.items() if v is not None})
        payload.update(self.extra)
        return payload


class PredictionService:
    """
    Creates, resolves and checks predictions.

    The performance state that weights the ensemble is recomputed after each
    recorded result and saved through ``WeightStore`` when one is given.
    """

    def __init__(
        self,
        repository: PredictionRepository,
        engine: Optional[PredictionEngine] = None,
        lookup: Optional[ResultLookup] = None,
        weight_store: Optional[WeightStore] = None,
        config: Optional[Config] = None,
        metrics: Optional[MetricsRecorder] = None,
        clock=utc_now,
    ) -> None:
        self.config = config or (engine.config if engine else Config())
        self.repository = repository
        self.engine = engine or PredictionEngine(self.config)
        self.lookup = lookup
        self.weight_store = weight_store
        self.metrics = metrics or get_metrics_recorder()
        self._clock = clock
        self._trackers: Dict[int, LiveMatchTracker] = {}
        self._trackers_lock = threading.Lock()
        self._performance_lock = threading.Lock()
        self._performance: Optional[PerformanceState] = None

    # -- creation -----------------------------------------------------------

    def _history(self) -> List[HistoryRecord]:
        records = (HistoryRecord.from_prediction(p) for p in self.repository.completed())
        return [record for record in records if record is not None]

    def create_prediction(self, raw: Union[MatchInput, Dict[str, Any]]) -> Prediction:
        match = validate_match_input(raw, self.config)
        with self.metrics.timed("predictions.create"):
            draft = self.engine.predict(
                match,
                performance=self.performance_state(),
                history=self._history(),
                now=self._clock(),
            )
            stored = self.repository.create(draft)
        self.metrics.increment("predictions.created")
        if stored.fallback:
            self.metrics.increment("predictions.fallback")
        return stored

    # -- results ------------------------------------------------------------

    def record_result(
        self,
        prediction_id: Union[int, str],
        actual_score: str,
        actual_halftime_score: Optional[str] = None,
    ) -> Prediction:
        """
        Evaluate a prediction against its final score.

        Recording the same score again returns the stored record unchanged;
        a different score for an already resolved prediction is rejected.
        """
        actual = canonical_score(actual_score)
        with self.repository.lock:
            prediction = self.repository.get(prediction_id)
            if prediction.actual_result is not None:
                if prediction.actual_result.actual_score == actual:
                    return prediction
                raise ValidationError(
                    f"Prediction {prediction.id} already resolved as {prediction.actual_result.actual_score}",
                    field="actual_score",
                )
            result = evaluate_prediction(prediction, actual, actual_halftime_score)
            updated = self.repository.update(prediction.id, {"actual_result": result})
        self.metrics.increment("results.recorded")
        logger.info(
            "Recorded %s for prediction %d (predicted %s, %s)",
            actual,
            updated.id,
            updated.predicted_score,
            "correct" if result.correct else "missed",
        )
        self.refresh_performance()
        return updated

    # -- checks -------------------------------------------------------------

    def _tracker(self, prediction_id: int) -> LiveMatchTracker:
        with self._trackers_lock:
            tracker = self._trackers.get(prediction_id)
            if tracker is None:
                tracker = LiveMatchTracker(prediction_id)
                self._trackers[prediction_id] = tracker
            return tracker

    def _degraded(self, prediction: Prediction, message: str, error: Optional[str] = None) -> CheckResult:
        self.metrics.increment("checks.fallback")
        return CheckResult(
            prediction_id=prediction.id,
            status=STATUS_ERROR,
            message=message,
            fallback_mode=True,
            estimated_status=estimate_match_status(prediction.match_datetime, self._clock()),
            degraded_confidence=round_half_up(prediction.confidence * self.config.fallback_confidence_factor),
            error=error,
        )

    def check_prediction(self, prediction_id: Union[int, str]) -> CheckResult:
        prediction = self.repository.get(prediction_id)
        self.metrics.increment("checks.total")
        if prediction.actual_result is not None:
            actual = prediction.actual_result
            return CheckResult(
                prediction_id=prediction.id,
                status=STATUS_FINISHED,
                message=f"Final score {actual.actual_score} (predicted {prediction.predicted_score})",
                actual_score=actual.actual_score,
                correct=actual.correct,
            )
        if self.lookup is None:
            return self._degraded(prediction, "No result provider configured")

        try:
            result: LookupResult = self.lookup.lookup(prediction)
        except LookupFailure as e:
            logger.warning("Lookup failed for prediction %s: %s", prediction.id, e)
            return self._degraded(prediction, "Result provider unavailable", str(e))
        except Exception as e:
            # provider errors outside the lookup contract degrade the same way
            logger.warning("Lookup raised %s for prediction %s: %s", type(e).__name__, prediction.id, e)
            self.metrics.increment("lookup.failures")
            return self._degraded(prediction, "Result provider unavailable", f"{type(e).__name__}: {e}")

        tracker = self._tracker(prediction.id)
        status = tracker.advance(result)
        if status == MatchStatus.ERROR:
            tracker.reset()
            return self._degraded(prediction, "Result provider returned an unusable answer")

        if status == MatchStatus.FINISHED:
            final = tracker.current_score or result.final_score
            updated = self.record_result(prediction.id, final, result.halftime_score)
            return CheckResult(
                prediction_id=prediction.id,
                status=STATUS_FINISHED,
                message=f"Final score {final} (predicted {prediction.predicted_score})",
                actual_score=final,
                correct=updated.actual_result.correct,
            )
        if status == MatchStatus.LIVE:
            current = tracker.current_score or "0-0"
            snapshot: LiveSnapshot = build_live_snapshot(prediction, current, tracker.minute or 0, self.config)
            return CheckResult(
                prediction_id=prediction.id,
                status=STATUS_LIVE,
                message=f"{current} ({snapshot.minute}') | predicted {prediction.predicted_score}",
                current_score=current,
                minute=snapshot.minute,
                live=snapshot.to_dict(),
            )
        return CheckResult(
            prediction_id=prediction.id,
            status=STATUS_SCHEDULED,
            message=f"Scheduled | predicted {prediction.predicted_score} at {prediction.confidence}%",
            scheduled_time=result.scheduled_time or prediction.match_datetime,
        )

    def _safe_check(self, prediction: Prediction) -> CheckResult:
        try:
            return self.check_prediction(prediction.id)
        except Exception as e:
            logger.exception("Check failed for prediction %s", prediction.id)
            return CheckResult(prediction_id=prediction.id, status=STATUS_ERROR, message=str(e), error=str(e))

    def check_all_pending(self, max_workers: Optional[int] = None) -> List[CheckResult]:
        pending = self.repository.pending()
        if not pending:
            return []
        workers = max(1, min(max_workers or self.config.check_max_workers, len(pending)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(self._safe_check, pending))
        logger.info("Checked %d pending predictions", len(results))
        return results

    def live_snapshot(self, prediction_id: Union[int, str], current_score: str, minute: int) -> LiveSnapshot:
        prediction = self.repository.get(prediction_id)
        return build_live_snapshot(prediction, canonical_score(current_score, field="current_score"),
                                   minute, self.config)

    # -- learning -----------------------------------------------------------

    def get_accuracy_stats(self) -> AccuracyStats:
        return compute_accuracy_stats(self.repository.get_all())

    def performance_state(self) -> PerformanceState:
        with self._performance_lock:
            if self._performance is None:
                if self.weight_store is not None:
                    self._performance = self.weight_store.load_state()
                else:
                    self._performance = PerformanceState.neutral()
            return self._performance

    def refresh_performance(self) -> PerformanceState:
        """Recompute multipliers from resolved predictions; neutral if that fails."""
        try:
            state = PerformanceState.from_stats(self.get_accuracy_stats(), self.config)
        except (ScorecastError, ArithmeticError, KeyError, TypeError, ValueError) as e:
            logger.error("Could not refresh performance weights: %s", e)
            state = PerformanceState.neutral()
        with self._performance_lock:
            self._performance = state
        if self.weight_store is not None:
            self.weight_store.save(state)
        return state


def build_service(
    config: Optional[Config] = None,
    lookup: Optional[ResultLookup] = None,
    features: Optional[FeatureProvider] = None,
    seed: Optional[int] = None,
) -> PredictionService:
    """Wire a service over the on-disk store described by ``config``."""
    config = config or Config()
    storage = JsonStorage(config.store_dir)
    if lookup is None and config.lookup_base_url:
        lookup = CachedResultLookup(
            HttpResultLookup(config),
            FileCache(Path(config.store_dir) / "lookup_cache"),
            config.lookup_cache_ttl,
        )
    return PredictionService(
        repository=PredictionRepository(storage),
        engine=PredictionEngine(config, features or StochasticFeatureProvider(config, seed)),
        lookup=lookup,
        weight_store=WeightStore(config.resolve_weights_path()),
        config=config,
    )
