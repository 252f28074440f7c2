"""CLI entry points."""

from pathlib import Path
from typing import Any, Dict, Optional, Sequence
import argparse
import json
import logging
import sys
import uuid

from scorecast.config import Config
from scorecast.exceptions import NotFoundError, ScorecastError, ValidationError
from scorecast.ingestion.results import StaticResultLookup
from scorecast.ops import configure_logging, get_metrics_recorder
from scorecast.service import PredictionService, build_service

logger = logging.getLogger(__name__)


def _emit(payload: Any) -> None:
    sys.stdout.write(json.dumps(payload, indent=2, sort_keys=True, default=str) + "\n")


def _load_config(config_path: Optional[str], store_dir: Optional[str]) -> Config:
    config = Config.load(config_path=config_path)
    if config_path:
        logger.info("Loaded config from %s", config_path)
    if store_dir:
        config.store_dir = store_dir
    return config


def _load_service(
    config_path: Optional[str] = None,
    store_dir: Optional[str] = None,
    results_file: Optional[str] = None,
    seed: Optional[int] = None,
) -> PredictionService:
    config = _load_config(config_path, store_dir)
    lookup = StaticResultLookup.from_file(results_file) if results_file else None
    return build_service(config, lookup=lookup, seed=seed)


def _read_json(path: str) -> Dict[str, Any]:
    if path == "-":
        return json.load(sys.stdin)
    with Path(path).open(encoding="utf-8") as handle:
        return json.load(handle)


def run_predict(input_path: str, config_path: Optional[str] = None, store_dir: Optional[str] = None,
                seed: Optional[int] = None) -> int:
    """Create and store a prediction from a JSON match form."""
    service = _load_service(config_path, store_dir, seed=seed)
    prediction = service.create_prediction(_read_json(input_path))
    _emit(prediction.to_dict())
    return 0


def run_record_result(prediction_id: int, score: str, halftime: Optional[str] = None,
                      config_path: Optional[str] = None, store_dir: Optional[str] = None) -> int:
    service = _load_service(config_path, store_dir)
    prediction = service.record_result(prediction_id, score, halftime)
    _emit(prediction.actual_result.to_dict())
    return 0


def run_check(prediction_id: int, config_path: Optional[str] = None, store_dir: Optional[str] = None,
              results_file: Optional[str] = None) -> int:
    service = _load_service(config_path, store_dir, results_file)
    _emit(service.check_prediction(prediction_id).to_dict())
    return 0


def run_check_pending(config_path: Optional[str] = None, store_dir: Optional[str] = None,
                      results_file: Optional[str] = None, workers: Optional[int] = None) -> int:
    service = _load_service(config_path, store_dir, results_file)
    results = service.check_all_pending(max_workers=workers)
    _emit([result.to_dict() for result in results])
    logger.info("Metrics: %s", get_metrics_recorder().snapshot()["counters"])
    return 0


def run_stats(config_path: Optional[str] = None, store_dir: Optional[str] = None) -> int:
    service = _load_service(config_path, store_dir)
    payload = service.get_accuracy_stats().to_dict()
    payload["performance"] = service.performance_state().to_dict()
    _emit(payload)
    return 0


def run_live(prediction_id: int, score: str, minute: int, config_path: Optional[str] = None,
             store_dir: Optional[str] = None) -> int:
    """Re-project a stored prediction from a score and minute typed in by hand."""
    service = _load_service(config_path, store_dir)
    _emit(service.live_snapshot(prediction_id, score, minute).to_dict())
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Odds-based football score predictions")
    parser.add_argument("--config", dest="config_path", help="Path to config file (.env or JSON)")
    parser.add_argument("--store-dir", dest="store_dir", help="Override the prediction store directory")
    parser.add_argument("--log-level", dest="log_level", help="Logging level (default from SCORECAST_LOG_LEVEL)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    predict = subparsers.add_parser("predict", help="Create a prediction from a match form")
    predict.add_argument("input_path", help="JSON match form, or - for stdin")
    predict.add_argument("--seed", dest="seed", type=int, help="Seed for generated team features")

    record = subparsers.add_parser("record-result", help="Record the final score of a match")
    record.add_argument("prediction_id", type=int)
    record.add_argument("score", help="Final score, e.g. 2-1")
    record.add_argument("--halftime", dest="halftime", help="Half-time score, e.g. 1-0")

    check = subparsers.add_parser("check", help="Look up the current state of one prediction")
    check.add_argument("prediction_id", type=int)
    check.add_argument("--results-file", dest="results_file", help="JSON list of known match results")

    pending = subparsers.add_parser("check-pending", help="Check every unresolved prediction")
    pending.add_argument("--results-file", dest="results_file", help="JSON list of known match results")
    pending.add_argument("--workers", dest="workers", type=int, help="Parallel lookups")

    subparsers.add_parser("stats", help="Show accuracy statistics")

    live = subparsers.add_parser("live", help="Live re-projection for a score and minute")
    live.add_argument("prediction_id", type=int)
    live.add_argument("score", help="Current score, e.g. 1-0")
    live.add_argument("minute", type=int, help="Minutes played")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(run_id=uuid.uuid4().hex[:8], level=args.log_level)
    common = {"config_path": args.config_path, "store_dir": args.store_dir}

    try:
        if args.command == "predict":
            return run_predict(args.input_path, seed=args.seed, **common)
        if args.command == "record-result":
            return run_record_result(args.prediction_id, args.score, args.halftime, **common)
        if args.command == "check":
            return run_check(args.prediction_id, results_file=args.results_file, **common)
        if args.command == "check-pending":
            return run_check_pending(results_file=args.results_file, workers=args.workers, **common)
        if args.command == "stats":
            return run_stats(**common)
        if args.command == "live":
            return run_live(args.prediction_id, args.score, args.minute, **common)
    except (ValidationError, NotFoundError) as e:
        logger.error("%s", e)
        return 1
    except ScorecastError as e:
        logger.error("Command %s failed: %s", args.command, e)
        return 2

    parser.error("Unknown command")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
