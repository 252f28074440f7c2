"""Prediction records, kept in memory and optionally mirrored to JSON."""

from dataclasses import fields, replace
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Union
import copy
import logging
import threading

from scorecast.exceptions import NotFoundError, ValidationError
from scorecast.models.schema import Prediction
from scorecast.storage.json_storage import JsonStorage
from scorecast.utils.dates import parse_match_datetime

logger = logging.getLogger(__name__)

PREDICTIONS_TABLE = "predictions"

_PATCHABLE = {f.name for f in fields(Prediction)} - {"id"}


class PredictionRepository:
    """
    Single-writer store of ``Prediction`` records keyed by integer id.

    Every read returns a copy; mutations go through ``create``/``update``/
    ``delete`` under ``lock``. Callers that need read-then-write atomicity
    hold ``lock`` themselves (it is re-entrant).
    """

    def __init__(self, storage: Optional[JsonStorage] = None, table: str = PREDICTIONS_TABLE) -> None:
        self._storage = storage
        self._table = table
        self.lock = threading.RLock()
        self._records: Dict[int, Prediction] = {}
        if storage is not None:
            for row in storage.read_table(table):
                prediction = Prediction.from_dict(row)
                self._records[int(prediction.id)] = prediction
            logger.debug("Loaded %d predictions from %s", len(self._records), storage.path_for(table))

    def _persist(self) -> None:
        if self._storage is None:
            return
        rows = [self._records[key].to_dict() for key in sorted(self._records)]
        self._storage.write_table(self._table, rows)

    def _next_id(self) -> int:
        return max(self._records, default=0) + 1

    def create(self, prediction: Prediction) -> Prediction:
        with self.lock:
            record = replace(copy.deepcopy(prediction), id=self._next_id())
            self._records[record.id] = record
            self._persist()
            logger.info("Stored prediction %d (%s vs %s)", record.id, record.home_team, record.away_team)
            return copy.deepcopy(record)

    def get(self, prediction_id: Union[int, str]) -> Prediction:
        with self.lock:
            record = self._records.get(self._key(prediction_id))
            if record is None:
                raise NotFoundError(prediction_id)
            return copy.deepcopy(record)

    def update(self, prediction_id: Union[int, str], patch: Mapping[str, Any]) -> Prediction:
        unknown = sorted(set(patch) - _PATCHABLE)
        if unknown:
            raise ValidationError("Unknown prediction fields", field="patch", errors=unknown)
        with self.lock:
            key = self._key(prediction_id)
            record = self._records.get(key)
            if record is None:
                raise NotFoundError(prediction_id)
            updated = replace(record, **copy.deepcopy(dict(patch)))
            self._records[key] = updated
            self._persist()
            return copy.deepcopy(updated)

    def delete(self, prediction_id: Union[int, str]) -> None:
        with self.lock:
            key = self._key(prediction_id)
            if key not in self._records:
                raise NotFoundError(prediction_id)
            del self._records[key]
            self._persist()

    def get_all(self) -> List[Prediction]:
        with self.lock:
            return [copy.deepcopy(self._records[key]) for key in sorted(self._records)]

    def pending(self) -> List[Prediction]:
        return [p for p in self.get_all() if p.actual_result is None]

    def completed(self) -> List[Prediction]:
        return [p for p in self.get_all() if p.actual_result is not None]

    def by_teams(self, home_team: str, away_team: Optional[str] = None) -> List[Prediction]:
        home = home_team.strip().lower()
        away = away_team.strip().lower() if away_team else None
        return [
            p
            for p in self.get_all()
            if p.home_team.lower() == home and (away is None or p.away_team.lower() == away)
        ]

    def by_date_range(self, start: Union[str, datetime], end: Union[str, datetime]) -> List[Prediction]:
        """Predictions whose kickoff falls within ``[start, end]``."""
        lower, upper = parse_match_datetime(start), parse_match_datetime(end)
        matches = []
        for prediction in self.get_all():
            try:
                kickoff = parse_match_datetime(prediction.match_datetime)
            except ValidationError:
                logger.debug("Skipping prediction %s with unparseable kickoff", prediction.id)
                continue
            if lower <= kickoff <= upper:
                matches.append(prediction)
        return matches

    def __len__(self) -> int:
        with self.lock:
            return len(self._records)

    @staticmethod
    def _key(prediction_id: Union[int, str]) -> int:
        try:
            return int(prediction_id)
        except (TypeError, ValueError):
            raise NotFoundError(prediction_id)
