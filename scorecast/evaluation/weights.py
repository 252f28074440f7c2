"""
Performance Weights Store
=========================
JSON persistence for per-algorithm performance multipliers with fallback to
neutral weights.

Usage:
    from scorecast.evaluation.weights import WeightStore

    store = WeightStore(config.resolve_weights_path())
    state = store.load_state()
    weights = dynamic_weights(state, adjustments, config)
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

from scorecast.models.ensemble import PerformanceState

logger = logging.getLogger(__name__)

STORE_VERSION = "1.0"


@dataclass
class StoredWeights:
    """On-disk layout of the weights file."""
    version: str = STORE_VERSION
    updated_at: str = ""
    state: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "updated_at": self.updated_at,
            "state": self.state,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "StoredWeights":
        return cls(
            version=data.get("version", STORE_VERSION),
            updated_at=data.get("updated_at", ""),
            state=data.get("state", {}) or {},
        )


class WeightStore:
    """
    Persists the ensemble's ``PerformanceState`` between runs.

    The store handles:
    - Loading the last saved state from JSON
    - Saving the state after each recorded result
    - Falling back to neutral multipliers when the file is missing or invalid
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._stored: Optional[StoredWeights] = None
        self._loaded = False

    def load(self) -> bool:
        """
        Load the weights file.

        Returns:
            True if a valid file was read, False otherwise
        """
        self._loaded = True
        self._stored = None
        if not self.path.exists():
            logger.debug("No performance weights file at %s", self.path)
            return False
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            stored = StoredWeights.from_dict(data)
            PerformanceState.from_dict(stored.state)
        except json.JSONDecodeError as e:
            logger.error("Invalid JSON in weights file %s: %s", self.path, e)
            return False
        except (OSError, AttributeError, TypeError, ValueError) as e:
            logger.error("Error loading weights from %s: %s", self.path, e)
            return False
        if stored.version != STORE_VERSION:
            logger.warning("Unknown weights version %s; using neutral weights", stored.version)
            return False
        self._stored = stored
        logger.info("Loaded performance weights from %s", self.path)
        return True

    def load_state(self) -> PerformanceState:
        """Saved state, or neutral multipliers when nothing usable is on disk."""
        if not self._loaded:
            self.load()
        if self._stored is None:
            return PerformanceState.neutral()
        return PerformanceState.from_dict(self._stored.state)

    def save(self, state: PerformanceState) -> bool:
        """
        Save ``state`` to the weights file.

        Returns:
            True if saved successfully, False otherwise
        """
        stored = StoredWeights(
            updated_at=datetime.now(timezone.utc).isoformat(),
            state=state.to_dict(),
        )
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(stored.to_dict(), indent=2, sort_keys=True), encoding="utf-8")
        except OSError as e:
            logger.error("Error saving weights to %s: %s", self.path, e)
            return False
        self._stored = stored
        self._loaded = True
        logger.info("Saved performance weights to %s", self.path)
        return True

    @property
    def updated_at(self) -> Optional[str]:
        if not self._loaded:
            self.load()
        return self._stored.updated_at if self._stored else None

    def clear(self) -> bool:
        try:
            if self.path.exists():
                self.path.unlink()
        except OSError as e:
            logger.error("Error clearing weights: %s", e)
            return False
        self._stored = None
        self._loaded = False
        logger.info("Cleared performance weights")
        return True

    def __repr__(self) -> str:
        status = "loaded" if self._stored else "empty"
        return f"WeightStore({self.path}, {status})"
