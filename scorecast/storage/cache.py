"""TTL caches used in front of result lookups."""

from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple, Union
import hashlib
import json
import logging
import threading
import time

logger = logging.getLogger(__name__)


class CacheStore:
    def get(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        raise NotImplementedError

    def invalidate(self, key: str) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class MemoryCache(CacheStore):
    """Process-local cache. ``clock`` is injectable so expiry can be tested."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._data: Dict[str, Tuple[Any, float]] = {}
        self._clock = clock
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._data[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            return
        with self._lock:
            self._data[key] = (value, self._clock() + ttl_seconds)

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


class FileCache(CacheStore):
    """Cache shared across CLI invocations; one JSON file per hashed key."""

    def __init__(self, cache_dir: Union[str, Path], clock: Callable[[], float] = time.time) -> None:
        self._dir = Path(cache_dir)
        self._dir.mkdir(parents=True, exist_ok=True)
        self._clock = clock
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        path = self._path_for_key(key)
        if not path.exists():
            return None
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.debug("Unreadable cache entry %s", path)
            return None
        if self._clock() >= float(payload.get("expires_at", 0)):
            self.invalidate(key)
            return None
        return payload.get("value")

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            return
        payload = {"key": key, "expires_at": self._clock() + ttl_seconds, "value": value}
        with self._lock:
            self._path_for_key(key).write_text(json.dumps(payload), encoding="utf-8")

    def invalidate(self, key: str) -> None:
        try:
            self._path_for_key(key).unlink()
        except FileNotFoundError:
            return

    def clear(self) -> None:
        with self._lock:
            for path in self._dir.glob("*.json"):
                try:
                    path.unlink()
                except OSError:
                    continue

    def _path_for_key(self, key: str) -> Path:
        return self._dir / (hashlib.sha256(key.encode("utf-8")).hexdigest() + ".json")
