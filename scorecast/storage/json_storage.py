"""JSON table files under a single store directory."""

from pathlib import Path
from typing import Any, Dict, List, Union
import json
import logging
import os
import tempfile

logger = logging.getLogger(__name__)


class JsonStorage:
    """Reads and writes named tables as ``<base_dir>/<name>.json``.

    Writes go through a temporary file in the same directory followed by
    ``os.replace`` so a crash never leaves a half-written table behind.
    """

    def __init__(self, base_dir: Union[str, Path]) -> None:
        self._base_dir = Path(base_dir)
        self._base_dir.mkdir(parents=True, exist_ok=True)

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def path_for(self, name: str) -> Path:
        return self._base_dir / f"{name}.json"

    def write_table(self, name: str, rows: List[Dict[str, Any]]) -> str:
        path = self.path_for(name)
        fd, tmp_name = tempfile.mkstemp(dir=str(self._base_dir), prefix=f".{name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(rows, handle, indent=2, sort_keys=True)
            os.replace(tmp_name, path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        logger.debug("Wrote %d rows to %s", len(rows), path)
        return str(path)

    def read_table(self, name: str) -> List[Dict[str, Any]]:
        path = self.path_for(name)
        if not path.exists():
            return []
        payload = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(payload, list):
            logger.warning("Table %s is not a list; ignoring contents", path)
            return []
        return payload

    def has_table(self, name: str) -> bool:
        return self.path_for(name).exists()
