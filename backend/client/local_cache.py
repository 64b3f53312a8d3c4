import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger(__name__)


def empty_cache() -> Dict[str, Any]:
    return {"entries": [], "outbox": []}


class LocalCache:
    """
    JSON file holding the device's history and outbox.

    Writes go to a temporary file in the same directory and are swapped in
    with os.replace, so a crash mid-write never leaves a truncated cache.
    """

    def __init__(self, persistence_path: str):
        self.persistence_path = Path(persistence_path)

    def load(self) -> Dict[str, Any]:
        """Read the cache; a missing or unreadable file yields an empty one."""
        if not self.persistence_path.exists():
            return empty_cache()

        try:
            with open(self.persistence_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable history cache %s: %s", self.persistence_path, e)
            return empty_cache()

        if not isinstance(data, dict):
            return empty_cache()
        return {
            "entries": data.get("entries") or [],
            "outbox": data.get("outbox") or [],
        }

    def save(self, data: Dict[str, Any]):
        self.persistence_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=self.persistence_path.parent, prefix=self.persistence_path.name, suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, default=str)
            os.replace(tmp_path, self.persistence_path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
