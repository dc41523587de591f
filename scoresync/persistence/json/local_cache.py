"""
JSON file local cache.

Persists the local view of the score (last known score, rate snapshot,
cooldown timestamps, offline history) in a single JSON file so it survives
restarts. Writes go to a temporary file first and are then renamed over the
target, so a crash never leaves a half-written cache.

File layout:
    {
        "_metadata": {"updated_at": "...", "version": "1.0"},
        "data": {"score": "42", "last_mutation_at": "...", ...}
    }
"""

import json
import logging
from datetime import datetime
from pathlib import Path

from ...domain.interfaces.local_cache import ILocalCache

logger = logging.getLogger("JSONLocalCache")

CACHE_FILE_NAME = "scoresync_cache.json"
CACHE_FORMAT_VERSION = "1.0"


class JSONLocalCache(ILocalCache):
    """File-backed ILocalCache. Single owner, loaded lazily, written through."""

    name = "json-cache"

    def __init__(self, cache_dir: str | Path, file_name: str = CACHE_FILE_NAME):
        self.cache_dir = Path(cache_dir)
        self.file_path = self.cache_dir / file_name
        self._data: dict[str, str] | None = None

    # ---------- ILocalCache --------------------------------------------------

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> bool:
        return self.set_many({key: value})

    def set_many(self, items: dict[str, str]) -> bool:
        """Apply every item and rewrite the file once."""
        data = self._load()
        previous = {key: data.get(key) for key in items}
        data.update(items)
        if self._write(data):
            return True
        # Keep memory consistent with disk when the write failed
        for key, value in previous.items():
            if value is None:
                data.pop(key, None)
            else:
                data[key] = value
        return False

    def delete(self, key: str) -> bool:
        data = self._load()
        if key not in data:
            return True
        previous = data.pop(key)
        if self._write(data):
            return True
        data[key] = previous
        return False

    # ---------- file operations ----------------------------------------------

    def _load(self) -> dict[str, str]:
        if self._data is not None:
            return self._data

        self._data = {}
        if not self.file_path.exists():
            return self._data

        try:
            content = json.loads(self.file_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read cache file {self.file_path}: {e}")
            return self._data

        raw = content.get("data", {}) if isinstance(content, dict) else {}
        if isinstance(raw, dict):
            self._data = {str(k): str(v) for k, v in raw.items() if v is not None}
        return self._data

    def _write(self, data: dict[str, str]) -> bool:
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            payload = {
                "_metadata": {
                    "updated_at": datetime.now().isoformat(),
                    "version": CACHE_FORMAT_VERSION,
                },
                "data": data,
            }
            temp_file = self.file_path.with_suffix(self.file_path.suffix + ".tmp")
            temp_file.write_text(
                json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8"
            )
            temp_file.replace(self.file_path)
            return True
        except OSError as e:
            logger.error(f"Failed to write cache file {self.file_path}: {e}")
            return False
