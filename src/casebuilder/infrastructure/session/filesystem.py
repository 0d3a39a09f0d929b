"""
Filesystem implementation of the session store.

Keeps every key in one JSON document so CLI invocations share checkpoints and
preferences across runs.
"""

import json
import logging
from pathlib import Path

from casebuilder.domain.interfaces import SessionStoreInterface

logger = logging.getLogger(__name__)

SESSION_FILENAME = "session.json"


class FilesystemSessionStore(SessionStoreInterface):
    """
    Session store persisted to ``<base_dir>/session.json``.

    Writes are atomic (write-to-temp + rename).
    """

    def __init__(self, base_dir: str | Path):
        self._base_dir = Path(base_dir)
        self._path = self._base_dir / SESSION_FILENAME
        self._items: dict[str, str] = self._load()

    def _load(self) -> dict[str, str]:
        self._base_dir.mkdir(parents=True, exist_ok=True)
        if not self._path.exists():
            return {}
        try:
            with open(self._path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as err:
            logger.warning("Ignoring unreadable session file %s: %s", self._path, err)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring session file %s: not a JSON object", self._path)
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _save(self) -> None:
        temp_path = self._path.with_suffix(".tmp")
        with open(temp_path, "w") as f:
            json.dump(self._items, f, indent=2)
        temp_path.rename(self._path)  # Atomic on POSIX

    @property
    def path(self) -> Path:
        return self._path

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value
        self._save()

    def remove_item(self, key: str) -> None:
        if self._items.pop(key, None) is not None:
            self._save()
