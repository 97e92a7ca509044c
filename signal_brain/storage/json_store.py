"""Whole-file JSON persistence.

Each store is one JSON document rewritten in full on every save. Writes go
to a sibling temp file first and are moved into place, so a crash never
leaves half a document behind.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import structlog

from signal_brain.shell.errors import PersistenceError

log = structlog.get_logger()


class JsonFileStore:
    """Reads and rewrites a single JSON document."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.exists()

    def load(self, default: Any = None) -> Any:
        """Return the decoded document, or ``default`` if the file is absent."""
        if not self._path.exists():
            return default
        try:
            return json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            log.error("store.read_failed", path=str(self._path), error=str(e))
            raise PersistenceError(f"Cannot read {self._path}: {e}") from e

    def save(self, data: Any) -> None:
        tmp = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
            os.replace(tmp, self._path)
        except (OSError, TypeError, ValueError) as e:
            log.error("store.write_failed", path=str(self._path), error=str(e))
            raise PersistenceError(f"Cannot write {self._path}: {e}") from e

    def load_list(self) -> list[Any]:
        data = self.load(default=[])
        if not isinstance(data, list):
            raise PersistenceError(f"{self._path} does not hold a JSON array")
        return data

    def append(self, item: Any) -> int:
        """Append to an unbounded JSON array. Returns the new length."""
        items = self.load_list()
        items.append(item)
        self.save(items)
        return len(items)
