"""Persistence boundary: keyed record stores and the grid layout cache.

The scheduler never queries these stores during a tick; it only writes
through them (task history, forklift state) and reads the grid layout on
reset. Two backends are provided:

1. ``InMemoryPersistence`` - dict-based, lost on exit (tests, headless runs)
2. ``JsonPersistence`` - one pretty-printed JSON file per collection

Usage::

    store = JsonPersistence("warehouse_data")
    store.save("tasks", task.id, task.to_dict())
    record = store.load("tasks", task.id)
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path

from .constants import GRID_SESSION_KEY
from .grid import WarehouseGrid

logger = logging.getLogger(__name__)

USERS = "users"
FORKLIFTS = "forklifts"
TASKS = "tasks"
TASK_HISTORY = "task_history"
WAREHOUSE_CONFIG = "warehouse_config"
SESSION = "session"

COLLECTIONS = (USERS, FORKLIFTS, TASKS, TASK_HISTORY, WAREHOUSE_CONFIG, SESSION)


class PersistenceStrategy(ABC):
    """Keyed CRUD over named collections of JSON-compatible records."""

    @abstractmethod
    def save(self, collection: str, key: str, record: dict | list) -> None:
        ...

    @abstractmethod
    def load(self, collection: str, key: str) -> dict | list | None:
        ...

    @abstractmethod
    def delete(self, collection: str, key: str) -> bool:
        ...

    @abstractmethod
    def keys(self, collection: str) -> list[str]:
        ...

    def load_all(self, collection: str) -> list[dict | list]:
        records = []
        for key in self.keys(collection):
            record = self.load(collection, key)
            if record is not None:
                records.append(record)
        return records


def _check_collection(collection: str) -> None:
    if collection not in COLLECTIONS:
        raise ValueError(f"unknown collection: {collection}")


class InMemoryPersistence(PersistenceStrategy):
    """Dict-backed store; records are copied through JSON to avoid aliasing."""

    def __init__(self) -> None:
        self._data: dict[str, dict[str, str]] = {c: {} for c in COLLECTIONS}

    def save(self, collection: str, key: str, record: dict | list) -> None:
        _check_collection(collection)
        self._data[collection][key] = json.dumps(record)

    def load(self, collection: str, key: str) -> dict | list | None:
        _check_collection(collection)
        raw = self._data[collection].get(key)
        return None if raw is None else json.loads(raw)

    def delete(self, collection: str, key: str) -> bool:
        _check_collection(collection)
        return self._data[collection].pop(key, None) is not None

    def keys(self, collection: str) -> list[str]:
        _check_collection(collection)
        return list(self._data[collection])


class JsonPersistence(PersistenceStrategy):
    """File-based store: ``{base_path}/{collection}.json`` maps key -> record."""

    def __init__(self, base_path: Path | str = "warehouse_data") -> None:
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _file(self, collection: str) -> Path:
        _check_collection(collection)
        return self.base_path / f"{collection}.json"

    def _read(self, collection: str) -> dict:
        path = self._file(collection)
        if not path.exists():
            return {}
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _write(self, collection: str, data: dict) -> None:
        path = self._file(collection)
        tmp = path.with_suffix(".json.tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        tmp.replace(path)

    def save(self, collection: str, key: str, record: dict | list) -> None:
        data = self._read(collection)
        data[key] = record
        self._write(collection, data)

    def load(self, collection: str, key: str) -> dict | list | None:
        return self._read(collection).get(key)

    def delete(self, collection: str, key: str) -> bool:
        data = self._read(collection)
        if key not in data:
            return False
        del data[key]
        self._write(collection, data)
        return True

    def keys(self, collection: str) -> list[str]:
        return list(self._read(collection))


class GridStore:
    """Session-scoped cache of the grid layout, so a reset can keep edits."""

    def __init__(self, backend: PersistenceStrategy, key: str = GRID_SESSION_KEY) -> None:
        self.backend = backend
        self.key = key

    def load(self) -> WarehouseGrid | None:
        """Stored grid, or ``None`` when missing or unreadable."""
        try:
            rows = self.backend.load(SESSION, self.key)
        except json.JSONDecodeError:
            logger.warning("[Grid] Stored grid is corrupt, a fresh layout will be generated")
            return None
        if rows is None:
            return None
        try:
            return WarehouseGrid.from_rows(rows)
        except (KeyError, TypeError, ValueError):
            logger.warning("[Grid] Failed to parse stored grid, a fresh layout will be generated")
            return None

    def save(self, grid: WarehouseGrid) -> None:
        self.backend.save(SESSION, self.key, grid.to_rows())

    def clear(self) -> None:
        self.backend.delete(SESSION, self.key)
