"""
HireSignal - JSON Table Store
File-backed tables standing in for the platform's relational store.
"""

import json
import logging
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ..errors import PersistenceError

logger = logging.getLogger(__name__)


class JsonStore:
    """
    One JSON file per table under ``data_dir``, each a list of row objects.

    Rows keep insertion order. All reads and writes go through a single
    lock so the bulk worker pool can share one instance.
    """

    def __init__(self, data_dir: Path):
        """
        Initialize the store.

        Args:
            data_dir: Directory holding ``<table>.json`` files.
        """
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def _table_file(self, table: str) -> Path:
        return self.data_dir / f"{table}.json"

    def _read(self, table: str) -> List[Dict[str, Any]]:
        path = self._table_file(table)
        if not path.exists():
            return []
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return data if isinstance(data, list) else data.get("rows", [])

    def _write(self, table: str, rows: List[Dict[str, Any]]):
        path = self._table_file(table)
        tmp_path = path.with_suffix(".json.tmp")
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(rows, f, indent=2, ensure_ascii=False)
        tmp_path.replace(path)

    def rows(self, table: str) -> List[Dict[str, Any]]:
        """Get all rows of a table (a copy)."""
        with self._lock:
            return [dict(row) for row in self._read(table)]

    def select(
        self,
        table: str,
        where: Optional[Dict[str, Any]] = None,
        predicate: Optional[Callable[[Dict[str, Any]], bool]] = None
    ) -> List[Dict[str, Any]]:
        """
        Select rows matching every ``where`` equality and the optional predicate.

        Args:
            table: Table name.
            where: Column -> required value.
            predicate: Extra row filter.

        Returns:
            Matching rows in insertion order.
        """
        where = where or {}
        matched = []
        for row in self.rows(table):
            if all(row.get(k) == v for k, v in where.items()) and (predicate is None or predicate(row)):
                matched.append(row)
        return matched

    def latest(
        self,
        table: str,
        where: Optional[Dict[str, Any]] = None,
        limit: int = 1,
        predicate: Optional[Callable[[Dict[str, Any]], bool]] = None
    ) -> List[Dict[str, Any]]:
        """Most recent rows first, by ``created_at`` then insertion order."""
        matched = list(enumerate(self.select(table, where, predicate)))
        matched.sort(key=lambda pair: (pair[1].get("created_at") or "", pair[0]), reverse=True)
        return [row for _, row in matched[:limit]]

    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        """
        Append a row.

        Raises:
            PersistenceError: The table file could not be written.
        """
        with self._lock:
            try:
                rows = self._read(table)
                rows.append(row)
                self._write(table, rows)
            except (OSError, TypeError, ValueError) as exc:
                logger.error("Insert into %s failed: %s", table, exc)
                raise PersistenceError(f"Failed to write {table}") from exc
        return row
