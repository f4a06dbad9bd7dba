"""SQLite implementation of the entity store."""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import List, Sequence, Union

from pydantic import BaseModel

from ..errors import StoreError
from ..status import EntityKind
from .codec import as_kind, from_record, to_records
from .store import EntityStore

logger = logging.getLogger(__name__)


class SQLiteEntityStore(EntityStore):
    """Persist entity collections using SQLite.

    Each entity is one row keyed by ``(kind, id)``. A save replaces the whole
    collection inside a single transaction.
    """

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        with self._conn:
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS entities (
                    kind TEXT NOT NULL,
                    id TEXT NOT NULL,
                    position INTEGER NOT NULL,
                    data TEXT NOT NULL,
                    PRIMARY KEY (kind, id)
                )
                """
            )

    def close(self) -> None:
        self._conn.close()

    # ------------------------------------------------------------------
    # Store API
    def load(self, kind: Union[EntityKind, str]) -> List[BaseModel]:
        kind = as_kind(kind)
        try:
            rows = self._conn.execute(
                "SELECT data FROM entities WHERE kind = ? ORDER BY position",
                (kind.value,),
            ).fetchall()
            return [from_record(kind, json.loads(row["data"])) for row in rows]
        except (sqlite3.Error, ValueError) as e:
            logger.error(f"Failed to load {kind.value} from {self.db_path}: {e}")
            return []

    def save(self, kind: Union[EntityKind, str], collection: Sequence[BaseModel]) -> None:
        kind = as_kind(kind)
        records = to_records(kind, collection)
        rows = [
            (kind.value, record["id"], position, json.dumps(record))
            for position, record in enumerate(records)
        ]
        try:
            with self._conn:
                self._conn.execute("DELETE FROM entities WHERE kind = ?", (kind.value,))
                self._conn.executemany(
                    "INSERT INTO entities (kind, id, position, data) VALUES (?, ?, ?, ?)",
                    rows,
                )
        except sqlite3.Error as e:
            logger.error(f"Failed to save {kind.value} to {self.db_path}: {e}")
            raise StoreError(f"Could not write {kind.value}: {e}") from e
