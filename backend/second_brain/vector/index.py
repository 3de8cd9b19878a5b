"""Vector index with metadata filtering, persisted to its own SQLite file."""

from __future__ import annotations

import math
import sqlite3
import threading
from array import array
from typing import Any, Mapping, Sequence

import orjson

from second_brain.core.errors import ExternalServiceError, VectorDimensionError
from second_brain.core.logging import get_logger
from second_brain.db.sqlite import SQLiteDatabase
from second_brain.models.entities import VectorMatch, VectorRecord
from second_brain.utils.time import now_ms

logger = get_logger(__name__)

VECTORS_SCHEMA = """
CREATE TABLE IF NOT EXISTS vector_indexes (
  name TEXT PRIMARY KEY,
  dim INTEGER NOT NULL,
  metric TEXT NOT NULL DEFAULT 'cosine',
  created_at INTEGER NOT NULL
);
CREATE TABLE IF NOT EXISTS vectors (
  index_name TEXT NOT NULL REFERENCES vector_indexes(name) ON DELETE CASCADE,
  id TEXT NOT NULL,
  vector BLOB NOT NULL,
  metadata_json TEXT NOT NULL,
  PRIMARY KEY (index_name, id)
);
"""


class VectorIndex:
    """In-memory cosine index mirrored to SQLite.

    The dimension is fixed when the index is first created; reopening it with
    another dimension fails. Writes hit SQLite first and only touch the
    in-memory copy once the SQLite transaction has committed, so a failed
    upsert or delete leaves both views unchanged.
    """

    def __init__(self, db: SQLiteDatabase, name: str, dim: int) -> None:
        self.db = db
        self.name = name
        self.dim = dim
        self._records: dict[str, tuple[list[float], dict[str, Any]]] = {}
        self._lock = threading.Lock()

    @classmethod
    def open(cls, db: SQLiteDatabase, name: str, dim: int) -> "VectorIndex":
        """Create the index on first use, then load its vectors."""
        if dim < 1:
            raise VectorDimensionError(f"index dimension must be positive, got {dim}")
        db.ensure_schema(VECTORS_SCHEMA)
        row = db.execute("SELECT dim FROM vector_indexes WHERE name = ?", [name]).fetchone()
        if row is None:
            logger.info("Creating vector index '%s' with dimension %s", name, dim)
            with db.transaction() as cursor:
                cursor.execute(
                    "INSERT INTO vector_indexes (name, dim, metric, created_at) VALUES (?, ?, 'cosine', ?)",
                    [name, dim, now_ms()],
                )
        elif int(row["dim"]) != dim:
            raise VectorDimensionError(
                f"index '{name}' was created with dimension {row['dim']}, embeddings have {dim}"
            )
        else:
            logger.info("Vector index '%s' already exists", name)
        index = cls(db, name, dim)
        index.rebuild()
        return index

    @property
    def size(self) -> int:
        return len(self._records)

    def rebuild(self) -> None:
        rows = self.db.query(
            "SELECT id, vector, metadata_json FROM vectors WHERE index_name = ?",
            [self.name],
        )
        records: dict[str, tuple[list[float], dict[str, Any]]] = {}
        for row in rows:
            floats = array("f")
            floats.frombytes(row["vector"])
            records[row["id"]] = (list(floats), orjson.loads(row["metadata_json"]))
        with self._lock:
            self._records = records

    def upsert(self, records: Sequence[VectorRecord]) -> None:
        if not records:
            return
        for record in records:
            if len(record.vector) != self.dim:
                raise VectorDimensionError(
                    f"vector {record.id} has dimension {len(record.vector)}, index expects {self.dim}"
                )
        try:
            with self.db.transaction() as cursor:
                cursor.executemany(
                    """
                    INSERT OR REPLACE INTO vectors (index_name, id, vector, metadata_json)
                    VALUES (?, ?, ?, ?)
                    """,
                    [
                        (
                            self.name,
                            record.id,
                            array("f", record.vector).tobytes(),
                            orjson.dumps(record.metadata).decode("utf-8"),
                        )
                        for record in records
                    ],
                )
        except sqlite3.Error as exc:
            raise ExternalServiceError("vector_store", f"upsert failed: {exc}") from exc
        with self._lock:
            for record in records:
                self._records[record.id] = (list(array("f", record.vector)), dict(record.metadata))

    def query(
        self,
        vector: Sequence[float],
        top_k: int,
        filter: Mapping[str, Any] | None = None,
    ) -> list[VectorMatch]:
        """Return the `top_k` most similar vectors whose metadata equals every `filter` item."""
        if len(vector) != self.dim:
            raise VectorDimensionError(
                f"query vector has dimension {len(vector)}, index expects {self.dim}"
            )
        if top_k < 1:
            return []
        with self._lock:
            snapshot = list(self._records.items())
        query_norm = _norm(vector)
        scored: list[VectorMatch] = []
        for record_id, (stored, metadata) in snapshot:
            if filter and any(metadata.get(key) != value for key, value in filter.items()):
                continue
            scored.append(
                VectorMatch(
                    id=record_id,
                    score=_cosine(stored, vector, query_norm),
                    metadata=dict(metadata),
                )
            )
        scored.sort(key=lambda match: match.score, reverse=True)
        return scored[:top_k]

    def delete(self, ids: Sequence[str]) -> int:
        """Delete by id; ids that are not present are ignored."""
        if not ids:
            return 0
        try:
            with self.db.transaction() as cursor:
                cursor.executemany(
                    "DELETE FROM vectors WHERE index_name = ? AND id = ?",
                    [(self.name, record_id) for record_id in ids],
                )
        except sqlite3.Error as exc:
            raise ExternalServiceError("vector_store", f"delete failed: {exc}") from exc
        removed = 0
        with self._lock:
            for record_id in ids:
                if self._records.pop(record_id, None) is not None:
                    removed += 1
        return removed

    def fetch(self, ids: Sequence[str]) -> list[VectorRecord]:
        with self._lock:
            return [
                VectorRecord(id=record_id, vector=list(self._records[record_id][0]), metadata=dict(self._records[record_id][1]))
                for record_id in ids
                if record_id in self._records
            ]


def _norm(vector: Sequence[float]) -> float:
    return math.sqrt(sum(value * value for value in vector))


def _cosine(a: Sequence[float], b: Sequence[float], b_norm: float) -> float:
    a_norm = _norm(a)
    if a_norm == 0 or b_norm == 0:
        return 0.0
    return sum(x * y for x, y in zip(a, b)) / (a_norm * b_norm)


__all__ = ["VectorIndex", "VECTORS_SCHEMA"]
