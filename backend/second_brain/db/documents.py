"""Document store backed by SQLite."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import Any, Iterator, Sequence

import orjson

from second_brain.core.errors import ExternalServiceError
from second_brain.db.sqlite import SQLiteDatabase
from second_brain.models.entities import Document
from second_brain.utils.ids import new_id
from second_brain.utils.time import now_ms

DOCUMENTS_SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
  id TEXT PRIMARY KEY,
  user_id TEXT NOT NULL,
  title TEXT NOT NULL DEFAULT '',
  text TEXT NOT NULL,
  link TEXT NOT NULL DEFAULT '',
  tags_json TEXT NOT NULL DEFAULT '[]',
  chunk_count INTEGER NOT NULL DEFAULT 0,
  created_at INTEGER NOT NULL,
  updated_at INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_documents_user ON documents (user_id, created_at);
"""

_COLUMNS = "id, user_id, title, text, link, tags_json, chunk_count, created_at, updated_at"


class DocumentTransaction:
    """Operations available inside an open document-store transaction."""

    def __init__(self, cursor: sqlite3.Cursor) -> None:
        self._cursor = cursor

    def find_one(self, doc_id: str, user_id: str) -> Document | None:
        row = self._cursor.execute(
            f"SELECT {_COLUMNS} FROM documents WHERE id = ? AND user_id = ?",
            [doc_id, user_id],
        ).fetchone()
        return _row_to_document(row) if row else None

    def delete_one(self, doc_id: str, user_id: str) -> int:
        cursor = self._cursor.execute(
            "DELETE FROM documents WHERE id = ? AND user_id = ?",
            [doc_id, user_id],
        )
        return cursor.rowcount


class DocumentStore:
    """System of record for documents; one row per ingested text."""

    def __init__(self, db: SQLiteDatabase) -> None:
        self.db = db
        self.db.ensure_schema(DOCUMENTS_SCHEMA)

    def create(
        self,
        user_id: str,
        title: str,
        text: str,
        link: str,
        tags: Sequence[str],
        chunk_count: int,
    ) -> Document:
        now = now_ms()
        document = Document(
            id=new_id("doc"),
            user_id=user_id,
            title=title,
            text=text,
            link=link,
            tags=list(tags),
            chunk_count=chunk_count,
            created_at=now,
            updated_at=now,
        )
        try:
            with self.db.transaction() as cursor:
                cursor.execute(
                    f"INSERT INTO documents ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    [
                        document.id,
                        document.user_id,
                        document.title,
                        document.text,
                        document.link,
                        orjson.dumps(document.tags).decode("utf-8"),
                        document.chunk_count,
                        document.created_at,
                        document.updated_at,
                    ],
                )
        except sqlite3.Error as exc:
            raise ExternalServiceError("document_store", str(exc)) from exc
        return document

    def get(self, doc_id: str, user_id: str) -> Document | None:
        rows = self._query(
            f"SELECT {_COLUMNS} FROM documents WHERE id = ? AND user_id = ?",
            [doc_id, user_id],
        )
        return _row_to_document(rows[0]) if rows else None

    def find_by_ids(self, doc_ids: Sequence[str], user_id: str | None = None) -> list[Document]:
        """Batch fetch; ids with no row are silently absent from the result."""
        if not doc_ids:
            return []
        placeholders = ",".join("?" for _ in doc_ids)
        sql = f"SELECT {_COLUMNS} FROM documents WHERE id IN ({placeholders})"
        params: list[Any] = list(doc_ids)
        if user_id is not None:
            sql += " AND user_id = ?"
            params.append(user_id)
        return [_row_to_document(row) for row in self._query(sql, params)]

    def list_for_user(self, user_id: str, limit: int = 100) -> list[Document]:
        rows = self._query(
            f"SELECT {_COLUMNS} FROM documents WHERE user_id = ? ORDER BY created_at DESC LIMIT ?",
            [user_id, limit],
        )
        return [_row_to_document(row) for row in rows]

    @contextmanager
    def transaction(self) -> Iterator[DocumentTransaction]:
        """Open a write transaction; storage errors surface as `ExternalServiceError`."""
        try:
            with self.db.transaction() as cursor:
                yield DocumentTransaction(cursor)
        except sqlite3.Error as exc:
            raise ExternalServiceError("document_store", str(exc)) from exc

    def _query(self, sql: str, params: Sequence[Any]) -> list[sqlite3.Row]:
        try:
            return self.db.query(sql, params)
        except sqlite3.Error as exc:
            raise ExternalServiceError("document_store", str(exc)) from exc


def _row_to_document(row: sqlite3.Row) -> Document:
    return Document(
        id=row["id"],
        user_id=row["user_id"],
        title=row["title"],
        text=row["text"],
        link=row["link"],
        tags=orjson.loads(row["tags_json"]) if row["tags_json"] else [],
        chunk_count=int(row["chunk_count"]),
        created_at=int(row["created_at"]),
        updated_at=int(row["updated_at"]),
    )


__all__ = ["DocumentStore", "DocumentTransaction", "DOCUMENTS_SCHEMA"]
