"""Reversible vector ids binding (user, document, chunk index)."""

from __future__ import annotations

import re
from dataclasses import dataclass

from second_brain.core.errors import VectorIdError

SEPARATOR = "::"
_INDEX_RE = re.compile(r"0|[1-9][0-9]*")


@dataclass(frozen=True, slots=True)
class VectorId:
    user_id: str
    doc_id: str
    chunk_index: int


def encode(user_id: str, doc_id: str, n: int) -> str:
    _check_field("user_id", user_id)
    _check_field("doc_id", doc_id)
    if isinstance(n, bool) or not isinstance(n, int) or n < 0:
        raise VectorIdError(f"chunk index must be a non-negative integer, got {n!r}")
    return f"{user_id}{SEPARATOR}{doc_id}{SEPARATOR}{n}"


def decode(vector_id: str) -> VectorId:
    if not isinstance(vector_id, str):
        raise VectorIdError(f"vector id must be a string, got {type(vector_id).__name__}")
    parts = vector_id.split(SEPARATOR)
    if len(parts) != 3:
        raise VectorIdError(f"malformed vector id {vector_id!r}")
    user_id, doc_id, raw_index = parts
    if not user_id or not doc_id or ":" in user_id or ":" in doc_id:
        raise VectorIdError(f"malformed vector id {vector_id!r}")
    if not _INDEX_RE.fullmatch(raw_index):
        raise VectorIdError(f"malformed chunk index in vector id {vector_id!r}")
    return VectorId(user_id=user_id, doc_id=doc_id, chunk_index=int(raw_index))


def ids_for_document(user_id: str, doc_id: str, chunk_count: int) -> list[str]:
    """Every id ingestion could have created for a document with `chunk_count` chunks."""
    return [encode(user_id, doc_id, n) for n in range(chunk_count)]


def _check_field(name: str, value: str) -> None:
    if not isinstance(value, str) or not value:
        raise VectorIdError(f"{name} must be a non-empty string")
    if ":" in value:
        raise VectorIdError(f"{name} must not contain ':'")


__all__ = ["VectorId", "encode", "decode", "ids_for_document", "SEPARATOR"]
