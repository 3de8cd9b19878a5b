"""Common ingestion data structures."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class IngestResult:
    """Outcome of a single ingest call.

    ``chunk_count`` is zero when no chunk could be embedded: the document is
    stored but not vector-searchable.
    """

    doc_id: str
    chunk_count: int

    def to_dict(self) -> dict[str, object]:
        return {"doc_id": self.doc_id, "chunk_count": self.chunk_count}


__all__ = ["IngestResult"]
