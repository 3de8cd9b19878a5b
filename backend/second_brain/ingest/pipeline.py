"""Ingest pipeline orchestration."""

from __future__ import annotations

from typing import Sequence

from second_brain.core.config import Settings
from second_brain.core.errors import ExternalServiceError, ValidationError
from second_brain.core.logging import get_logger
from second_brain.core.metrics import INDEX_SIZE, INGESTED_DOCUMENTS
from second_brain.db.documents import DocumentStore
from second_brain.ingest.chunker import chunk_text
from second_brain.ingest.embeddings import EmbeddingAttempt, EmbeddingModel, embed_batch
from second_brain.ingest.types import IngestResult
from second_brain.models.entities import Document, VectorRecord
from second_brain.vector.ids import encode
from second_brain.vector.index import VectorIndex

logger = get_logger(__name__)


class IngestPipeline:
    """Coordinate chunking, embeddings, and persistence for one user document."""

    def __init__(
        self,
        documents: DocumentStore,
        settings: Settings,
        embedding_model: EmbeddingModel,
        vector_index: VectorIndex,
    ) -> None:
        self.documents = documents
        self.settings = settings
        self.embedding_model = embedding_model
        self.vector_index = vector_index

    def ingest(
        self,
        user_id: str,
        text: str,
        title: str = "",
        tags: Sequence[str] = (),
        link: str = "",
    ) -> IngestResult:
        if not user_id or not user_id.strip():
            raise ValidationError("userId is required")
        if ":" in user_id:
            raise ValidationError("userId must not contain ':'")
        if not text or not text.strip():
            raise ValidationError("text is required")

        chunks = chunk_text(text, max_tokens=self.settings.max_chunk_tokens)
        document = self.documents.create(
            user_id=user_id,
            title=title or "",
            text=text,
            link=link or "",
            tags=_unique_tags(tags),
            chunk_count=len(chunks),
        )
        logger.info(
            "Stored document %s for user %s with %s chunks",
            document.id,
            user_id,
            len(chunks),
            extra={"ctx_doc_id": document.id, "ctx_user_id": user_id},
        )

        attempts = embed_batch(self.embedding_model, chunks, expected_dim=self.vector_index.dim)
        records = self._build_records(document, chunks, attempts)
        if not records:
            logger.error("No embeddings generated for %s, skipping vector upsert", document.id)
            INGESTED_DOCUMENTS.labels(outcome="unindexed").inc()
            return IngestResult(doc_id=document.id, chunk_count=0)

        skipped = len(chunks) - len(records)
        if skipped:
            logger.warning("Document %s: %s of %s chunks were not embedded", document.id, skipped, len(chunks))

        try:
            self.vector_index.upsert(records)
        except ExternalServiceError:
            INGESTED_DOCUMENTS.labels(outcome="failed").inc()
            raise
        except Exception as exc:
            INGESTED_DOCUMENTS.labels(outcome="failed").inc()
            raise ExternalServiceError("vector_store", f"upsert failed: {exc}") from exc

        INGESTED_DOCUMENTS.labels(outcome="indexed").inc()
        INDEX_SIZE.set(self.vector_index.size)
        return IngestResult(doc_id=document.id, chunk_count=len(chunks))

    def _build_records(
        self,
        document: Document,
        chunks: Sequence[str],
        attempts: Sequence[EmbeddingAttempt],
    ) -> list[VectorRecord]:
        records: list[VectorRecord] = []
        for attempt in attempts:
            if attempt.vector is None:
                continue
            n = attempt.index
            records.append(
                VectorRecord(
                    id=encode(document.user_id, document.id, n),
                    vector=attempt.vector,
                    metadata={
                        "user_id": document.user_id,
                        "doc_id": document.id,
                        "chunk_index": n,
                        "title": document.title,
                        "preview": chunks[n][: self.settings.preview_chars],
                        "tags": list(document.tags),
                    },
                )
            )
        return records


def _unique_tags(tags: Sequence[str] | None) -> list[str]:
    seen: set[str] = set()
    unique: list[str] = []
    for tag in tags or ():
        tag = tag.strip()
        if tag and tag not in seen:
            seen.add(tag)
            unique.append(tag)
    return unique


__all__ = ["IngestPipeline"]
