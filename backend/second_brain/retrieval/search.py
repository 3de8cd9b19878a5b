"""Search orchestration."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Sequence

from second_brain.core.config import Settings
from second_brain.core.errors import ValidationError
from second_brain.core.logging import get_logger
from second_brain.core.metrics import RETRIEVAL_LATENCY
from second_brain.db.documents import DocumentStore
from second_brain.ingest.embeddings import EmbeddingModel, embed_query
from second_brain.models.entities import Document, VectorMatch
from second_brain.vector.index import VectorIndex

logger = get_logger(__name__)


@dataclass(slots=True)
class SourceRef:
    doc_id: str
    title: str
    score: float

    def to_dict(self) -> dict[str, Any]:
        return {"doc_id": self.doc_id, "title": self.title, "score": self.score}


@dataclass(slots=True)
class RetrievalResult:
    matches: list[VectorMatch]
    context: str
    sources: list[SourceRef]


@dataclass(slots=True)
class _DocHits:
    score: float
    previews: list[str] = field(default_factory=list)


@dataclass(slots=True)
class _ScoredDocument:
    document: Document
    score: float
    previews: list[str]


class QueryService:
    """Turns a query into tenant-filtered matches and a size-bounded context."""

    def __init__(
        self,
        documents: DocumentStore,
        settings: Settings,
        vector_index: VectorIndex,
        embedding_model: EmbeddingModel,
    ) -> None:
        self.documents = documents
        self.settings = settings
        self.vector_index = vector_index
        self.embedding_model = embedding_model

    def retrieve(self, user_id: str, query: str, top_k: int | None = None) -> RetrievalResult:
        if not user_id or not user_id.strip():
            raise ValidationError("userId is required")
        if not query or not query.strip():
            raise ValidationError("query is required")
        k = self.settings.top_k_default if top_k is None else top_k
        if k < 1:
            raise ValidationError("topK must be at least 1")

        start_time = time.perf_counter()
        query_vector = embed_query(self.embedding_model, query, expected_dim=self.vector_index.dim)
        matches = self.vector_index.query(query_vector, top_k=k, filter={"user_id": user_id})

        by_doc = aggregate_matches(matches)
        found = {
            document.id: document
            for document in self.documents.find_by_ids(list(by_doc), user_id=user_id)
        }
        scored = [
            _ScoredDocument(document=found[doc_id], score=hits.score, previews=hits.previews)
            for doc_id, hits in by_doc.items()
            if doc_id in found
        ]
        missing = len(by_doc) - len(scored)
        if missing:
            logger.warning("Dropped %s matched documents that no longer exist", missing)
        # list.sort is stable: equal scores keep first-match order.
        scored.sort(key=lambda item: item.score, reverse=True)

        context = self._build_context(scored)
        sources = [
            SourceRef(doc_id=item.document.id, title=item.document.title, score=item.score)
            for item in scored
        ]
        RETRIEVAL_LATENCY.observe(time.perf_counter() - start_time)
        logger.info(
            "Retrieved %s matches across %s documents",
            len(matches),
            len(sources),
            extra={"ctx_user_id": user_id, "ctx_context_chars": len(context)},
        )
        return RetrievalResult(matches=matches, context=context, sources=sources)

    def _build_context(self, scored: Sequence[_ScoredDocument]) -> str:
        budget = self.settings.max_context_chars
        blocks: list[str] = []
        used = 0
        for item in scored:
            block = format_block(item.document, item.previews, self.settings.fallback_chars)
            if used + len(block) > budget:
                break
            blocks.append(block)
            used += len(block)
        return "".join(blocks)


def aggregate_matches(matches: Sequence[VectorMatch]) -> dict[str, _DocHits]:
    """Group matches by document: max score, previews in match order."""
    by_doc: dict[str, _DocHits] = {}
    for match in matches:
        doc_id = match.metadata.get("doc_id")
        if not doc_id:
            continue
        hits = by_doc.get(doc_id)
        if hits is None:
            hits = by_doc[doc_id] = _DocHits(score=match.score)
        else:
            hits.score = max(hits.score, match.score)
        preview = match.metadata.get("preview")
        if preview:
            hits.previews.append(preview)
    return by_doc


def format_block(document: Document, previews: Sequence[str], fallback_chars: int = 1200) -> str:
    header = f"# {document.title or 'Untitled'} (doc:{document.id})\n"
    body = "\n".join(previews) or document.text[:fallback_chars]
    return f"{header}{body}\n\n"


__all__ = ["QueryService", "RetrievalResult", "SourceRef", "aggregate_matches", "format_block"]
