"""Tests for retrieval aggregation and context assembly."""

from __future__ import annotations

import pytest

from second_brain.core.errors import EmbeddingFailure, ValidationError
from second_brain.ingest.embeddings import HashedEmbeddingModel
from second_brain.models.entities import VectorMatch
from second_brain.retrieval.search import QueryService, format_block


class FakeIndex:
    """Returns canned matches and records the filters it was queried with."""

    def __init__(self, matches: list[VectorMatch], dim: int = 384) -> None:
        self.matches = matches
        self.dim = dim
        self.calls: list[dict] = []

    def query(self, vector, top_k, filter=None):
        self.calls.append({"top_k": top_k, "filter": filter})
        return self.matches[:top_k]


def _match(doc_id: str, score: float, preview: str | None = "", n: int = 0) -> VectorMatch:
    metadata = {"user_id": "user1", "doc_id": doc_id, "chunk_index": n}
    if preview is not None:
        metadata["preview"] = preview
    return VectorMatch(id=f"user1::{doc_id}::{n}", score=score, metadata=metadata)


def _service(runtime, index: FakeIndex) -> QueryService:
    return QueryService(
        documents=runtime.documents,
        settings=runtime.settings,
        vector_index=index,
        embedding_model=runtime.embedding_model,
    )


def _doc(runtime, title: str, text: str = "body text", user_id: str = "user1"):
    return runtime.documents.create(user_id, title, text, "", [], 1)


def test_document_score_is_max_of_chunks_and_sorted_desc(runtime) -> None:
    doc_a = _doc(runtime, "A")
    doc_b = _doc(runtime, "B")
    index = FakeIndex(
        [
            _match(doc_b.id, 0.95, "b0"),
            _match(doc_a.id, 0.8, "a1", n=1),
            _match(doc_a.id, 0.9, "a0"),
        ]
    )
    result = _service(runtime, index).retrieve("user1", "question", top_k=5)

    assert [(s.title, s.score) for s in result.sources] == [("B", 0.95), ("A", 0.9)]
    assert index.calls == [{"top_k": 5, "filter": {"user_id": "user1"}}]
    assert f"# A (doc:{doc_a.id})\na1\na0\n\n" in result.context
    assert result.context.index("# B") < result.context.index("# A")


def test_ties_keep_vector_store_order(runtime) -> None:
    first = _doc(runtime, "first")
    second = _doc(runtime, "second")
    index = FakeIndex([_match(second.id, 0.5, "s"), _match(first.id, 0.5, "f")])
    for _ in range(3):
        result = _service(runtime, index).retrieve("user1", "q")
        assert [s.doc_id for s in result.sources] == [second.id, first.id]


def test_context_budget_is_greedy_but_sources_are_complete(runtime) -> None:
    matches = []
    for i in range(10):
        doc = _doc(runtime, f"T{i}")
        header = f"# T{i} (doc:{doc.id})\n"
        body = "p" * (1000 - len(header) - 2)
        assert len(format_block(doc, [body])) == 1000
        matches.append(_match(doc.id, 1.0 - i / 100, body))

    result = _service(runtime, FakeIndex(matches)).retrieve("user1", "q", top_k=10)

    assert result.context.count("(doc:") == 7
    assert len(result.context) == 7000
    assert len(result.sources) == 10


def test_context_never_exceeds_budget(runtime) -> None:
    runtime.settings.max_context_chars = 150
    doc = _doc(runtime, "Big")
    matches = [_match(doc.id, 0.9, "z" * 400)]
    result = _service(runtime, FakeIndex(matches)).retrieve("user1", "q")
    assert result.context == ""
    assert [s.doc_id for s in result.sources] == [doc.id]


def test_missing_previews_fall_back_to_document_text(runtime) -> None:
    doc = _doc(runtime, "", text="t" * 2000)
    result = _service(runtime, FakeIndex([_match(doc.id, 0.7, preview=None)])).retrieve("user1", "q")
    assert result.context == f"# Untitled (doc:{doc.id})\n{'t' * 1200}\n\n"


def test_vanished_documents_are_dropped(runtime) -> None:
    doc = _doc(runtime, "kept")
    index = FakeIndex([_match("doc_gone", 0.99, "orphan"), _match(doc.id, 0.5, "kept")])
    result = _service(runtime, index).retrieve("user1", "q")
    assert [s.doc_id for s in result.sources] == [doc.id]
    assert "orphan" not in result.context
    assert len(result.matches) == 2


def test_query_embedding_failure(runtime) -> None:
    class Broken(HashedEmbeddingModel):
        def embed(self, text: str) -> list[float]:
            raise TimeoutError("embedding timed out")

    service = QueryService(runtime.documents, runtime.settings, runtime.vector_index, Broken())
    with pytest.raises(EmbeddingFailure):
        service.retrieve("user1", "q")


@pytest.mark.parametrize("user_id, query", [("", "q"), ("user1", " ")])
def test_retrieve_validates_input(runtime, user_id: str, query: str) -> None:
    with pytest.raises(ValidationError):
        runtime.query_service.retrieve(user_id, query)


def test_explicit_zero_top_k_rejected(runtime) -> None:
    with pytest.raises(ValidationError):
        runtime.query_service.retrieve("user1", "q", top_k=0)


def test_tenants_never_see_each_other(runtime) -> None:
    text = "The launch code for the garden shed is tulip."
    mine = runtime.pipeline.ingest("alice", text, title="alice notes")
    theirs = runtime.pipeline.ingest("bob", text, title="bob notes")

    result = runtime.query_service.retrieve("alice", "garden shed launch code", top_k=10)

    assert result.matches
    assert all(match.metadata["user_id"] == "alice" for match in result.matches)
    assert [s.doc_id for s in result.sources] == [mine.doc_id]
    assert theirs.doc_id not in result.context


def test_end_to_end_score_matches_best_chunk(runtime) -> None:
    text = "Apples grow on trees.\n\nBananas are yellow.\n\nCherries are red."
    ingested = runtime.pipeline.ingest("user1", text, title="Fruit")
    result = runtime.query_service.retrieve("user1", "yellow bananas", top_k=3)

    assert [s.doc_id for s in result.sources] == [ingested.doc_id]
    assert result.sources[0].score == max(match.score for match in result.matches)
