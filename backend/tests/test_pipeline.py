"""Tests for the ingest pipeline."""

import pytest

from second_brain.core.errors import ExternalServiceError, ValidationError
from second_brain.ingest.embeddings import HashedEmbeddingModel
from second_brain.ingest.pipeline import IngestPipeline
from second_brain.vector.ids import encode


class SelectiveModel(HashedEmbeddingModel):
    """Hashed model that fails for chunks containing a marker word."""

    def __init__(self, marker: str, dim: int = 384) -> None:
        super().__init__("selective", dim=dim)
        self.marker = marker

    def embed(self, text: str) -> list[float]:
        if self.marker in text:
            raise RuntimeError("rate limited")
        return super().embed(text)


def _pipeline(runtime, model) -> IngestPipeline:
    return IngestPipeline(
        documents=runtime.documents,
        settings=runtime.settings,
        embedding_model=model,
        vector_index=runtime.vector_index,
    )


def test_short_text_creates_one_vector(runtime) -> None:
    text = "note " * 300
    result = runtime.pipeline.ingest("user1", text, title="Notes", tags=["a", "b", "a"])
    assert result.chunk_count == 1
    assert runtime.vector_index.size == 1

    [record] = runtime.vector_index.fetch([encode("user1", result.doc_id, 0)])
    assert record.metadata == {
        "user_id": "user1",
        "doc_id": result.doc_id,
        "chunk_index": 0,
        "title": "Notes",
        "preview": text.strip()[:400],
        "tags": ["a", "b"],
    }
    document = runtime.documents.get(result.doc_id, "user1")
    assert document.text == text
    assert document.chunk_count == 1


@pytest.mark.parametrize("user_id, text", [("", "text"), ("user1", ""), ("user1", "   "), ("a:b", "text")])
def test_missing_fields_rejected_before_storing(runtime, user_id: str, text: str) -> None:
    with pytest.raises(ValidationError):
        runtime.pipeline.ingest(user_id, text)
    assert runtime.documents.list_for_user("user1") == []


def test_partial_embedding_failure_keeps_original_chunk_index(runtime) -> None:
    text = "alpha paragraph\n\nbravo paragraph\n\ncharlie paragraph"
    pipeline = _pipeline(runtime, SelectiveModel("bravo"))
    result = pipeline.ingest("user1", text)

    assert result.chunk_count == 3
    ids = [encode("user1", result.doc_id, n) for n in range(3)]
    stored = {record.id: record for record in runtime.vector_index.fetch(ids)}
    assert set(stored) == {ids[0], ids[2]}
    assert stored[ids[2]].metadata["chunk_index"] == 2
    assert stored[ids[2]].metadata["preview"] == "charlie paragraph"


def test_all_embeddings_failing_leaves_unindexed_document(runtime) -> None:
    pipeline = _pipeline(runtime, SelectiveModel("paragraph"))
    result = pipeline.ingest("user1", "one paragraph\n\ntwo paragraph")

    assert result.chunk_count == 0
    assert runtime.vector_index.size == 0
    assert runtime.documents.get(result.doc_id, "user1") is not None


def test_reingest_creates_disjoint_documents(runtime) -> None:
    first = runtime.pipeline.ingest("user1", "same text")
    second = runtime.pipeline.ingest("user1", "same text")
    assert first.doc_id != second.doc_id
    assert runtime.vector_index.size == 2


def test_upsert_failure_surfaces_vector_store(runtime, monkeypatch) -> None:
    def broken_upsert(records):
        raise ConnectionError("index unavailable")

    monkeypatch.setattr(runtime.vector_index, "upsert", broken_upsert)
    with pytest.raises(ExternalServiceError) as excinfo:
        runtime.pipeline.ingest("user1", "some text")
    assert excinfo.value.collaborator == "vector_store"
    assert len(runtime.documents.list_for_user("user1")) == 1
