"""Tests for the deletion saga."""

import sqlite3

import pytest

from second_brain.core.errors import (
    CrossStoreInconsistency,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)
from second_brain.deletion.saga import SagaStep
from second_brain.vector.ids import ids_for_document

MULTI_CHUNK = "first part\n\nsecond part\n\nthird part"


def test_delete_removes_document_and_all_vectors(runtime) -> None:
    ingested = runtime.pipeline.ingest("user1", MULTI_CHUNK)
    keep = runtime.pipeline.ingest("user1", "unrelated")
    ids = ids_for_document("user1", ingested.doc_id, 3)
    assert len(runtime.vector_index.fetch(ids)) == 3

    outcome = runtime.deletion_saga.delete(ingested.doc_id, "user1")

    assert outcome.vector_ids == ids
    assert outcome.steps == [
        SagaStep.DOCUMENT_DELETED_UNCOMMITTED,
        SagaStep.VECTOR_IDS_TARGETED,
        SagaStep.VECTORS_DELETED,
        SagaStep.COMMITTED,
    ]
    assert runtime.documents.get(ingested.doc_id, "user1") is None
    assert runtime.vector_index.fetch(ids) == []
    assert runtime.documents.get(keep.doc_id, "user1") is not None
    assert runtime.vector_index.size == 1


def test_vector_failure_rolls_back_document(runtime, monkeypatch) -> None:
    ingested = runtime.pipeline.ingest("user1", MULTI_CHUNK, title="Keep me")
    before = runtime.documents.get(ingested.doc_id, "user1")
    ids = ids_for_document("user1", ingested.doc_id, 3)

    def failing_delete(vector_ids):
        raise ConnectionError("vector store unreachable")

    monkeypatch.setattr(runtime.vector_index, "delete", failing_delete)
    with pytest.raises(CrossStoreInconsistency) as excinfo:
        runtime.deletion_saga.delete(ingested.doc_id, "user1")

    assert excinfo.value.steps == [
        SagaStep.DOCUMENT_DELETED_UNCOMMITTED,
        SagaStep.VECTOR_IDS_TARGETED,
        SagaStep.VECTOR_DELETE_FAILED,
        SagaStep.ROLLED_BACK,
    ]
    assert runtime.documents.get(ingested.doc_id, "user1") == before
    assert len(runtime.vector_index.fetch(ids)) == 3


def test_retry_after_rollback_succeeds(runtime, monkeypatch) -> None:
    ingested = runtime.pipeline.ingest("user1", MULTI_CHUNK)
    real_delete = runtime.vector_index.delete

    def flaky_delete(vector_ids):
        raise OSError("flaky")

    monkeypatch.setattr(runtime.vector_index, "delete", flaky_delete)
    with pytest.raises(CrossStoreInconsistency):
        runtime.deletion_saga.delete(ingested.doc_id, "user1")

    monkeypatch.setattr(runtime.vector_index, "delete", real_delete)
    runtime.deletion_saga.delete(ingested.doc_id, "user1")
    assert runtime.documents.get(ingested.doc_id, "user1") is None


def test_other_users_cannot_delete_or_probe(runtime) -> None:
    ingested = runtime.pipeline.ingest("owner", "private text")
    with pytest.raises(NotFoundError) as foreign:
        runtime.deletion_saga.delete(ingested.doc_id, "intruder")
    with pytest.raises(NotFoundError) as missing:
        runtime.deletion_saga.delete("doc_doesnotexist", "intruder")

    assert foreign.value.to_dict() == missing.value.to_dict()
    assert runtime.documents.get(ingested.doc_id, "owner") is not None
    assert runtime.vector_index.size == 1


def test_unindexed_document_deletes_cleanly(runtime, monkeypatch) -> None:
    monkeypatch.setattr(runtime.embedding_model, "embed", lambda text: [])
    ingested = runtime.pipeline.ingest("user1", "never embedded")
    assert ingested.chunk_count == 0

    outcome = runtime.deletion_saga.delete(ingested.doc_id, "user1")
    assert outcome.steps[-1] is SagaStep.COMMITTED
    assert runtime.documents.get(ingested.doc_id, "user1") is None


def test_delete_requires_ids(runtime) -> None:
    with pytest.raises(ValidationError):
        runtime.deletion_saga.delete("", "user1")


def test_locked_document_store_names_collaborator(runtime, settings) -> None:
    ingested = runtime.pipeline.ingest("user1", MULTI_CHUNK)
    runtime.document_db.execute("PRAGMA busy_timeout=100")
    other = sqlite3.connect(settings.db_path, timeout=0.1)
    other.isolation_level = None
    other.execute("BEGIN IMMEDIATE")
    try:
        with pytest.raises(ExternalServiceError) as excinfo:
            runtime.deletion_saga.delete(ingested.doc_id, "user1")
    finally:
        other.execute("ROLLBACK")
        other.close()

    assert excinfo.value.to_dict()["collaborator"] == "document_store"
    assert runtime.documents.get(ingested.doc_id, "user1") is not None
    assert len(runtime.vector_index.fetch(ids_for_document("user1", ingested.doc_id, 3))) == 3
