"""Two-store document deletion with rollback.

The document store is the pivot: its row is deleted inside an open
transaction, the vector delete runs while that transaction is still
uncommitted, and the transaction commits only if the vectors are gone.
A vector-store failure rolls the row back, leaving both stores as they were.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from second_brain.core.errors import CrossStoreInconsistency, NotFoundError, ValidationError
from second_brain.core.logging import get_logger
from second_brain.core.metrics import DELETIONS, INDEX_SIZE
from second_brain.db.documents import DocumentStore
from second_brain.vector.ids import ids_for_document
from second_brain.vector.index import VectorIndex

logger = get_logger(__name__)


class SagaStep(str, Enum):
    DOCUMENT_DELETED_UNCOMMITTED = "document_deleted_uncommitted"
    VECTOR_IDS_TARGETED = "vector_ids_targeted"
    VECTORS_DELETED = "vectors_deleted"
    VECTOR_DELETE_FAILED = "vector_delete_failed"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


@dataclass(slots=True)
class DeletionOutcome:
    doc_id: str
    vector_ids: list[str]
    steps: list[SagaStep] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "doc_id": self.doc_id,
            "vector_ids": list(self.vector_ids),
            "steps": [step.value for step in self.steps],
        }


class DeletionSaga:
    def __init__(self, documents: DocumentStore, vector_index: VectorIndex) -> None:
        self.documents = documents
        self.vector_index = vector_index

    def delete(self, doc_id: str, user_id: str) -> DeletionOutcome:
        if not doc_id or not user_id:
            raise ValidationError("id and userId are required")

        outcome = DeletionOutcome(doc_id=doc_id, vector_ids=[])
        try:
            with self.documents.transaction() as tx:
                document = tx.find_one(doc_id, user_id)
                if document is None:
                    raise NotFoundError("not_found")
                tx.delete_one(doc_id, user_id)
                self._record(outcome, SagaStep.DOCUMENT_DELETED_UNCOMMITTED)

                outcome.vector_ids = ids_for_document(user_id, doc_id, document.chunk_count)
                self._record(outcome, SagaStep.VECTOR_IDS_TARGETED, count=len(outcome.vector_ids))
                try:
                    self.vector_index.delete(outcome.vector_ids)
                except Exception as exc:
                    self._record(outcome, SagaStep.VECTOR_DELETE_FAILED, error=str(exc))
                    raise CrossStoreInconsistency(
                        f"vector delete failed for {doc_id}, document restored: {exc}",
                        steps=outcome.steps,
                    ) from exc
                self._record(outcome, SagaStep.VECTORS_DELETED)
        except NotFoundError:
            DELETIONS.labels(outcome="not_found").inc()
            raise
        except CrossStoreInconsistency as exc:
            self._record(outcome, SagaStep.ROLLED_BACK)
            exc.steps = list(outcome.steps)
            DELETIONS.labels(outcome="rolled_back").inc()
            raise

        self._record(outcome, SagaStep.COMMITTED)
        DELETIONS.labels(outcome="committed").inc()
        INDEX_SIZE.set(self.vector_index.size)
        return outcome

    def _record(self, outcome: DeletionOutcome, step: SagaStep, **details: Any) -> None:
        outcome.steps.append(step)
        logger.info(
            "Deletion saga %s: %s",
            outcome.doc_id,
            step.value,
            extra={"ctx_doc_id": outcome.doc_id, "ctx_step": step.value, **{f"ctx_{k}": v for k, v in details.items()}},
        )


__all__ = ["DeletionSaga", "DeletionOutcome", "SagaStep"]
