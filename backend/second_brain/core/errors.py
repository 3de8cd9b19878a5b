"""Error taxonomy shared by the ingestion, retrieval and deletion flows."""

from __future__ import annotations

from typing import Any, Sequence


class SecondBrainError(Exception):
    """Base class for errors surfaced to callers."""

    code = "internal_error"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "detail": self.message}


class ValidationError(SecondBrainError):
    """A required field is missing or malformed."""

    code = "validation_failed"
    status_code = 400


class EmbeddingFailure(SecondBrainError):
    """The query embedding produced no vector."""

    code = "embedding_failed"
    status_code = 502


class NotFoundError(SecondBrainError):
    """Document is missing or not owned by the caller."""

    code = "not_found"
    status_code = 404


class CrossStoreInconsistency(SecondBrainError):
    """Vector delete failed; the document-store change was rolled back."""

    code = "vector_delete_failed"
    status_code = 409

    def __init__(self, message: str, steps: Sequence[Any] = ()) -> None:
        super().__init__(message)
        self.steps = list(steps)

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["steps"] = [getattr(step, "value", step) for step in self.steps]
        return payload


class ExternalServiceError(SecondBrainError):
    """A collaborator (store or model) failed."""

    code = "external_service_failed"
    status_code = 502

    def __init__(self, collaborator: str, message: str) -> None:
        super().__init__(f"{collaborator}: {message}")
        self.collaborator = collaborator

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["collaborator"] = self.collaborator
        return payload


class VectorIdError(ValueError):
    """Raised when a vector id cannot be encoded or parsed."""


class VectorDimensionError(ValueError):
    """Raised when a vector does not match the index dimension."""


__all__ = [
    "SecondBrainError",
    "ValidationError",
    "EmbeddingFailure",
    "NotFoundError",
    "CrossStoreInconsistency",
    "ExternalServiceError",
    "VectorIdError",
    "VectorDimensionError",
]
