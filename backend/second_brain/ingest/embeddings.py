"""Embedding utilities."""

from __future__ import annotations

import hashlib
import math
import re
from dataclasses import dataclass
from typing import Protocol, Sequence

from second_brain.core.errors import EmbeddingFailure, ExternalServiceError
from second_brain.core.logging import get_logger
from second_brain.core.metrics import EMBEDDING_FAILURES

logger = get_logger(__name__)

_TOKEN_RE = re.compile(r"\w+")
PROBE_TEXT = "test"


class EmbeddingModel(Protocol):
    model_name: str

    def embed(self, text: str) -> list[float]: ...


@dataclass(slots=True)
class EmbeddingAttempt:
    """Outcome of embedding the text at ``index`` of a batch."""

    index: int
    vector: list[float] | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.vector is not None


class HashedEmbeddingModel:
    """Lightweight hashed embedding model with deterministic output."""

    def __init__(self, model_name: str = "hashed", dim: int = 384) -> None:
        self.model_name = model_name
        self._dim = dim

    @property
    def dim(self) -> int:
        return self._dim

    def embed(self, text: str) -> list[float]:
        vector = [0.0] * self._dim
        for token in _tokenize(text):
            vector[_hash_token(token, self._dim)] += 1.0
        _normalize(vector)
        return vector


def embed_batch(
    model: EmbeddingModel,
    texts: Sequence[str],
    expected_dim: int | None = None,
) -> list[EmbeddingAttempt]:
    """Embed each text independently, one attempt per input in input order.

    A failing, empty or wrongly sized embedding is logged and marked failed;
    it is never retried and never shifts the positions of its neighbours.
    """
    attempts: list[EmbeddingAttempt] = []
    for index, text in enumerate(texts):
        try:
            values = model.embed(text)
        except Exception as exc:
            logger.error("Embedding failed for item %s: %s", index, exc)
            attempts.append(EmbeddingAttempt(index=index, error=str(exc)))
            EMBEDDING_FAILURES.inc()
            continue
        if not values:
            logger.error("Empty embedding for item %s: %r", index, text[:80])
            attempts.append(EmbeddingAttempt(index=index, error="empty embedding"))
            EMBEDDING_FAILURES.inc()
            continue
        if expected_dim is not None and len(values) != expected_dim:
            logger.error(
                "Embedding for item %s has dimension %s, expected %s",
                index,
                len(values),
                expected_dim,
            )
            attempts.append(EmbeddingAttempt(index=index, error="dimension mismatch"))
            EMBEDDING_FAILURES.inc()
            continue
        logger.debug("Embedding length %s for %r", len(values), text[:40])
        attempts.append(EmbeddingAttempt(index=index, vector=[float(value) for value in values]))
    return attempts


def embed_query(model: EmbeddingModel, text: str, expected_dim: int | None = None) -> list[float]:
    [attempt] = embed_batch(model, [text], expected_dim=expected_dim)
    if attempt.vector is None:
        raise EmbeddingFailure(f"query embedding failed: {attempt.error}")
    return attempt.vector


def probe_dimension(model: EmbeddingModel) -> int:
    """Embed a probe text once and report the vector length."""
    try:
        values = model.embed(PROBE_TEXT)
    except ExternalServiceError:
        raise
    except Exception as exc:
        raise ExternalServiceError("embedding_model", f"dimension probe failed: {exc}") from exc
    if not values:
        raise ExternalServiceError("embedding_model", "could not detect embedding dimension")
    logger.info("Detected embedding dimension: %s", len(values))
    return len(values)


def _tokenize(text: str) -> list[str]:
    return _TOKEN_RE.findall(text.lower())


def _hash_token(token: str, dim: int) -> int:
    digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
    value = int.from_bytes(digest, "big")
    return value % dim


def _normalize(vector: list[float]) -> None:
    norm = math.sqrt(sum(value * value for value in vector))
    if norm == 0:
        return
    inv = 1.0 / norm
    for idx, value in enumerate(vector):
        vector[idx] = value * inv


__all__ = [
    "EmbeddingModel",
    "EmbeddingAttempt",
    "HashedEmbeddingModel",
    "embed_batch",
    "embed_query",
    "probe_dimension",
]
