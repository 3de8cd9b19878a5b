"""Prometheus metrics instrumentation."""

from __future__ import annotations

from fastapi import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

INGESTED_DOCUMENTS = Counter(
    "sb_ingested_documents_total",
    "Documents persisted by the ingest pipeline",
    labelnames=("outcome",),
    registry=REGISTRY,
)

EMBEDDING_FAILURES = Counter(
    "sb_embedding_failures_total",
    "Chunk embeddings skipped after a failed or empty response",
    registry=REGISTRY,
)

RETRIEVAL_LATENCY = Histogram(
    "sb_retrieval_latency_seconds",
    "Latency of context retrieval",
    registry=REGISTRY,
)

DELETIONS = Counter(
    "sb_deletions_total",
    "Deletion saga outcomes",
    labelnames=("outcome",),
    registry=REGISTRY,
)

INDEX_SIZE = Gauge(
    "sb_index_vectors",
    "Number of vectors stored in the index",
    registry=REGISTRY,
)


def metrics_response() -> Response:
    """Return Prometheus metrics as an HTTP response."""
    payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "REGISTRY",
    "INGESTED_DOCUMENTS",
    "EMBEDDING_FAILURES",
    "RETRIEVAL_LATENCY",
    "DELETIONS",
    "INDEX_SIZE",
    "metrics_response",
]
