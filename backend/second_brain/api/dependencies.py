"""Shared FastAPI dependencies."""

from __future__ import annotations

from fastapi import Depends, Header, HTTPException, Request

from second_brain.core.runtime import Runtime
from second_brain.deletion.saga import DeletionSaga
from second_brain.ingest.pipeline import IngestPipeline
from second_brain.retrieval import AnswerService, QueryService


def get_runtime(request: Request) -> Runtime:
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise HTTPException(status_code=503, detail="Service is starting up")
    return runtime


def get_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Caller identity, set upstream by the authentication layer."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Authentication required")
    return x_user_id.strip()


def get_ingest_pipeline(runtime: Runtime = Depends(get_runtime)) -> IngestPipeline:
    return runtime.pipeline


def get_query_service(runtime: Runtime = Depends(get_runtime)) -> QueryService:
    return runtime.query_service


def get_answer_service(runtime: Runtime = Depends(get_runtime)) -> AnswerService:
    return runtime.answer_service


def get_deletion_saga(runtime: Runtime = Depends(get_runtime)) -> DeletionSaga:
    return runtime.deletion_saga


__all__ = [
    "get_runtime",
    "get_user_id",
    "get_ingest_pipeline",
    "get_query_service",
    "get_answer_service",
    "get_deletion_saga",
]
