"""Content ingestion and deletion routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from second_brain.api.dependencies import (
    get_deletion_saga,
    get_ingest_pipeline,
    get_runtime,
    get_user_id,
)
from second_brain.core.runtime import Runtime
from second_brain.deletion.saga import DeletionSaga
from second_brain.ingest.pipeline import IngestPipeline
from second_brain.models.dto import (
    ContentCreateRequest,
    ContentCreateResponse,
    ContentResponse,
    DeleteResponse,
)
from second_brain.utils.time import ms_to_datetime

router = APIRouter()


@router.post("", response_model=ContentCreateResponse, summary="Store and index a document")
def create_content(
    request: ContentCreateRequest,
    user_id: str = Depends(get_user_id),
    pipeline: IngestPipeline = Depends(get_ingest_pipeline),
) -> ContentCreateResponse:
    result = pipeline.ingest(
        user_id=user_id,
        text=request.text,
        title=request.title,
        tags=request.tags,
        link=request.link,
    )
    return ContentCreateResponse(doc_id=result.doc_id, chunk_count=result.chunk_count)


@router.get("", response_model=list[ContentResponse], summary="List the caller's documents")
def list_content(
    limit: int = Query(default=100, ge=1, le=1000, description="Newest documents to return"),
    user_id: str = Depends(get_user_id),
    runtime: Runtime = Depends(get_runtime),
) -> list[ContentResponse]:
    return [
        ContentResponse(
            id=document.id,
            title=document.title,
            text=document.text,
            link=document.link,
            tags=document.tags,
            chunk_count=document.chunk_count,
            created_at=ms_to_datetime(document.created_at),
            updated_at=ms_to_datetime(document.updated_at),
        )
        for document in runtime.documents.list_for_user(user_id, limit=limit)
    ]


@router.delete("/{doc_id}", response_model=DeleteResponse, summary="Delete a document and its vectors")
def delete_content(
    doc_id: str,
    user_id: str = Depends(get_user_id),
    saga: DeletionSaga = Depends(get_deletion_saga),
) -> DeleteResponse:
    outcome = saga.delete(doc_id, user_id)
    return DeleteResponse(
        message="Content deleted from document store and vector index",
        doc_id=outcome.doc_id,
        vectors_deleted=len(outcome.vector_ids),
        steps=[step.value for step in outcome.steps],
    )


__all__ = ["router"]
