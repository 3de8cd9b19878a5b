"""Search and question-answering routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from second_brain.api.dependencies import get_answer_service, get_query_service, get_user_id
from second_brain.models.dto import (
    AskRequest,
    AskResponse,
    MatchResult,
    SearchRequest,
    SearchResponse,
    SourceResult,
)
from second_brain.retrieval import AnswerService, QueryService

router = APIRouter()


@router.post("/search", response_model=SearchResponse, summary="Retrieve matching context")
def search(
    request: SearchRequest,
    top_k: int | None = Query(default=None, ge=1, le=100),
    user_id: str = Depends(get_user_id),
    service: QueryService = Depends(get_query_service),
) -> SearchResponse:
    result = service.retrieve(user_id, request.q, top_k)
    return SearchResponse(
        matches=[MatchResult(**match.to_dict()) for match in result.matches],
        preview_context=result.context,
        sources=[SourceResult(**source.to_dict()) for source in result.sources],
    )


@router.post("/ask", response_model=AskResponse, summary="Answer a question from stored content")
def ask(
    request: AskRequest,
    user_id: str = Depends(get_user_id),
    service: AnswerService = Depends(get_answer_service),
) -> AskResponse:
    result = service.answer(user_id, request.query, request.top_k)
    return AskResponse(
        answer=result.answer,
        sources=[SourceResult(**source.to_dict()) for source in result.sources],
    )


__all__ = ["router"]
