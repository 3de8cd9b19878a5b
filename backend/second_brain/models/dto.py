"""Pydantic DTOs exposed via API."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class ContentCreateRequest(BaseModel):
    title: str = ""
    text: str
    tags: list[str] = Field(default_factory=list)
    link: str = ""


class ContentCreateResponse(BaseModel):
    success: bool = True
    doc_id: str
    chunk_count: int


class ContentResponse(BaseModel):
    id: str
    title: str
    text: str
    link: str
    tags: list[str]
    chunk_count: int
    created_at: datetime
    updated_at: datetime


class SearchRequest(BaseModel):
    q: str


class SourceResult(BaseModel):
    doc_id: str
    title: str
    score: float


class MatchResult(BaseModel):
    id: str
    score: float
    metadata: dict[str, Any]


class SearchResponse(BaseModel):
    matches: list[MatchResult]
    preview_context: str
    sources: list[SourceResult]


class AskRequest(BaseModel):
    query: str
    top_k: int | None = Field(default=None, ge=1, le=100)


class AskResponse(BaseModel):
    answer: str
    sources: list[SourceResult]


class DeleteResponse(BaseModel):
    message: str
    doc_id: str
    vectors_deleted: int
    steps: list[str]


__all__ = [
    "ContentCreateRequest",
    "ContentCreateResponse",
    "ContentResponse",
    "SearchRequest",
    "SearchResponse",
    "MatchResult",
    "SourceResult",
    "AskRequest",
    "AskResponse",
    "DeleteResponse",
]
