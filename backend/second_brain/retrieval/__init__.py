"""Retrieval orchestration components."""

from .answer import AnswerResult, AnswerService
from .search import QueryService, RetrievalResult, SourceRef

__all__ = [
    "AnswerResult",
    "AnswerService",
    "QueryService",
    "RetrievalResult",
    "SourceRef",
]
