"""Grounded answer generation on top of retrieval."""

from __future__ import annotations

from dataclasses import dataclass

from second_brain.core.errors import ExternalServiceError
from second_brain.core.logging import get_logger
from second_brain.llm.ollama import ChatModel
from second_brain.retrieval.search import QueryService, SourceRef

logger = get_logger(__name__)

INSUFFICIENT_INFO = "I don't have enough information."

PROMPT_TEMPLATE = """
You are a helpful assistant.
Only answer using the provided context.
If the context does not contain enough info, say "{insufficient}"

Question: {query}

Context:
{context}

Answer:
"""


@dataclass(slots=True)
class AnswerResult:
    answer: str
    sources: list[SourceRef]


def build_prompt(query: str, context: str) -> str:
    return PROMPT_TEMPLATE.format(insufficient=INSUFFICIENT_INFO, query=query, context=context)


class AnswerService:
    """One retrieval, one prompt, one generative call. No retries."""

    def __init__(self, query_service: QueryService, chat_model: ChatModel) -> None:
        self.query_service = query_service
        self.chat_model = chat_model

    def answer(self, user_id: str, query: str, top_k: int | None = None) -> AnswerResult:
        retrieved = self.query_service.retrieve(user_id, query, top_k)
        prompt = build_prompt(query, retrieved.context)
        try:
            answer = self.chat_model.generate(prompt)
        except ExternalServiceError:
            raise
        except Exception as exc:
            raise ExternalServiceError("generative_model", str(exc)) from exc
        logger.info("Answered query with %s sources", len(retrieved.sources), extra={"ctx_user_id": user_id})
        return AnswerResult(answer=answer, sources=retrieved.sources)


__all__ = ["AnswerService", "AnswerResult", "build_prompt", "INSUFFICIENT_INFO"]
