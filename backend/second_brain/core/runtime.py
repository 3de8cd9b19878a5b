"""Startup wiring: builds every long-lived component exactly once."""

from __future__ import annotations

from dataclasses import dataclass

from second_brain.core.config import Settings
from second_brain.core.logging import get_logger
from second_brain.core.metrics import INDEX_SIZE
from second_brain.db.documents import DocumentStore
from second_brain.db.sqlite import SQLiteDatabase
from second_brain.deletion.saga import DeletionSaga
from second_brain.ingest.embeddings import EmbeddingModel, HashedEmbeddingModel, probe_dimension
from second_brain.ingest.pipeline import IngestPipeline
from second_brain.llm.ollama import ChatModel, OllamaChatModel, OllamaEmbeddingModel
from second_brain.retrieval.answer import AnswerService
from second_brain.retrieval.search import QueryService
from second_brain.vector.index import VectorIndex

logger = get_logger(__name__)


@dataclass(slots=True)
class Runtime:
    settings: Settings
    document_db: SQLiteDatabase
    vector_db: SQLiteDatabase
    documents: DocumentStore
    embedding_model: EmbeddingModel
    vector_index: VectorIndex
    pipeline: IngestPipeline
    query_service: QueryService
    answer_service: AnswerService
    deletion_saga: DeletionSaga

    def close(self) -> None:
        self.document_db.close()
        self.vector_db.close()


def build_embedding_model(settings: Settings) -> EmbeddingModel:
    if settings.embedding_backend == "ollama":
        return OllamaEmbeddingModel(
            settings.embedding_model,
            base_url=settings.ollama_base_url,
            timeout=settings.request_timeout,
        )
    return HashedEmbeddingModel(model_name=settings.embedding_model, dim=settings.embedding_dim)


def build_chat_model(settings: Settings) -> ChatModel:
    return OllamaChatModel(
        settings.chat_model,
        base_url=settings.ollama_base_url,
        timeout=settings.request_timeout,
    )


def build_runtime(
    settings: Settings,
    embedding_model: EmbeddingModel | None = None,
    chat_model: ChatModel | None = None,
) -> Runtime:
    """Probe the embedding dimension, open both stores and wire the services.

    Nothing that ingests or retrieves is constructed before the index handle
    exists, so no request can observe an unset dimension.
    """
    if settings.db_path.resolve() == settings.vector_db_path.resolve():
        raise ValueError("db_path and vector_db_path must point to different files")

    embedding_model = embedding_model or build_embedding_model(settings)
    chat_model = chat_model or build_chat_model(settings)
    dim = probe_dimension(embedding_model)

    document_db = SQLiteDatabase(settings.db_path)
    vector_db = SQLiteDatabase(settings.vector_db_path)
    documents = DocumentStore(document_db)
    vector_index = VectorIndex.open(vector_db, settings.index_name, dim)
    INDEX_SIZE.set(vector_index.size)

    query_service = QueryService(
        documents=documents,
        settings=settings,
        vector_index=vector_index,
        embedding_model=embedding_model,
    )
    runtime = Runtime(
        settings=settings,
        document_db=document_db,
        vector_db=vector_db,
        documents=documents,
        embedding_model=embedding_model,
        vector_index=vector_index,
        pipeline=IngestPipeline(
            documents=documents,
            settings=settings,
            embedding_model=embedding_model,
            vector_index=vector_index,
        ),
        query_service=query_service,
        answer_service=AnswerService(query_service=query_service, chat_model=chat_model),
        deletion_saga=DeletionSaga(documents=documents, vector_index=vector_index),
    )
    logger.info(
        "Runtime ready: index '%s' dim=%s vectors=%s",
        settings.index_name,
        dim,
        vector_index.size,
    )
    return runtime


__all__ = ["Runtime", "build_runtime", "build_embedding_model", "build_chat_model"]
