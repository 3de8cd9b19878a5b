"""HTTP clients for an Ollama server: embeddings and chat generation."""

from __future__ import annotations

from typing import Any, Protocol

import requests

from second_brain.core.errors import ExternalServiceError
from second_brain.core.logging import get_logger

logger = get_logger(__name__)


class ChatModel(Protocol):
    model_name: str

    def generate(self, prompt: str) -> str: ...


class _OllamaClient:
    collaborator = "ollama"

    def __init__(
        self,
        model_name: str,
        base_url: str = "http://127.0.0.1:11434",
        timeout: float = 60.0,
        session: requests.Session | None = None,
    ) -> None:
        self.model_name = model_name
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.post(url, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            raise ExternalServiceError(self.collaborator, f"request to {url} failed: {exc}") from exc
        if not resp.ok:
            raise ExternalServiceError(
                self.collaborator,
                f"{url} returned {resp.status_code}: {resp.text[:200]}",
            )
        try:
            return resp.json()
        except ValueError as exc:
            raise ExternalServiceError(self.collaborator, f"{url} returned invalid JSON") from exc


class OllamaEmbeddingModel(_OllamaClient):
    """Embeds one text per `/api/embed` call."""

    collaborator = "embedding_model"

    def embed(self, text: str) -> list[float]:
        data = self._post("/api/embed", {"model": self.model_name, "input": text})
        embeddings = data.get("embeddings") or []
        if not embeddings:
            logger.warning("Ollama returned no embeddings; keys=%s", list(data.keys()))
            return []
        return [float(value) for value in embeddings[0]]


class OllamaChatModel(_OllamaClient):
    """Single-turn, non-streaming `/api/chat` completion."""

    collaborator = "generative_model"

    def generate(self, prompt: str) -> str:
        data = self._post(
            "/api/chat",
            {
                "model": self.model_name,
                "messages": [{"role": "user", "content": prompt}],
                "stream": False,
            },
        )
        content = (data.get("message") or {}).get("content")
        if content is None:
            raise ExternalServiceError(
                self.collaborator,
                f"chat response has no message; keys={list(data.keys())}",
            )
        return content


__all__ = ["ChatModel", "OllamaChatModel", "OllamaEmbeddingModel"]
