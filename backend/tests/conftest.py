"""Test fixtures for Second Brain."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))


class FakeChatModel:
    model_name = "fake-chat"

    def __init__(self, reply: str = "It is in your notes.") -> None:
        self.reply = reply
        self.prompts: list[str] = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.reply


@pytest.fixture(autouse=True)
def reset_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset cached settings and point storage at a temp dir between tests."""
    monkeypatch.setenv("SB_DB_PATH", str(tmp_path / "documents.db"))
    monkeypatch.setenv("SB_VECTOR_DB_PATH", str(tmp_path / "vectors.db"))
    monkeypatch.setenv("SB_EMBEDDING_BACKEND", "hashed")
    monkeypatch.delenv("SB_CONFIG", raising=False)

    from second_brain.core.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings():
    from second_brain.core.config import get_settings

    return get_settings()


@pytest.fixture
def chat_model() -> FakeChatModel:
    return FakeChatModel()


@pytest.fixture
def runtime(settings, chat_model):
    from second_brain.core.runtime import build_runtime

    rt = build_runtime(settings, chat_model=chat_model)
    yield rt
    rt.close()


@pytest.fixture(scope="session")
def sample_text() -> str:
    return "Title\n\nParagraph one.\n\nParagraph two is here."
