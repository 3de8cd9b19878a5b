"""Chunking utilities."""

from __future__ import annotations

import re
from typing import Iterator

CHARS_PER_TOKEN = 4

_PARAGRAPH_RE = re.compile(r"\n[ \t]*\n\s*")
_SENTENCE_BOUNDARY_RE = re.compile(r"(?<=[.!?])\s+")


def chunk_text(text: str, max_tokens: int = 500) -> list[str]:
    """Split text into ordered chunks of at most ``max_tokens * 4`` characters.

    Paragraphs (separated by blank lines) that fit the budget are kept whole.
    Oversized paragraphs are split into sentences and greedily re-packed;
    whatever still exceeds the budget is sliced at fixed offsets. Empty input
    yields an empty list; rejecting it is the caller's job.
    """
    if max_tokens < 1:
        raise ValueError("max_tokens must be positive")
    max_chars = max_tokens * CHARS_PER_TOKEN
    normalized = text.replace("\r\n", "\n")

    pieces: list[str] = []
    for paragraph in _PARAGRAPH_RE.split(normalized):
        paragraph = paragraph.strip()
        if not paragraph:
            continue
        if len(paragraph) <= max_chars:
            pieces.append(paragraph)
        else:
            pieces.extend(_pack_sentences(paragraph, max_chars))

    chunks: list[str] = []
    for piece in pieces:
        chunks.extend(_hard_slice(piece, max_chars))
    return chunks


def _pack_sentences(paragraph: str, max_chars: int) -> Iterator[str]:
    buffer = ""
    for sentence in _SENTENCE_BOUNDARY_RE.split(paragraph):
        if not sentence:
            continue
        candidate = f"{buffer} {sentence}" if buffer else sentence
        if len(candidate) > max_chars:
            if buffer:
                yield buffer
            buffer = sentence
        else:
            buffer = candidate
    if buffer:
        yield buffer


def _hard_slice(piece: str, max_chars: int) -> Iterator[str]:
    if len(piece) <= max_chars:
        yield piece
        return
    for start in range(0, len(piece), max_chars):
        part = piece[start : start + max_chars]
        if part.strip():
            yield part


__all__ = ["chunk_text", "CHARS_PER_TOKEN"]
