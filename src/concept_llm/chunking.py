"""
Sliding-window text chunking.

Splits long documents into overlapping windows that each fit one generative
call. Windows prefer to end on a sentence boundary, then a paragraph boundary,
so a theme is rarely cut mid-sentence; the overlap keeps cross-boundary context.
"""

import logging
import re

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 30000
DEFAULT_OVERLAP = 5000

# Extra characters past the nominal window end that a boundary may land in
_BOUNDARY_LOOKAHEAD = 1000

_SENTENCE_END = re.compile(r"[.!?]\s+")
_PARAGRAPH_END = re.compile(r"\n\s*\n")


def _last_boundary_end(pattern: re.Pattern[str], text: str) -> int | None:
    last = None
    for match in pattern.finditer(text):
        last = match
    return last.end() if last is not None else None


def _window_end(text: str, start: int, chunk_size: int) -> int:
    end = min(start + chunk_size, len(text))
    if end >= len(text):
        return end

    search_start = max(start + int(chunk_size * 0.5), end - int(chunk_size * 0.2))
    search_end = min(len(text), end + _BOUNDARY_LOOKAHEAD)
    region = text[search_start:search_end]

    offset = _last_boundary_end(_SENTENCE_END, region)
    if offset is None:
        offset = _last_boundary_end(_PARAGRAPH_END, region)
    if offset is not None:
        end = search_start + offset

    if end <= start:
        end = min(start + chunk_size, len(text))
    return end


def sliding_window_chunk(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_OVERLAP,
) -> list[str]:
    """
    Split ``text`` into overlapping windows covering the whole document.

    Args:
        text: Full document text
        chunk_size: Target window size in characters
        overlap: Characters shared between consecutive windows

    Returns:
        Chunks in document order; ``[]`` for empty or whitespace-only text
    """
    if chunk_size < 1:
        raise ValueError("chunk_size must be >= 1")
    if overlap < 0:
        raise ValueError("overlap must be >= 0")

    if not text or not text.strip():
        return []
    if len(text) <= chunk_size:
        return [text]

    # Overlap at or above the window size would never advance
    effective_overlap = min(overlap, chunk_size - 1)

    chunks: list[str] = []
    start = 0
    while start < len(text):
        end = _window_end(text, start, chunk_size)

        chunk = text[start:end]
        if chunk.strip():
            chunks.append(chunk)

        if end >= len(text):
            break
        start = max(start + 1, end - effective_overlap)

    logger.debug(
        f"Split document into {len(chunks)} chunks",
        extra={"text_length": len(text), "chunk_size": chunk_size, "overlap": effective_overlap},
    )
    return chunks
