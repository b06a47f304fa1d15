"""Fixed-size overlapping window chunking.

Splits extracted document text into :class:`~src.models.rag.ChunkCandidate`
windows of ``chunk_size`` characters, each window starting
``chunk_size - overlap`` characters after the previous one.  Consecutive
windows share ``overlap`` characters so a sentence crossing a boundary is
still whole in at least one chunk.

Windows are trimmed of surrounding whitespace, and windows that trim to
``min_chunk_chars`` characters or fewer are dropped: page footers, blank
pages and the ragged tail of a document do not make useful embeddings.

Offsets on each candidate refer to the untrimmed window in the source text.
"""

from __future__ import annotations

import structlog

from src.models.rag import ChunkCandidate

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_OVERLAP = 200
DEFAULT_MIN_CHUNK_CHARS = 50


def split_text(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_OVERLAP,
    min_chunk_chars: int = DEFAULT_MIN_CHUNK_CHARS,
) -> list[ChunkCandidate]:
    """Split *text* into overlapping windows.

    Parameters
    ----------
    text:
        Full extracted text.  May be empty.
    chunk_size:
        Window length in characters.
    overlap:
        Characters shared by consecutive windows.  Must satisfy
        ``0 <= overlap < chunk_size``.
    min_chunk_chars:
        Windows whose trimmed length is not greater than this are dropped.

    Returns
    -------
    list[ChunkCandidate]
        Candidates ordered by start offset.  Empty when nothing usable
        remains; callers decide whether that is an error.

    Raises
    ------
    ValueError
        If the window parameters would not make forward progress.
    """
    if chunk_size <= 0 or overlap < 0 or overlap >= chunk_size:
        raise ValueError(
            f"Invalid chunk window: chunk_size={chunk_size}, overlap={overlap}"
        )

    if len(text) <= chunk_size:
        candidate = _make_candidate(text, 0, len(text), min_chunk_chars)
        return [candidate] if candidate is not None else []

    chunks: list[ChunkCandidate] = []
    step = chunk_size - overlap
    start = 0
    while start < len(text):
        end = min(start + chunk_size, len(text))
        candidate = _make_candidate(text[start:end], start, end, min_chunk_chars)
        if candidate is not None:
            chunks.append(candidate)

        next_start = start + step
        if next_start <= start or next_start >= len(text):
            break
        start = next_start

    return chunks


def _make_candidate(
    window: str, start: int, end: int, min_chunk_chars: int
) -> ChunkCandidate | None:
    trimmed = window.strip()
    if len(trimmed) <= min_chunk_chars:
        return None
    return ChunkCandidate(
        text=trimmed,
        start_index=start,
        end_index=end,
        length=len(trimmed),
    )


class TextChunker:
    """Configured wrapper around :func:`split_text`.

    Parameters
    ----------
    chunk_size:
        Window length in characters (default 1000).
    overlap:
        Characters of overlap between consecutive windows (default 200).
    min_chunk_chars:
        Minimum trimmed length a window must exceed to be kept (default 50).
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        overlap: int = DEFAULT_OVERLAP,
        min_chunk_chars: int = DEFAULT_MIN_CHUNK_CHARS,
    ) -> None:
        if chunk_size <= 0 or overlap < 0 or overlap >= chunk_size:
            raise ValueError(
                f"Invalid chunk window: chunk_size={chunk_size}, overlap={overlap}"
            )
        self._chunk_size = chunk_size
        self._overlap = overlap
        self._min_chunk_chars = min_chunk_chars

    @property
    def min_chunk_chars(self) -> int:
        return self._min_chunk_chars

    def split(self, text: str) -> list[ChunkCandidate]:
        """Split *text* using this chunker's window configuration."""
        chunks = split_text(
            text,
            chunk_size=self._chunk_size,
            overlap=self._overlap,
            min_chunk_chars=self._min_chunk_chars,
        )
        logger.debug(
            "chunking_complete",
            text_length=len(text),
            num_chunks=len(chunks),
            avg_length=self._avg_length(chunks),
        )
        return chunks

    @staticmethod
    def _avg_length(chunks: list[ChunkCandidate]) -> int:
        if not chunks:
            return 0
        return sum(c.length for c in chunks) // len(chunks)
