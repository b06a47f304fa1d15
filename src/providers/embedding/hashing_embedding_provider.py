"""Deterministic local embedding fallback.

Produces a bag-of-characters vector from the text alone: no network, no
model, no randomness.  Retrieval quality is poor, but it keeps ingestion
and querying working when every hosted provider is down, and the same
text always maps to the same vector.
"""

from __future__ import annotations

import math
import re

from src.interfaces.embedding_provider import IEmbeddingProvider

_NON_WORD_RE = re.compile(r"[^\w\s]")
_WHITESPACE_RE = re.compile(r"\s+")


def hashing_embedding(text: str, dimension: int = 1024) -> list[float]:
    """Return the L2-normalised hashing embedding of *text*.

    Words of two characters or fewer are ignored.  Text with no remaining
    words yields the zero vector.
    """
    cleaned = _WHITESPACE_RE.sub(" ", _NON_WORD_RE.sub(" ", text.lower())).strip()
    words = [w for w in cleaned.split(" ") if len(w) > 2]

    vector = [0.0] * dimension
    for word_index, word in enumerate(words):
        for char in word:
            code = ord(char)
            vector[(code + word_index * 7) % dimension] += math.sin(code * 0.1) * 0.1

    norm = math.sqrt(sum(v * v for v in vector))
    if norm == 0.0:
        return vector
    return [v / norm for v in vector]


class HashingEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider computing :func:`hashing_embedding` in-process."""

    def __init__(self, dimension: int = 1024) -> None:
        self._dimension = dimension

    async def embed(self, text: str) -> list[float]:
        return hashing_embedding(text, self._dimension)

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "hashing"

    def is_available(self) -> bool:
        return True
