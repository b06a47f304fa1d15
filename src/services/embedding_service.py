"""Embedding generation with a multi-provider fallback chain.

Providers are tried in priority order (``huggingface`` → ``jina_embedding``
→ ``hashing`` in the default application wiring).  Each provider is
attempted at most once per call; its own 503 retry happens inside the
provider.  Output whose length is not the configured dimension is rejected
and the chain moves on, so every vector in the index is comparable.
"""

from __future__ import annotations

from src.interfaces.embedding_provider import IEmbeddingProvider
from src.utils.errors import EmbeddingDimensionError, EmbeddingError
from src.utils.logging import get_logger


class EmbeddingService:
    """Turns text into fixed-dimension vectors using the first working provider."""

    def __init__(self, providers: list[IEmbeddingProvider], dimension: int = 1024) -> None:
        self._providers = providers
        self._dimension = dimension
        self._logger = get_logger(__name__)

    @property
    def dimension(self) -> int:
        return self._dimension

    async def embed(self, text: str) -> list[float]:
        """Return the embedding of *text*.

        Raises
        ------
        EmbeddingError
            If every provider is unavailable, fails, or returns a vector of
            the wrong dimension.
        """
        last_error: Exception | None = None

        for provider in self._providers:
            name = provider.get_provider_name()
            if not provider.is_available():
                continue

            try:
                vector = await provider.embed(text)
                if len(vector) != self._dimension:
                    raise EmbeddingDimensionError(
                        message=(
                            f"Expected {self._dimension} dimensions, got {len(vector)}"
                        ),
                        provider_name=name,
                    )
            except Exception as exc:
                last_error = exc
                self._logger.warning(
                    "embedding_provider_failed",
                    provider=name,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                continue

            self._logger.debug("embedding_generated", provider=name, chars=len(text))
            return vector

        detail = f": {last_error}" if last_error is not None else ""
        raise EmbeddingError(f"All embedding providers failed{detail}")

    def get_available_providers(self) -> list[str]:
        """Return the names of providers that are currently available."""
        return [p.get_provider_name() for p in self._providers if p.is_available()]
