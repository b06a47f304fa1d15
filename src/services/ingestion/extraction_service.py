"""PDF text extraction with a multi-provider fallback chain.

Providers are tried in the order supplied at construction time.  The
default order built by the application is ``llamaparse`` →
``jina_segmenter`` → ``pymupdf``: hosted parsers first for layout-aware
text, the local parser last because it needs nothing but the bytes.

Unlike a quality-scored chain, there is no "best sub-threshold" result
here.  A provider either returns usable text or fails; remote providers
enforce their own minimum-length check, so a provider returning a few
characters counts as a failure and the next one is tried.
"""

from __future__ import annotations

from src.interfaces.extraction_provider import IExtractionProvider
from src.models.rag import ExtractionResult
from src.utils.errors import ExtractionError
from src.utils.logging import get_logger


class ExtractionService:
    """Orchestrates text extraction across extraction providers."""

    def __init__(self, providers: list[IExtractionProvider]) -> None:
        self._providers = providers
        self._logger = get_logger(__name__)

    async def extract(self, content: bytes, filename: str = "document.pdf") -> ExtractionResult:
        """Extract the text of *content* using the first provider that succeeds.

        Raises
        ------
        ExtractionError
            If every provider is unavailable or fails.
        """
        last_error: Exception | None = None

        for provider in self._providers:
            name = provider.get_provider_name()

            if not provider.is_available():
                self._logger.info("extraction_provider_unavailable", provider=name)
                continue

            try:
                self._logger.info("extraction_provider_attempting", provider=name)
                result = await provider.extract(content, filename)
            except Exception as exc:
                last_error = exc
                self._logger.warning(
                    "extraction_provider_failed",
                    provider=name,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                continue

            if not result.provider_name:
                result = result.model_copy(update={"provider_name": name})
            self._logger.info(
                "extraction_provider_accepted",
                provider=name,
                chars=len(result.text),
                pages=result.page_count,
                chunk_hints=len(result.chunks),
            )
            return result

        detail = f": {last_error}" if last_error is not None else ""
        raise ExtractionError(f"All extraction providers failed{detail}")

    def get_available_providers(self) -> list[str]:
        """Return the names of providers that are currently available."""
        return [p.get_provider_name() for p in self._providers if p.is_available()]
