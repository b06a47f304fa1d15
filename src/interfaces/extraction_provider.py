"""Abstract base class for PDF text-extraction providers.

Implementations may wrap a hosted document parser (LlamaParse), a
document segmenter (Jina), or an in-process PDF library (PyMuPDF).  The
extraction service tries them in a fixed priority order, so every provider
shares this one contract.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.rag import ExtractionResult


# Concrete implementations (src/providers/extraction/):
#   LlamaParseExtractionProvider     - hosted job-based parser (needs API key)
#   JinaSegmenterExtractionProvider  - hosted segmenter, answers synchronously
#   PyMuPDFExtractionProvider        - local fallback, always last
class IExtractionProvider(ABC):
    """Contract for turning PDF bytes into text (and optional chunk hints)."""

    @abstractmethod
    async def extract(self, content: bytes, filename: str = "document.pdf") -> ExtractionResult:
        """Extract the text of a PDF document.

        Parameters
        ----------
        content:
            Raw PDF bytes.
        filename:
            Name sent to remote services with the upload.

        Returns
        -------
        ExtractionResult
            Full text, page count, and provider chunk hints (possibly empty).

        Raises
        ------
        src.utils.errors.ExtractionError
            If extraction fails or yields too little text.  The extraction
            service treats any exception as "try the next provider".
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier, e.g. ``"llamaparse"`` or ``"pymupdf"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured (credentials present)."""
