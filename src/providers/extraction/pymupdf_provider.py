"""Local PDF text extraction via PyMuPDF.

The last link of the extraction chain: needs no network and no
credentials, so it is always available.  Produces plain page text with no
chunk hints, leaving segmentation to the chunker.
"""

from __future__ import annotations

import asyncio

import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import structlog

from src.interfaces.extraction_provider import IExtractionProvider
from src.models.rag import ExtractionResult
from src.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)


class PyMuPDFExtractionProvider(IExtractionProvider):
    """Extraction provider that parses the PDF in-process."""

    def get_provider_name(self) -> str:
        return "pymupdf"

    def is_available(self) -> bool:
        return True

    async def extract(self, content: bytes, filename: str = "document.pdf") -> ExtractionResult:
        # PyMuPDF is synchronous and CPU-bound.
        pages = await asyncio.to_thread(self._extract_pages, content, filename)
        text = "\n\n".join(page for page in pages if page)
        logger.info(
            "pymupdf_extraction_complete",
            filename=filename,
            pages=len(pages),
            chars=len(text),
        )
        return ExtractionResult(
            text=text.strip(),
            page_count=len(pages),
            provider_name=self.get_provider_name(),
        )

    def _extract_pages(self, content: bytes, filename: str) -> list[str]:
        """Return the stripped text of every page, empty pages included."""
        try:
            doc = fitz.open(stream=content, filetype="pdf")
        except Exception as exc:
            raise ExtractionError(
                message=f"Could not open {filename}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        try:
            return [doc[i].get_text("text").strip() for i in range(len(doc))]
        finally:
            doc.close()
