"""PDF text-extraction providers, in default priority order."""

from src.providers.extraction.jina_segmenter_provider import JinaSegmenterExtractionProvider
from src.providers.extraction.llamaparse_provider import LlamaParseExtractionProvider
from src.providers.extraction.pymupdf_provider import PyMuPDFExtractionProvider
from src.providers.extraction.remote_job_provider import (
    JobStatus,
    ParseJob,
    RemoteJobExtractionProvider,
)

__all__ = [
    "JinaSegmenterExtractionProvider",
    "JobStatus",
    "LlamaParseExtractionProvider",
    "ParseJob",
    "PyMuPDFExtractionProvider",
    "RemoteJobExtractionProvider",
]
