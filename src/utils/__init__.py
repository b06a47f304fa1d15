"""Utility modules for docrag.

- **errors** -- Domain-specific exception hierarchy rooted at DocRAGError;
  each pipeline stage raises its own subclass so provider chains and the
  HTTP layer can handle failures granularly.
- **concurrency** -- the bounded background ingestion pool and a
  semaphore-throttled ``gather``.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
"""

# -- Domain exception hierarchy --------------------------------------------
from src.utils.errors import (
    DocRAGError,
    DocumentAlreadyProcessingError,
    DocumentNotFoundError,
    DocumentSourceError,
    DocumentStoreError,
    EmbeddingError,
    ExtractionError,
    ProviderUnavailableError,
    VectorStoreError,
)

# -- Async concurrency helpers ---------------------------------------------
from src.utils.concurrency import IngestionWorkerPool, throttled_gather

# -- Structured logging setup ----------------------------------------------
from src.utils.logging import configure_logging, get_logger

__all__ = [
    "DocRAGError",
    "DocumentAlreadyProcessingError",
    "DocumentNotFoundError",
    "DocumentSourceError",
    "DocumentStoreError",
    "EmbeddingError",
    "ExtractionError",
    "IngestionWorkerPool",
    "ProviderUnavailableError",
    "VectorStoreError",
    "configure_logging",
    "get_logger",
    "throttled_gather",
]
