"""Custom exception hierarchy for docrag.

All application exceptions inherit from :class:`DocRAGError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "llamaparse", "huggingface", "chromadb") caused the
failure.

The hierarchy is organized by pipeline stage:

    DocRAGError  (base -- catch-all for any docrag error)
    +-- ExtractionError            (PDF text extraction)
    |   +-- ExtractionTimeoutError     (job polling exhausted)
    |   +-- InsufficientContentError   (too little text / zero chunks)
    +-- EmbeddingError             (embedding generation)
    |   +-- ModelLoadingError          (provider warming up, retryable once)
    |   +-- EmbeddingDimensionError    (vector length != deployment dimension)
    +-- VectorStoreError           (vector index upsert/query/delete)
    +-- DocumentStoreError         (relational document / chunk persistence)
    |   +-- DocumentNotFoundError
    |   +-- DocumentSourceError        (URL rejected or not downloadable)
    |   +-- InvalidStatusTransition
    |       +-- DocumentAlreadyProcessingError
    +-- ProviderUnavailableError   (external service down / unreachable)

Provider chains catch these per provider and advance to the next backend;
the ingestion orchestrator catches everything at its boundary and records
the message on the document row.
"""


class DocRAGError(Exception):
    """Base exception for all docrag errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  ``__str__`` prefixes the provider name in brackets for log
    output, e.g. ``[llamaparse] Job timed out``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Extraction errors
# ---------------------------------------------------------------------------

class ExtractionError(DocRAGError):
    """Raised when PDF text extraction fails (one provider or the whole chain)."""

    def __init__(
        self,
        message: str = "PDF text extraction failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ExtractionTimeoutError(ExtractionError):
    """Raised when a remote parsing job does not finish within the poll budget."""

    def __init__(
        self,
        message: str = "Extraction job timed out",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class InsufficientContentError(ExtractionError):
    """Raised when extracted text is too short or yields no usable chunks."""

    def __init__(
        self,
        message: str = "Document contains insufficient text content",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Embedding errors
# ---------------------------------------------------------------------------

class EmbeddingError(DocRAGError):
    """Raised when an embedding provider (or the whole chain) fails."""

    def __init__(
        self,
        message: str = "Embedding generation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ModelLoadingError(EmbeddingError):
    """Raised when a hosted model reports it is still loading (HTTP 503).

    The only embedding failure that earns a retry.
    """

    def __init__(
        self,
        message: str = "Embedding model is loading",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmbeddingDimensionError(EmbeddingError):
    """Raised when a provider returns a vector of the wrong dimensionality."""

    def __init__(
        self,
        message: str = "Embedding dimension mismatch",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Storage errors
# ---------------------------------------------------------------------------

class VectorStoreError(DocRAGError):
    """Raised when a vector index operation fails.

    ``batches_committed`` records how many upsert batches succeeded before
    the failing one, the only partial-success accounting the index offers.
    """

    def __init__(
        self,
        message: str = "Vector store operation failed",
        provider_name: str | None = None,
        batches_committed: int = 0,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._batches_committed = batches_committed

    @property
    def batches_committed(self) -> int:
        return self._batches_committed


class DocumentStoreError(DocRAGError):
    """Raised when the relational document / chunk store fails."""

    def __init__(
        self,
        message: str = "Document store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DocumentNotFoundError(DocumentStoreError):
    """Raised when a document id does not exist."""

    def __init__(
        self,
        message: str = "Document not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DocumentSourceError(DocumentStoreError):
    """Raised when a document URL is rejected or its PDF cannot be downloaded."""

    def __init__(
        self,
        message: str = "Document source could not be loaded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class InvalidStatusTransition(DocumentStoreError):
    """Raised when a processing-status change would break monotonicity."""

    def __init__(
        self,
        message: str = "Invalid processing status transition",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DocumentAlreadyProcessingError(InvalidStatusTransition):
    """Raised when reprocess is requested for a document that is mid-pipeline."""

    def __init__(
        self,
        message: str = "Document is already being processed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# External service errors
# ---------------------------------------------------------------------------

class ProviderUnavailableError(DocRAGError):
    """Raised when an external service is unreachable or rejects the request.

    Provider chains catch this to try the next provider in priority order.
    """

    def __init__(
        self,
        message: str = "External service is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
