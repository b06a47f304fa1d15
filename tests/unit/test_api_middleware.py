"""Unit tests for API error-to-status mapping and response schemas."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from src.api.middleware import status_for_error
from src.api.schemas import DocumentResponse
from src.models.document import Document
from src.utils.errors import (
    DocRAGError,
    DocumentAlreadyProcessingError,
    DocumentNotFoundError,
    DocumentSourceError,
    DocumentStoreError,
    EmbeddingError,
    InvalidStatusTransition,
    ProviderUnavailableError,
    VectorStoreError,
)


class TestStatusForError:
    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (DocumentNotFoundError(), 404),
            (DocumentSourceError(), 422),
            (DocumentAlreadyProcessingError(), 409),
            (InvalidStatusTransition(), 409),
            (ProviderUnavailableError(), 503),
            (DocumentStoreError(), 500),
            (VectorStoreError(), 500),
            (EmbeddingError(), 500),
            (DocRAGError("generic"), 500),
        ],
    )
    def test_mapping(self, error: DocRAGError, expected: int) -> None:
        assert status_for_error(error) == expected


class TestErrorFormatting:
    def test_provider_prefix(self) -> None:
        error = EmbeddingError("HTTP 401", provider_name="huggingface")
        assert str(error) == "[huggingface] HTTP 401"
        assert error.message == "HTTP 401"

    def test_batches_committed(self) -> None:
        assert VectorStoreError("x", batches_committed=3).batches_committed == 3


class TestDocumentResponse:
    def test_preview_is_truncated(self) -> None:
        document = Document(
            id=1,
            project_id=1,
            namespace="ns",
            filename="a.pdf",
            original_filename="a.pdf",
            text_content="x" * 2000,
            upload_date=datetime(2026, 1, 1, tzinfo=timezone.utc),
        )
        response = DocumentResponse.from_document(document, preview_chars=100)

        assert response.text_preview == "x" * 100
        assert response.namespace == "ns"
