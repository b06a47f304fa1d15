"""Unit tests for the ingestion CLI (src.cli.ingest)."""

from __future__ import annotations

from argparse import Namespace
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.cli.ingest import (
    _build_parser,
    _handle_delete,
    _handle_pdf,
    _handle_query,
    _handle_url,
    main,
)
from src.models.document import (
    Document,
    NewDocument,
    ProcessingStatus,
    UrlImportFailure,
    UrlImportResult,
)
from src.models.rag import ContextChunk, IngestionResult, RAGContext, SourceDocument


def _document(document_id: int = 4) -> Document:
    return Document(
        id=document_id,
        project_id=3,
        namespace="project_3_doc_1",
        filename="paper.pdf",
        original_filename="paper.pdf",
        upload_date="2026-03-01T12:00:00Z",
        processing_status=ProcessingStatus.PENDING,
    )


def _components() -> dict:
    store = MagicMock()
    store.create_document = AsyncMock(return_value=_document())
    ingestion = MagicMock()
    ingestion.process_document = AsyncMock(
        return_value=IngestionResult(
            document_id=4, succeeded=True, chunks_created=3, page_count=2, provider_used="pymupdf"
        )
    )
    ingestion.delete_document = AsyncMock()
    context = MagicMock()
    context.get_context = AsyncMock(return_value=RAGContext.empty())
    return {
        "document_store": store,
        "ingestion_service": ingestion,
        "context_service": context,
    }


class TestParser:
    def test_pdf_command(self) -> None:
        args = _build_parser().parse_args(["pdf", "--file", "a.pdf", "--project", "3"])
        assert args.command == "pdf"
        assert args.file == "a.pdf"
        assert args.project == 3

    def test_url_command_collects_repeated_urls(self) -> None:
        args = _build_parser().parse_args(
            [
                "url",
                "--project", "3",
                "--url", "https://a.org/1.pdf",
                "--url", "https://a.org/2.pdf",
            ]
        )
        assert args.command == "url"
        assert args.url == ["https://a.org/1.pdf", "https://a.org/2.pdf"]

    def test_query_defaults(self) -> None:
        args = _build_parser().parse_args(["query", "--project", "3", "--text", "heads"])
        assert args.max_chunks == 5

    def test_project_must_be_int(self) -> None:
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["pdf", "--file", "a.pdf", "--project", "three"])

    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 1
        assert "Available commands" in capsys.readouterr().out


class TestHandlers:
    @pytest.mark.asyncio
    async def test_pdf_registers_and_ingests(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        pdf = tmp_path / "paper.pdf"
        pdf.write_bytes(b"%PDF-1.4 bytes")
        components = _components()

        code = await _handle_pdf(Namespace(file=str(pdf), project=3), components)

        assert code == 0
        new_document: NewDocument = components["document_store"].create_document.await_args.args[0]
        assert new_document.project_id == 3
        assert new_document.file_size == len(b"%PDF-1.4 bytes")
        assert new_document.file_path == str(pdf.resolve())
        components["ingestion_service"].process_document.assert_awaited_once_with(
            4, b"%PDF-1.4 bytes"
        )
        assert "Ingestion complete" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_pdf_missing_file(self, tmp_path: Path) -> None:
        code = await _handle_pdf(
            Namespace(file=str(tmp_path / "nope.pdf"), project=3), _components()
        )
        assert code == 1

    @pytest.mark.asyncio
    async def test_pdf_failure_exit_code(self, tmp_path: Path) -> None:
        pdf = tmp_path / "paper.pdf"
        pdf.write_bytes(b"%PDF")
        components = _components()
        components["ingestion_service"].process_document.return_value = IngestionResult(
            document_id=4, succeeded=False, error_message="All extraction providers failed"
        )

        assert await _handle_pdf(Namespace(file=str(pdf), project=3), components) == 1

    @pytest.mark.asyncio
    async def test_query_prints_chunks(self, capsys: pytest.CaptureFixture[str]) -> None:
        components = _components()
        components["context_service"].get_context.return_value = RAGContext(
            chunks=[
                ContextChunk(
                    id="doc_4_chunk_0",
                    score=0.812,
                    text="Attention   heads\nattend.",
                    document_id=4,
                    chunk_index=0,
                    page_number=3,
                    document=SourceDocument(filename="paper.pdf"),
                )
            ],
            document_ids=[4],
        )

        code = await _handle_query(
            Namespace(project=3, text="heads", max_chunks=5), components
        )

        out = capsys.readouterr().out
        assert code == 0
        assert "[0.812] paper.pdf, p. 3 (chunk 0)" in out
        assert "Attention heads attend." in out

    @pytest.mark.asyncio
    async def test_query_without_results(self, capsys: pytest.CaptureFixture[str]) -> None:
        code = await _handle_query(Namespace(project=3, text="x", max_chunks=5), _components())
        assert code == 0
        assert "No matching context." in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_delete(self) -> None:
        components = _components()
        assert await _handle_delete(Namespace(document=4), components) == 0
        components["ingestion_service"].delete_document.assert_awaited_once_with(4)

    @pytest.mark.asyncio
    async def test_url_imports_and_waits(self, capsys: pytest.CaptureFixture[str]) -> None:
        components = _components()
        components["ingestion_service"].import_from_urls = AsyncMock(
            return_value=UrlImportResult(documents=[_document()])
        )
        components["worker_pool"] = MagicMock(drain=AsyncMock())
        components["document_store"].get_document = AsyncMock(
            return_value=_document().model_copy(
                update={"processing_status": ProcessingStatus.COMPLETED}
            )
        )

        code = await _handle_url(
            Namespace(project=3, url=["https://example.org/paper.pdf"]), components
        )

        assert code == 0
        components["ingestion_service"].import_from_urls.assert_awaited_once_with(
            project_id=3, urls=["https://example.org/paper.pdf"]
        )
        components["worker_pool"].drain.assert_awaited_once()
        assert "Document 4 (paper.pdf): completed" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_url_skipped_sources_fail_the_run(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        components = _components()
        components["ingestion_service"].import_from_urls = AsyncMock(
            return_value=UrlImportResult(
                failed=[UrlImportFailure(url="https://example.org/a.html", error="not a PDF")]
            )
        )
        components["worker_pool"] = MagicMock(drain=AsyncMock())

        code = await _handle_url(
            Namespace(project=3, url=["https://example.org/a.html"]), components
        )

        assert code == 1
        assert "Skipped https://example.org/a.html: not a PDF" in capsys.readouterr().out
