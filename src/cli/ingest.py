# =============================================================================
# src/cli/ingest.py - CLI Ingest Command (document pipeline management)
# =============================================================================
#
# Standalone CLI for driving the docrag ingestion pipeline without the web
# server.  Uses the same composition root as the app (src.main
# build_components), so documents ingested here land in the same SQLite
# store and ChromaDB index the API serves from.
#
# Supported subcommands:
#
#   pdf       - Register a local PDF under a project and ingest it now
#   url       - Download PDFs by URL into a project and ingest them
#   reprocess - Run an existing document through the pipeline again
#   query     - Print the ranked RAG context for a project query
#   delete    - Delete a document, its chunks and its vectors
#
# Unlike the API, `pdf`, `url` and `reprocess` wait for the pipeline to finish and
# print the outcome, so the exit code tells whether ingestion succeeded.
#
# Usage examples:
#   python -m src.cli.ingest pdf --file /path/to/paper.pdf --project 3
#   python -m src.cli.ingest url --project 3 --url https://example.org/paper.pdf
#   python -m src.cli.ingest reprocess --document 12
#   python -m src.cli.ingest query --project 3 --text "attention heads" --max-chunks 5
#   python -m src.cli.ingest delete --document 12
# =============================================================================

"""Standalone CLI for the docrag ingestion pipeline.

Usage::

    python -m src.cli.ingest pdf --file /path/to/paper.pdf --project 3

    python -m src.cli.ingest query --project 3 --text "attention heads"

No extra dependencies beyond the core project requirements.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any

from src.config.settings import Settings


async def _handle_pdf(args: argparse.Namespace, components: dict[str, Any]) -> int:
    """Register and ingest a local PDF, waiting for the result."""
    from src.models.document import NewDocument

    path = Path(args.file)
    if not path.is_file():
        print(f"Error: File not found: {path}", file=sys.stderr)
        return 1

    content = path.read_bytes()
    document = await components["document_store"].create_document(
        NewDocument(
            project_id=args.project,
            filename=path.name,
            original_filename=path.name,
            file_path=str(path.resolve()),
            file_size=len(content),
        )
    )
    print(f"Registered document {document.id} (namespace {document.namespace})")

    result = await components["ingestion_service"].process_document(document.id, content)
    _print_ingestion_result(result)
    return 0 if result.succeeded else 1


async def _handle_url(args: argparse.Namespace, components: dict[str, Any]) -> int:
    """Import PDFs by URL and wait for their ingestion to finish."""
    result = await components["ingestion_service"].import_from_urls(
        project_id=args.project, urls=args.url
    )
    for failure in result.failed:
        print(f"Skipped {failure.url}: {failure.error}")

    await components["worker_pool"].drain()

    completed = 0
    for imported in result.documents:
        document = await components["document_store"].get_document(imported.id)
        status = document.processing_status.value
        print(f"Document {document.id} ({document.original_filename}): {status}")
        if document.error_message:
            print(f"  Error: {document.error_message}")
        if status == "completed":
            completed += 1

    return 0 if not result.failed and completed == len(result.documents) else 1


async def _handle_reprocess(args: argparse.Namespace, components: dict[str, Any]) -> int:
    """Reprocess a document and wait for the background run to finish."""
    await components["ingestion_service"].reprocess(args.document)
    await components["worker_pool"].drain()

    document = await components["document_store"].get_document(args.document)
    print(f"Document {document.id}: {document.processing_status.value}")
    if document.error_message:
        print(f"  Error: {document.error_message}")
    return 0 if document.processing_status.value == "completed" else 1


async def _handle_query(args: argparse.Namespace, components: dict[str, Any]) -> int:
    """Print ranked context chunks for a project query."""
    context = await components["context_service"].get_context(
        project_id=args.project,
        query_text=args.text,
        max_chunks=args.max_chunks,
    )
    if not context.chunks:
        print("No matching context.")
        return 0

    print(f"\n{len(context.chunks)} chunks from documents {context.document_ids}\n")
    for rank, chunk in enumerate(context.chunks, start=1):
        source = chunk.document.filename if chunk.document else f"document {chunk.document_id}"
        page = f", p. {chunk.page_number}" if chunk.page_number is not None else ""
        print(f"{rank}. [{chunk.score:.3f}] {source}{page} (chunk {chunk.chunk_index})")
        preview = " ".join(chunk.text.split())[:200]
        print(f"   {preview}")
    return 0


async def _handle_delete(args: argparse.Namespace, components: dict[str, Any]) -> int:
    await components["ingestion_service"].delete_document(args.document)
    print(f"Deleted document {args.document}")
    return 0


def _print_ingestion_result(result: Any) -> None:
    """Pretty-print an IngestionResult to stdout."""
    if result.succeeded:
        print("\nIngestion complete:")
        print(f"  Document ID:   {result.document_id}")
        print(f"  Chunks:        {result.chunks_created}")
        print(f"  Pages:         {result.page_count}")
        print(f"  Extracted by:  {result.provider_used}")
        print(f"  Time:          {result.ingestion_time}s")
    else:
        print(f"\nIngestion failed for document {result.document_id}:")
        print(f"  Error: {result.error_message}")


async def _run(args: argparse.Namespace, app_settings: Settings) -> int:
    """Open the shared components, dispatch the subcommand, close everything."""
    from src.main import build_components, close_components, open_components
    from src.utils.errors import DocRAGError

    components = build_components(app_settings)
    await open_components(components)
    try:
        handler = _HANDLERS[args.command]
        return await handler(args, components)
    except DocRAGError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        await close_components(components)


_HANDLERS = {
    "pdf": _handle_pdf,
    "url": _handle_url,
    "reprocess": _handle_reprocess,
    "query": _handle_query,
    "delete": _handle_delete,
}


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the ingestion CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m src.cli.ingest",
        description="Ingest project PDFs and query the docrag index.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    pdf_parser = subparsers.add_parser("pdf", help="Register and ingest a PDF")
    pdf_parser.add_argument("--file", required=True, help="Path to the PDF file")
    pdf_parser.add_argument("--project", required=True, type=int, help="Owning project id")

    url_parser = subparsers.add_parser("url", help="Import and ingest PDFs by URL")
    url_parser.add_argument(
        "--url", required=True, action="append", help="PDF URL (repeat for several)"
    )
    url_parser.add_argument("--project", required=True, type=int, help="Owning project id")

    reprocess_parser = subparsers.add_parser("reprocess", help="Reprocess a document")
    reprocess_parser.add_argument("--document", required=True, type=int, help="Document id")

    query_parser = subparsers.add_parser("query", help="Query a project's documents")
    query_parser.add_argument("--project", required=True, type=int, help="Project id")
    query_parser.add_argument("--text", required=True, help="Natural-language query")
    query_parser.add_argument(
        "--max-chunks", type=int, default=5, help="Maximum chunks to return (default: 5)"
    )

    delete_parser = subparsers.add_parser("delete", help="Delete a document")
    delete_parser.add_argument("--document", required=True, type=int, help="Document id")

    return parser


def main(argv: list[str] | None = None) -> None:
    """Parse arguments and run the requested subcommand."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()
    sys.exit(asyncio.run(_run(args, app_settings)))


if __name__ == "__main__":
    main()
