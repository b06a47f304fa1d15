# =============================================================================
# src/cli/__init__.py - CLI Module Overview
# =============================================================================
#
# Command-line tools for operating the docrag pipeline outside the web API.
#
#   INGESTION (ingest.py)
#      Registers and ingests local PDFs, reprocesses or deletes documents,
#      and prints ranked RAG context for a project query.
#
# Architecture Notes:
#   - argparse for argument parsing (not Click/Typer).
#   - Heavy imports (chromadb, PyMuPDF, FastAPI wiring) are deferred inside
#     functions to keep `--help` fast.
#   - The CLI reuses src.main.build_components rather than wiring its own
#     providers, so it always matches the deployed app's chains.
# =============================================================================

"""CLI tools for the docrag pipeline.

- ``python -m src.cli.ingest`` — ingest PDFs, reprocess, query and delete
  documents.
"""
