"""Relational document and chunk metadata stores."""

from src.providers.document_store.sqlite_document_store import SQLiteDocumentStore, make_namespace

__all__ = ["SQLiteDocumentStore", "make_namespace"]
