"""SQLite-backed document and chunk metadata store.

Persists ``project_documents`` and ``document_chunks`` rows to a local
SQLite database (default ``data/documents.db``) using ``aiosqlite`` for
async I/O.  Each operation opens its own connection; foreign keys are
switched on per connection so deleting a document cascades to its chunks.

Status changes are single conditional ``UPDATE`` statements
(``... WHERE id = ? AND processing_status = ?``), so two concurrent
callers cannot both move the same document out of a state.
"""

from __future__ import annotations

import json
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from src.interfaces.document_store import IDocumentStore
from src.models.document import (
    Document,
    NewDocument,
    ProcessingStatus,
    can_reprocess,
    can_transition,
)
from src.models.rag import StoredChunk
from src.utils.errors import (
    DocumentAlreadyProcessingError,
    DocumentNotFoundError,
    DocumentStoreError,
    InvalidStatusTransition,
)

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/documents.db")

_NOW = "strftime('%Y-%m-%dT%H:%M:%fZ', 'now')"

_CREATE_DOCUMENTS_SQL = f"""\
CREATE TABLE IF NOT EXISTS project_documents (
    id                 INTEGER PRIMARY KEY AUTOINCREMENT,
    project_id         INTEGER NOT NULL,
    filename           TEXT    NOT NULL,
    original_filename  TEXT    NOT NULL,
    file_path          TEXT,
    file_url           TEXT,
    file_size          INTEGER NOT NULL DEFAULT 0,
    mime_type          TEXT    NOT NULL DEFAULT 'application/pdf',
    upload_type        TEXT    NOT NULL DEFAULT 'file',
    uploaded_by        INTEGER,
    namespace          TEXT    NOT NULL,
    processing_status  TEXT    NOT NULL DEFAULT 'pending',
    error_message      TEXT,
    text_content       TEXT,
    page_count         INTEGER,
    upload_date        TEXT    NOT NULL DEFAULT ({_NOW}),
    processed_date     TEXT
);
"""

_CREATE_CHUNKS_SQL = """\
CREATE TABLE IF NOT EXISTS document_chunks (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    document_id   INTEGER NOT NULL REFERENCES project_documents(id) ON DELETE CASCADE,
    chunk_index   INTEGER NOT NULL,
    chunk_text    TEXT    NOT NULL,
    chunk_tokens  INTEGER NOT NULL,
    page_number   INTEGER,
    embedding_id  TEXT    NOT NULL,
    metadata      TEXT    NOT NULL DEFAULT '{}',
    UNIQUE(document_id, chunk_index)
);
"""

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_documents_project ON project_documents(project_id);",
    "CREATE INDEX IF NOT EXISTS idx_documents_project_status "
    "ON project_documents(project_id, processing_status);",
    "CREATE INDEX IF NOT EXISTS idx_chunks_document ON document_chunks(document_id);",
]

_DOCUMENT_COLUMNS = (
    "id, project_id, filename, original_filename, file_path, file_url, file_size, "
    "mime_type, upload_type, uploaded_by, namespace, processing_status, error_message, "
    "text_content, page_count, upload_date, processed_date"
)

_INSERT_DOCUMENT_SQL = """\
INSERT INTO project_documents (
    project_id, filename, original_filename, file_path, file_url,
    file_size, mime_type, upload_type, uploaded_by, namespace
)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

_INSERT_CHUNK_SQL = """\
INSERT INTO document_chunks (
    document_id, chunk_index, chunk_text, chunk_tokens,
    page_number, embedding_id, metadata
)
VALUES (?, ?, ?, ?, ?, ?, ?);
"""


def make_namespace(project_id: int) -> str:
    """Return a fresh namespace for a new document of *project_id*."""
    return f"project_{project_id}_doc_{time.time_ns() // 1_000_000}"


class SQLiteDocumentStore(IDocumentStore):
    """SQLite-backed persistence for documents and their chunks."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the tables and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with self._connect() as db:
            await db.execute(_CREATE_DOCUMENTS_SQL)
            await db.execute(_CREATE_CHUNKS_SQL)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("document_db_initialized", path=str(self._db_path))

    async def close(self) -> None:
        # Connections are per operation; nothing is held open.
        logger.debug("document_db_closed", path=str(self._db_path))

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def create_document(self, new_document: NewDocument) -> Document:
        namespace = new_document.namespace or make_namespace(new_document.project_id)
        try:
            async with self._connect() as db:
                cursor = await db.execute(
                    _INSERT_DOCUMENT_SQL,
                    (
                        new_document.project_id,
                        new_document.filename,
                        new_document.original_filename,
                        new_document.file_path,
                        new_document.file_url,
                        new_document.file_size,
                        new_document.mime_type,
                        new_document.upload_type.value,
                        new_document.uploaded_by,
                        namespace,
                    ),
                )
                document_id = cursor.lastrowid
                await db.commit()
        except aiosqlite.Error as exc:
            raise DocumentStoreError(
                message=f"Failed to create document: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info(
            "document_created",
            document_id=document_id,
            project_id=new_document.project_id,
            namespace=namespace,
        )
        return await self.get_document(document_id)

    async def get_document(self, document_id: int) -> Document:
        async with self._connect() as db:
            cursor = await db.execute(
                f"SELECT {_DOCUMENT_COLUMNS} FROM project_documents WHERE id = ?",
                (document_id,),
            )
            row = await cursor.fetchone()
        if row is None:
            raise DocumentNotFoundError(
                message=f"Document {document_id} not found",
                provider_name=self.get_provider_name(),
            )
        return self._row_to_document(row)

    async def list_project_documents(self, project_id: int) -> list[Document]:
        async with self._connect() as db:
            cursor = await db.execute(
                f"SELECT {_DOCUMENT_COLUMNS} FROM project_documents "
                "WHERE project_id = ? ORDER BY upload_date DESC, id DESC",
                (project_id,),
            )
            rows = await cursor.fetchall()
        return [self._row_to_document(r) for r in rows]

    async def get_documents(self, document_ids: list[int]) -> dict[int, Document]:
        if not document_ids:
            return {}
        placeholders = ", ".join("?" for _ in document_ids)
        async with self._connect() as db:
            cursor = await db.execute(
                f"SELECT {_DOCUMENT_COLUMNS} FROM project_documents "
                f"WHERE id IN ({placeholders})",
                tuple(document_ids),
            )
            rows = await cursor.fetchall()
        documents = [self._row_to_document(r) for r in rows]
        return {d.id: d for d in documents}

    async def get_completed_namespaces(self, project_id: int) -> list[str]:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT DISTINCT namespace FROM project_documents "
                "WHERE project_id = ? AND processing_status = ? ORDER BY namespace",
                (project_id, ProcessingStatus.COMPLETED.value),
            )
            rows = await cursor.fetchall()
        return [r["namespace"] for r in rows]

    async def delete_document(self, document_id: int) -> None:
        async with self._connect() as db:
            cursor = await db.execute(
                "DELETE FROM project_documents WHERE id = ?", (document_id,)
            )
            await db.commit()
            deleted = cursor.rowcount
        if deleted == 0:
            raise DocumentNotFoundError(
                message=f"Document {document_id} not found",
                provider_name=self.get_provider_name(),
            )
        logger.info("document_deleted", document_id=document_id)

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    async def mark_processing(self, document_id: int) -> Document:
        return await self._transition(
            document_id,
            target=ProcessingStatus.PROCESSING,
            assignments="processing_status = ?",
            params=(ProcessingStatus.PROCESSING.value,),
        )

    async def mark_completed(
        self, document_id: int, text_content: str, page_count: int
    ) -> Document:
        return await self._transition(
            document_id,
            target=ProcessingStatus.COMPLETED,
            assignments=(
                "processing_status = ?, text_content = ?, page_count = ?, "
                f"error_message = NULL, processed_date = {_NOW}"
            ),
            params=(ProcessingStatus.COMPLETED.value, text_content, page_count),
        )

    async def mark_failed(self, document_id: int, error_message: str) -> Document:
        return await self._transition(
            document_id,
            target=ProcessingStatus.FAILED,
            assignments="processing_status = ?, error_message = ?",
            params=(ProcessingStatus.FAILED.value, error_message),
        )

    async def reset_to_pending(self, document_id: int) -> Document:
        sources = [s.value for s in ProcessingStatus if can_reprocess(s)]
        placeholders = ", ".join("?" for _ in sources)
        async with self._connect() as db:
            cursor = await db.execute(
                "UPDATE project_documents SET processing_status = ?, error_message = NULL "
                f"WHERE id = ? AND processing_status IN ({placeholders})",
                (ProcessingStatus.PENDING.value, document_id, *sources),
            )
            await db.commit()
            updated = cursor.rowcount

        if updated == 0:
            # Raises DocumentNotFoundError when the row is missing.
            await self.get_document(document_id)
            raise DocumentAlreadyProcessingError(
                message=f"Document {document_id} is already being processed",
                provider_name=self.get_provider_name(),
            )
        logger.info("document_reset_to_pending", document_id=document_id)
        return await self.get_document(document_id)

    async def _transition(
        self,
        document_id: int,
        target: ProcessingStatus,
        assignments: str,
        params: tuple[Any, ...],
    ) -> Document:
        sources = [s.value for s in ProcessingStatus if can_transition(s, target)]
        placeholders = ", ".join("?" for _ in sources)
        async with self._connect() as db:
            cursor = await db.execute(
                f"UPDATE project_documents SET {assignments} "
                f"WHERE id = ? AND processing_status IN ({placeholders})",
                (*params, document_id, *sources),
            )
            await db.commit()
            updated = cursor.rowcount

        if updated == 0:
            current = await self.get_document(document_id)
            raise InvalidStatusTransition(
                message=(
                    f"Document {document_id} cannot move from "
                    f"{current.processing_status.value} to {target.value}"
                ),
                provider_name=self.get_provider_name(),
            )
        logger.debug(
            "document_status_changed",
            document_id=document_id,
            from_status=sources,
            to_status=target.value,
        )
        return await self.get_document(document_id)

    # ------------------------------------------------------------------
    # Chunks
    # ------------------------------------------------------------------

    async def insert_chunks(self, chunks: list[StoredChunk]) -> int:
        if not chunks:
            return 0
        rows = [
            (
                c.document_id,
                c.chunk_index,
                c.chunk_text,
                c.chunk_tokens,
                c.page_number,
                c.embedding_id,
                json.dumps(c.metadata),
            )
            for c in chunks
        ]
        try:
            async with self._connect() as db:
                await db.executemany(_INSERT_CHUNK_SQL, rows)
                await db.commit()
        except aiosqlite.Error as exc:
            raise DocumentStoreError(
                message=f"Failed to insert chunks: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return len(rows)

    async def get_chunks(self, document_id: int) -> list[StoredChunk]:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT document_id, chunk_index, chunk_text, chunk_tokens, page_number, "
                "embedding_id, metadata FROM document_chunks "
                "WHERE document_id = ? ORDER BY chunk_index",
                (document_id,),
            )
            rows = await cursor.fetchall()
        return [
            StoredChunk(**{**dict(r), "metadata": json.loads(r["metadata"] or "{}")})
            for r in rows
        ]

    async def get_embedding_ids(self, document_id: int) -> list[str]:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT embedding_id FROM document_chunks "
                "WHERE document_id = ? ORDER BY chunk_index",
                (document_id,),
            )
            rows = await cursor.fetchall()
        return [r["embedding_id"] for r in rows]

    async def delete_chunks(self, document_id: int) -> int:
        async with self._connect() as db:
            cursor = await db.execute(
                "DELETE FROM document_chunks WHERE document_id = ?", (document_id,)
            )
            await db.commit()
            return cursor.rowcount

    def get_provider_name(self) -> str:
        return "sqlite"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            # Per-connection setting; required for ON DELETE CASCADE.
            await db.execute("PRAGMA foreign_keys = ON")
            yield db

    @staticmethod
    def _row_to_document(row: aiosqlite.Row) -> Document:
        return Document(**dict(row))
