"""ChromaDB vector index provider adapter.

Implements :class:`IVectorIndexProvider` with one ChromaDB collection per
namespace (one namespace per document), cosine distance, and
pre-computed embeddings.  Uses a ``PersistentClient`` on local disk, or an
``HttpClient`` when a ChromaDB server host is configured.

The client is created in :meth:`open` and dropped in :meth:`close`; every
other method raises :class:`VectorStoreError` when called outside that
window.
"""

from __future__ import annotations

import os
from typing import Any

# ChromaDB reads this at import time; Settings(anonymized_telemetry=False)
# below covers versions that ignore it.
os.environ.setdefault("ANONYMIZED_TELEMETRY", "False")

import chromadb
import structlog
from chromadb.errors import ChromaError

from src.interfaces.vector_index_provider import IVectorIndexProvider
from src.models.rag import VectorMatch, VectorRecord
from src.utils.errors import VectorStoreError

logger = structlog.get_logger(logger_name=__name__)

_PROVIDER_NAME = "chromadb"


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """Embedding function that is never called.

    Every upsert and query passes explicit vectors; this stops ChromaDB
    from loading its default ONNX model when a collection is opened.
    """

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError("docrag passes pre-computed embeddings")

    def name(self) -> str:
        return "noop_precomputed"


class ChromaDBVectorIndexProvider(IVectorIndexProvider):
    """Namespace-scoped vector index backed by ChromaDB.

    Parameters
    ----------
    persist_directory:
        On-disk location for the ``PersistentClient``.
    host, port:
        When *host* is non-empty an ``HttpClient`` is used instead.
    upsert_batch_size:
        Records per upsert call.
    delete_batch_size:
        Ids per delete call.
    """

    def __init__(
        self,
        persist_directory: str = "./data/chromadb",
        host: str = "",
        port: int = 8000,
        upsert_batch_size: int = 100,
        delete_batch_size: int = 1000,
    ) -> None:
        self._persist_directory = persist_directory
        self._host = host
        self._port = port
        self._upsert_batch_size = upsert_batch_size
        self._delete_batch_size = delete_batch_size
        self._client: Any = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> None:
        if self._client is not None:
            return
        settings = chromadb.config.Settings(anonymized_telemetry=False)
        try:
            if self._host:
                self._client = chromadb.HttpClient(
                    host=self._host, port=self._port, settings=settings
                )
            else:
                self._client = chromadb.PersistentClient(
                    path=self._persist_directory, settings=settings
                )
        except Exception as exc:
            raise VectorStoreError(
                message=f"Could not open ChromaDB client: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc
        logger.info(
            "chromadb_opened",
            mode="http" if self._host else "persistent",
            location=f"{self._host}:{self._port}" if self._host else self._persist_directory,
        )

    async def close(self) -> None:
        if self._client is None:
            return
        self._client = None
        logger.info("chromadb_closed")

    # ------------------------------------------------------------------
    # IVectorIndexProvider implementation
    # ------------------------------------------------------------------

    async def upsert(self, namespace: str, records: list[VectorRecord]) -> int:
        if not records:
            return 0
        collection = self._collection(namespace, create=True)

        written = 0
        batches_committed = 0
        for start in range(0, len(records), self._upsert_batch_size):
            batch = records[start : start + self._upsert_batch_size]
            try:
                collection.upsert(
                    ids=[r.id for r in batch],
                    embeddings=[r.values for r in batch],
                    metadatas=[r.metadata for r in batch],
                    documents=[str(r.metadata.get("text", "")) for r in batch],
                )
            except Exception as exc:
                logger.error(
                    "chromadb_upsert_batch_failed",
                    namespace=namespace,
                    batch=batches_committed,
                    batches_committed=batches_committed,
                    error=str(exc),
                )
                raise VectorStoreError(
                    message=f"Upsert failed after {batches_committed} batches: {exc}",
                    provider_name=_PROVIDER_NAME,
                    batches_committed=batches_committed,
                ) from exc
            written += len(batch)
            batches_committed += 1

        logger.info(
            "chromadb_upsert_complete",
            namespace=namespace,
            records=written,
            batches=batches_committed,
        )
        return written

    async def query(self, namespace: str, vector: list[float], top_k: int) -> list[VectorMatch]:
        collection = self._collection(namespace, create=False)
        if collection is None or top_k <= 0:
            return []

        try:
            count = collection.count()
            if count == 0:
                return []
            results = collection.query(
                query_embeddings=[vector],
                n_results=min(top_k, count),
                include=["metadatas", "distances"],
            )
        except Exception as exc:
            raise VectorStoreError(
                message=f"Query failed on {namespace}: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

        ids = results["ids"][0] if results.get("ids") else []
        metadatas = results["metadatas"][0] if results.get("metadatas") else [{}] * len(ids)
        distances = results["distances"][0] if results.get("distances") else [1.0] * len(ids)

        matches = [
            VectorMatch(
                id=vector_id,
                # Cosine distance lies in [0, 2]; clamp to a [0, 1] similarity.
                score=max(0.0, min(1.0, 1.0 - float(distance))),
                metadata=dict(meta or {}),
            )
            for vector_id, meta, distance in zip(ids, metadatas, distances, strict=True)
        ]
        matches.sort(key=lambda m: m.score, reverse=True)
        logger.debug(
            "chromadb_query",
            namespace=namespace,
            results_count=len(matches),
            top_score=matches[0].score if matches else 0.0,
        )
        return matches

    async def delete_many(self, namespace: str, ids: list[str]) -> None:
        if not ids:
            return
        collection = self._collection(namespace, create=False)
        if collection is None:
            return

        try:
            for start in range(0, len(ids), self._delete_batch_size):
                collection.delete(ids=ids[start : start + self._delete_batch_size])
            if collection.count() == 0:
                self._client.delete_collection(name=namespace)
        except Exception as exc:
            raise VectorStoreError(
                message=f"Delete failed on {namespace}: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

        logger.info("chromadb_delete_complete", namespace=namespace, ids=len(ids))

    def get_provider_name(self) -> str:
        return _PROVIDER_NAME

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _collection(self, namespace: str, create: bool) -> Any:
        """Return the collection for *namespace*, or ``None`` if absent and not created."""
        if self._client is None:
            raise VectorStoreError(
                message="Vector index used before open()",
                provider_name=_PROVIDER_NAME,
            )
        try:
            if create:
                return self._client.get_or_create_collection(
                    name=namespace,
                    metadata={"hnsw:space": "cosine"},
                    embedding_function=_NoopEmbeddingFunction(),
                )
            return self._client.get_collection(
                name=namespace, embedding_function=_NoopEmbeddingFunction()
            )
        except (ValueError, ChromaError) as exc:
            if create:
                raise VectorStoreError(
                    message=f"Could not open collection {namespace}: {exc}",
                    provider_name=_PROVIDER_NAME,
                ) from exc
            # get_collection raises for a namespace that was never written.
            return None
