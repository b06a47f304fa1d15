"""Shared pytest fixtures for the docrag test suite."""

from __future__ import annotations

import math
from pathlib import Path

import pytest
import pytest_asyncio

from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.extraction_provider import IExtractionProvider
from src.interfaces.vector_index_provider import IVectorIndexProvider
from src.models.document import NewDocument
from src.models.rag import ExtractionResult, VectorMatch, VectorRecord
from src.providers.document_store.sqlite_document_store import SQLiteDocumentStore
from src.providers.embedding.hashing_embedding_provider import hashing_embedding

_EMBEDDING_DIM = 16


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeExtractionProvider(IExtractionProvider):
    """Extraction provider returning a fixed result or raising a fixed error."""

    def __init__(
        self,
        name: str,
        result: ExtractionResult | None = None,
        error: Exception | None = None,
        available: bool = True,
    ) -> None:
        self._name = name
        self._result = result
        self._error = error
        self._available = available
        self.calls = 0

    async def extract(self, content: bytes, filename: str = "document.pdf") -> ExtractionResult:
        self.calls += 1
        if self._error is not None:
            raise self._error
        assert self._result is not None
        return self._result

    def get_provider_name(self) -> str:
        return self._name

    def is_available(self) -> bool:
        return self._available


class FakeEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by the hashing embedder, or a fixed error."""

    def __init__(
        self,
        name: str = "fake-embedding",
        dimension: int = _EMBEDDING_DIM,
        error: Exception | None = None,
        available: bool = True,
    ) -> None:
        self._name = name
        self._dimension = dimension
        self._error = error
        self._available = available
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self._error is not None:
            raise self._error
        return hashing_embedding(text, self._dimension)

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return self._name

    def is_available(self) -> bool:
        return self._available


class InMemoryVectorIndex(IVectorIndexProvider):
    """Dict-backed vector index with cosine scoring.

    ``fail_deletes`` makes every delete raise, for best-effort deletion tests.
    ``scripted`` maps a namespace to the matches a query returns verbatim.
    """

    def __init__(self) -> None:
        self.namespaces: dict[str, dict[str, VectorRecord]] = {}
        self.scripted: dict[str, list[VectorMatch]] = {}
        self.fail_deletes = False
        self.opened = False
        self.queries: list[tuple[str, int]] = []

    async def open(self) -> None:
        self.opened = True

    async def close(self) -> None:
        self.opened = False

    async def upsert(self, namespace: str, records: list[VectorRecord]) -> int:
        bucket = self.namespaces.setdefault(namespace, {})
        for record in records:
            bucket[record.id] = record
        return len(records)

    async def query(self, namespace: str, vector: list[float], top_k: int) -> list[VectorMatch]:
        self.queries.append((namespace, top_k))
        if namespace in self.scripted:
            return self.scripted[namespace][:top_k]
        matches = [
            VectorMatch(id=r.id, score=max(0.0, _cosine(vector, r.values)), metadata=r.metadata)
            for r in self.namespaces.get(namespace, {}).values()
        ]
        matches.sort(key=lambda m: m.score, reverse=True)
        return matches[:top_k]

    async def delete_many(self, namespace: str, ids: list[str]) -> None:
        if self.fail_deletes:
            raise RuntimeError("index unreachable")
        bucket = self.namespaces.get(namespace, {})
        for vector_id in ids:
            bucket.pop(vector_id, None)

    def get_provider_name(self) -> str:
        return "memory"

    def ids(self, namespace: str) -> set[str]:
        return set(self.namespaces.get(namespace, {}))


def _cosine(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def embedding_dim() -> int:
    return _EMBEDDING_DIM


@pytest_asyncio.fixture
async def document_store(tmp_path: Path) -> SQLiteDocumentStore:
    """Initialised SQLite document store in a temporary directory."""
    store = SQLiteDocumentStore(db_path=tmp_path / "documents.db")
    await store.initialize()
    return store


@pytest.fixture
def vector_index() -> InMemoryVectorIndex:
    return InMemoryVectorIndex()


@pytest.fixture
def sample_text() -> str:
    """About 2,400 characters of prose-like text in distinct paragraphs."""
    paragraphs = [
        f"Paragraph {i} discusses attention mechanisms, residual streams and "
        f"layer normalisation in transformer model number {i}. "
        for i in range(20)
    ]
    return "\n\n".join(paragraphs)


def make_new_document(
    project_id: int = 1,
    filename: str = "paper.pdf",
    file_path: str | None = None,
    namespace: str | None = None,
) -> NewDocument:
    return NewDocument(
        project_id=project_id,
        filename=filename,
        original_filename=filename,
        file_path=file_path,
        file_size=1234,
        namespace=namespace,
    )


@pytest.fixture
def new_document_factory():
    """Return the :func:`make_new_document` helper."""
    return make_new_document


@pytest.fixture
def pdf_bytes() -> bytes:
    """A two-page PDF with real text, built with PyMuPDF."""
    import fitz

    doc = fitz.open()
    first = doc.new_page()
    first.insert_text((72, 72), "Hello world from page one of the sample document.")
    second = doc.new_page()
    second.insert_text((72, 72), "Second page talks about vector retrieval.")
    data = doc.tobytes()
    doc.close()
    return data
