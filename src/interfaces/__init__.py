"""Public interface definitions for all external service providers.

Every external service in the docrag pipeline (document parsers, embedding
APIs, the vector index, the relational store) is accessed exclusively
through the abstract base classes defined in this package.  Concrete
adapters implement these interfaces and are injected at runtime by
``src/main.py``, so fallback chains can try several backends in priority
order and unit tests can inject fakes without real API calls.

CONCRETE PROVIDER MAP:
    Interface                  →  Concrete implementations (in src/providers/)
    ─────────────────────────────────────────────────────────────────────
    IExtractionProvider        →  LlamaParseExtractionProvider,
                                  JinaSegmenterExtractionProvider,
                                  PyMuPDFExtractionProvider
    IEmbeddingProvider         →  HuggingFaceEmbeddingProvider,
                                  JinaEmbeddingProvider,
                                  HashingEmbeddingProvider
    IVectorIndexProvider       →  ChromaDBVectorIndexProvider
    IDocumentStore             →  SQLiteDocumentStore
"""

from src.interfaces.document_store import IDocumentStore
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.extraction_provider import IExtractionProvider
from src.interfaces.vector_index_provider import IVectorIndexProvider

__all__ = [
    "IDocumentStore",
    "IEmbeddingProvider",
    "IExtractionProvider",
    "IVectorIndexProvider",
]
