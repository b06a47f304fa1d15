"""Document ingestion pipeline for the docrag index.

Orchestrates the pipeline: **extract -> chunk -> embed -> store**.

1. **Extract** (extraction_service.py / ExtractionService) -- PDF bytes to
   text through a provider fallback chain (hosted parsers first, PyMuPDF
   last).  Some providers also return ready-made chunk hints.

2. **Chunk** (chunker.py / TextChunker) -- fixed-size overlapping
   character windows, used when the extractor gave no hints.

3. **Embed** (via EmbeddingService) -- one vector per chunk, in order.

4. **Store** (via IDocumentStore and IVectorIndexProvider) -- chunk rows
   in SQLite, vectors in the document's namespace.

The IngestionService class drives all four stages and the document's
processing status.
"""

from src.services.ingestion.chunker import TextChunker, split_text
from src.services.ingestion.extraction_service import ExtractionService
from src.services.ingestion.ingestion_service import IngestionService

__all__ = [
    "ExtractionService",
    "IngestionService",
    "TextChunker",
    "split_text",
]
