"""Application settings loaded from environment variables via pydantic-settings.

Values are read from two sources, in priority order:

  1. Environment variables, e.g. ``LLAMAPARSE_API_KEY=llx-...``
  2. A ``.env`` file in the working directory (local development)

Field ``llamaparse_api_key`` maps to env var ``LLAMAPARSE_API_KEY``.
Defaults apply when neither source defines a field.  An empty API key means
"not configured": the composition root in ``src/main.py`` leaves that
provider out of its chain.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """docrag application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Extraction providers (priority: LlamaParse -> Jina segmenter -> local) ===
    llamaparse_api_key: str = ""
    llamaparse_base_url: str = "https://api.cloud.llamaindex.ai"
    jina_segmenter_enabled: bool = True
    jina_segmenter_url: str = "https://segment.jina.ai/"
    extraction_poll_interval: float = 10.0  # seconds between job status polls
    extraction_max_poll_attempts: int = 30  # 30 x 10 s = 5 minutes
    extraction_submit_timeout: float = 120.0
    extraction_poll_timeout: float = 30.0
    segmenter_timeout: float = 60.0
    extraction_min_text_chars: int = 100

    # === Embedding providers (priority: HuggingFace -> Jina -> hashing) ===
    huggingface_api_token: str = ""
    huggingface_base_url: str = "https://api-inference.huggingface.co/models"
    huggingface_embedding_model: str = "intfloat/e5-large-v2"
    huggingface_timeout: float = 60.0
    jina_api_key: str = ""
    jina_embedding_url: str = "https://api.jina.ai/v1/embeddings"
    jina_embedding_model: str = "jina-embeddings-v3"
    jina_embedding_timeout: float = 30.0
    # Every vector written to or queried from the index has this length.
    embedding_dimension: int = Field(default=1024, gt=0)
    embedding_retry_wait: float = 15.0  # wait before the single 503 retry
    embedding_max_chars: int = 500  # input ceiling for chunks and queries
    embedding_delay_seconds: float = 0.2  # pacing between chunk embeddings

    # === Chunking ===
    chunk_size: int = Field(default=1000, gt=0)
    chunk_overlap: int = Field(default=200, ge=0)
    min_chunk_chars: int = 50

    # === Vector index (ChromaDB) ===
    # When chromadb_host is set an HttpClient is used, otherwise a
    # PersistentClient rooted at chromadb_persist_dir.
    chromadb_persist_dir: str = "./data/chromadb"
    chromadb_host: str = ""
    chromadb_port: int = 8000
    vector_upsert_batch_size: int = 100
    vector_delete_batch_size: int = 1000

    # === Document / chunk metadata store ===
    document_db_path: str = "data/documents.db"
    text_cache_chars: int = 5000

    # === URL import ===
    url_import_timeout: float = 30.0
    url_import_max_bytes: int = Field(default=50 * 1024 * 1024, gt=0)  # 50 MB
    url_import_max_urls: int = Field(default=10, gt=0)  # per request

    # === Retrieval ===
    rag_max_chunks: int = 5
    rag_min_score: float = 0.3

    # === Background ingestion ===
    ingestion_concurrency: int = Field(default=2, gt=0)

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    @model_validator(mode="after")
    def _check_chunk_window(self) -> "Settings":
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"chunk_overlap ({self.chunk_overlap}) must be smaller than "
                f"chunk_size ({self.chunk_size})"
            )
        return self

