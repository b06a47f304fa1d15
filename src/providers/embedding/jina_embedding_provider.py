"""Jina embeddings API provider.

OpenAI-style request body (``{"input": [...], "model": ...}``) and
response (``{"data": [{"embedding": [...]}]}``).  The API key is optional;
anonymous calls are rate-limited but work.
"""

from __future__ import annotations

import httpx

from src.providers.embedding.remote_embedding_provider import RemoteEmbeddingProvider


class JinaEmbeddingProvider(RemoteEmbeddingProvider):
    """Embedding provider backed by the Jina embeddings endpoint."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: str = "",
        model: str = "jina-embeddings-v3",
        url: str = "https://api.jina.ai/v1/embeddings",
        timeout: float = 30.0,
        retry_wait: float = 15.0,
    ) -> None:
        super().__init__(http_client, timeout=timeout, retry_wait=retry_wait)
        self._api_key = api_key
        self._model = model
        self._url = url

    def get_provider_name(self) -> str:
        return "jina_embedding"

    def is_available(self) -> bool:
        return bool(self._url)

    async def _send(self, text: str) -> httpx.Response:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return await self._http.post(
            self._url,
            headers=headers,
            json={"input": [text], "model": self._model},
            timeout=self._timeout,
        )
