"""HuggingFace Inference API embedding provider.

Posts ``{"inputs": text}`` to the feature-extraction endpoint of a hosted
sentence-embedding model.  Requires ``HUGGINGFACE_API_TOKEN``.  Cold
models answer 503 while loading; the base class waits and retries once.
"""

from __future__ import annotations

import httpx

from src.providers.embedding.remote_embedding_provider import RemoteEmbeddingProvider


class HuggingFaceEmbeddingProvider(RemoteEmbeddingProvider):
    """Embedding provider backed by the HuggingFace inference API."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_token: str,
        model: str = "intfloat/e5-large-v2",
        base_url: str = "https://api-inference.huggingface.co/models",
        timeout: float = 60.0,
        retry_wait: float = 15.0,
    ) -> None:
        super().__init__(http_client, timeout=timeout, retry_wait=retry_wait)
        self._api_token = api_token
        self._model = model
        self._url = f"{base_url.rstrip('/')}/{model}"

    def get_provider_name(self) -> str:
        return "huggingface"

    def is_available(self) -> bool:
        return bool(self._api_token)

    async def _send(self, text: str) -> httpx.Response:
        return await self._http.post(
            self._url,
            headers={"Authorization": f"Bearer {self._api_token}"},
            json={"inputs": text, "options": {"wait_for_model": False}},
            timeout=self._timeout,
        )
