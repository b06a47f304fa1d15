"""Shared request/retry/parse logic for hosted embedding APIs.

Hosted inference endpoints answer HTTP 503 while a cold model loads.  That
is the one failure worth waiting for: the provider sleeps
``retry_wait`` seconds and tries exactly once more.  Every other failure
(auth, timeout, malformed body) is raised straight away so the embedding
service can move on to the next provider.
"""

from __future__ import annotations

import asyncio
from abc import abstractmethod
from typing import Any

import httpx
import structlog

from src.interfaces.embedding_provider import IEmbeddingProvider
from src.utils.errors import EmbeddingError, ModelLoadingError

logger = structlog.get_logger(logger_name=__name__)

_HTTP_SERVICE_UNAVAILABLE = 503


def parse_embedding_response(payload: Any) -> list[float]:
    """Return the vector from any of the response shapes embedding APIs use.

    Accepted shapes: ``[0.1, ...]``, ``[[0.1, ...]]``,
    ``{"data": [{"embedding": [...]}]}`` and ``{"embedding": [...]}``.

    Raises
    ------
    ValueError
        If *payload* matches none of them.
    """
    vector: Any = None
    if isinstance(payload, list) and payload:
        vector = payload[0] if isinstance(payload[0], list) else payload
    elif isinstance(payload, dict):
        data = payload.get("data")
        if isinstance(data, list) and data and isinstance(data[0], dict):
            vector = data[0].get("embedding")
        else:
            vector = payload.get("embedding")

    if not isinstance(vector, list) or not vector:
        raise ValueError("Unrecognised embedding response format")
    if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in vector):
        raise ValueError("Embedding contains non-numeric values")
    return [float(v) for v in vector]


class RemoteEmbeddingProvider(IEmbeddingProvider):
    """Base class for embedding providers reached over HTTP.

    Subclasses implement :meth:`_send`, which issues the request and returns
    the raw ``httpx.Response``; status handling and parsing live here.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        timeout: float = 30.0,
        retry_wait: float = 15.0,
    ) -> None:
        self._http = http_client
        self._timeout = timeout
        self._retry_wait = retry_wait

    async def embed(self, text: str) -> list[float]:
        try:
            return await self._embed_once(text)
        except ModelLoadingError:
            logger.info(
                "embedding_model_loading",
                provider=self.get_provider_name(),
                retry_in=self._retry_wait,
            )
            await asyncio.sleep(self._retry_wait)
            return await self._embed_once(text)

    def get_dimension(self) -> int | None:
        return None

    async def _embed_once(self, text: str) -> list[float]:
        name = self.get_provider_name()
        try:
            response = await self._send(text)
        except httpx.HTTPError as exc:
            raise EmbeddingError(
                message=f"Request failed: {type(exc).__name__}: {exc}",
                provider_name=name,
            ) from exc

        if response.status_code == _HTTP_SERVICE_UNAVAILABLE:
            raise ModelLoadingError(provider_name=name)
        if response.is_error:
            raise EmbeddingError(
                message=f"HTTP {response.status_code}: {response.text[:200]}",
                provider_name=name,
            )

        try:
            return parse_embedding_response(response.json())
        except ValueError as exc:
            raise EmbeddingError(message=str(exc), provider_name=name) from exc

    @abstractmethod
    async def _send(self, text: str) -> httpx.Response:
        """Issue the embedding request for *text*."""
