"""Unit tests for embedding provider adapters — HuggingFace, Jina, hashing.

Hosted providers run against ``httpx.MockTransport`` with ``retry_wait=0``
so the cold-model retry path executes without sleeping.
"""

from __future__ import annotations

import json
import math
from unittest.mock import MagicMock

import httpx
import pytest

from src.providers.embedding.hashing_embedding_provider import (
    HashingEmbeddingProvider,
    hashing_embedding,
)
from src.providers.embedding.huggingface_embedding_provider import HuggingFaceEmbeddingProvider
from src.providers.embedding.jina_embedding_provider import JinaEmbeddingProvider
from src.providers.embedding.remote_embedding_provider import parse_embedding_response
from src.utils.errors import EmbeddingError, ModelLoadingError


def _scripted_client(responses: list[httpx.Response], seen: list[httpx.Request]) -> httpx.AsyncClient:
    remaining = list(responses)

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return remaining.pop(0)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _huggingface(client: httpx.AsyncClient, **overrides) -> HuggingFaceEmbeddingProvider:
    options = {"api_token": "hf-test", "model": "org/model", "retry_wait": 0}
    options.update(overrides)
    return HuggingFaceEmbeddingProvider(client, **options)


# ======================================================================
# Response parsing
# ======================================================================


class TestParseEmbeddingResponse:
    @pytest.mark.parametrize(
        "payload",
        [
            [0.1, 0.2, 0.3],
            [[0.1, 0.2, 0.3]],
            {"data": [{"embedding": [0.1, 0.2, 0.3]}]},
            {"embedding": [0.1, 0.2, 0.3]},
        ],
    )
    def test_accepted_shapes(self, payload) -> None:
        assert parse_embedding_response(payload) == [0.1, 0.2, 0.3]

    def test_integers_become_floats(self) -> None:
        assert parse_embedding_response([1, 2]) == [1.0, 2.0]

    @pytest.mark.parametrize(
        "payload",
        [[], {}, {"data": []}, {"error": "x"}, "text", [["a", "b"]], [True, False]],
    )
    def test_rejected_shapes(self, payload) -> None:
        with pytest.raises(ValueError):
            parse_embedding_response(payload)


# ======================================================================
# HuggingFace
# ======================================================================


class TestHuggingFaceProvider:
    def test_availability_depends_on_token(self) -> None:
        client = MagicMock(spec=httpx.AsyncClient)
        assert _huggingface(client).is_available() is True
        assert _huggingface(client, api_token="").is_available() is False
        assert _huggingface(client).get_provider_name() == "huggingface"
        assert _huggingface(client).get_dimension() is None

    @pytest.mark.asyncio
    async def test_embed_posts_inputs_to_model_url(self) -> None:
        seen: list[httpx.Request] = []
        async with _scripted_client([httpx.Response(200, json=[[0.5, 0.25]])], seen) as client:
            vector = await _huggingface(client).embed("hello world")

        assert vector == [0.5, 0.25]
        request = seen[0]
        assert request.url.path.endswith("/org/model")
        assert request.headers["Authorization"] == "Bearer hf-test"
        assert json.loads(request.content)["inputs"] == "hello world"

    @pytest.mark.asyncio
    async def test_model_loading_retries_once(self) -> None:
        seen: list[httpx.Request] = []
        responses = [
            httpx.Response(503, json={"error": "Model is loading"}),
            httpx.Response(200, json=[0.1, 0.2]),
        ]
        async with _scripted_client(responses, seen) as client:
            vector = await _huggingface(client).embed("hello")

        assert vector == [0.1, 0.2]
        assert len(seen) == 2

    @pytest.mark.asyncio
    async def test_model_loading_twice_gives_up(self) -> None:
        seen: list[httpx.Request] = []
        responses = [httpx.Response(503), httpx.Response(503)]
        async with _scripted_client(responses, seen) as client:
            with pytest.raises(ModelLoadingError):
                await _huggingface(client).embed("hello")

        assert len(seen) == 2

    @pytest.mark.asyncio
    async def test_auth_failure_is_not_retried(self) -> None:
        seen: list[httpx.Request] = []
        async with _scripted_client([httpx.Response(401, text="bad token")], seen) as client:
            with pytest.raises(EmbeddingError, match="HTTP 401"):
                await _huggingface(client).embed("hello")

        assert len(seen) == 1

    @pytest.mark.asyncio
    async def test_malformed_body(self) -> None:
        seen: list[httpx.Request] = []
        async with _scripted_client([httpx.Response(200, json={"oops": 1})], seen) as client:
            with pytest.raises(EmbeddingError, match="Unrecognised"):
                await _huggingface(client).embed("hello")

    @pytest.mark.asyncio
    async def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(EmbeddingError, match="ConnectError"):
                await _huggingface(client).embed("hello")


# ======================================================================
# Jina
# ======================================================================


class TestJinaEmbeddingProvider:
    @pytest.mark.asyncio
    async def test_openai_style_body_and_response(self) -> None:
        seen: list[httpx.Request] = []
        response = httpx.Response(200, json={"data": [{"embedding": [0.3, 0.4]}]})
        async with _scripted_client([response], seen) as client:
            provider = JinaEmbeddingProvider(client, api_key="jina-key", model="m-1", retry_wait=0)
            vector = await provider.embed("query text")

        assert vector == [0.3, 0.4]
        body = json.loads(seen[0].content)
        assert body == {"input": ["query text"], "model": "m-1"}
        assert seen[0].headers["Authorization"] == "Bearer jina-key"

    @pytest.mark.asyncio
    async def test_anonymous_call_has_no_auth_header(self) -> None:
        seen: list[httpx.Request] = []
        response = httpx.Response(200, json={"data": [{"embedding": [1.0]}]})
        async with _scripted_client([response], seen) as client:
            await JinaEmbeddingProvider(client, retry_wait=0).embed("text")

        assert "Authorization" not in seen[0].headers

    def test_availability_depends_on_url(self) -> None:
        client = MagicMock(spec=httpx.AsyncClient)
        assert JinaEmbeddingProvider(client).is_available() is True
        assert JinaEmbeddingProvider(client, url="").is_available() is False


# ======================================================================
# Hashing fallback
# ======================================================================


class TestHashingEmbedding:
    def test_deterministic(self) -> None:
        text = "Transformers use attention to mix token representations."
        assert hashing_embedding(text, 64) == hashing_embedding(text, 64)

    def test_unit_norm(self) -> None:
        vector = hashing_embedding("retrieval augmented generation", 128)
        assert math.isclose(math.sqrt(sum(v * v for v in vector)), 1.0, rel_tol=1e-9)
        assert len(vector) == 128

    def test_short_words_only_give_zero_vector(self) -> None:
        assert hashing_embedding("a an of to", 32) == [0.0] * 32
        assert hashing_embedding("", 32) == [0.0] * 32

    def test_case_and_punctuation_are_ignored(self) -> None:
        assert hashing_embedding("Hello, World!", 64) == hashing_embedding("hello world", 64)

    def test_different_text_differs(self) -> None:
        assert hashing_embedding("neural networks", 64) != hashing_embedding("stock markets", 64)

    @pytest.mark.asyncio
    async def test_provider(self) -> None:
        provider = HashingEmbeddingProvider(dimension=32)
        vector = await provider.embed("some words here")

        assert len(vector) == 32
        assert provider.get_dimension() == 32
        assert provider.is_available() is True
        assert provider.get_provider_name() == "hashing"
