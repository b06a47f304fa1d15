"""Unit tests for extraction provider adapters — LlamaParse, Jina segmenter, PyMuPDF.

Hosted providers are exercised against ``httpx.MockTransport`` handlers so
the full request/response path runs without network access.
"""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

from src.providers.extraction.jina_segmenter_provider import JinaSegmenterExtractionProvider
from src.providers.extraction.llamaparse_provider import LlamaParseExtractionProvider
from src.providers.extraction.pymupdf_provider import PyMuPDFExtractionProvider
from src.providers.extraction.remote_job_provider import normalize_text
from src.utils.errors import (
    ExtractionError,
    ExtractionTimeoutError,
    InsufficientContentError,
    ProviderUnavailableError,
)

_BASE_URL = "https://llama.test"
_PARSED_TEXT = "Parsed text from the hosted parser. " * 10


def _client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _llamaparse(client: httpx.AsyncClient, **overrides) -> LlamaParseExtractionProvider:
    options = {
        "api_key": "llx-test",
        "base_url": _BASE_URL,
        "poll_interval": 0,
        "max_poll_attempts": 3,
    }
    options.update(overrides)
    return LlamaParseExtractionProvider(client, **options)


def _llamaparse_handler(
    statuses: list[str],
    results: dict[str, httpx.Response] | None = None,
    seen: list[str] | None = None,
) -> Callable[[httpx.Request], httpx.Response]:
    """Route LlamaParse calls: upload, then *statuses* in order, then results."""
    remaining = list(statuses)
    results = results if results is not None else {
        "text": httpx.Response(200, text=_PARSED_TEXT, headers={"content-type": "text/plain"})
    }

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if seen is not None:
            seen.append(path)
        if path == "/api/parsing/upload":
            return httpx.Response(200, json={"id": "job-1"})
        if "/result/" in path:
            result_format = path.rsplit("/", 1)[-1]
            return results.get(result_format, httpx.Response(404, json={"detail": "missing"}))
        if path == "/api/parsing/job/job-1":
            status = remaining.pop(0) if remaining else "PENDING"
            body = {"status": status}
            if status == "ERROR":
                body["error"] = "corrupt PDF"
            return httpx.Response(200, json=body)
        return httpx.Response(404)

    return handler


# ======================================================================
# normalize_text
# ======================================================================


class TestNormalizeText:
    def test_line_endings_and_nul(self) -> None:
        assert normalize_text("  a\r\nb\rc\x00d  ") == "a\nb\ncd"


# ======================================================================
# LlamaParse
# ======================================================================


class TestLlamaParseProvider:
    def test_availability_depends_on_key(self) -> None:
        client = _client(lambda r: httpx.Response(200))
        assert _llamaparse(client).is_available() is True
        assert _llamaparse(client, api_key="").is_available() is False
        assert _llamaparse(client).get_provider_name() == "llamaparse"

    @pytest.mark.asyncio
    async def test_success_after_polling(self) -> None:
        seen: list[str] = []
        async with _client(_llamaparse_handler(["PENDING", "SUCCESS"], seen=seen)) as client:
            result = await _llamaparse(client).extract(b"%PDF-1.4", "paper.pdf")

        assert result.text == _PARSED_TEXT.strip()
        assert result.provider_name == "llamaparse"
        assert result.page_count == 1
        assert result.chunks == []
        assert seen.count("/api/parsing/job/job-1") == 2

    @pytest.mark.asyncio
    async def test_sends_bearer_token_and_text_result_type(self) -> None:
        captured: dict[str, httpx.Request] = {}
        inner = _llamaparse_handler(["SUCCESS"])

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/parsing/upload":
                captured["upload"] = request
            return inner(request)

        async with _client(handler) as client:
            await _llamaparse(client).extract(b"%PDF-1.4", "paper.pdf")

        upload = captured["upload"]
        assert upload.headers["Authorization"] == "Bearer llx-test"
        body = upload.read()
        assert b'name="result_type"' in body
        assert b"paper.pdf" in body

    @pytest.mark.asyncio
    async def test_times_out_after_max_polls(self) -> None:
        seen: list[str] = []
        handler = _llamaparse_handler(["PENDING"] * 10, seen=seen)
        async with _client(handler) as client:
            with pytest.raises(ExtractionTimeoutError):
                await _llamaparse(client, max_poll_attempts=3).extract(b"%PDF-1.4")

        assert seen.count("/api/parsing/job/job-1") == 3

    @pytest.mark.asyncio
    async def test_job_error_is_reported(self) -> None:
        async with _client(_llamaparse_handler(["ERROR"])) as client:
            with pytest.raises(ExtractionError, match="corrupt PDF"):
                await _llamaparse(client).extract(b"%PDF-1.4")

    @pytest.mark.asyncio
    async def test_short_result_is_insufficient(self) -> None:
        results = {
            "text": httpx.Response(200, text="tiny", headers={"content-type": "text/plain"})
        }
        async with _client(_llamaparse_handler(["SUCCESS"], results)) as client:
            with pytest.raises(InsufficientContentError):
                await _llamaparse(client).extract(b"%PDF-1.4")

    @pytest.mark.asyncio
    async def test_falls_back_to_markdown_result(self) -> None:
        results = {"markdown": httpx.Response(200, json={"markdown": _PARSED_TEXT})}
        async with _client(_llamaparse_handler(["SUCCESS"], results)) as client:
            result = await _llamaparse(client).extract(b"%PDF-1.4")

        assert result.text == _PARSED_TEXT.strip()

    @pytest.mark.asyncio
    async def test_falls_back_to_json_pages(self) -> None:
        pages = {"pages": [{"text": _PARSED_TEXT}, {"text": "page two " * 5}]}
        results = {"json": httpx.Response(200, json=pages)}
        async with _client(_llamaparse_handler(["SUCCESS"], results)) as client:
            result = await _llamaparse(client).extract(b"%PDF-1.4")

        assert "page two" in result.text

    @pytest.mark.asyncio
    async def test_all_result_endpoints_failing(self) -> None:
        async with _client(_llamaparse_handler(["SUCCESS"], results={})) as client:
            with pytest.raises(ExtractionError, match="All result endpoints failed"):
                await _llamaparse(client).extract(b"%PDF-1.4")

    @pytest.mark.asyncio
    async def test_submit_rejected(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"detail": "bad key"})

        async with _client(handler) as client:
            with pytest.raises(ProviderUnavailableError):
                await _llamaparse(client).extract(b"%PDF-1.4")

    @pytest.mark.asyncio
    async def test_submit_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("upload stalled", request=request)

        async with _client(handler) as client:
            with pytest.raises(ExtractionTimeoutError):
                await _llamaparse(client).extract(b"%PDF-1.4")

    @pytest.mark.asyncio
    async def test_failed_poll_costs_an_attempt(self) -> None:
        polls = {"count": 0}
        inner = _llamaparse_handler(["SUCCESS"])

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/parsing/job/job-1":
                polls["count"] += 1
                if polls["count"] == 1:
                    return httpx.Response(500)
            return inner(request)

        async with _client(handler) as client:
            result = await _llamaparse(client).extract(b"%PDF-1.4")

        assert polls["count"] == 2
        assert result.provider_name == "llamaparse"


# ======================================================================
# Jina segmenter
# ======================================================================


def _segments_response(segments: list[dict]) -> httpx.Response:
    return httpx.Response(200, json={"segments": segments})


class TestJinaSegmenterProvider:
    def test_availability(self) -> None:
        client = _client(lambda r: httpx.Response(200))
        assert JinaSegmenterExtractionProvider(client).is_available() is True
        assert JinaSegmenterExtractionProvider(client, enabled=False).is_available() is False
        assert JinaSegmenterExtractionProvider(client).get_provider_name() == "jina_segmenter"

    @pytest.mark.asyncio
    async def test_segments_become_chunk_hints(self) -> None:
        first = "Introduction to retrieval augmented generation and why it matters."
        short = "Figure 1"
        second = "Results show that overlapping windows improve answer grounding."
        segments = [
            {"content": first, "type": "paragraph", "metadata": {"page_number": 1}},
            {"content": short, "type": "caption", "metadata": {"page_number": 1}},
            {"content": second, "type": "paragraph", "metadata": {"page_number": 3}},
        ]
        async with _client(lambda r: _segments_response(segments)) as client:
            result = await JinaSegmenterExtractionProvider(client).extract(b"%PDF-1.4")

        assert result.text == "\n".join([first, short, second])
        assert result.page_count == 3
        assert result.provider_name == "jina_segmenter"
        assert [h.text for h in result.chunks] == [first, second]
        assert [h.page_number for h in result.chunks] == [1, 3]
        assert result.chunks[0].chunk_type == "paragraph"

    @pytest.mark.asyncio
    async def test_hint_offsets_index_into_joined_text(self) -> None:
        segments = [
            {"content": "A" * 60},
            {"content": "B" * 70},
            {"content": "C" * 80},
        ]
        async with _client(lambda r: _segments_response(segments)) as client:
            result = await JinaSegmenterExtractionProvider(client).extract(b"%PDF-1.4")

        for hint in result.chunks:
            assert result.text[hint.start_index:hint.end_index] == hint.text
        assert result.page_count == 1

    @pytest.mark.asyncio
    async def test_missing_segments_array(self) -> None:
        async with _client(lambda r: httpx.Response(200, json={"detail": "nope"})) as client:
            with pytest.raises(ProviderUnavailableError):
                await JinaSegmenterExtractionProvider(client).extract(b"%PDF-1.4")

    @pytest.mark.asyncio
    async def test_sends_auth_header_when_configured(self) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return _segments_response([{"content": "Z" * 150}])

        async with _client(handler) as client:
            await JinaSegmenterExtractionProvider(client, api_key="jina-key").extract(b"%PDF")

        assert captured[0].headers["Authorization"] == "Bearer jina-key"
        assert captured[0].method == "POST"

    @pytest.mark.asyncio
    async def test_too_little_text(self) -> None:
        segments = [{"content": "only a few words"}]
        async with _client(lambda r: _segments_response(segments)) as client:
            with pytest.raises(InsufficientContentError):
                await JinaSegmenterExtractionProvider(client).extract(b"%PDF-1.4")


# ======================================================================
# PyMuPDF
# ======================================================================


class TestPyMuPDFProvider:
    def test_always_available(self) -> None:
        provider = PyMuPDFExtractionProvider()
        assert provider.is_available() is True
        assert provider.get_provider_name() == "pymupdf"

    @pytest.mark.asyncio
    async def test_extracts_every_page(self, pdf_bytes: bytes) -> None:
        result = await PyMuPDFExtractionProvider().extract(pdf_bytes, "sample.pdf")

        assert result.page_count == 2
        assert "page one" in result.text
        assert "vector retrieval" in result.text
        assert result.provider_name == "pymupdf"
        assert result.chunks == []

    @pytest.mark.asyncio
    async def test_invalid_bytes_raise(self) -> None:
        with pytest.raises(ExtractionError):
            await PyMuPDFExtractionProvider().extract(b"definitely not a pdf", "broken.pdf")
