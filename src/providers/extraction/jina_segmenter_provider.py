"""Jina document segmenter adapter.

The segmenter answers the upload synchronously with the document already
split into typed segments, so the submitted job is finished on arrival and
no polling happens.  Segments become the document's chunk hints; the
chunker does not run for documents extracted here.
"""

from __future__ import annotations

from typing import Any

import httpx

from src.models.rag import ChunkCandidate, ExtractionResult
from src.providers.extraction.remote_job_provider import (
    JobStatus,
    ParseJob,
    RemoteJobExtractionProvider,
)
from src.utils.errors import ExtractionError


class JinaSegmenterExtractionProvider(RemoteJobExtractionProvider):
    """Extraction provider backed by the Jina segmenter endpoint.

    Parameters
    ----------
    url:
        Segmenter endpoint.
    api_key:
        Optional bearer token.
    min_chunk_chars:
        Segments whose trimmed text is not longer than this are dropped
        from the chunk hints (they still contribute to the full text).
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        url: str = "https://segment.jina.ai/",
        api_key: str = "",
        timeout: float = 60.0,
        min_text_chars: int = 100,
        min_chunk_chars: int = 50,
        enabled: bool = True,
    ) -> None:
        super().__init__(http_client, min_text_chars=min_text_chars)
        self._url = url
        self._api_key = api_key
        self._timeout = timeout
        self._min_chunk_chars = min_chunk_chars
        self._enabled = enabled

    def get_provider_name(self) -> str:
        return "jina_segmenter"

    def is_available(self) -> bool:
        return self._enabled and bool(self._url)

    async def _submit(self, content: bytes, filename: str) -> ParseJob:
        headers = {"Accept": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        response = await self._http.post(
            self._url,
            headers=headers,
            files={"file": (filename, content, "application/pdf")},
            timeout=self._timeout,
        )
        response.raise_for_status()
        data = response.json()
        segments = data.get("segments") if isinstance(data, dict) else None
        if not isinstance(segments, list):
            raise ValueError("Response has no segments array")
        return ParseJob(job_id="inline", status=JobStatus.SUCCESS, payload=segments)

    async def _poll(self, job_id: str) -> ParseJob:
        # Never reached: _submit always returns a finished job.
        raise ExtractionError(
            message="Segmenter jobs complete on submit",
            provider_name=self.get_provider_name(),
        )

    async def _fetch(self, job: ParseJob) -> ExtractionResult:
        segments: list[dict[str, Any]] = [s for s in job.payload if isinstance(s, dict)]

        texts: list[str] = []
        hints: list[ChunkCandidate] = []
        max_page = 0
        offset = 0
        for segment in segments:
            content = str(segment.get("content") or "")
            page_number = _page_number(segment)
            if page_number is not None:
                max_page = max(max_page, page_number)

            trimmed = content.strip()
            if len(trimmed) > self._min_chunk_chars:
                hints.append(
                    ChunkCandidate(
                        text=trimmed,
                        start_index=offset,
                        end_index=offset + len(content),
                        length=len(trimmed),
                        page_number=page_number,
                        chunk_type=str(segment.get("type") or "text"),
                    )
                )
            texts.append(content)
            # Segments are joined with a single newline below.
            offset += len(content) + 1

        return ExtractionResult(
            text="\n".join(texts),
            page_count=max_page or 1,
            chunks=hints,
        )


def _page_number(segment: dict[str, Any]) -> int | None:
    metadata = segment.get("metadata")
    if not isinstance(metadata, dict):
        return None
    value = metadata.get("page_number")
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None
