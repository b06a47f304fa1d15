"""LlamaParse hosted document parser adapter.

Uploads the PDF to LlamaCloud's parsing API, polls the job, and reads the
result.  The text result endpoint is tried first; when it is missing or
malformed the markdown endpoint and then the JSON endpoint are used.
Requires ``LLAMAPARSE_API_KEY`` (bearer token).
"""

from __future__ import annotations

import math
from typing import Any

import httpx
import structlog

from src.models.rag import ExtractionResult
from src.providers.extraction.remote_job_provider import (
    JobStatus,
    ParseJob,
    RemoteJobExtractionProvider,
)
from src.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)

# LlamaParse does not report a page count for text results.
_CHARS_PER_PAGE_ESTIMATE = 3000

_RESULT_FORMATS = ("text", "markdown", "json")


class LlamaParseExtractionProvider(RemoteJobExtractionProvider):
    """Extraction provider backed by the LlamaParse job API."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: str,
        base_url: str = "https://api.cloud.llamaindex.ai",
        submit_timeout: float = 120.0,
        poll_timeout: float = 30.0,
        poll_interval: float = 10.0,
        max_poll_attempts: int = 30,
        min_text_chars: int = 100,
    ) -> None:
        super().__init__(
            http_client,
            poll_interval=poll_interval,
            max_poll_attempts=max_poll_attempts,
            min_text_chars=min_text_chars,
        )
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._submit_timeout = submit_timeout
        self._poll_timeout = poll_timeout

    def get_provider_name(self) -> str:
        return "llamaparse"

    def is_available(self) -> bool:
        return bool(self._api_key)

    # ------------------------------------------------------------------
    # Job protocol
    # ------------------------------------------------------------------

    async def _submit(self, content: bytes, filename: str) -> ParseJob:
        response = await self._http.post(
            f"{self._base_url}/api/parsing/upload",
            headers=self._headers(),
            files={"file": (filename, content, "application/pdf")},
            data={"result_type": "text", "verbose": "true", "language": "en"},
            timeout=self._submit_timeout,
        )
        response.raise_for_status()
        job_id = str(response.json()["id"])
        return ParseJob(job_id=job_id, status=JobStatus.PENDING)

    async def _poll(self, job_id: str) -> ParseJob:
        response = await self._http.get(
            f"{self._base_url}/api/parsing/job/{job_id}",
            headers=self._headers(),
            timeout=self._poll_timeout,
        )
        response.raise_for_status()
        data = response.json()
        status = str(data.get("status", "")).upper()
        if status == "SUCCESS":
            return ParseJob(job_id=job_id, status=JobStatus.SUCCESS)
        if status == "ERROR":
            return ParseJob(
                job_id=job_id,
                status=JobStatus.ERROR,
                error=data.get("error") or data.get("error_message"),
            )
        return ParseJob(job_id=job_id, status=JobStatus.PENDING)

    async def _fetch(self, job: ParseJob) -> ExtractionResult:
        text: str | None = None
        for result_format in _RESULT_FORMATS:
            try:
                text = await self._fetch_format(job.job_id, result_format)
            except (httpx.HTTPError, ValueError) as exc:
                logger.debug(
                    "llamaparse_result_format_failed",
                    job_id=job.job_id,
                    result_format=result_format,
                    error=str(exc),
                )
                continue
            if text:
                break

        if not text:
            raise ExtractionError(
                message=f"All result endpoints failed for job {job.job_id}",
                provider_name=self.get_provider_name(),
            )

        return ExtractionResult(
            text=text,
            page_count=max(1, math.ceil(len(text) / _CHARS_PER_PAGE_ESTIMATE)),
        )

    async def _fetch_format(self, job_id: str, result_format: str) -> str | None:
        response = await self._http.get(
            f"{self._base_url}/api/parsing/job/{job_id}/result/{result_format}",
            headers=self._headers(),
            timeout=self._poll_timeout,
        )
        response.raise_for_status()
        content_type = response.headers.get("content-type", "")
        if "json" not in content_type:
            return response.text
        return _text_from_payload(response.json(), result_format)

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._api_key}"}


def _text_from_payload(payload: Any, result_format: str) -> str | None:
    """Pull text out of the shapes LlamaParse result endpoints return."""
    if isinstance(payload, str):
        return payload
    if isinstance(payload, list):
        parts = [_item_text(item) for item in payload]
        return "\n".join(p for p in parts if p)
    if isinstance(payload, dict):
        if isinstance(payload.get(result_format), str):
            return payload[result_format]
        for key in ("text", "content"):
            if isinstance(payload.get(key), str):
                return payload[key]
        pages = payload.get("pages")
        if isinstance(pages, list):
            parts = [_item_text(page) for page in pages]
            return "\n".join(p for p in parts if p)
    return None


def _item_text(item: Any) -> str:
    if isinstance(item, str):
        return item
    if isinstance(item, dict):
        for key in ("text", "md", "content", "value"):
            value = item.get(key)
            if isinstance(value, str):
                return value
    return ""
