"""Shared submit → poll → fetch protocol for hosted document parsers.

Hosted parsers accept an upload, hand back a job id, and expose a status
endpoint to poll until the job finishes.  :class:`RemoteJobExtractionProvider`
owns that loop so concrete adapters only implement three small hooks:

* ``_submit``  — upload the PDF, return a :class:`ParseJob`
* ``_poll``    — fetch the current :class:`ParseJob` for an id
* ``_fetch``   — turn a finished job into an :class:`ExtractionResult`

A service that answers synchronously returns an already-finished job from
``_submit`` and the loop skips polling entirely.

The loop is bounded: at most ``max_poll_attempts`` polls, ``poll_interval``
seconds apart.  A provider is abandoned when the submit fails, the job
reports an error, the attempts run out, or the fetched text is shorter than
``min_text_chars`` after normalisation.
"""

from __future__ import annotations

import asyncio
from abc import abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx
import structlog

from src.interfaces.extraction_provider import IExtractionProvider
from src.models.rag import ExtractionResult
from src.utils.errors import (
    ExtractionError,
    ExtractionTimeoutError,
    InsufficientContentError,
    ProviderUnavailableError,
)

logger = structlog.get_logger(logger_name=__name__)


class JobStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class ParseJob:
    """Snapshot of a remote parsing job."""

    job_id: str
    status: JobStatus
    error: str | None = None
    payload: Any = None


def normalize_text(text: str) -> str:
    """Normalise line endings, drop NUL bytes and strip surrounding whitespace."""
    return text.replace("\r\n", "\n").replace("\r", "\n").replace("\x00", "").strip()


class RemoteJobExtractionProvider(IExtractionProvider):
    """Base class for hosted parsers speaking a submit/poll/fetch job protocol.

    Parameters
    ----------
    http_client:
        Shared ``httpx.AsyncClient`` owned by the composition root.
    poll_interval:
        Seconds to wait before each status poll.
    max_poll_attempts:
        Maximum number of status polls before giving up.
    min_text_chars:
        Minimum normalised text length for a result to be accepted.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        poll_interval: float = 10.0,
        max_poll_attempts: int = 30,
        min_text_chars: int = 100,
    ) -> None:
        self._http = http_client
        self._poll_interval = poll_interval
        self._max_poll_attempts = max_poll_attempts
        self._min_text_chars = min_text_chars

    # ------------------------------------------------------------------
    # IExtractionProvider implementation
    # ------------------------------------------------------------------

    async def extract(self, content: bytes, filename: str = "document.pdf") -> ExtractionResult:
        name = self.get_provider_name()
        try:
            job = await self._submit(content, filename)
        except httpx.TimeoutException as exc:
            raise ExtractionTimeoutError(
                message=f"Upload timed out: {exc}", provider_name=name
            ) from exc
        except (httpx.HTTPError, KeyError, ValueError) as exc:
            raise ProviderUnavailableError(
                message=f"Upload failed: {exc}", provider_name=name
            ) from exc

        logger.info("extraction_job_submitted", provider=name, job_id=job.job_id)
        job = await self._wait_for_job(job)

        if job.status is JobStatus.ERROR:
            raise ExtractionError(
                message=f"Processing failed: {job.error or 'Unknown error'}",
                provider_name=name,
            )

        try:
            result = await self._fetch(job)
        except httpx.HTTPError as exc:
            raise ProviderUnavailableError(
                message=f"Result fetch failed: {exc}", provider_name=name
            ) from exc

        text = normalize_text(result.text)
        if len(text) < self._min_text_chars:
            raise InsufficientContentError(
                message=(
                    f"Returned insufficient text ({len(text)} chars, "
                    f"need {self._min_text_chars})"
                ),
                provider_name=name,
            )
        return result.model_copy(update={"text": text, "provider_name": name})

    # ------------------------------------------------------------------
    # Polling loop
    # ------------------------------------------------------------------

    async def _wait_for_job(self, job: ParseJob) -> ParseJob:
        """Poll until *job* leaves the pending state or attempts run out."""
        name = self.get_provider_name()
        attempts = 0
        while job.status is JobStatus.PENDING:
            if attempts >= self._max_poll_attempts:
                raise ExtractionTimeoutError(
                    message=f"Job {job.job_id} timed out after {attempts} polls",
                    provider_name=name,
                )
            await asyncio.sleep(self._poll_interval)
            attempts += 1
            try:
                job = await self._poll(job.job_id)
            except (httpx.HTTPError, KeyError, ValueError) as exc:
                # A failed poll costs an attempt but does not abandon the job.
                logger.warning(
                    "extraction_poll_failed",
                    provider=name,
                    job_id=job.job_id,
                    attempt=attempts,
                    error=str(exc),
                )
        logger.debug(
            "extraction_job_finished",
            provider=name,
            job_id=job.job_id,
            status=job.status.value,
            polls=attempts,
        )
        return job

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    @abstractmethod
    async def _submit(self, content: bytes, filename: str) -> ParseJob:
        """Upload *content* and return the created job."""

    @abstractmethod
    async def _poll(self, job_id: str) -> ParseJob:
        """Return the current state of job *job_id*."""

    @abstractmethod
    async def _fetch(self, job: ParseJob) -> ExtractionResult:
        """Return the extraction result of a finished job."""
