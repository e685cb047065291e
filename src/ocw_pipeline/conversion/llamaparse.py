"""PDF -> markdown via the LlamaParse v2 upload-then-poll API."""

from __future__ import annotations

import asyncio
import json
import time
from typing import Any

import httpx
import structlog

from ocw_pipeline.config import Settings
from ocw_pipeline.conversion.rate_limiter import (
    ClockFunc,
    SleepFunc,
    SlidingWindowRateLimiter,
)
from ocw_pipeline.errors import ConversionFailedError, ConversionTimeoutError

logger = structlog.get_logger()

JOB_NOT_READY_DETAIL = "Job not completed yet"
TERMINAL_FAILURE_STATUSES: frozenset[str] = frozenset({"ERROR", "FAILED"})
COMPLETED_STATUS = "COMPLETED"


def extract_markdown(payload: dict[str, Any]) -> str:
    """Page-ordered markdown from a completed job payload.

    Pages are joined with blank lines; a top-level markdown string is
    accepted as well. Anything else yields an empty string.
    """
    markdown = payload.get("markdown")
    if isinstance(markdown, dict):
        pages = markdown.get("pages") or []
        return "\n\n".join(str(page.get("markdown") or "") for page in pages)
    if isinstance(markdown, str):
        return markdown
    return ""


def _error_detail(response: httpx.Response) -> Any:
    try:
        return response.json().get("detail")
    except (ValueError, AttributeError):
        return None


class DocumentConverter:
    """Client for the document-conversion service.

    Uploads pass through the shared rate limiter; status polls do not.
    A job that reports a terminal failure raises ConversionFailedError;
    one that is still running at the deadline raises
    ConversionTimeoutError. Both are scoped to a single document.

    Args:
        client: HTTP client; request timeouts are configured on it.
        limiter: Rate limiter shared by every upload of the run.
        api_key: Bearer token.
        base_url: API base, e.g. ``https://api.cloud.llamaindex.ai/api/v2/parse``.
        tier: Parsing tier sent in the upload configuration.
        poll_interval: Seconds between status polls.
        timeout: Overall deadline per document, in seconds.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        limiter: SlidingWindowRateLimiter,
        *,
        api_key: str,
        base_url: str,
        tier: str = "cost_effective",
        poll_interval: float = 5.0,
        timeout: float = 300.0,
        clock: ClockFunc = time.monotonic,
        sleep: SleepFunc | None = None,
    ) -> None:
        self._client = client
        self._limiter = limiter
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._tier = tier
        self._poll_interval = poll_interval
        self._timeout = timeout
        self._clock = clock
        self._sleep = sleep or asyncio.sleep

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        client: httpx.AsyncClient,
        limiter: SlidingWindowRateLimiter,
    ) -> DocumentConverter:
        api_key = settings.llama_cloud_api_key
        return cls(
            client,
            limiter,
            api_key=api_key.get_secret_value() if api_key else "",
            base_url=settings.llamaparse_base_url,
            tier=settings.llamaparse_tier,
            poll_interval=settings.conversion_poll_interval_seconds,
            timeout=settings.conversion_timeout_seconds,
        )

    @property
    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._api_key}"}

    async def convert(self, pdf_bytes: bytes, filename: str) -> str:
        """Convert one PDF and return its markdown (possibly empty).

        Raises:
            ConversionFailedError: Upload rejected, HTTP error or failed job.
            ConversionTimeoutError: Job not completed before the deadline.
        """
        job_id = await self.upload(pdf_bytes, filename)
        return await self.wait_for_markdown(job_id)

    async def upload(self, pdf_bytes: bytes, filename: str) -> str:
        """Upload a PDF and return the conversion job id."""
        await self._limiter.acquire()

        configuration = json.dumps({"tier": self._tier, "version": "latest"})
        try:
            response = await self._client.post(
                f"{self._base_url}/upload",
                headers=self._headers,
                files={"file": (filename, pdf_bytes, "application/pdf")},
                data={"configuration": configuration},
            )
        except httpx.HTTPError as exc:
            raise ConversionFailedError(f"Upload of {filename} failed: {exc}") from exc

        if not response.is_success:
            raise ConversionFailedError(
                f"Upload of {filename} failed ({response.status_code}): {response.text}"
            )
        try:
            job_id = str(response.json()["id"])
        except (ValueError, KeyError, TypeError) as exc:
            raise ConversionFailedError(
                f"Upload of {filename} returned no job id: {response.text}"
            ) from exc

        logger.info("conversion_job_created", job_id=job_id, filename=filename)
        return job_id

    async def wait_for_markdown(self, job_id: str) -> str:
        """Poll the job at a fixed interval until completion or deadline."""
        deadline = self._clock() + self._timeout
        status_url = f"{self._base_url}/{job_id}"
        polls = 0

        while self._clock() < deadline:
            await self._sleep(self._poll_interval)
            polls += 1
            try:
                response = await self._client.get(
                    status_url,
                    headers=self._headers,
                    params={"expand": "markdown"},
                )
            except httpx.HTTPError as exc:
                raise ConversionFailedError(
                    f"Status check for job {job_id} failed: {exc}"
                ) from exc

            if response.status_code == 400:
                detail = _error_detail(response)
                if detail == JOB_NOT_READY_DETAIL:
                    continue
                raise ConversionFailedError(f"Job {job_id} rejected: {detail!r}")

            if not response.is_success:
                raise ConversionFailedError(
                    f"Status check for job {job_id} failed "
                    f"({response.status_code}): {response.text}"
                )

            try:
                payload = response.json()
            except ValueError as exc:
                raise ConversionFailedError(
                    f"Job {job_id} returned a non-JSON status body"
                ) from exc
            job = payload.get("job") or {}
            status = job.get("status")
            if status in TERMINAL_FAILURE_STATUSES:
                raise ConversionFailedError(f"Job {job_id} failed: {job}")
            if status == COMPLETED_STATUS:
                markdown = extract_markdown(payload)
                logger.info(
                    "conversion_job_completed",
                    job_id=job_id,
                    polls=polls,
                    markdown_chars=len(markdown),
                )
                return markdown

        logger.warning("conversion_job_timeout", job_id=job_id, polls=polls)
        raise ConversionTimeoutError(job_id, self._timeout)
