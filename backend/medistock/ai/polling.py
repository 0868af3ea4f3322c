from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum

import httpx
from pydantic import BaseModel, Field, ValidationError

from medistock.ai.errors import JobFailed, JobTimeout, ProviderError
from medistock.ai.providers.base import clamp_score
from medistock.ai.retry import RetryExecutor, RetryPolicy, Sleep


_logger = logging.getLogger(__name__)

# Lines without a reported confidence count as 0.8.
DEFAULT_LINE_CONFIDENCE = 0.8


class JobState(str, Enum):
    SUBMITTED = "submitted"
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class PollingPolicy:
    interval_s: float = 1.0
    max_attempts: int = 30


@dataclass(frozen=True)
class JobInput:
    body: bytes
    content_type: str = "application/octet-stream"
    headers: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class JobResult:
    state: JobState
    text: str = ""
    confidence: float = 0.0
    polls: int = 0
    handle: str | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.state is JobState.SUCCEEDED

    def raise_for_state(self, provider: str | None = None) -> "JobResult":
        if self.state is JobState.TIMED_OUT:
            raise JobTimeout(self.error or "job did not finish in time", provider=provider)
        if self.state is not JobState.SUCCEEDED:
            raise JobFailed(self.error or "job failed", provider=provider)
        return self


class _ReadLine(BaseModel):
    text: str = ""
    confidence: float | None = None


class _ReadPage(BaseModel):
    lines: list[_ReadLine] = Field(default_factory=list)


class _AnalyzeResult(BaseModel):
    readResults: list[_ReadPage] = Field(default_factory=list)


class _JobStatus(BaseModel):
    status: str
    analyzeResult: _AnalyzeResult | None = None


def summarize_read_result(result: _AnalyzeResult | None) -> tuple[str, float]:
    """Join every page's lines and average the per-line confidences (0..1 in, 0..100 out)."""
    pages = result.readResults if result else []
    page_texts: list[str] = []
    confidences: list[float] = []
    for page in pages:
        page_texts.append("\n".join(line.text for line in page.lines))
        for line in page.lines:
            confidences.append(DEFAULT_LINE_CONFIDENCE if line.confidence is None else line.confidence)
    mean = sum(confidences) / len(confidences) if confidences else DEFAULT_LINE_CONFIDENCE
    return "\n".join(page_texts), clamp_score(mean * 100)


class AsyncPollingClient:
    """
    Submit-then-poll driver for Azure Read style jobs.

    SUBMITTED: POST the input (retried through RetryExecutor); the response must
    carry an `Operation-Location` handle, otherwise the job is FAILED.
    POLLING: GET the handle every `interval_s`; `succeeded` and `failed` are
    terminal, anything else keeps polling until `max_attempts` GETs have been
    made, at which point the job is TIMED_OUT.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        submit_url: str,
        auth_headers: dict[str, str],
        provider: str = "azure-read",
        submit_policy: RetryPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._client = client
        self.submit_url = submit_url
        self.auth_headers = dict(auth_headers)
        self.provider = provider
        self.submit_policy = submit_policy or RetryPolicy()
        self._sleep = sleep

    def _transition(self, current: JobState, target: JobState, handle: str | None) -> JobState:
        _logger.info("%s job %s -> %s handle=%s", self.provider, current.value, target.value, handle)
        return target

    @staticmethod
    def _handle_from(res: httpx.Response) -> str | None:
        return (res.headers.get("operation-location") or "").strip() or None

    async def _submit(self, job: JobInput) -> str | None:
        headers = {**self.auth_headers, "Content-Type": job.content_type, **dict(job.headers)}
        executor = RetryExecutor(self.submit_policy, provider=self.provider, sleep=self._sleep)
        return await executor.run(
            lambda: self._client.post(self.submit_url, content=job.body, headers=headers),
            self._handle_from,
        )

    async def _poll_once(self, handle: str) -> _JobStatus | None:
        try:
            res = await self._client.get(handle, headers=self.auth_headers)
        except httpx.HTTPError as exc:
            _logger.warning("%s poll request failed error=%s", self.provider, exc)
            return None
        if res.status_code >= 400:
            _logger.warning("%s poll status=%s", self.provider, res.status_code)
            return None
        try:
            return _JobStatus.model_validate(res.json())
        except (ValidationError, ValueError) as exc:
            _logger.warning("%s poll returned malformed payload error=%s", self.provider, exc)
            return None

    async def submit_and_await(self, job: JobInput, policy: PollingPolicy | None = None) -> JobResult:
        policy = policy or PollingPolicy()
        state = JobState.SUBMITTED
        try:
            handle = await self._submit(job)
        except ProviderError as exc:
            self._transition(state, JobState.FAILED, None)
            return JobResult(state=JobState.FAILED, error=str(exc))
        if not handle:
            self._transition(state, JobState.FAILED, None)
            return JobResult(state=JobState.FAILED, error="no operation location returned")

        state = self._transition(state, JobState.POLLING, handle)
        polls = 0
        while polls < policy.max_attempts:
            await self._sleep(policy.interval_s)
            polls += 1
            status = await self._poll_once(handle)
            if status is None:
                continue
            job_status = status.status.strip().lower()
            if job_status == "succeeded":
                text, confidence = summarize_read_result(status.analyzeResult)
                self._transition(state, JobState.SUCCEEDED, handle)
                return JobResult(
                    state=JobState.SUCCEEDED, text=text, confidence=confidence, polls=polls, handle=handle
                )
            if job_status == "failed":
                self._transition(state, JobState.FAILED, handle)
                return JobResult(state=JobState.FAILED, polls=polls, handle=handle, error="provider reported failure")

        self._transition(state, JobState.TIMED_OUT, handle)
        return JobResult(
            state=JobState.TIMED_OUT,
            polls=polls,
            handle=handle,
            error=f"job still running after {polls} polls",
        )
