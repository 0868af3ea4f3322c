from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

import httpx

from medistock.ai.errors import ProviderError, RateLimitExceeded, TransientProviderError


T = TypeVar("T")
Sleep = Callable[[float], Awaitable[None]]

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_ms: int = 1000
    honor_retry_after: bool = True

    def backoff_ms(self, attempt: int) -> int:
        # attempt 1 -> 2s, attempt 2 -> 4s with the default base
        return (2**attempt) * self.base_ms


SINGLE_ATTEMPT = RetryPolicy(max_attempts=1)


def parse_retry_after(value: str | None) -> float | None:
    raw = (value or "").strip()
    if not raw:
        return None
    try:
        seconds = float(raw)
    except ValueError:
        # HTTP-date form is not worth honoring here; fall back to backoff.
        return None
    return seconds if seconds >= 0 else None


def error_message(res: httpx.Response) -> str:
    try:
        payload = res.json()
        if isinstance(payload, dict):
            err = payload.get("error")
            if isinstance(err, dict):
                msg = err.get("message")
            else:
                msg = err
            return str(msg or payload.get("message") or res.text)
    except Exception:
        pass
    return res.text or f"HTTP {res.status_code}"


class RetryExecutor:
    """
    Runs one logical provider call with exponential backoff.

    `send` performs a single HTTP exchange, `parse` turns a successful response
    into the provider's payload. `parse` may raise `TransientProviderError`,
    `ValueError`, `KeyError` or `TypeError` (pydantic's ValidationError is a
    ValueError) for malformed payloads; those consume an attempt like any other
    failure. `InvalidInput` and other non-transient errors propagate untouched.
    """

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        *,
        provider: str = "provider",
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.policy = policy or RetryPolicy()
        self.provider = provider
        self._sleep = sleep

    async def run(
        self,
        send: Callable[[], Awaitable[httpx.Response]],
        parse: Callable[[httpx.Response], T],
    ) -> T:
        attempts = max(1, int(self.policy.max_attempts))
        last_error: ProviderError | None = None
        delay_ms: float | None = None

        for attempt in range(attempts):
            if attempt > 0:
                wait_ms = delay_ms if delay_ms is not None else self.policy.backoff_ms(attempt)
                _logger.info(
                    "%s retry attempt=%s/%s wait_ms=%s", self.provider, attempt + 1, attempts, int(wait_ms)
                )
                await self._sleep(wait_ms / 1000.0)
            delay_ms = None
            is_last = attempt >= attempts - 1

            start = time.monotonic()
            try:
                res = await send()
            except (httpx.HTTPError, TransientProviderError) as exc:
                last_error = (
                    exc
                    if isinstance(exc, TransientProviderError)
                    else TransientProviderError(str(exc) or exc.__class__.__name__, provider=self.provider)
                )
                _logger.warning("%s request failed attempt=%s error=%s", self.provider, attempt + 1, last_error)
                continue
            elapsed_ms = int((time.monotonic() - start) * 1000)

            if res.status_code == 429:
                retry_after = parse_retry_after(res.headers.get("retry-after")) if self.policy.honor_retry_after else None
                _logger.info(
                    "%s rate limited attempt=%s retry_after=%s ms=%s", self.provider, attempt + 1, retry_after, elapsed_ms
                )
                if is_last:
                    raise RateLimitExceeded(
                        "rate limit exceeded, please try again in a few minutes",
                        provider=self.provider,
                        retry_after_s=retry_after,
                    )
                if retry_after is not None:
                    delay_ms = retry_after * 1000
                last_error = RateLimitExceeded(error_message(res), provider=self.provider, retry_after_s=retry_after)
                continue

            if res.status_code >= 400:
                _logger.info("%s status=%s attempt=%s ms=%s", self.provider, res.status_code, attempt + 1, elapsed_ms)
                last_error = TransientProviderError(
                    error_message(res), provider=self.provider, status_code=res.status_code
                )
                continue

            try:
                result = parse(res)
            except TransientProviderError as exc:
                last_error = exc
            except (ValueError, KeyError, TypeError) as exc:
                last_error = TransientProviderError(
                    f"malformed payload: {exc}", provider=self.provider, status_code=res.status_code
                )
            else:
                _logger.info("%s status=%s attempt=%s ms=%s", self.provider, res.status_code, attempt + 1, elapsed_ms)
                return result
            _logger.warning("%s bad payload attempt=%s error=%s", self.provider, attempt + 1, last_error)

        if last_error is None:  # pragma: no cover
            last_error = TransientProviderError("no attempt was made", provider=self.provider)
        raise last_error
