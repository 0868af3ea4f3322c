import asyncio
import sys
from pathlib import Path

import httpx
import pytest

BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.append(str(BASE_DIR))

from medistock.ai.errors import InvalidInput, RateLimitExceeded, TransientProviderError
from medistock.ai.retry import RetryExecutor, RetryPolicy, parse_retry_after

URL = "https://provider.test/v1/thing"


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


def _scripted(responses):
    """Transport replaying `responses` in order; exceptions are raised instead of returned."""
    calls = []
    queue = list(responses)

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    return httpx.MockTransport(handler), calls


def _run(responses, *, policy=None, parse=None):
    transport, calls = _scripted(responses)
    sleep = RecordingSleep()
    executor = RetryExecutor(policy or RetryPolicy(), provider="test", sleep=sleep)

    async def go():
        async with httpx.AsyncClient(transport=transport) as client:
            return await executor.run(lambda: client.post(URL), parse or (lambda res: res.json()["value"]))

    return go, calls, sleep


def test_success_on_first_attempt_does_not_sleep():
    go, calls, sleep = _run([httpx.Response(200, json={"value": "ok"})])
    assert asyncio.run(go()) == "ok"
    assert len(calls) == 1
    assert sleep.delays == []


def test_backoff_doubles_between_attempts_until_success():
    go, calls, sleep = _run(
        [
            httpx.Response(500, json={"error": {"message": "boom"}}),
            httpx.Response(503, text="unavailable"),
            httpx.Response(200, json={"value": "third time"}),
        ]
    )
    assert asyncio.run(go()) == "third time"
    assert len(calls) == 3
    assert sleep.delays == [2.0, 4.0]


def test_exhaustion_raises_last_error_after_max_attempts():
    go, calls, _ = _run([httpx.Response(500, json={"error": "down"})] * 3)
    with pytest.raises(TransientProviderError) as excinfo:
        asyncio.run(go())
    assert len(calls) == 3
    assert excinfo.value.status_code == 500
    assert "down" in str(excinfo.value)


def test_never_exceeds_configured_attempts():
    go, calls, sleep = _run([httpx.Response(502)] * 5, policy=RetryPolicy(max_attempts=2, base_ms=10))
    with pytest.raises(TransientProviderError):
        asyncio.run(go())
    assert len(calls) == 2
    assert sleep.delays == [0.02]


def test_retry_after_header_replaces_backoff():
    go, calls, sleep = _run(
        [
            httpx.Response(429, headers={"retry-after": "7"}, json={"error": "slow down"}),
            httpx.Response(200, json={"value": "ok"}),
        ]
    )
    assert asyncio.run(go()) == "ok"
    assert len(calls) == 2
    assert sleep.delays == [7.0]


def test_rate_limit_without_retry_after_uses_backoff():
    go, _, sleep = _run([httpx.Response(429), httpx.Response(200, json={"value": "ok"})])
    assert asyncio.run(go()) == "ok"
    assert sleep.delays == [2.0]


def test_rate_limit_on_last_attempt_raises_rate_limit_exceeded():
    go, calls, _ = _run(
        [
            httpx.Response(429, headers={"retry-after": "1"}),
            httpx.Response(429, headers={"retry-after": "3"}),
        ],
        policy=RetryPolicy(max_attempts=2),
    )
    with pytest.raises(RateLimitExceeded) as excinfo:
        asyncio.run(go())
    assert len(calls) == 2
    assert excinfo.value.retry_after_s == 3.0
    assert excinfo.value.status_code == 429


def test_network_error_consumes_an_attempt():
    go, calls, sleep = _run([httpx.ConnectError("connection refused"), httpx.Response(200, json={"value": 1})])
    assert asyncio.run(go()) == 1
    assert len(calls) == 2
    assert sleep.delays == [2.0]


def test_malformed_payload_is_retried():
    go, calls, _ = _run(
        [
            httpx.Response(200, text="<html>not json</html>"),
            httpx.Response(200, json={"unexpected": True}),
            httpx.Response(200, json={"value": "finally"}),
        ]
    )
    assert asyncio.run(go()) == "finally"
    assert len(calls) == 3


def test_invalid_input_is_not_retried():
    def parse(_res):
        raise InvalidInput("bad request shape", provider="test")

    go, calls, sleep = _run([httpx.Response(200, json={})] * 3, parse=parse)
    with pytest.raises(InvalidInput):
        asyncio.run(go())
    assert len(calls) == 1
    assert sleep.delays == []


def test_parse_retry_after_accepts_only_non_negative_seconds():
    assert parse_retry_after("12") == 12.0
    assert parse_retry_after("0.5") == 0.5
    assert parse_retry_after(None) is None
    assert parse_retry_after("-1") is None
    assert parse_retry_after("Wed, 21 Oct 2026 07:28:00 GMT") is None
