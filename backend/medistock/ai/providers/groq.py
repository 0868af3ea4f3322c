from __future__ import annotations

import asyncio

import httpx
from pydantic import BaseModel

from medistock.ai.errors import InvalidInput, TransientProviderError
from medistock.ai.http import open_client
from medistock.ai.providers.base import ProviderDescriptor, ProviderReply, RequestContext
from medistock.ai.retry import RetryExecutor, RetryPolicy, Sleep
from medistock.config.providers import ProviderConfig


class _Message(BaseModel):
    content: str | None = None


class _Choice(BaseModel):
    message: _Message


class _CompletionPayload(BaseModel):
    choices: list[_Choice]


class GroqCompletionProvider:
    """OpenAI-compatible chat completion endpoint (Groq by default)."""

    descriptor = ProviderDescriptor(name="groq", capability="general-completion")

    def __init__(
        self,
        config: ProviderConfig,
        *,
        client: httpx.AsyncClient | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if not config.groq_api_key:
            raise InvalidInput("GROQ_API_KEY is not set", provider="groq")
        self.config = config
        self._client = client
        self._sleep = sleep

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.config.groq_api_key}", "Content-Type": "application/json"}

    @staticmethod
    def _parse(res: httpx.Response) -> ProviderReply:
        payload = _CompletionPayload.model_validate(res.json())
        if not payload.choices:
            raise TransientProviderError("completion returned no choices", provider="groq", status_code=res.status_code)
        return ProviderReply(text=payload.choices[0].message.content or "")

    async def invoke(self, request: RequestContext) -> ProviderReply:
        if not request.messages:
            raise InvalidInput("at least one message is required", provider="groq")
        body = {
            "model": request.model or self.config.groq_model,
            "messages": [{"role": m.role, "content": m.content} for m in request.messages],
            "temperature": float(self.config.groq_temperature),
            "max_tokens": int(self.config.groq_max_tokens),
        }
        policy = RetryPolicy(max_attempts=max(1, request.max_retries), base_ms=self.config.retry_base_ms)
        executor = RetryExecutor(policy, provider="groq", sleep=self._sleep)
        url = f"{self.config.groq_base_url}/chat/completions"
        async with open_client(self._client, timeout_s=self.config.http_timeout_s) as client:
            return await executor.run(lambda: client.post(url, json=body, headers=self._headers()), self._parse)
