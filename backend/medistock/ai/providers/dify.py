from __future__ import annotations

import asyncio
from typing import Any

import httpx
from pydantic import BaseModel, Field

from medistock.ai.errors import InvalidInput
from medistock.ai.http import open_client
from medistock.ai.providers.base import ProviderDescriptor, ProviderReply, RequestContext
from medistock.ai.retry import SINGLE_ATTEMPT, RetryExecutor, Sleep
from medistock.config.providers import ProviderConfig


# Dify omits a score for most apps; treat a plain answer as reasonably sure.
DEFAULT_CONFIDENCE = 80.0


class _RetrieverResource(BaseModel):
    document_name: str | None = None
    dataset_name: str | None = None


class _Metadata(BaseModel):
    sources: list[str] = Field(default_factory=list)
    confidence: float | None = None
    retriever_resources: list[_RetrieverResource] = Field(default_factory=list)


class _ChatMessagesPayload(BaseModel):
    answer: str = ""
    conversation_id: str | None = None
    metadata: _Metadata = Field(default_factory=_Metadata)


class DifyKnowledgeBaseProvider:
    """
    Dify `chat-messages` in blocking mode.

    Conversation state lives on the Dify side; the caller's conversation id is
    forwarded untouched and the one Dify hands back is returned as-is. Only a
    single attempt is made: the router has its own fallback.
    """

    descriptor = ProviderDescriptor(
        name="dify",
        capability="knowledge-base",
        min_confidence=60.0,
        min_answer_chars=20,
    )

    def __init__(
        self,
        config: ProviderConfig,
        *,
        client: httpx.AsyncClient | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if not config.dify_api_key:
            raise InvalidInput("DIFY_API_KEY is not set", provider="dify")
        self.config = config
        self._client = client
        self._sleep = sleep

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.config.dify_api_key}", "Content-Type": "application/json"}

    @staticmethod
    def _parse(res: httpx.Response) -> ProviderReply:
        payload = _ChatMessagesPayload.model_validate(res.json())
        sources = list(payload.metadata.sources)
        for resource in payload.metadata.retriever_resources:
            name = resource.document_name or resource.dataset_name
            if name and name not in sources:
                sources.append(name)
        confidence = payload.metadata.confidence
        return ProviderReply(
            text=payload.answer or "",
            confidence=DEFAULT_CONFIDENCE if confidence is None else confidence,
            sources=tuple(sources),
            conversation_id=payload.conversation_id or None,
        )

    async def invoke(self, request: RequestContext) -> ProviderReply:
        query = request.last_user_message.strip()
        if not query:
            raise InvalidInput("query is required", provider="dify")
        body: dict[str, Any] = {
            "inputs": {},
            "query": query,
            "response_mode": "blocking",
            # Empty string starts a new conversation on the Dify side.
            "conversation_id": request.conversation_id or "",
            "user": request.user_id or "user",
            "files": [],
        }
        executor = RetryExecutor(SINGLE_ATTEMPT, provider="dify", sleep=self._sleep)
        url = f"{self.config.dify_base_url}/chat-messages"
        async with open_client(self._client, timeout_s=self.config.http_timeout_s) as client:
            return await executor.run(lambda: client.post(url, json=body, headers=self._headers()), self._parse)
