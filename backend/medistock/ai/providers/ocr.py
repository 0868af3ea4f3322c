from __future__ import annotations

import asyncio
import base64
import re

import httpx
from pydantic import BaseModel, Field

from medistock.ai.errors import InvalidInput, ProviderError
from medistock.ai.http import open_client
from medistock.ai.polling import AsyncPollingClient, JobInput, PollingPolicy
from medistock.ai.providers.base import CandidateResult, ImageInput, ProviderDescriptor, clamp_score
from medistock.ai.retry import RetryExecutor, RetryPolicy, Sleep
from medistock.config.providers import ProviderConfig


_MEDICAL_INDICATORS = [
    re.compile(r"dr\.|doctor|physician", re.IGNORECASE),
    re.compile(r"\b\d+\s*(mg|ml|mcg)\b|tablet|capsule|syrup", re.IGNORECASE),
    re.compile(r"morning|evening|night|meal", re.IGNORECASE),
    re.compile(r"patient|\bage\b|\brx\b|prescription", re.IGNORECASE),
    re.compile(r"\b(days|weeks|times|daily)\b", re.IGNORECASE),
]


def looks_like_prescription(text: str) -> bool:
    return any(pattern.search(text or "") for pattern in _MEDICAL_INDICATORS)


def _require_image(image: ImageInput, provider: str) -> None:
    if not image.content:
        raise InvalidInput("image content is empty", provider=provider)


# --------------------
# Google Vision (synchronous)
# --------------------


class _Symbol(BaseModel):
    text: str = ""


class _Word(BaseModel):
    symbols: list[_Symbol] = Field(default_factory=list)
    confidence: float | None = None


class _Paragraph(BaseModel):
    words: list[_Word] = Field(default_factory=list)


class _Block(BaseModel):
    paragraphs: list[_Paragraph] = Field(default_factory=list)


class _Page(BaseModel):
    blocks: list[_Block] = Field(default_factory=list)
    confidence: float | None = None


class _FullText(BaseModel):
    text: str = ""
    pages: list[_Page] = Field(default_factory=list)


class _AnnotateError(BaseModel):
    message: str = "unknown error"


class _AnnotateItem(BaseModel):
    fullTextAnnotation: _FullText | None = None
    error: _AnnotateError | None = None


class _AnnotatePayload(BaseModel):
    responses: list[_AnnotateItem] = Field(default_factory=list)


def _google_confidence(annotation: _FullText) -> float:
    words = [
        word.confidence
        for page in annotation.pages
        for block in page.blocks
        for paragraph in block.paragraphs
        for word in paragraph.words
        if word.confidence is not None
    ]
    if words:
        return sum(words) / len(words)
    pages = [page.confidence for page in annotation.pages if page.confidence is not None]
    if pages:
        return sum(pages) / len(pages)
    return 0.8


class GoogleVisionProvider:
    descriptor = ProviderDescriptor(name="google-vision", capability="ocr")

    def __init__(
        self,
        config: ProviderConfig,
        *,
        client: httpx.AsyncClient | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if not config.google_vision_api_key:
            raise InvalidInput("GOOGLE_VISION_API_KEY is not set", provider="google-vision")
        self.config = config
        self._client = client
        self._sleep = sleep

    async def invoke(self, image: ImageInput) -> CandidateResult:
        _require_image(image, self.descriptor.name)
        body = {
            "requests": [
                {
                    "image": {"content": base64.b64encode(image.content).decode("ascii")},
                    "features": [{"type": "DOCUMENT_TEXT_DETECTION", "maxResults": 1}],
                    "imageContext": {"languageHints": ["en", "bn"]},
                }
            ]
        }
        policy = RetryPolicy(max_attempts=self.config.retry_max_attempts, base_ms=self.config.retry_base_ms)
        executor = RetryExecutor(policy, provider=self.descriptor.name, sleep=self._sleep)
        async with open_client(self._client, timeout_s=self.config.http_timeout_s) as client:
            payload = await executor.run(
                lambda: client.post(
                    self.config.google_vision_url,
                    params={"key": self.config.google_vision_api_key},
                    json=body,
                ),
                lambda res: _AnnotatePayload.model_validate(res.json()),
            )

        item = payload.responses[0] if payload.responses else None
        if item is not None and item.error is not None:
            raise ProviderError(item.error.message, provider=self.descriptor.name)
        annotation = item.fullTextAnnotation if item is not None else None
        if annotation is None or not annotation.text.strip():
            raise ProviderError("no text detected in image", provider=self.descriptor.name)
        return CandidateResult(
            provider=self.descriptor.name,
            success=True,
            payload=annotation.text,
            score=_google_confidence(annotation) * 100,
        )


# --------------------
# Azure Read (asynchronous job)
# --------------------


class AzureReadProvider:
    descriptor = ProviderDescriptor(name="azure-read", capability="ocr")

    def __init__(
        self,
        config: ProviderConfig,
        *,
        client: httpx.AsyncClient | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if not (config.azure_vision_api_key and config.azure_vision_endpoint):
            raise InvalidInput("AZURE_VISION_API_KEY / AZURE_VISION_ENDPOINT are not set", provider="azure-read")
        self.config = config
        self._client = client
        self._sleep = sleep

    async def invoke(self, image: ImageInput) -> CandidateResult:
        _require_image(image, self.descriptor.name)
        policy = PollingPolicy(interval_s=self.config.poll_interval_s, max_attempts=self.config.poll_max_attempts)
        async with open_client(self._client, timeout_s=self.config.http_timeout_s) as client:
            poller = AsyncPollingClient(
                client,
                submit_url=f"{self.config.azure_vision_endpoint}/vision/v3.2/read/analyze",
                auth_headers={"Ocp-Apim-Subscription-Key": self.config.azure_vision_api_key or ""},
                provider=self.descriptor.name,
                submit_policy=RetryPolicy(
                    max_attempts=self.config.retry_max_attempts, base_ms=self.config.retry_base_ms
                ),
                sleep=self._sleep,
            )
            result = await poller.submit_and_await(JobInput(body=image.content), policy)
        result.raise_for_state(self.descriptor.name)
        return CandidateResult(
            provider=self.descriptor.name,
            success=True,
            payload=result.text,
            score=result.confidence,
        )


# --------------------
# Local fallback
# --------------------


class LocalFallbackProvider:
    """
    Deterministic last resort. It does no recognition: it echoes whatever text
    the caller already attached to the image, at a confidence low enough that
    any real provider result outranks it.
    """

    descriptor = ProviderDescriptor(name="local", capability="ocr-fallback")

    def __init__(self, confidence: float = 0.0) -> None:
        self.confidence = clamp_score(confidence)

    async def invoke(self, image: ImageInput) -> CandidateResult:
        return CandidateResult(
            provider=self.descriptor.name,
            success=True,
            payload=(image.hint_text or "").strip(),
            score=self.confidence,
        )
