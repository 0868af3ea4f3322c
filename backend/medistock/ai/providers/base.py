from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

Capability = Literal["knowledge-base", "general-completion", "ocr", "ocr-fallback"]
Locale = Literal["en", "bn"]


def clamp_score(value: float | None) -> float:
    if value is None:
        return 0.0
    return max(0.0, min(100.0, float(value)))


@dataclass(frozen=True)
class ChatMessage:
    role: str  # system | user | assistant
    content: str


@dataclass(frozen=True)
class ProviderDescriptor:
    name: str
    capability: Capability
    # Knowledge-base answers must score above this to be preferred.
    min_confidence: float = 0.0
    min_answer_chars: int = 0


@dataclass(frozen=True)
class RequestContext:
    messages: tuple[ChatMessage, ...]
    model: str | None = None
    max_retries: int = 3
    locale: Locale = "en"
    conversation_id: str | None = None
    user_id: str = "user"

    @property
    def last_user_message(self) -> str:
        return next((m.content for m in reversed(self.messages) if m.role == "user"), "")


@dataclass(frozen=True)
class ProviderReply:
    text: str
    confidence: float = 100.0
    sources: tuple[str, ...] = ()
    conversation_id: str | None = None


@dataclass(frozen=True)
class ImageInput:
    content: bytes
    mime_type: str = "image/jpeg"
    # Text the caller already knows about the image (typed notes, filename).
    hint_text: str = ""


@dataclass(frozen=True)
class CandidateResult:
    provider: str
    success: bool
    payload: Any = None
    score: float = 0.0
    error: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "score", clamp_score(self.score))


@dataclass(frozen=True)
class ArbitrationDecision:
    selected: CandidateResult
    rejected: list[CandidateResult] = field(default_factory=list)


class ChatProvider(Protocol):
    descriptor: ProviderDescriptor

    async def invoke(self, request: RequestContext) -> ProviderReply: ...


class OcrProvider(Protocol):
    descriptor: ProviderDescriptor

    async def invoke(self, image: ImageInput) -> CandidateResult: ...
