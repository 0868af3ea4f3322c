from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Literal

from medistock.ai.classifier import PHARMACY_KEYWORDS, is_domain_specific
from medistock.ai.errors import RateLimitExceeded
from medistock.ai.language import detect_language
from medistock.ai.prompts import (
    SYSTEM_PROMPTS,
    PharmacyContext,
    build_context_prompt,
    fallback_response,
    format_knowledge_base_answer,
)
from medistock.ai.providers.base import (
    Capability,
    ChatMessage,
    ChatProvider,
    Locale,
    ProviderReply,
    RequestContext,
)
from medistock.ai.sanitizer import sanitize


_logger = logging.getLogger(__name__)

KnowledgeBaseOutcome = Literal["not_eligible", "not_configured", "unreachable", "low_confidence", "accepted"]


@dataclass(frozen=True)
class RouteResult:
    text: str
    conversation_id: str
    used_knowledge_base: bool
    locale: Locale
    sources: tuple[str, ...] = ()
    knowledge_base_outcome: KnowledgeBaseOutcome = "not_eligible"
    fallback: bool = False
    rate_limited: bool = False


@dataclass
class ProviderRouter:
    """
    Knowledge base first for pharmacy questions, general completion otherwise,
    canned responses when both are down. Never raises for provider failures.
    """

    providers: Iterable[ChatProvider] = ()
    keywords: tuple[str, ...] = PHARMACY_KEYWORDS
    completion_attempts: int = 3
    completion_model: str | None = None
    _table: dict[Capability, ChatProvider] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._table = {}
        for provider in self.providers:
            self._table[provider.descriptor.capability] = provider

    def provider_for(self, capability: Capability) -> ChatProvider | None:
        return self._table.get(capability)

    async def _ask_knowledge_base(
        self, message: str, conversation_id: str | None, context: PharmacyContext | None, locale: Locale
    ) -> tuple[ProviderReply | None, KnowledgeBaseOutcome]:
        if not is_domain_specific(message, self.keywords):
            return None, "not_eligible"
        provider = self.provider_for("knowledge-base")
        if provider is None:
            return None, "not_configured"

        request = RequestContext(
            messages=(ChatMessage(role="user", content=message),),
            max_retries=1,
            locale=locale,
            conversation_id=conversation_id,
            user_id=(context.user_id if context and context.user_id else "user"),
        )
        try:
            reply = await provider.invoke(request)
        except Exception as exc:
            _logger.warning("knowledge base failed provider=%s error=%s", provider.descriptor.name, exc)
            return None, "unreachable"

        descriptor = provider.descriptor
        if reply.confidence > descriptor.min_confidence and len(reply.text) > descriptor.min_answer_chars:
            return reply, "accepted"
        _logger.info(
            "knowledge base answer rejected provider=%s confidence=%s chars=%s",
            descriptor.name,
            reply.confidence,
            len(reply.text),
        )
        return None, "low_confidence"

    async def route(
        self,
        user_message: str,
        conversation_id: str | None = None,
        context: PharmacyContext | None = None,
        *,
        today: date | None = None,
    ) -> RouteResult:
        locale = detect_language(user_message)

        kb_reply, kb_outcome = await self._ask_knowledge_base(user_message, conversation_id, context, locale)
        if kb_reply is not None:
            return RouteResult(
                text=format_knowledge_base_answer(kb_reply.text, kb_reply.sources, locale),
                conversation_id=kb_reply.conversation_id or conversation_id or str(uuid.uuid4()),
                used_knowledge_base=True,
                locale=locale,
                sources=kb_reply.sources,
                knowledge_base_outcome=kb_outcome,
            )

        conversation_id = conversation_id or str(uuid.uuid4())
        rate_limited = False
        completion = self.provider_for("general-completion")
        if completion is not None:
            request = RequestContext(
                messages=(
                    ChatMessage(role="system", content=SYSTEM_PROMPTS[locale]),
                    ChatMessage(role="user", content=build_context_prompt(user_message, context, locale, today=today)),
                ),
                model=self.completion_model,
                max_retries=self.completion_attempts,
                locale=locale,
                conversation_id=conversation_id,
            )
            try:
                reply = await completion.invoke(request)
            except Exception as exc:
                rate_limited = isinstance(exc, RateLimitExceeded)
                _logger.warning(
                    "completion failed provider=%s rate_limited=%s error=%s",
                    completion.descriptor.name,
                    rate_limited,
                    exc,
                )
            else:
                if reply.text.strip():
                    return RouteResult(
                        text=sanitize(reply.text),
                        conversation_id=conversation_id,
                        used_knowledge_base=False,
                        locale=locale,
                        knowledge_base_outcome=kb_outcome,
                    )
                _logger.warning("completion returned empty text provider=%s", completion.descriptor.name)

        return RouteResult(
            text=fallback_response(user_message, context, locale, rate_limited=rate_limited),
            conversation_id=conversation_id,
            used_knowledge_base=False,
            locale=locale,
            knowledge_base_outcome=kb_outcome,
            fallback=True,
            rate_limited=rate_limited,
        )
