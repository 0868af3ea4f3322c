from __future__ import annotations

import logging
from functools import lru_cache

from medistock.ai.arbiter import ConfidenceArbiter
from medistock.ai.providers.base import ChatProvider, OcrProvider
from medistock.ai.providers.dify import DifyKnowledgeBaseProvider
from medistock.ai.providers.groq import GroqCompletionProvider
from medistock.ai.providers.ocr import AzureReadProvider, GoogleVisionProvider, LocalFallbackProvider
from medistock.ai.router import ProviderRouter
from medistock.config.providers import ProviderConfig, get_provider_config


_logger = logging.getLogger(__name__)


def build_provider_router(config: ProviderConfig) -> ProviderRouter:
    providers: list[ChatProvider] = []
    if config.knowledge_base_enabled:
        providers.append(DifyKnowledgeBaseProvider(config))
    else:
        _logger.warning("DIFY_API_KEY not set; knowledge base disabled")
    if config.completion_enabled:
        providers.append(GroqCompletionProvider(config))
    else:
        _logger.warning("GROQ_API_KEY not set; general completion disabled")
    return ProviderRouter(
        providers=providers,
        completion_attempts=config.retry_max_attempts,
        completion_model=config.groq_model,
    )


def build_ocr_arbiter(config: ProviderConfig) -> ConfidenceArbiter:
    providers: list[OcrProvider] = []
    if config.google_vision_enabled:
        providers.append(GoogleVisionProvider(config))
    if config.azure_vision_enabled:
        providers.append(AzureReadProvider(config))
    if config.local_ocr_enabled or not providers:
        providers.append(LocalFallbackProvider())
    _logger.info("ocr providers=%s", ",".join(p.descriptor.name for p in providers))
    return ConfidenceArbiter(providers)


@lru_cache(maxsize=1)
def get_provider_router() -> ProviderRouter:
    return build_provider_router(get_provider_config())


@lru_cache(maxsize=1)
def get_ocr_arbiter() -> ConfidenceArbiter:
    return build_ocr_arbiter(get_provider_config())
