from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Sequence

from medistock.ai.errors import AllProvidersExhausted
from medistock.ai.providers.base import ArbitrationDecision, CandidateResult, ImageInput, OcrProvider
from medistock.ai.providers.ocr import looks_like_prescription


_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OcrResult:
    success: bool
    text: str = ""
    confidence: float = 0.0
    provider: str | None = None
    error: str | None = None
    is_prescription: bool = False


class ConfidenceArbiter:
    """
    Races every OCR provider and keeps the most confident success.

    Every provider is awaited, even after the first success, so latency is
    that of the slowest one.
    """

    def __init__(self, providers: Sequence[OcrProvider]) -> None:
        if not providers:
            raise ValueError("ConfidenceArbiter needs at least one provider")
        self.providers = list(providers)
        if not any(p.descriptor.capability == "ocr-fallback" for p in self.providers):
            _logger.warning("ocr arbiter configured without a local fallback; extraction can fail outright")

    async def _run(self, provider: OcrProvider, image: ImageInput) -> CandidateResult:
        name = provider.descriptor.name
        try:
            result = await provider.invoke(image)
        except Exception as exc:
            _logger.warning("ocr provider failed provider=%s error=%s", name, exc)
            return CandidateResult(provider=name, success=False, error=str(exc) or exc.__class__.__name__)
        if not result.success:
            _logger.info("ocr provider unsuccessful provider=%s error=%s", name, result.error)
        return result

    async def arbitrate(self, image: ImageInput) -> ArbitrationDecision:
        outcomes = await asyncio.gather(*(self._run(p, image) for p in self.providers))
        survivors = [r for r in outcomes if r.success]
        failures = [r for r in outcomes if not r.success]

        if not survivors:
            error = AllProvidersExhausted("all OCR providers failed", provider="ocr")
            _logger.error("ocr arbitration exhausted providers=%s", [r.provider for r in outcomes])
            return ArbitrationDecision(
                selected=CandidateResult(provider="none", success=False, error=str(error)),
                rejected=failures,
            )

        # sorted() is stable: equal confidences keep provider order.
        ranked = sorted(survivors, key=lambda r: r.score, reverse=True)
        winner = ranked[0]
        _logger.info(
            "ocr arbitration winner=%s confidence=%.1f candidates=%s",
            winner.provider,
            winner.score,
            ",".join(f"{r.provider}:{r.score:.1f}" for r in ranked),
        )
        return ArbitrationDecision(selected=winner, rejected=ranked[1:] + failures)

    async def extract(self, image: ImageInput) -> OcrResult:
        decision = await self.arbitrate(image)
        selected = decision.selected
        if not selected.success:
            return OcrResult(success=False, error=selected.error or "OCR extraction failed")
        text = str(selected.payload or "")
        return OcrResult(
            success=True,
            text=text,
            confidence=selected.score,
            provider=selected.provider,
            is_prescription=looks_like_prescription(text),
        )
