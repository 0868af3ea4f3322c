from __future__ import annotations

import base64
import binascii
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, status

from medistock import schemas
from medistock.ai.arbiter import ConfidenceArbiter
from medistock.ai.prompts import PharmacyContext
from medistock.ai.provider_factory import get_ocr_arbiter, get_provider_router
from medistock.ai.providers.base import ImageInput
from medistock.ai.router import ProviderRouter
from medistock.substitution.scorer import MedicineRef, SubstitutionResult, rank


router = APIRouter(prefix="/ai", tags=["AI"])


def substitution_out(result: SubstitutionResult) -> schemas.SubstitutionOut:
    return schemas.SubstitutionOut(
        original=schemas.MedicineRefIn(**asdict(result.original)),
        alternatives=[
            schemas.AlternativeOut(
                **asdict(alt.medicine),
                availability=alt.availability,
                similarity_score=alt.similarity_score,
                substitution_reason=alt.substitution_reason,
                dosage_equivalent=alt.dosage_equivalent,
                notes=alt.notes,
            )
            for alt in result.alternatives
        ],
        substitution_guidelines=result.substitution_guidelines,
        warnings=result.warnings,
    )


@router.post("/chat", response_model=schemas.AIChatOut)
async def chat(
    payload: schemas.AIChatIn,
    provider_router: ProviderRouter = Depends(get_provider_router),
):
    message = (payload.message or "").strip()
    if not message:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message is required")

    context = PharmacyContext(**payload.context.model_dump()) if payload.context else None
    result = await provider_router.route(message, payload.conversation_id, context)
    return schemas.AIChatOut(
        response=result.text,
        conversation_id=result.conversation_id,
        used_knowledge_base=result.used_knowledge_base,
        language=result.locale,
        sources=list(result.sources),
        knowledge_base_outcome=result.knowledge_base_outcome,
        fallback=result.fallback,
        rate_limited=result.rate_limited,
    )


@router.post("/ocr", response_model=schemas.OcrOut)
async def extract_text(
    payload: schemas.OcrIn,
    arbiter: ConfidenceArbiter = Depends(get_ocr_arbiter),
):
    try:
        content = base64.b64decode(payload.image_base64, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="image_base64 is not valid base64") from exc
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Image is required")

    result = await arbiter.extract(ImageInput(content=content, mime_type=payload.mime_type, hint_text=payload.hint_text))
    return schemas.OcrOut(**asdict(result))


@router.post("/substitutes/rank", response_model=schemas.SubstitutionOut)
def rank_substitutes(payload: schemas.RankIn):
    reference = MedicineRef(**payload.reference.model_dump())
    candidates = []
    availability = {}
    for index, item in enumerate(payload.candidates):
        data = item.model_dump(exclude={"availability"})
        # Unidentified candidates still need a distinct availability key.
        if data["id"] is None:
            data["id"] = f"candidate-{index}"
        candidates.append(MedicineRef(**data))
        availability[data["id"]] = item.availability
    return substitution_out(rank(reference, candidates, availability, payload.max_results))
