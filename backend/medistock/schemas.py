from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# --------------------
# Chat
# --------------------


class PharmacyContextIn(BaseModel):
    pharmacy_name: Optional[str] = None
    daily_revenue: Optional[float] = None
    total_due: Optional[float] = None
    low_stock_count: Optional[int] = None
    total_customers: Optional[int] = None
    user_id: Optional[str] = None


class AIChatIn(BaseModel):
    message: str
    conversation_id: Optional[str] = None
    context: Optional[PharmacyContextIn] = None


class AIChatOut(BaseModel):
    response: str
    conversation_id: str
    used_knowledge_base: bool
    language: Literal["en", "bn"]
    sources: List[str] = Field(default_factory=list)
    knowledge_base_outcome: str
    fallback: bool = False
    rate_limited: bool = False


# --------------------
# OCR
# --------------------


class OcrIn(BaseModel):
    image_base64: str
    mime_type: str = "image/jpeg"
    hint_text: str = ""


class OcrOut(BaseModel):
    success: bool
    text: str = ""
    confidence: float = 0.0
    provider: Optional[str] = None
    error: Optional[str] = None
    is_prescription: bool = False


# --------------------
# Substitution
# --------------------


class MedicineRefIn(BaseModel):
    id: Optional[int | str] = None
    generic_name: Optional[str] = None
    brand_name: Optional[str] = None
    manufacturer: Optional[str] = None
    strength: Optional[str] = None
    dosage_form: Optional[str] = None
    therapeutic_class: Optional[str] = None
    price: float = 0.0

    model_config = ConfigDict(from_attributes=True)


class RankCandidateIn(MedicineRefIn):
    availability: Literal["in_stock", "low_stock", "out_of_stock"] = "out_of_stock"


class RankIn(BaseModel):
    reference: MedicineRefIn
    candidates: List[RankCandidateIn] = Field(default_factory=list)
    max_results: int = Field(default=5, ge=0, le=50)


class AlternativeOut(MedicineRefIn):
    availability: str
    similarity_score: float
    substitution_reason: str
    dosage_equivalent: str
    notes: str


class SubstitutionOut(BaseModel):
    original: MedicineRefIn
    alternatives: List[AlternativeOut] = Field(default_factory=list)
    substitution_guidelines: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
