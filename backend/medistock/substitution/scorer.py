from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Literal, Mapping

from medistock.ai.providers.base import clamp_score


Availability = Literal["in_stock", "low_stock", "out_of_stock"]

AVAILABILITY_BONUS: dict[str, int] = {"in_stock": 15, "low_stock": 5, "out_of_stock": 0}
MANUFACTURER_BONUS = 10

# First match wins.
SIMILARITY_TIERS: tuple[tuple[str, int, str], ...] = (
    ("generic_name", 95, "Same generic medicine, different brand"),
    ("therapeutic_class", 80, "Same therapeutic class, similar effectiveness"),
    ("strength", 70, "Same strength, different compound"),
    ("dosage_form", 60, "Same dosage form, different strength"),
)

BASE_GUIDELINES: tuple[str, ...] = (
    "Always consult with a pharmacist before substitution",
    "Verify patient allergies and contraindications",
    "Check for drug interactions with current medications",
    "Ensure proper dosage adjustment if strength differs",
    "Inform patient about the substitution",
)


@dataclass(frozen=True)
class MedicineRef:
    id: str | int | None = None
    generic_name: str | None = None
    brand_name: str | None = None
    manufacturer: str | None = None
    strength: str | None = None
    dosage_form: str | None = None
    therapeutic_class: str | None = None
    price: float = 0.0


@dataclass(frozen=True)
class SubstitutionCandidate:
    medicine: MedicineRef
    availability: Availability
    similarity_score: float
    matched_on: str | None
    substitution_reason: str
    dosage_equivalent: str
    notes: str


@dataclass(frozen=True)
class SubstitutionResult:
    original: MedicineRef
    alternatives: list[SubstitutionCandidate] = field(default_factory=list)
    substitution_guidelines: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def availability_from_stock(quantity: int | None, low_stock_threshold: int | None) -> Availability:
    if quantity is None or quantity <= 0:
        return "out_of_stock"
    if quantity > (low_stock_threshold or 0):
        return "in_stock"
    return "low_stock"


def _same(a: str | None, b: str | None) -> bool:
    left = (a or "").strip().casefold()
    right = (b or "").strip().casefold()
    return bool(left) and left == right


def similarity_tier(reference: MedicineRef, candidate: MedicineRef) -> tuple[int, str | None, str]:
    """Return (base score, matched attribute, reason) for one candidate."""
    for attr, score, reason in SIMILARITY_TIERS:
        if _same(getattr(reference, attr), getattr(candidate, attr)):
            return score, attr, reason
    if _same(reference.manufacturer, candidate.manufacturer):
        return MANUFACTURER_BONUS, "manufacturer", "Same manufacturer, different medicine"
    return 0, None, "Alternative in same therapeutic category"


def score_candidate(reference: MedicineRef, candidate: MedicineRef, availability: Availability) -> float:
    base, _, _ = similarity_tier(reference, candidate)
    return clamp_score(base + AVAILABILITY_BONUS.get(availability, 0))


def _dosage_equivalent(reference: MedicineRef, candidate: MedicineRef) -> str:
    if _same(reference.strength, candidate.strength):
        return "Same dosage as original"
    return f"Adjust dosage based on strength difference ({reference.strength or '?'} vs {candidate.strength or '?'})"


def _notes(reference: MedicineRef, candidate: MedicineRef) -> str:
    notes = []
    if not _same(reference.manufacturer, candidate.manufacturer):
        notes.append("Different manufacturer")
    if not _same(reference.dosage_form, candidate.dosage_form):
        notes.append("Different dosage form")
    if not _same(reference.strength, candidate.strength):
        notes.append("Different strength - consult pharmacist for dosage adjustment")
    return ", ".join(notes) or "No special notes"


def _guidelines(reference: MedicineRef, alternatives: list[SubstitutionCandidate]) -> list[str]:
    guidelines = list(BASE_GUIDELINES)
    if any(not _same(alt.medicine.dosage_form, reference.dosage_form) for alt in alternatives):
        guidelines.append(
            "Some alternatives have different dosage forms - ensure patient understands administration method"
        )
    return guidelines


def _warnings(reference: MedicineRef, alternatives: list[SubstitutionCandidate]) -> list[str]:
    warnings = []
    if any(not _same(alt.medicine.strength, reference.strength) for alt in alternatives):
        warnings.append("Dosage adjustment may be required for different strengths")
    if any(alt.availability == "out_of_stock" for alt in alternatives):
        warnings.append("Some alternatives are currently out of stock")
    if any(alt.availability == "low_stock" for alt in alternatives):
        warnings.append("Some alternatives have limited stock available")
    if any(not _same(alt.medicine.manufacturer, reference.manufacturer) for alt in alternatives):
        warnings.append("Different manufacturers may have varying quality standards")
    return warnings


def rank(
    reference: MedicineRef,
    candidates: Iterable[MedicineRef],
    availability: Mapping[str | int, Availability] | None = None,
    max_results: int = 5,
) -> SubstitutionResult:
    """
    Score every candidate against the reference and keep the best `max_results`.

    Candidates missing from `availability` are treated as out of stock. The
    sort is stable, so equal scores keep their input order.
    """
    availability = availability or {}
    scored: list[SubstitutionCandidate] = []
    for candidate in candidates:
        if reference.id is not None and candidate.id == reference.id:
            continue
        status: Availability = availability.get(candidate.id, "out_of_stock")
        _, matched_on, reason = similarity_tier(reference, candidate)
        scored.append(
            SubstitutionCandidate(
                medicine=candidate,
                availability=status,
                similarity_score=score_candidate(reference, candidate, status),
                matched_on=matched_on,
                substitution_reason=reason,
                dosage_equivalent=_dosage_equivalent(reference, candidate),
                notes=_notes(reference, candidate),
            )
        )

    if max_results <= 0 or not scored:
        return SubstitutionResult(original=reference)

    top = sorted(scored, key=lambda c: c.similarity_score, reverse=True)[:max_results]
    return SubstitutionResult(
        original=reference,
        alternatives=top,
        substitution_guidelines=_guidelines(reference, top),
        warnings=_warnings(reference, top),
    )
