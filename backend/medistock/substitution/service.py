from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from medistock import crud, models
from medistock.substitution.scorer import (
    Availability,
    MedicineRef,
    SubstitutionResult,
    availability_from_stock,
    rank,
)


_logger = logging.getLogger(__name__)

QUICK_ALTERNATIVES = 3


def to_ref(medicine: models.CatalogMedicine) -> MedicineRef:
    return MedicineRef(
        id=medicine.id,
        generic_name=medicine.generic_name,
        brand_name=medicine.brand_name,
        manufacturer=medicine.manufacturer,
        strength=medicine.strength,
        dosage_form=medicine.dosage_form,
        therapeutic_class=medicine.therapeutic_class,
        price=float(medicine.price or 0.0),
    )


def find_alternatives(
    db: Session,
    medicine_id: int,
    pharmacy_id: int,
    max_alternatives: int = 5,
) -> SubstitutionResult:
    """
    Rank catalog alternatives for `medicine_id` against one pharmacy's stock.

    Raises LookupError when the medicine is not in the catalog. Candidates are
    the active medicines sharing its therapeutic class, capped at twice the
    requested count before ranking.
    """
    medicine = crud.get_catalog_medicine(db, medicine_id)
    if medicine is None:
        raise LookupError(f"medicine {medicine_id} not found")

    limit = max(1, max_alternatives) * 2
    candidates = crud.get_same_class_medicines(db, medicine, limit=limit)
    stock = {
        item.medicine_id: item
        for item in crud.get_stock_items(db, pharmacy_id, [c.id for c in candidates])
    }
    availability: dict[int, Availability] = {}
    for candidate in candidates:
        item = stock.get(candidate.id)
        availability[candidate.id] = (
            availability_from_stock(item.quantity, item.low_stock_threshold) if item else "out_of_stock"
        )

    result = rank(to_ref(medicine), [to_ref(c) for c in candidates], availability, max_alternatives)
    _logger.info(
        "alternatives medicine_id=%s pharmacy_id=%s candidates=%s returned=%s",
        medicine_id,
        pharmacy_id,
        len(candidates),
        len(result.alternatives),
    )
    return result


def get_quick_alternatives(db: Session, medicine_id: int, pharmacy_id: int):
    try:
        return find_alternatives(db, medicine_id, pharmacy_id, QUICK_ALTERNATIVES).alternatives
    except LookupError as exc:
        _logger.warning("quick alternatives unavailable medicine_id=%s error=%s", medicine_id, exc)
        return []


def has_alternatives(db: Session, medicine_id: int, pharmacy_id: int) -> bool:
    return any(
        alt.availability != "out_of_stock" for alt in get_quick_alternatives(db, medicine_id, pharmacy_id)
    )
