from __future__ import annotations

from typing import Iterable


PHARMACY_KEYWORDS: tuple[str, ...] = (
    "medicine",
    "drug",
    "prescription",
    "dosage",
    "interaction",
    "side effect",
    "paracetamol",
    "napa",
    "ace",
    "antibiotic",
    "vitamin",
    "tablet",
    "syrup",
    "fever",
    "headache",
    "pain",
    "cough",
    "cold",
    "diabetes",
    "blood pressure",
    "bangladesh",
    "pharmacy",
    "generic",
    "brand",
    "manufacturer",
)


def is_domain_specific(message: str, keywords: Iterable[str] = PHARMACY_KEYWORDS) -> bool:
    """
    Coarse gate for the knowledge-base provider.

    Plain substring matching, so "ace" also fires on "replace". A hit only
    makes the knowledge base eligible; its answer still has to clear the
    confidence bar.
    """
    low = (message or "").lower()
    if not low.strip():
        return False
    return any(keyword.lower() in low for keyword in keywords)
