from __future__ import annotations

import re

from medistock.ai.providers.base import Locale


_BENGALI = re.compile(r"[\u0980-\u09FF]")

DEFAULT_LOCALE: Locale = "en"


def detect_language(text: str) -> Locale:
    if _BENGALI.search(text or ""):
        return "bn"
    return DEFAULT_LOCALE
