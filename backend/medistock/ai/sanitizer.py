from __future__ import annotations

import re


_THINK_BLOCK = re.compile(r"<think>[\s\S]*?</think>", re.IGNORECASE)
_META_PREFIX = re.compile(
    r"^[^\S\n]*(?:(?:Let me think|I think|I need to|First|Next|Then|So)[^\S\n]*[.:,][^\S\n]*)+",
    re.IGNORECASE | re.MULTILINE,
)
_BLANK_RUN = re.compile(r"\n{3,}")


def strip_reasoning(text: str) -> str:
    cleaned = text
    # Removing one block can splice the halves of an outer marker together.
    while True:
        stripped = _THINK_BLOCK.sub("", cleaned)
        if stripped == cleaned:
            return cleaned
        cleaned = stripped


def sanitize(text: str) -> str:
    """Drop model reasoning and narration; return the input if nothing would remain."""
    if not text:
        return text
    cleaned = strip_reasoning(text)
    cleaned = _META_PREFIX.sub("", cleaned)
    cleaned = _BLANK_RUN.sub("\n\n", cleaned).strip()
    return cleaned or text
