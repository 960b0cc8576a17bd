"""Sanitizers applied to free-form text before persistence."""

from __future__ import annotations


def sanitize_text(value: str | None, max_len: int = 20000) -> str:
    """Strip NUL bytes and surrounding whitespace, then truncate."""
    if value is None:
        return ""
    cleaned = str(value).replace("\x00", "").strip()
    return cleaned[:max_len]


def sanitize_optional(value: str | None, max_len: int = 20000) -> str | None:
    """Like `sanitize_text` but maps blank input to None."""
    cleaned = sanitize_text(value, max_len=max_len)
    return cleaned or None
