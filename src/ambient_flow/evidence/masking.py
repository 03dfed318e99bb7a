"""Identifier masking applied before anything is persisted or logged."""

from __future__ import annotations

MASK_SENTINEL = "n/a"


def mask_identifier(value: str | None) -> str:
    """Partially redact an identifier.

    Values of 8 characters or fewer keep their first and last two characters
    (``ab***yz``); longer values keep the first six and last four
    (``abcdef...wxyz``). Empty or missing values become ``"n/a"``.
    """
    if not value:
        return MASK_SENTINEL
    if len(value) <= 8:
        return f"{value[:2]}***{value[-2:]}"
    return f"{value[:6]}...{value[-4:]}"
