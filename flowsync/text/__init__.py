"""Text helpers for variable interpolation."""

from .spans import (
    CLOSE_MARKER,
    OPEN_MARKER,
    Span,
    find_active_span,
    find_tokens,
    insert_token,
    splice,
)

__all__ = [
    "CLOSE_MARKER",
    "OPEN_MARKER",
    "Span",
    "find_active_span",
    "find_tokens",
    "insert_token",
    "splice",
]
