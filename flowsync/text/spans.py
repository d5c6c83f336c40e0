"""Locate and splice ``{{variable}}`` interpolation spans in a text buffer."""

from __future__ import annotations

import re
from typing import List, NamedTuple, Optional, Tuple

OPEN_MARKER = "{{"
CLOSE_MARKER = "}}"

_TOKEN_RE = re.compile(r"\{\{\s*([^{}]*?)\s*\}\}")


class Span(NamedTuple):
    """Open interpolation region ``[start, end)`` and the query typed so far."""

    start: int
    end: int
    query: str


def _clamp(cursor: int, text: str) -> int:
    return max(0, min(cursor, len(text)))


def find_active_span(text: str, cursor: int) -> Optional[Span]:
    """Return the open interpolation span the cursor sits in, if any.

    Only the nearest ``{{`` before the cursor is considered. When a ``}}``
    lies wholly between that marker and the cursor the span is already
    closed and ``None`` is returned.

    >>> find_active_span("Hello {{user.", 13)
    Span(start=8, end=13, query='user.')
    """

    cursor = _clamp(cursor, text)
    before = text[:cursor]
    open_pos = before.rfind(OPEN_MARKER)
    if open_pos == -1:
        return None

    start = open_pos + len(OPEN_MARKER)
    if CLOSE_MARKER in text[start:cursor]:
        return None

    return Span(start=start, end=cursor, query=text[start:cursor].strip())


def splice(text: str, span: Span, name: str) -> Tuple[str, int]:
    """Replace ``span`` with ``name`` and a closing marker.

    Returns the new text and the cursor offset just past the inserted
    closing marker. Text outside ``[span.start, span.end)`` is untouched.
    """

    replacement = f"{name}{CLOSE_MARKER}"
    new_text = text[: span.start] + replacement + text[span.end :]
    return new_text, span.start + len(replacement)


def insert_token(text: str, cursor: int, name: str) -> Tuple[str, int]:
    """Insert a complete ``{{name}}`` token at ``cursor``."""
    cursor = _clamp(cursor, text)
    token = f"{OPEN_MARKER}{name}{CLOSE_MARKER}"
    return text[:cursor] + token + text[cursor:], cursor + len(token)


def find_tokens(text: str) -> List[str]:
    """List the names referenced by closed ``{{name}}`` tokens, in order."""
    return [match.group(1) for match in _TOKEN_RE.finditer(text) if match.group(1)]
