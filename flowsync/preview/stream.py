"""Parser for multi-fragment stream responses.

A stream body is a sequence of elements such as::

    <turbo-stream action="replace" target="step-preview-2">
      <template><div>...</div></template>
    </turbo-stream>

Each fragment names the region it applies to and how.
"""

from __future__ import annotations

import html
import re
from typing import List, NamedTuple

STREAM_CONTENT_TYPE = "text/vnd.turbo-stream.html"
ACCEPT_HEADER = f"{STREAM_CONTENT_TYPE}, text/html"

_STREAM_RE = re.compile(r"<turbo-stream\b([^>]*)>(.*?)</turbo-stream>", re.DOTALL | re.IGNORECASE)
_ATTR_RE = re.compile(r"([\w-]+)\s*=\s*([\"'])(.*?)\2")
_TEMPLATE_RE = re.compile(r"<template\b[^>]*>(.*)</template>", re.DOTALL | re.IGNORECASE)


class StreamFragment(NamedTuple):
    action: str
    target: str
    content: str


def is_stream(body: str, content_type: str = "") -> bool:
    """Whether a response body is in the stream format."""
    return STREAM_CONTENT_TYPE in content_type or "<turbo-stream" in body


def parse_stream(body: str) -> List[StreamFragment]:
    fragments = []
    for match in _STREAM_RE.finditer(body):
        attrs = {
            name.lower(): html.unescape(value)
            for name, _quote, value in _ATTR_RE.findall(match.group(1))
        }
        template = _TEMPLATE_RE.search(match.group(2))
        fragments.append(
            StreamFragment(
                action=attrs.get("action", "").lower(),
                target=attrs.get("target", ""),
                content=template.group(1) if template else "",
            )
        )
    return fragments
