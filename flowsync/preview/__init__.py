"""Live preview synchronization."""

from __future__ import annotations

import os
from typing import Optional

from ..config import FlowSyncConfig, load_config
from ..errors import ConfigurationError
from .base import PreviewClient
from .inmemory import InMemoryPreviewClient
from .stream import StreamFragment, is_stream, parse_stream
from .surface import InMemoryPreviewSurface, PreviewSurface
from .sync import PreviewSyncEngine


def get_preview_client(
    backend: Optional[str] = None, config: Optional[FlowSyncConfig] = None
) -> PreviewClient:
    """Factory function to get the configured preview client."""

    config = config or load_config()
    backend = (
        backend
        or os.getenv("FLOWSYNC_PREVIEW_BACKEND")
        or config.preview.backend
    ).lower()

    if backend == "inmemory":
        return InMemoryPreviewClient()
    elif backend == "http":
        from .http import HttpPreviewClient

        if not config.preview.endpoint:
            raise ConfigurationError("preview.endpoint must be set for the http backend")
        return HttpPreviewClient(config.preview.endpoint, timeout=config.preview.timeout)
    else:
        raise ConfigurationError(f"Unsupported preview backend: {backend}")


__all__ = [
    "InMemoryPreviewClient",
    "InMemoryPreviewSurface",
    "PreviewClient",
    "PreviewSurface",
    "PreviewSyncEngine",
    "StreamFragment",
    "get_preview_client",
    "is_stream",
    "parse_stream",
]
