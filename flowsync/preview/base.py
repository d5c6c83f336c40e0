"""Base interface for preview rendering clients."""

from __future__ import annotations

import abc

from ..contracts import PreviewRequest, PreviewResponse


class PreviewClient(metaclass=abc.ABCMeta):
    """Requests rendered preview markup for one step."""

    async def connect(self) -> None:
        """Open underlying resources (no-op by default)."""
        pass

    async def close(self) -> None:
        """Release underlying resources (no-op by default)."""
        pass

    @abc.abstractmethod
    async def fetch(self, request: PreviewRequest) -> PreviewResponse:
        """Render ``request`` and return the response.

        Network failures propagate as exceptions; non-success statuses are
        returned as a response whose ``ok`` is ``False``.
        """
        raise NotImplementedError
