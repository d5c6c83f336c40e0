"""In-process preview client for tests and headless tooling."""

from __future__ import annotations

import asyncio
from typing import Callable, Dict, List, Optional

from ..contracts import PreviewRequest, PreviewResponse, StepRecord
from .base import PreviewClient


def render_summary(record: StepRecord) -> str:
    """Minimal markup naming the step, used when no renderer is given."""
    return f'<div class="step-preview" data-type="{record.type}">{record.title}</div>'


class InMemoryPreviewClient(PreviewClient):
    """Renders previews with a local callable.

    With ``hold=True`` every fetch waits until :meth:`release` is called for
    its request id, which lets tests complete requests in any order.
    """

    def __init__(
        self,
        renderer: Optional[Callable[[StepRecord], str]] = None,
        hold: bool = False,
    ) -> None:
        self._renderer = renderer or render_summary
        self._hold = hold
        self._gates: Dict[tuple, asyncio.Future] = {}
        self.requests: List[PreviewRequest] = []

    async def fetch(self, request: PreviewRequest) -> PreviewResponse:
        self.requests.append(request)
        if self._hold:
            gate = self._gate(request.step_index, request.request_id)
            outcome = await gate
            if isinstance(outcome, PreviewResponse):
                return outcome.model_copy(update={"request": request})
            if isinstance(outcome, BaseException):
                raise outcome
            if outcome is not None:
                return PreviewResponse(request=request, body=str(outcome))
        return PreviewResponse(request=request, body=self._renderer(request.record))

    def release(self, step_index: int, request_id: int, body: Optional[str] = None) -> None:
        """Let a held fetch complete, optionally with a specific body."""
        self._gate(step_index, request_id).set_result(body)

    def respond(self, step_index: int, request_id: int, response: PreviewResponse) -> None:
        self._gate(step_index, request_id).set_result(response)

    def fail(self, step_index: int, request_id: int, error: BaseException) -> None:
        self._gate(step_index, request_id).set_result(error)

    def _gate(self, step_index: int, request_id: int) -> asyncio.Future:
        key = (step_index, request_id)
        if key not in self._gates:
            self._gates[key] = asyncio.get_running_loop().create_future()
        return self._gates[key]
