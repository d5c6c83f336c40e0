"""Debounced, race-free propagation of step edits to the preview surface."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, Optional, Set

from ..contracts import PreviewRequest, PreviewResponse
from ..events import FieldChanged
from ..extraction import StepDataExtractor
from ..fields import FieldSet
from ..scheduling import Debouncer, Scheduler
from .base import PreviewClient
from .stream import is_stream, parse_stream
from .surface import PreviewSurface

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE = 0.5
DEFAULT_FRAME_PREFIX = "step-preview-"


class PreviewSyncEngine:
    """Keeps each step's rendered preview in line with its fields.

    Field changes are debounced per step. When a timer fires the step is
    extracted and a :class:`PreviewRequest` with a fresh ``request_id`` is
    sent. Ids increase across all steps, so a response can only match the
    latest id of the step it was requested for. Superseded requests are not
    cancelled; when they complete their response is discarded because a newer
    ``request_id`` has been issued for the step since.
    """

    def __init__(
        self,
        client: PreviewClient,
        surface: PreviewSurface,
        fields_for: Callable[[int], Optional[FieldSet]],
        scheduler: Scheduler,
        delay: float = DEFAULT_DEBOUNCE,
        frame_prefix: str = DEFAULT_FRAME_PREFIX,
    ) -> None:
        self._client = client
        self._surface = surface
        self._fields_for = fields_for
        self._frame_prefix = frame_prefix
        self._debouncer: Debouncer[int] = Debouncer(scheduler, delay, self._on_timer)
        self._latest: Dict[int, int] = {}
        self._sequence = 0
        self._tasks: Dict[asyncio.Task, PreviewRequest] = {}
        self._closed = False

    def frame_id(self, step_index: int) -> str:
        return f"{self._frame_prefix}{step_index}"

    def latest_request_id(self, step_index: int) -> int:
        return self._latest.get(step_index, 0)

    def is_pending(self, step_index: int) -> bool:
        return self._debouncer.is_pending(step_index)

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    # ------------------------------------------------------------------
    def on_field_change(self, step_index: int) -> None:
        """(Re)start the debounce timer for ``step_index``."""
        if self._closed:
            return
        self._debouncer.trigger(step_index)

    def handle_field_changed(self, event: FieldChanged) -> None:
        self.on_field_change(event.step_index)

    def flush(self, step_index: int) -> Optional[PreviewRequest]:
        """Skip the remaining debounce delay and request the preview now."""
        self._debouncer.cancel(step_index)
        return self._request(step_index)

    async def drain(self) -> None:
        """Wait for every in-flight fetch to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def reindex(self, new_index: Callable[[int], Optional[int]]) -> None:
        """Follow steps to their new positions after a structural change.

        ``new_index`` maps an old position to the new one, or ``None`` for a
        removed step. Pending timers move with their step. A step that moved
        while its fetch was in flight is requested again at its new position;
        the response for the old position no longer matches and is dropped.
        """

        shifted: Set[int] = set()
        for old in self._debouncer.pending_keys():
            new = new_index(old)
            if new != old:
                self._debouncer.cancel(old)
                if new is not None:
                    shifted.add(new)
        for request in self._tasks.values():
            old = request.step_index
            new = new_index(old)
            if new is not None and new != old and self._latest.get(old) == request.request_id:
                shifted.add(new)

        latest = {}
        for old, request_id in self._latest.items():
            new = new_index(old)
            if new is not None:
                latest[new] = request_id
        self._latest = latest

        for step_index in sorted(shifted):
            self.on_field_change(step_index)
        if shifted:
            logger.debug(f"Re-scheduled previews for moved steps {sorted(shifted)}")

    def close(self) -> None:
        """Cancel pending timers. In-flight fetches finish but are not applied."""
        self._closed = True
        self._debouncer.cancel_all()

    # ------------------------------------------------------------------
    def _forget(self, task: asyncio.Task) -> None:
        self._tasks.pop(task, None)

    def _on_timer(self, step_index: int) -> None:
        self._request(step_index)

    def _request(self, step_index: int) -> Optional[PreviewRequest]:
        if self._closed:
            return None
        fields = self._fields_for(step_index)
        if fields is None:
            logger.debug(f"Step {step_index} no longer exists, skipping preview")
            return None

        record = StepDataExtractor.extract(fields, None, step_index)
        self._sequence += 1
        request_id = self._sequence
        self._latest[step_index] = request_id
        request = PreviewRequest(step_index=step_index, record=record, request_id=request_id)

        task = asyncio.get_running_loop().create_task(self._fetch(request))
        self._tasks[task] = request
        task.add_done_callback(self._forget)
        logger.debug(f"Requested preview for step {step_index} (request #{request_id})")
        return request

    async def _fetch(self, request: PreviewRequest) -> None:
        try:
            response = await self._client.fetch(request)
        except Exception as e:
            logger.warning(
                f"Preview fetch for step {request.step_index} "
                f"(request #{request.request_id}) failed: {e}"
            )
            return
        self.apply(response)

    def apply(self, response: PreviewResponse) -> bool:
        """Swap ``response`` into the surface unless it is stale or failed."""
        request = response.request
        if self._closed:
            return False
        if self._latest.get(request.step_index) != request.request_id:
            logger.debug(
                f"Discarding stale preview for step {request.step_index} "
                f"(request #{request.request_id}, latest #{self.latest_request_id(request.step_index)})"
            )
            return False
        if not response.ok:
            logger.warning(
                f"Preview for step {request.step_index} returned HTTP {response.status_code}; "
                "keeping previous preview"
            )
            return False

        if is_stream(response.body, response.content_type):
            for fragment in parse_stream(response.body):
                self._surface.apply_fragment(fragment)
        else:
            self._surface.replace(self.frame_id(request.step_index), response.body)
        return True
