"""Typed change notifications exchanged between editor components."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable, DefaultDict, List, Optional, Type, TypeVar

from pydantic import BaseModel

from .contracts import BranchCandidate

logger = logging.getLogger(__name__)


class EditorEvent(BaseModel):
    """Base class for editor notifications."""


class StepListChanged(EditorEvent):
    """Step list membership or ordering changed."""

    reason: str  # added, removed, moved
    step_count: int
    step_index: Optional[int] = None
    source_index: Optional[int] = None

    def new_index(self, old: int) -> Optional[int]:
        """Position after this change of the step that was at ``old``.

        Returns ``None`` for the removed step.
        """

        index = self.step_index
        if index is None:
            return old
        if self.reason == "added":
            return old + 1 if old >= index else old
        if self.reason == "removed":
            if old == index:
                return None
            return old - 1 if old > index else old
        if self.reason == "moved" and self.source_index is not None:
            source = self.source_index
            if old == source:
                return index
            if source < old <= index:
                return old - 1
            if index <= old < source:
                return old + 1
        return old


class FieldChanged(EditorEvent):
    """A field inside one step was edited."""

    step_index: int
    field_name: str


class BranchCandidateProposed(EditorEvent):
    """A branch candidate was confirmed for a decision step."""

    decision_index: int
    candidate: BranchCandidate


EventT = TypeVar("EventT", bound=EditorEvent)
Handler = Callable[[EventT], None]


class Subscription:
    """Handle returned by :meth:`EventBus.subscribe`."""

    def __init__(self, bus: "EventBus", event_type: Type[EditorEvent], handler: Callable) -> None:
        self._bus = bus
        self._event_type = event_type
        self._handler = handler
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self._bus._remove(self._event_type, self._handler)
            self.active = False


class EventBus:
    """In-process publish/subscribe hub owned by the editor container.

    Handlers are keyed by exact event class and run synchronously in
    subscription order.
    """

    def __init__(self) -> None:
        self._handlers: DefaultDict[Type[EditorEvent], List[Callable]] = defaultdict(list)

    def subscribe(self, event_type: Type[EventT], handler: Handler[EventT]) -> Subscription:
        self._handlers[event_type].append(handler)
        return Subscription(self, event_type, handler)

    def publish(self, event: EditorEvent) -> None:
        handlers = list(self._handlers.get(type(event), ()))
        logger.debug(f"Publishing {type(event).__name__} to {len(handlers)} handler(s)")
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Handler {handler!r} failed for {type(event).__name__}: {e}")
                raise

    def handler_count(self, event_type: Type[EditorEvent]) -> int:
        return len(self._handlers.get(event_type, ()))

    def clear(self) -> None:
        self._handlers.clear()

    def _remove(self, event_type: Type[EditorEvent], handler: Callable) -> None:
        handlers = self._handlers.get(event_type)
        if handlers and handler in handlers:
            handlers.remove(handler)
