"""Variable autocomplete for ``{{...}}`` interpolation in text fields."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, List, Optional, Tuple

from .catalog import VariableCatalog
from .errors import UserInputError
from .events import EventBus, FieldChanged
from .scheduling import Scheduler, TimerHandle
from .text import Span, find_active_span, splice

logger = logging.getLogger(__name__)

DEFAULT_BLUR_GRACE = 0.2


class AutocompleteState(str, Enum):
    IDLE = "idle"
    SUGGESTING = "suggesting"
    INSERTING = "inserting"


class TextField:
    """A text input or textarea of one step, with its cursor position.

    ``writer`` stores a new value back into the field's owner. It must not
    emit change notifications itself; the engine publishes
    :class:`~flowsync.events.FieldChanged` after an insertion.
    """

    def __init__(
        self,
        step_index: int,
        name: str,
        value: str = "",
        cursor: Optional[int] = None,
        writer: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.step_index = step_index
        self.name = name
        self.value = value
        self.cursor = len(value) if cursor is None else cursor
        self._writer = writer

    @property
    def key(self) -> Tuple[int, str]:
        return self.step_index, self.name

    def write(self, value: str, cursor: int) -> None:
        self.value = value
        self.cursor = cursor
        if self._writer is not None:
            self._writer(value)

    def __repr__(self) -> str:
        return f"TextField(step={self.step_index}, name={self.name!r}, cursor={self.cursor})"


class VariableAutocompleteEngine:
    """Suggestion list for the one text field currently being edited.

    The engine is shared by the whole editor, so at most one suggestion list
    exists at a time. Losing focus closes the list only after a grace delay;
    a commit that arrives within that delay cancels the pending close and
    wins.
    """

    def __init__(
        self,
        catalog: VariableCatalog,
        scheduler: Scheduler,
        bus: Optional[EventBus] = None,
        blur_grace: float = DEFAULT_BLUR_GRACE,
    ) -> None:
        self._catalog = catalog
        self._scheduler = scheduler
        self._bus = bus
        self._blur_grace = blur_grace
        self._blur_timer: Optional[TimerHandle] = None

        self.state = AutocompleteState.IDLE
        self.field: Optional[TextField] = None
        self.span: Optional[Span] = None
        self.suggestions: List[str] = []
        self.highlighted: Optional[int] = None

    @property
    def is_open(self) -> bool:
        return self.state is AutocompleteState.SUGGESTING

    @property
    def highlighted_name(self) -> Optional[str]:
        if self.highlighted is None or not self.suggestions:
            return None
        return self.suggestions[self.highlighted]

    # ------------------------------------------------------------------
    def on_focus(self, field: TextField) -> None:
        if self.field is not None and self.field.key != field.key:
            self.close()
        elif self._blur_timer is not None:
            # Focus came back before the grace delay ran out.
            self._cancel_blur()

    def on_input(self, field: TextField) -> None:
        """Recompute suggestions after the text or cursor of ``field`` changed."""
        if self.field is not None and self.field.key != field.key:
            self.close()
        else:
            self._cancel_blur()

        span = find_active_span(field.value, field.cursor)
        matches = self._catalog.filter(span.query) if span is not None else []
        if not matches:
            self.close()
            return

        self.field = field
        self.span = span
        if matches != self.suggestions:
            self.suggestions = matches
            self.highlighted = 0
        self.state = AutocompleteState.SUGGESTING

    on_cursor_move = on_input

    def on_key(self, key: str) -> bool:
        """Handle a key press; returns ``True`` when the key was consumed."""
        if not self.is_open:
            return False

        if key == "ArrowDown":
            self._move(1)
            return True
        if key == "ArrowUp":
            self._move(-1)
            return True
        if key in ("Enter", "Tab"):
            name = self.highlighted_name
            if name is None:
                return False
            self.commit(name)
            return True
        if key == "Escape":
            self.close()
            return True
        return False

    def on_blur(self, field: TextField) -> None:
        if not self.is_open or self.field is None or self.field.key != field.key:
            return
        self._cancel_blur()
        self._blur_timer = self._scheduler.call_later(self._blur_grace, self._blur_expired)

    def select(self, name: str) -> str:
        """Pointer selection of a suggestion."""
        if not self.is_open:
            raise UserInputError("No suggestion list is open")
        if name not in self.suggestions:
            raise UserInputError(f"{name!r} is not one of the current suggestions")
        return self.commit(name)

    def commit(self, name: str) -> str:
        """Insert ``name`` into the active span and close the list.

        Returns the field's new text.
        """

        if self.field is None or self.span is None:
            raise UserInputError("No active interpolation span to insert into")

        self._cancel_blur()
        self.state = AutocompleteState.INSERTING
        field, span = self.field, self.span
        new_text, new_cursor = splice(field.value, span, name)
        field.write(new_text, new_cursor)
        logger.debug(f"Inserted variable {name!r} into {field!r}")

        self.close()
        if self._bus is not None:
            self._bus.publish(FieldChanged(step_index=field.step_index, field_name=field.name))
        return new_text

    def cancel(self) -> None:
        self.close()

    def close(self) -> None:
        self._cancel_blur()
        self.state = AutocompleteState.IDLE
        self.field = None
        self.span = None
        self.suggestions = []
        self.highlighted = None

    # ------------------------------------------------------------------
    def _move(self, step: int) -> None:
        if self.highlighted is None:
            self.highlighted = 0
            return
        self.highlighted = (self.highlighted + step) % len(self.suggestions)

    def _blur_expired(self) -> None:
        self._blur_timer = None
        if self.is_open:
            self.close()

    def _cancel_blur(self) -> None:
        if self._blur_timer is not None:
            self._blur_timer.cancel()
            self._blur_timer = None
