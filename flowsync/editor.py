"""Reference step-list container for the visual editor.

The container owns the ordered raw field sets and is the only component that
fires change notifications for user edits. Step records are derived from it
on demand.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, List, Mapping, Optional, Union

from .autocomplete import TextField
from .branching import BranchInferenceEngine
from .contracts import BranchCandidate, StepRecord, StepType
from .errors import UserInputError
from .events import EventBus, FieldChanged, StepListChanged
from .extraction import StepDataExtractor, extract_all
from .fields import FieldSet, FieldValue

logger = logging.getLogger(__name__)

StepInput = Union[FieldSet, Mapping[str, object]]


def _as_fields(step: StepInput) -> FieldSet:
    if isinstance(step, FieldSet):
        return step
    return FieldSet.from_mapping(step)


class StepList:
    """Ordered raw field sets of the workflow being edited."""

    def __init__(self, steps: Iterable[StepInput] = (), bus: Optional[EventBus] = None) -> None:
        self.bus = bus or EventBus()
        self._steps: List[FieldSet] = [_as_fields(step) for step in steps]

    def __len__(self) -> int:
        return len(self._steps)

    def __iter__(self) -> Iterator[FieldSet]:
        return iter(list(self._steps))

    def fields(self, index: int) -> FieldSet:
        if not 0 <= index < len(self._steps):
            logger.warning(f"Step index {index} out of range (0..{len(self._steps) - 1})")
            raise UserInputError(f"No step at position {index + 1}")
        return self._steps[index]

    def fields_or_none(self, index: int) -> Optional[FieldSet]:
        if 0 <= index < len(self._steps):
            return self._steps[index]
        return None

    def records(self) -> List[StepRecord]:
        return extract_all(self._steps)

    def record(self, index: int) -> StepRecord:
        return StepDataExtractor.extract(self.fields(index), None, index)

    # ------------------------------------------------------------------
    # Structural changes

    def add_step(self, step: StepInput, position: Optional[int] = None) -> int:
        fields = _as_fields(step)
        if position is None or position >= len(self._steps):
            self._steps.append(fields)
            position = len(self._steps) - 1
        else:
            self._steps.insert(max(0, position), fields)
            position = max(0, position)
        self._structural("added", position)
        return position

    def remove_step(self, index: int) -> FieldSet:
        fields = self.fields(index)
        del self._steps[index]
        self._structural("removed", index)
        return fields

    def move_step(self, source: int, target: int) -> None:
        fields = self.fields(source)
        if not 0 <= target < len(self._steps):
            raise UserInputError(f"No step at position {target + 1}")
        del self._steps[source]
        self._steps.insert(target, fields)
        self._structural("moved", target, source=source)

    def _structural(self, reason: str, index: int, source: Optional[int] = None) -> None:
        self.bus.publish(
            StepListChanged(
                reason=reason,
                step_count=len(self._steps),
                step_index=index,
                source_index=source,
            )
        )

    # ------------------------------------------------------------------
    # Field edits

    def set_field(self, index: int, name: str, value: FieldValue) -> None:
        self.fields(index).set(name, value)
        self.bus.publish(FieldChanged(step_index=index, field_name=name))

    def text_field(self, index: int, name: str, cursor: Optional[int] = None) -> TextField:
        """Bind a text field of step ``index`` for autocomplete."""
        fields = self.fields(index)
        return TextField(
            step_index=index,
            name=name,
            value=fields.get_text(name),
            cursor=cursor,
            writer=lambda value: fields.set(name, value),
        )

    def apply_candidate(self, decision_index: int, candidate: BranchCandidate) -> None:
        """Overwrite a decision step's branches with ``candidate``."""
        fields = self.fields(decision_index)
        if fields.get_text("type") != StepType.DECISION.value:
            raise UserInputError(f"Step {decision_index + 1} is not a decision step")
        BranchInferenceEngine.apply(candidate, fields)
        self.bus.publish(FieldChanged(step_index=decision_index, field_name="branches"))
