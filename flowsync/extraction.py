"""Convert raw step field sets into canonical step records and back."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from .contracts import (
    ActionPayload,
    Branch,
    CheckpointPayload,
    DecisionPayload,
    EscalatePayload,
    MessagePayload,
    Option,
    QuestionPayload,
    ResolvePayload,
    StepRecord,
    StepType,
    SubFlowPayload,
)
from .fields import FieldSet

logger = logging.getLogger(__name__)


def _decode_json(raw: str, expected: type, field: str) -> Any:
    """Decode an embedded JSON value, degrading to an empty ``expected``."""
    if not raw:
        return expected()
    try:
        value = json.loads(raw)
    except (json.JSONDecodeError, TypeError, ValueError):
        logger.debug(f"Ignoring malformed JSON in {field!r}")
        return expected()
    if not isinstance(value, expected):
        logger.debug(f"Ignoring {type(value).__name__} in {field!r}, expected {expected.__name__}")
        return expected()
    return value


def _text(entry: Dict[str, Any], key: str) -> str:
    value = entry.get(key)
    if value is None or isinstance(value, bool):
        return ""
    return str(value)


def _question(fields: FieldSet) -> QuestionPayload:
    options = [
        Option(label=_text(entry, "label"), value=_text(entry, "value"))
        for entry in fields.indexed_group("options")
    ]
    return QuestionPayload(
        question=fields.get_text("question"),
        answer_type=fields.get_text("answer_type"),
        variable_name=fields.get_text("variable_name"),
        options=[option for option in options if not option.is_blank()],
    )


def _action(fields: FieldSet) -> ActionPayload:
    return ActionPayload(
        action_type=fields.get_text("action_type"),
        instructions=fields.get_text("instructions"),
        attachments=_decode_json(fields.get_text("attachments"), list, "attachments"),
    )


def _decision(fields: FieldSet) -> DecisionPayload:
    condition = fields.get_text("condition")
    branches = [
        Branch(condition=_text(entry, "condition"), path=_text(entry, "path"))
        for entry in fields.indexed_group("branches")
    ]
    if not branches:
        # Legacy two-way decisions stored only a true and a false path.
        true_path = fields.get_text("true_path")
        false_path = fields.get_text("false_path")
        if true_path:
            branches.append(Branch(condition=condition, path=true_path))
        if false_path:
            branches.append(Branch(condition="", path=false_path))
    return DecisionPayload(condition=condition, branches=branches)


def _checkpoint(fields: FieldSet) -> CheckpointPayload:
    return CheckpointPayload(checkpoint_message=fields.get_text("checkpoint_message"))


def _sub_flow(fields: FieldSet) -> SubFlowPayload:
    return SubFlowPayload(
        target_workflow_id=fields.get_text("target_workflow_id"),
        variable_mapping=_decode_json(
            fields.get_text("variable_mapping"), dict, "variable_mapping"
        ),
    )


def _message(fields: FieldSet) -> MessagePayload:
    return MessagePayload(content=fields.get_text("content"))


def _escalate(fields: FieldSet) -> EscalatePayload:
    return EscalatePayload(
        target_type=fields.get_text("target_type"),
        target_value=fields.get_text("target_value"),
        priority=fields.get_text("priority"),
        reason_required=fields.get_bool("reason_required"),
        notes=fields.get_text("notes"),
    )


def _resolve(fields: FieldSet) -> ResolvePayload:
    return ResolvePayload(
        resolution_type=fields.get_text("resolution_type"),
        resolution_code=fields.get_text("resolution_code"),
        notes_required=fields.get_bool("notes_required"),
        survey_trigger=fields.get_bool("survey_trigger"),
    )


_PAYLOAD_EXTRACTORS: Dict[str, Callable[[FieldSet], Any]] = {
    StepType.QUESTION.value: _question,
    StepType.ACTION.value: _action,
    StepType.DECISION.value: _decision,
    StepType.CHECKPOINT.value: _checkpoint,
    StepType.SUB_FLOW.value: _sub_flow,
    StepType.MESSAGE.value: _message,
    StepType.ESCALATE.value: _escalate,
    StepType.RESOLVE.value: _resolve,
}

# Payload fields stored as embedded JSON in a single input.
_JSON_FIELDS = ("attachments", "variable_mapping")
# Payload fields edited as repeated groups of inputs.
_GROUP_FIELDS = ("options", "branches")


class StepDataExtractor:
    """Builds :class:`StepRecord` snapshots from raw field sets.

    Extraction is total: missing fields map to ``""``, ``[]``, ``{}`` or
    ``False`` and malformed embedded JSON degrades to an empty collection.
    """

    @staticmethod
    def extract(
        fields: FieldSet, step_type: Optional[str] = None, index: int = 0
    ) -> StepRecord:
        if step_type is None:
            step_type = fields.get_text("type")
        elif isinstance(step_type, StepType):
            step_type = step_type.value
        builder = _PAYLOAD_EXTRACTORS.get(step_type)
        return StepRecord(
            index=index,
            type=step_type,
            title=fields.get_text("title"),
            description=fields.get_text("description"),
            payload=builder(fields) if builder else None,
        )

    @staticmethod
    def to_fields(record: StepRecord) -> FieldSet:
        """Render ``record`` back into the raw fields an editor would hold."""
        fields = FieldSet(
            [
                ("type", record.type),
                ("title", record.title),
                ("description", record.description),
            ]
        )
        if record.payload is None:
            return fields

        data = record.payload.model_dump(exclude={"kind"})
        for name, value in data.items():
            if name in _GROUP_FIELDS:
                for i, entry in enumerate(value):
                    for key, item in entry.items():
                        fields.set(f"{name}[{i}][{key}]", item)
            elif name in _JSON_FIELDS:
                fields.set(name, json.dumps(value))
            else:
                fields.set(name, value)
        return fields


def extract(fields: FieldSet, step_type: Optional[str] = None, index: int = 0) -> StepRecord:
    """Shortcut for :meth:`StepDataExtractor.extract`."""
    return StepDataExtractor.extract(fields, step_type, index)


def to_fields(record: StepRecord) -> FieldSet:
    """Shortcut for :meth:`StepDataExtractor.to_fields`."""
    return StepDataExtractor.to_fields(record)


def extract_all(field_sets: Iterable[FieldSet]) -> List[StepRecord]:
    """Extract every step using its own ``type`` field and list position."""
    return [
        StepDataExtractor.extract(fields, fields.get_text("type"), index)
        for index, fields in enumerate(field_sets)
    ]
