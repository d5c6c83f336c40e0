"""Core data contracts for the flowsync editor core."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator


class StepType(str, Enum):
    """Kinds of workflow steps the editor knows about."""

    QUESTION = "question"
    ACTION = "action"
    DECISION = "decision"
    CHECKPOINT = "checkpoint"
    SUB_FLOW = "sub_flow"
    MESSAGE = "message"
    ESCALATE = "escalate"
    RESOLVE = "resolve"

    @classmethod
    def values(cls) -> List[str]:
        return [member.value for member in cls]


class AnswerType(str, Enum):
    YES_NO = "yes_no"
    MULTIPLE_CHOICE = "multiple_choice"
    DROPDOWN = "dropdown"
    NUMERIC = "numeric"
    TEXT = "text"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"
    CRITICAL = "critical"


class Option(BaseModel):
    """One choice of a multiple choice or dropdown question."""

    label: str = ""
    value: str = ""

    def is_blank(self) -> bool:
        return not self.label and not self.value


class Branch(BaseModel):
    """Conditional path out of a decision step."""

    condition: str = ""
    path: str = ""


class QuestionPayload(BaseModel):
    kind: Literal["question"] = "question"
    question: str = ""
    # Free-form so an unset answer type extracts as "".
    answer_type: str = ""
    variable_name: str = ""
    options: List[Option] = Field(default_factory=list)


class ActionPayload(BaseModel):
    kind: Literal["action"] = "action"
    action_type: str = ""
    instructions: str = ""
    attachments: List[Any] = Field(default_factory=list)


class DecisionPayload(BaseModel):
    kind: Literal["decision"] = "decision"
    condition: str = ""
    branches: List[Branch] = Field(default_factory=list)


class CheckpointPayload(BaseModel):
    kind: Literal["checkpoint"] = "checkpoint"
    checkpoint_message: str = ""


class SubFlowPayload(BaseModel):
    kind: Literal["sub_flow"] = "sub_flow"
    target_workflow_id: str = ""
    variable_mapping: Dict[str, Any] = Field(default_factory=dict)


class MessagePayload(BaseModel):
    kind: Literal["message"] = "message"
    content: str = ""


class EscalatePayload(BaseModel):
    kind: Literal["escalate"] = "escalate"
    target_type: str = ""
    target_value: str = ""
    priority: str = ""
    reason_required: bool = False
    notes: str = ""


class ResolvePayload(BaseModel):
    kind: Literal["resolve"] = "resolve"
    resolution_type: str = ""
    resolution_code: str = ""
    notes_required: bool = False
    survey_trigger: bool = False


StepPayload = Annotated[
    Union[
        QuestionPayload,
        ActionPayload,
        DecisionPayload,
        CheckpointPayload,
        SubFlowPayload,
        MessagePayload,
        EscalatePayload,
        ResolvePayload,
    ],
    Field(discriminator="kind"),
]

PAYLOAD_MODELS: Dict[str, type[BaseModel]] = {
    StepType.QUESTION.value: QuestionPayload,
    StepType.ACTION.value: ActionPayload,
    StepType.DECISION.value: DecisionPayload,
    StepType.CHECKPOINT.value: CheckpointPayload,
    StepType.SUB_FLOW.value: SubFlowPayload,
    StepType.MESSAGE.value: MessagePayload,
    StepType.ESCALATE.value: EscalatePayload,
    StepType.RESOLVE.value: ResolvePayload,
}


class StepRecord(BaseModel):
    """Canonical, read-only snapshot of one workflow step.

    Records are always regenerated from the raw editable fields and are never
    the source of truth. ``index`` is the step's current position and must not
    be used as an identity.
    """

    index: int = 0
    type: str
    title: str = ""
    description: str = ""
    payload: Optional[StepPayload] = None

    @model_validator(mode="after")
    def _payload_matches_type(self) -> "StepRecord":
        if self.type in PAYLOAD_MODELS:
            if self.payload is None or self.payload.kind != self.type:
                raise ValueError(
                    f"step of type {self.type!r} requires a {self.type!r} payload"
                )
        elif self.payload is not None:
            raise ValueError(f"unknown step type {self.type!r} cannot carry a payload")
        return self

    @property
    def is_known_type(self) -> bool:
        return self.type in PAYLOAD_MODELS


class VariableToken(BaseModel):
    """A workflow variable that can be interpolated into text fields."""

    name: str


class PreviewRequest(BaseModel):
    """A request for a rendered preview of one step.

    ``request_id`` increases monotonically per step and lets the preview
    engine discard responses that arrive after a newer request was issued.
    """

    step_index: int
    record: StepRecord
    request_id: int


class PreviewResponse(BaseModel):
    """Result of a preview fetch."""

    request: PreviewRequest
    status_code: int = 200
    body: str = ""
    content_type: str = "text/html"

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class QuestionRef(BaseModel):
    """Preceding yes/no question that can seed a decision step's branches."""

    title: str
    variable_name: str
    step_index: int

    @property
    def step_number(self) -> int:
        return self.step_index + 1


class BranchCandidate(BaseModel):
    """Proposed yes/no branch pair, pending explicit application."""

    source_question: QuestionRef
    branches: List[Branch] = Field(min_length=2, max_length=2)


class SuggestedBranch(BaseModel):
    condition: str
    label: str
    path: str = ""


class BranchSuggestion(BaseModel):
    """Branch template derived from a preceding question of any answer type."""

    type: str
    title: str
    description: str
    variable: str
    question_title: str
    step_index: int
    branches: List[SuggestedBranch] = Field(default_factory=list)


class StepSummary(BaseModel):
    """Titled step that can be chosen as a branch target."""

    index: int
    title: str
    type: str

    @property
    def step_number(self) -> int:
        return self.index + 1
