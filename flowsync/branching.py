"""Branch inference for decision steps."""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Sequence

from .contracts import (
    AnswerType,
    Branch,
    BranchCandidate,
    BranchSuggestion,
    QuestionRef,
    StepRecord,
    StepSummary,
    StepType,
    SuggestedBranch,
)
from .errors import UserInputError
from .events import BranchCandidateProposed, EventBus
from .fields import FieldSet

logger = logging.getLogger(__name__)

NUMERIC_THRESHOLD = 50


def _is_question(step: StepRecord) -> bool:
    return step.type == StepType.QUESTION.value and step.payload is not None


def sanitize_variable_name(title: str) -> str:
    """Derive a variable name from a question title."""
    name = re.sub(r"\s+", "_", title.lower())
    return re.sub(r"[^a-z0-9_]", "", name)


class BranchInferenceEngine:
    """Detects yes/no questions that can seed a decision step's branches."""

    @staticmethod
    def infer_preceding(decision_index: int, steps: Sequence[StepRecord]) -> List[QuestionRef]:
        """Yes/no questions before ``decision_index``, nearest first."""
        questions = []
        for position, step in enumerate(steps[: max(0, decision_index)]):
            if not _is_question(step):
                continue
            if step.payload.answer_type != AnswerType.YES_NO.value:
                continue
            variable_name = step.payload.variable_name.strip()
            if not variable_name:
                continue
            questions.append(
                QuestionRef(
                    title=step.title.strip() or f"Question {position + 1}",
                    variable_name=variable_name,
                    step_index=position,
                )
            )
        questions.reverse()
        return questions

    @staticmethod
    def build_candidate(question: QuestionRef, yes_path: str = "", no_path: str = "") -> BranchCandidate:
        variable = question.variable_name
        return BranchCandidate(
            source_question=question,
            branches=[
                Branch(condition=f"{variable} == 'yes'", path=yes_path),
                Branch(condition=f"{variable} == 'no'", path=no_path),
            ],
        )

    @staticmethod
    def apply(candidate: BranchCandidate, fields: FieldSet) -> FieldSet:
        """Write the candidate's branches into a decision step's raw fields.

        Existing branches (including legacy true/false paths) are replaced,
        not merged.
        """

        step_type = fields.get_text("type")
        if step_type and step_type != StepType.DECISION.value:
            raise UserInputError(f"Branches can only be applied to a decision step, not {step_type!r}")

        removed = fields.remove_group("branches")
        fields.remove("true_path")
        fields.remove("false_path")
        for i, branch in enumerate(candidate.branches):
            fields.set(f"branches[{i}][condition]", branch.condition)
            fields.set(f"branches[{i}][path]", branch.path)
        logger.info(
            f"Applied branches from {candidate.source_question.variable_name!r} "
            f"(replaced {removed} existing branch field(s))"
        )
        return fields


def available_paths(steps: Sequence[StepRecord], exclude: Optional[int] = None) -> List[StepSummary]:
    """Titled steps that can be picked as a branch target."""
    return [
        StepSummary(index=position, title=step.title.strip(), type=step.type)
        for position, step in enumerate(steps)
        if step.title.strip() and position != exclude
    ]


class BranchSuggestionPanel:
    """Ephemeral yes/no suggestion state for one decision step.

    The panel exists only while it is open. Confirming it publishes a
    :class:`~flowsync.events.BranchCandidateProposed` event; the decision
    step editor applies the candidate itself.
    """

    def __init__(
        self,
        decision_index: int,
        steps: Sequence[StepRecord],
        bus: Optional[EventBus] = None,
    ) -> None:
        self.decision_index = decision_index
        self._bus = bus
        self.questions: List[QuestionRef] = []
        self.paths: List[StepSummary] = []
        self.selected: Optional[QuestionRef] = None
        self.refresh(steps)

    @property
    def has_suggestions(self) -> bool:
        return bool(self.questions)

    def refresh(self, steps: Sequence[StepRecord]) -> None:
        """Recompute questions and paths, keeping the selection when still valid."""
        self.questions = BranchInferenceEngine.infer_preceding(self.decision_index, steps)
        self.paths = available_paths(steps)
        previous = self.selected.step_index if self.selected else None
        self.selected = next(
            (q for q in self.questions if q.step_index == previous),
            self.questions[0] if self.questions else None,
        )

    def select(self, step_index: int) -> QuestionRef:
        for question in self.questions:
            if question.step_index == step_index:
                self.selected = question
                return question
        raise UserInputError(f"Step {step_index + 1} is not a preceding yes/no question")

    def confirm(self, yes_path: str = "", no_path: str = "") -> BranchCandidate:
        if self.selected is None:
            logger.warning(f"Branch confirmation for step {self.decision_index} without a selected question")
            raise UserInputError("Select a yes/no question before applying branches")

        candidate = BranchInferenceEngine.build_candidate(self.selected, yes_path, no_path)
        if self._bus is not None:
            self._bus.publish(
                BranchCandidateProposed(decision_index=self.decision_index, candidate=candidate)
            )
        return candidate


# ----------------------------------------------------------------------
# Suggestions for every answer type


def _yes_no(variable: str) -> List[SuggestedBranch]:
    return [
        SuggestedBranch(condition=f"{variable} == 'yes'", label="If Yes"),
        SuggestedBranch(condition=f"{variable} == 'no'", label="If No"),
    ]


def _choices(variable: str, step: StepRecord) -> List[SuggestedBranch]:
    branches = []
    for option in step.payload.options:
        value = option.value or option.label
        label = option.label or option.value
        branches.append(SuggestedBranch(condition=f"{variable} == '{value}'", label=f'If "{label}"'))
    return branches


def _numeric(variable: str) -> List[SuggestedBranch]:
    return [
        SuggestedBranch(condition=f"{variable} < {NUMERIC_THRESHOLD}", label=f"If Less Than {NUMERIC_THRESHOLD}"),
        SuggestedBranch(condition=f"{variable} >= {NUMERIC_THRESHOLD}", label=f"If {NUMERIC_THRESHOLD} or More"),
    ]


def _text(variable: str, title: str) -> List[SuggestedBranch]:
    return [
        SuggestedBranch(condition=f"{variable} == ''", label=f'If "{title}" is empty'),
        SuggestedBranch(condition=f"{variable} != ''", label=f'If "{title}" has value'),
    ]


def suggest_branches(steps: Sequence[StepRecord], decision_index: int) -> List[BranchSuggestion]:
    """Branch templates for every question before ``decision_index``, in document order."""
    suggestions = []
    for position, step in enumerate(steps[: max(0, decision_index)]):
        if not _is_question(step):
            continue
        title = step.title
        variable = step.payload.variable_name.strip() or sanitize_variable_name(title)
        answer_type = step.payload.answer_type

        if answer_type == AnswerType.YES_NO.value:
            kind, description = "yes_no", "Create branches for Yes and No answers"
            branches = _yes_no(variable)
        elif answer_type in (AnswerType.MULTIPLE_CHOICE.value, AnswerType.DROPDOWN.value):
            if not step.payload.options:
                continue
            kind = "multiple_choice"
            description = f"Create branches for each option ({len(step.payload.options)} branches)"
            branches = _choices(variable, step)
        elif answer_type == AnswerType.NUMERIC.value:
            kind, description = "numeric", "Create numeric condition branches"
            branches = _numeric(variable)
        else:
            kind, description = "text", "Create text condition branch"
            branches = _text(variable, title)

        suggestions.append(
            BranchSuggestion(
                type=kind,
                title=f'Branch based on "{title}"',
                description=description,
                variable=variable,
                question_title=title,
                step_index=position,
                branches=branches,
            )
        )
    return suggestions


def most_relevant(suggestions: Sequence[BranchSuggestion]) -> Optional[BranchSuggestion]:
    """The suggestion of the question nearest to the decision step."""
    return suggestions[-1] if suggestions else None
