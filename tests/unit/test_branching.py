"""Branch inference and suggestion tests."""

import pytest

from flowsync.branching import (
    BranchInferenceEngine,
    BranchSuggestionPanel,
    available_paths,
    most_relevant,
    sanitize_variable_name,
    suggest_branches,
)
from flowsync.contracts import Branch, MessagePayload, StepRecord
from flowsync.errors import UserInputError
from flowsync.events import BranchCandidateProposed, EventBus
from flowsync.extraction import extract, extract_all
from flowsync.fields import FieldSet


def _question(title, variable, answer_type="yes_no", options=None):
    data = {"type": "question", "title": title, "answer_type": answer_type, "variable_name": variable}
    if options:
        data["options"] = options
    return FieldSet.from_mapping(data)


def _step(step_type, title=""):
    return FieldSet.from_mapping({"type": step_type, "title": title})


def _workflow():
    return extract_all(
        [
            _step("message", "Welcome"),
            _step("action", "Look up account"),
            _question("Is the customer verified?", "verified"),
            _question("Order number", "order_id", answer_type="text"),
            _step("checkpoint"),
            _question("Refund approved?", "refund_ok"),
            _question("Missing variable", ""),
            _step("decision", "Route"),
            _question("After the decision", "late"),
        ]
    )


def test_infer_preceding_returns_nearest_first():
    questions = BranchInferenceEngine.infer_preceding(7, _workflow())
    assert [(q.step_index, q.variable_name) for q in questions] == [(5, "refund_ok"), (2, "verified")]
    assert questions[0].step_number == 6


def test_infer_preceding_ignores_later_and_unnamed_questions():
    steps = _workflow()
    assert BranchInferenceEngine.infer_preceding(0, steps) == []
    assert "late" not in [q.variable_name for q in BranchInferenceEngine.infer_preceding(7, steps)]


def test_untitled_question_gets_positional_title():
    steps = extract_all([_question("", "agree"), _step("decision")])
    (question,) = BranchInferenceEngine.infer_preceding(1, steps)
    assert question.title == "Question 1"


def test_build_candidate_uses_yes_no_conditions():
    question = BranchInferenceEngine.infer_preceding(7, _workflow())[0]
    candidate = BranchInferenceEngine.build_candidate(question, yes_path="Refund", no_path="Close")
    assert candidate.branches == [
        Branch(condition="refund_ok == 'yes'", path="Refund"),
        Branch(condition="refund_ok == 'no'", path="Close"),
    ]


def test_apply_overwrites_existing_branches():
    fields = FieldSet(
        [
            ("type", "decision"),
            ("branches[0][condition]", "a == 1"),
            ("branches[0][path]", "A"),
            ("branches[1][condition]", "a == 2"),
            ("branches[2][condition]", "a == 3"),
            ("true_path", "Old"),
        ]
    )
    question = BranchInferenceEngine.infer_preceding(7, _workflow())[1]
    BranchInferenceEngine.apply(BranchInferenceEngine.build_candidate(question), fields)

    record = extract(fields)
    assert record.payload.branches == [
        Branch(condition="verified == 'yes'", path=""),
        Branch(condition="verified == 'no'", path=""),
    ]
    assert "true_path" not in fields


def test_apply_rejects_non_decision_step():
    question = BranchInferenceEngine.infer_preceding(7, _workflow())[0]
    with pytest.raises(UserInputError):
        BranchInferenceEngine.apply(
            BranchInferenceEngine.build_candidate(question), FieldSet([("type", "message")])
        )


def test_panel_confirm_publishes_candidate():
    bus = EventBus()
    received = []
    bus.subscribe(BranchCandidateProposed, received.append)

    panel = BranchSuggestionPanel(7, _workflow(), bus=bus)
    assert panel.selected.variable_name == "refund_ok"
    panel.select(2)
    candidate = panel.confirm(yes_path="Welcome")

    assert received == [BranchCandidateProposed(decision_index=7, candidate=candidate)]
    assert candidate.source_question.variable_name == "verified"
    assert candidate.branches[0].path == "Welcome"


def test_panel_without_selection_raises_and_publishes_nothing():
    bus = EventBus()
    received = []
    bus.subscribe(BranchCandidateProposed, received.append)

    panel = BranchSuggestionPanel(1, extract_all([_step("message"), _step("decision")]), bus=bus)
    assert not panel.has_suggestions
    with pytest.raises(UserInputError):
        panel.confirm()
    with pytest.raises(UserInputError):
        panel.select(0)
    assert received == []


def test_panel_refresh_keeps_selection_while_valid():
    steps = _workflow()
    panel = BranchSuggestionPanel(7, steps)
    panel.select(2)
    panel.refresh(steps)
    assert panel.selected.step_index == 2

    steps[2] = StepRecord(type="message", payload=MessagePayload())
    panel.refresh(steps)
    assert panel.selected.step_index == 5


def test_available_paths_lists_titled_steps():
    paths = available_paths(_workflow(), exclude=7)
    titles = [p.title for p in paths]
    assert "Route" not in titles
    assert titles[:2] == ["Welcome", "Look up account"]
    assert all(p.title for p in paths)


def test_suggest_branches_per_answer_type():
    steps = extract_all(
        [
            _question("Agree?", "agree"),
            _question(
                "Plan",
                "plan",
                answer_type="multiple_choice",
                options=[{"label": "Basic", "value": "basic"}, {"label": "Pro", "value": "pro"}],
            ),
            _question("Empty choice", "none", answer_type="dropdown"),
            _question("Score", "score", answer_type="numeric"),
            _question("Customer Name!", "", answer_type="text"),
            _step("decision"),
        ]
    )
    suggestions = suggest_branches(steps, 5)

    assert [s.type for s in suggestions] == ["yes_no", "multiple_choice", "numeric", "text"]
    assert [b.condition for b in suggestions[0].branches] == ["agree == 'yes'", "agree == 'no'"]
    assert [b.condition for b in suggestions[1].branches] == ["plan == 'basic'", "plan == 'pro'"]
    assert suggestions[1].description == "Create branches for each option (2 branches)"
    assert [b.condition for b in suggestions[2].branches] == ["score < 50", "score >= 50"]
    assert suggestions[3].variable == "customer_name"
    assert most_relevant(suggestions) is suggestions[3]
    assert most_relevant([]) is None


def test_sanitize_variable_name():
    assert sanitize_variable_name("Is the Customer  Verified?") == "is_the_customer_verified"
