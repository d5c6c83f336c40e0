"""Step data extraction tests."""

import pytest

from flowsync.contracts import (
    ActionPayload,
    Branch,
    DecisionPayload,
    EscalatePayload,
    MessagePayload,
    Option,
    QuestionPayload,
    ResolvePayload,
    StepRecord,
    SubFlowPayload,
)
from flowsync.extraction import StepDataExtractor, extract, extract_all, to_fields
from flowsync.fields import FieldSet


def test_option_filtering_drops_blank_entries():
    fields = FieldSet(
        [
            ("type", "question"),
            ("options[0][label]", "A"),
            ("options[0][value]", ""),
            ("options[1][label]", ""),
            ("options[1][value]", ""),
            ("options[2][label]", ""),
            ("options[2][value]", "x"),
        ]
    )
    record = extract(fields, "question")
    assert record.payload.options == [Option(label="A", value=""), Option(label="", value="x")]


def test_missing_fields_use_defaults():
    record = extract(FieldSet(), "escalate", index=4)
    assert record.index == 4
    assert record.title == ""
    assert record.payload == EscalatePayload()
    assert record.payload.reason_required is False

    question = extract(FieldSet(), "question")
    assert question.payload.answer_type == ""
    assert question.payload.options == []


def test_sparse_option_indexes_are_compacted():
    fields = FieldSet(
        [("options[2][label]", "Third"), ("options[0][label]", "First")]
    )
    record = extract(fields, "question")
    assert [o.label for o in record.payload.options] == ["First", "Third"]


def test_malformed_attachments_degrade_to_empty():
    fields = FieldSet([("attachments", "[not json")])
    assert extract(fields, "action").payload.attachments == []

    fields = FieldSet([("attachments", '{"id": 1}')])
    assert extract(fields, "action").payload.attachments == []

    fields = FieldSet([("attachments", '[{"id": 1}, "doc.pdf"]')])
    assert extract(fields, "action").payload.attachments == [{"id": 1}, "doc.pdf"]


def test_malformed_variable_mapping_degrades_to_empty():
    fields = FieldSet([("target_workflow_id", "12"), ("variable_mapping", "oops")])
    payload = extract(fields, "sub_flow").payload
    assert payload == SubFlowPayload(target_workflow_id="12", variable_mapping={})


def test_checkbox_values():
    fields = FieldSet(
        [("notes_required", "true"), ("survey_trigger", False), ("resolution_code", "R1")]
    )
    payload = extract(fields, "resolve").payload
    assert payload == ResolvePayload(resolution_code="R1", notes_required=True, survey_trigger=False)


def test_legacy_decision_paths_become_branches():
    fields = FieldSet(
        [("condition", "ok == 'yes'"), ("true_path", "Ship"), ("false_path", "Hold")]
    )
    payload = extract(fields, "decision").payload
    assert payload.branches == [
        Branch(condition="ok == 'yes'", path="Ship"),
        Branch(condition="", path="Hold"),
    ]


def test_explicit_branches_win_over_legacy_paths():
    fields = FieldSet(
        [
            ("true_path", "Ship"),
            ("branches[0][condition]", "a == 1"),
            ("branches[0][path]", "A"),
        ]
    )
    assert extract(fields, "decision").payload.branches == [Branch(condition="a == 1", path="A")]


def test_unknown_type_has_no_payload():
    record = extract(FieldSet([("title", "Mystery")]), "teleport")
    assert record.type == "teleport"
    assert record.payload is None


def test_type_is_read_from_fields_when_not_given():
    record = StepDataExtractor.extract(FieldSet([("type", "message"), ("content", "Hi")]))
    assert record.payload == MessagePayload(content="Hi")


def test_payload_must_match_type():
    with pytest.raises(ValueError):
        StepRecord(type="message", payload=QuestionPayload())
    with pytest.raises(ValueError):
        StepRecord(type="message")


@pytest.mark.parametrize(
    "record",
    [
        StepRecord(
            index=0,
            type="question",
            title="Verified?",
            description="Ask the caller",
            payload=QuestionPayload(
                question="Is the account verified?",
                answer_type="multiple_choice",
                variable_name="verified",
                options=[Option(label="Yes", value="yes"), Option(label="", value="maybe")],
            ),
        ),
        StepRecord(
            index=0,
            type="action",
            title="Reset",
            payload=ActionPayload(
                action_type="manual",
                instructions="Reset the router",
                attachments=[{"filename": "guide.pdf"}],
            ),
        ),
        StepRecord(
            index=0,
            type="decision",
            title="Route",
            payload=DecisionPayload(
                condition="verified == 'yes'",
                branches=[Branch(condition="verified == 'yes'", path="Ship"), Branch(path="Hold")],
            ),
        ),
        StepRecord(
            index=0,
            type="escalate",
            title="Escalate",
            payload=EscalatePayload(
                target_type="team", target_value="tier2", priority="high", reason_required=True
            ),
        ),
        StepRecord(
            index=0,
            type="sub_flow",
            title="Billing",
            payload=SubFlowPayload(target_workflow_id="7", variable_mapping={"a": "b"}),
        ),
    ],
    ids=["question", "action", "decision", "escalate", "sub_flow"],
)
def test_extract_round_trip(record):
    assert extract(to_fields(record), record.type) == record


def test_extract_all_uses_positions():
    records = extract_all(
        [
            FieldSet([("type", "message"), ("title", "Hello")]),
            FieldSet([("type", "resolve"), ("title", "Done")]),
        ]
    )
    assert [(r.index, r.type) for r in records] == [(0, "message"), (1, "resolve")]
