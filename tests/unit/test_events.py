"""Event bus tests."""

import pytest

from flowsync.events import EventBus, FieldChanged, StepListChanged


def test_handlers_receive_only_their_event_type():
    bus = EventBus()
    fields, structure = [], []
    bus.subscribe(FieldChanged, fields.append)
    bus.subscribe(StepListChanged, structure.append)

    bus.publish(FieldChanged(step_index=1, field_name="title"))
    assert len(fields) == 1
    assert structure == []


def test_unsubscribe_stops_delivery():
    bus = EventBus()
    seen = []
    subscription = bus.subscribe(FieldChanged, seen.append)
    subscription.unsubscribe()
    subscription.unsubscribe()
    bus.publish(FieldChanged(step_index=0, field_name="title"))
    assert seen == []
    assert bus.handler_count(FieldChanged) == 0


def test_handler_errors_propagate():
    bus = EventBus()

    def broken(event):
        raise RuntimeError("boom")

    bus.subscribe(FieldChanged, broken)
    with pytest.raises(RuntimeError):
        bus.publish(FieldChanged(step_index=0, field_name="title"))


@pytest.mark.parametrize(
    "event, expected",
    [
        (StepListChanged(reason="added", step_count=4, step_index=1), [0, 2, 3]),
        (StepListChanged(reason="removed", step_count=2, step_index=1), [0, None, 1]),
        (StepListChanged(reason="moved", step_count=3, step_index=2, source_index=0), [2, 0, 1]),
        (StepListChanged(reason="moved", step_count=3, step_index=0, source_index=2), [1, 2, 0]),
    ],
)
def test_new_index_follows_structural_changes(event, expected):
    assert [event.new_index(old) for old in range(3)] == expected
