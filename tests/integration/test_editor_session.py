"""End-to-end editor session tests driven by a manual clock."""

import pytest
import pytest_asyncio

from flowsync.config import FlowSyncConfig
from flowsync.editor import StepList
from flowsync.errors import UserInputError
from flowsync.events import FieldChanged, StepListChanged
from flowsync.preview import InMemoryPreviewClient, InMemoryPreviewSurface
from flowsync.scheduling import ManualScheduler
from flowsync.session import EditorSession


def _steps():
    return StepList(
        [
            {
                "type": "question",
                "title": "Is the customer verified?",
                "answer_type": "yes_no",
                "variable_name": "verified",
            },
            {"type": "message", "title": "Greeting", "content": "Hi {{ver"},
            {"type": "decision", "title": "Route"},
        ]
    )


@pytest_asyncio.fixture
async def session():
    scheduler = ManualScheduler()
    client = InMemoryPreviewClient()
    editor = EditorSession(
        _steps(),
        client,
        InMemoryPreviewSurface(),
        scheduler=scheduler,
        config=FlowSyncConfig(),
    )
    await editor.open()
    yield editor, scheduler, client
    await editor.close()


@pytest.mark.asyncio
async def test_open_loads_variables_from_steps(session):
    editor, _, _ = session
    assert editor.is_open
    assert editor.catalog.names == ("verified",)


@pytest.mark.asyncio
async def test_autocomplete_insertion_refreshes_preview(session):
    editor, scheduler, client = session
    field = editor.steps.text_field(1, "content")

    editor.autocomplete.on_focus(field)
    editor.autocomplete.on_input(field)
    assert editor.autocomplete.suggestions == ["verified"]
    assert editor.autocomplete.on_key("Enter")

    assert editor.steps.fields(1).get_text("content") == "Hi {{verified}}"
    assert editor.preview.is_pending(1)

    scheduler.advance(0.5)
    await editor.drain()
    assert client.requests[-1].record.payload.content == "Hi {{verified}}"
    assert "Greeting" in editor.surface.get("step-preview-1")


@pytest.mark.asyncio
async def test_structural_change_reloads_catalog_after_debounce(session):
    editor, scheduler, _ = session
    editor.steps.add_step(
        {"type": "question", "title": "Amount", "answer_type": "numeric", "variable_name": "amount"}
    )
    editor.steps.add_step({"type": "message", "title": "Thanks"})
    assert editor.catalog.names == ("verified",)

    scheduler.advance(0.5)
    await editor.drain()
    assert editor.catalog.names == ("verified", "amount")


@pytest.mark.asyncio
async def test_branch_panel_confirmation_writes_branches(session):
    editor, scheduler, client = session
    panel = editor.open_branch_panel(2)
    assert [q.variable_name for q in panel.questions] == ["verified"]

    panel.confirm(yes_path="Greeting")

    record = editor.steps.record(2)
    assert [b.condition for b in record.payload.branches] == ["verified == 'yes'", "verified == 'no'"]
    assert record.payload.branches[0].path == "Greeting"
    assert 2 not in editor.panels

    scheduler.advance(0.5)
    await editor.drain()
    assert client.requests[-1].step_index == 2


@pytest.mark.asyncio
async def test_panel_follows_question_edits(session):
    editor, _, _ = session
    panel = editor.open_branch_panel(2)
    editor.steps.set_field(0, "answer_type", "text")
    assert panel.questions == []
    assert panel.selected is None

    with pytest.raises(UserInputError):
        editor.open_branch_panel(1)


@pytest.mark.asyncio
async def test_close_releases_subscriptions_and_timers(session):
    editor, scheduler, _ = session
    editor.steps.set_field(1, "title", "Hello")
    editor.steps.add_step({"type": "checkpoint"})
    assert scheduler.pending == 2

    await editor.close()

    assert not editor.is_open
    assert scheduler.pending == 0
    assert len(editor.catalog) == 0
    assert editor.steps.bus.handler_count(FieldChanged) == 0
    assert editor.steps.bus.handler_count(StepListChanged) == 0


@pytest.mark.asyncio
async def test_edit_then_remove_previews_the_edited_step(session):
    editor, scheduler, client = session
    editor.steps.set_field(2, "title", "Route edited")
    editor.steps.remove_step(0)

    scheduler.advance(1.0)
    await editor.drain()

    assert [(r.step_index, r.record.title) for r in client.requests] == [(1, "Route edited")]
    assert "Route edited" in editor.surface.get("step-preview-1")


@pytest.mark.asyncio
async def test_open_panel_follows_moved_decision(session):
    editor, _, _ = session
    panel = editor.open_branch_panel(2)
    editor.steps.move_step(2, 1)

    assert editor.panels == {1: panel}
    assert panel.decision_index == 1
    assert [q.variable_name for q in panel.questions] == ["verified"]
