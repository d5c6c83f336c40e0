"""Wires the editor core components to one step list."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Set

from .autocomplete import VariableAutocompleteEngine
from .branching import BranchSuggestionPanel
from .catalog import StepVariableSource, VariableCatalog, VariableSource
from .config import FlowSyncConfig
from .contracts import StepType
from .editor import StepList
from .errors import UserInputError
from .events import BranchCandidateProposed, FieldChanged, StepListChanged, Subscription
from .preview import PreviewClient, PreviewSurface, PreviewSyncEngine
from .scheduling import AsyncioScheduler, Debouncer, Scheduler

logger = logging.getLogger(__name__)

# Field edits that can change which questions a decision step can branch on.
_INFERENCE_FIELDS = frozenset({"type", "title", "answer_type", "variable_name"})

_CATALOG_KEY = "catalog"


class EditorSession:
    """One open editor: catalog, autocomplete, preview sync and branch panels.

    Components talk to each other only through the step list's event bus.
    """

    def __init__(
        self,
        steps: StepList,
        preview_client: PreviewClient,
        surface: PreviewSurface,
        variable_source: Optional[VariableSource] = None,
        scheduler: Optional[Scheduler] = None,
        config: Optional[FlowSyncConfig] = None,
    ) -> None:
        config = config or FlowSyncConfig()
        self.steps = steps
        self.config = config
        self.scheduler = scheduler or AsyncioScheduler()
        self.variable_source = variable_source or StepVariableSource(steps.records)
        self.surface = surface
        self._preview_client = preview_client

        self.catalog = VariableCatalog()
        self.autocomplete = VariableAutocompleteEngine(
            self.catalog,
            self.scheduler,
            bus=steps.bus,
            blur_grace=config.autocomplete.blur_grace_ms / 1000,
        )
        self.preview = PreviewSyncEngine(
            preview_client,
            surface,
            steps.fields_or_none,
            self.scheduler,
            delay=config.preview.debounce_ms / 1000,
            frame_prefix=config.preview.frame_prefix,
        )
        self._catalog_debouncer: Debouncer[str] = Debouncer(
            self.scheduler,
            config.catalog.reload_debounce_ms / 1000,
            self._on_catalog_timer,
        )
        self.panels: Dict[int, BranchSuggestionPanel] = {}
        self._tasks: Set[asyncio.Task] = set()
        self._subscriptions: List[Subscription] = []
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    async def open(self) -> None:
        """Subscribe to the step list and load the variable catalog."""
        if self._open:
            return
        bus = self.steps.bus
        self._subscriptions = [
            bus.subscribe(FieldChanged, self._on_field_changed),
            bus.subscribe(StepListChanged, self._on_step_list_changed),
            bus.subscribe(BranchCandidateProposed, self._on_candidate),
        ]
        self._open = True
        await self._preview_client.connect()
        await self.reload_variables()
        logger.info(f"Editor session opened with {len(self.steps)} step(s)")

    async def close(self) -> None:
        """Tear down timers and subscriptions and discard transient state."""
        if not self._open:
            return
        self._open = False
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []
        self._catalog_debouncer.cancel_all()
        self.preview.close()
        self.autocomplete.close()
        self.panels.clear()
        await self.drain()
        self.catalog.clear()
        await self._preview_client.close()
        logger.info("Editor session closed")

    async def drain(self) -> None:
        """Wait for background catalog reloads and preview fetches."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        await self.preview.drain()

    async def reload_variables(self) -> bool:
        return await self.catalog.reload(self.variable_source)

    # ------------------------------------------------------------------
    # Branch suggestion panels

    def open_branch_panel(self, decision_index: int) -> BranchSuggestionPanel:
        record = self.steps.record(decision_index)
        if record.type != StepType.DECISION.value:
            raise UserInputError(f"Step {decision_index + 1} is not a decision step")
        panel = BranchSuggestionPanel(decision_index, self.steps.records(), bus=self.steps.bus)
        self.panels[decision_index] = panel
        return panel

    def close_branch_panel(self, decision_index: int) -> None:
        self.panels.pop(decision_index, None)

    def _refresh_panels(self) -> None:
        if not self.panels:
            return
        records = self.steps.records()
        for index in list(self.panels):
            if index >= len(records) or records[index].type != StepType.DECISION.value:
                del self.panels[index]
                continue
            self.panels[index].refresh(records)

    # ------------------------------------------------------------------
    # Event handlers

    def _on_field_changed(self, event: FieldChanged) -> None:
        self.preview.handle_field_changed(event)
        if event.field_name in _INFERENCE_FIELDS:
            self._refresh_panels()

    def _on_step_list_changed(self, event: StepListChanged) -> None:
        logger.debug(f"Step list {event.reason}, {event.step_count} step(s)")
        self.autocomplete.close()
        self.preview.reindex(event.new_index)
        panels = {}
        for index, panel in self.panels.items():
            new = event.new_index(index)
            if new is not None:
                panel.decision_index = new
                panels[new] = panel
        self.panels = panels
        self._catalog_debouncer.trigger(_CATALOG_KEY)
        self._refresh_panels()

    def _on_candidate(self, event: BranchCandidateProposed) -> None:
        self.steps.apply_candidate(event.decision_index, event.candidate)
        self.close_branch_panel(event.decision_index)

    def _on_catalog_timer(self, _key: str) -> None:
        task = asyncio.get_running_loop().create_task(self.reload_variables())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
