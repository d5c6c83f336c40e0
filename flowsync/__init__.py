"""flowsync: synchronization core for a visual workflow editor."""

from .autocomplete import AutocompleteState, TextField, VariableAutocompleteEngine
from .branching import BranchInferenceEngine, BranchSuggestionPanel, suggest_branches
from .catalog import VariableCatalog, get_variable_source
from .contracts import (
    BranchCandidate,
    PreviewRequest,
    PreviewResponse,
    QuestionRef,
    StepRecord,
    StepType,
)
from .editor import StepList
from .events import EventBus
from .extraction import StepDataExtractor, extract, to_fields
from .fields import FieldSet
from .preview import PreviewSyncEngine, get_preview_client
from .session import EditorSession
from .text import find_active_span

__version__ = "0.1.0"
__all__ = [
    "AutocompleteState",
    "BranchCandidate",
    "BranchInferenceEngine",
    "BranchSuggestionPanel",
    "EditorSession",
    "EventBus",
    "FieldSet",
    "PreviewRequest",
    "PreviewResponse",
    "PreviewSyncEngine",
    "QuestionRef",
    "StepDataExtractor",
    "StepList",
    "StepRecord",
    "StepType",
    "TextField",
    "VariableAutocompleteEngine",
    "VariableCatalog",
    "extract",
    "find_active_span",
    "get_preview_client",
    "get_variable_source",
    "suggest_branches",
    "to_fields",
]
