"""Variable catalog and its data sources."""

from __future__ import annotations

import os
from typing import Callable, Iterable, Optional

from ..config import FlowSyncConfig, load_config
from ..contracts import StepRecord
from ..errors import ConfigurationError
from .catalog import VariableCatalog
from .sources import (
    HttpVariableSource,
    StaticVariableSource,
    StepVariableSource,
    VariableSource,
    step_variables,
    undefined_references,
)


def get_variable_source(
    workflow_id: Optional[str] = None,
    config: Optional[FlowSyncConfig] = None,
    steps: Optional[Callable[[], Iterable[StepRecord]]] = None,
) -> VariableSource:
    """Factory for the configured variable source.

    An explicit ``FLOWSYNC_VARIABLES_URL`` or configured endpoint wins; the
    ``{workflow_id}`` placeholder in it is filled in. Without an endpoint the
    variables are derived from ``steps``.
    """

    config = config or load_config()
    url = os.getenv("FLOWSYNC_VARIABLES_URL") or config.catalog.endpoint
    if url:
        if "{workflow_id}" in url:
            if workflow_id is None:
                raise ConfigurationError(
                    f"Variables endpoint {url!r} needs a workflow id"
                )
            url = url.format(workflow_id=workflow_id)
        return HttpVariableSource(url, timeout=config.catalog.timeout)
    if steps is not None:
        return StepVariableSource(steps)
    raise ConfigurationError("No variables endpoint configured and no step list given")


__all__ = [
    "HttpVariableSource",
    "StaticVariableSource",
    "StepVariableSource",
    "VariableCatalog",
    "VariableSource",
    "get_variable_source",
    "step_variables",
    "undefined_references",
]
