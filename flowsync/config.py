from __future__ import annotations

import os
from typing import Literal, Optional

import yaml
from pydantic import BaseModel


class PreviewConfig(BaseModel):
    """Configuration for live preview synchronization."""

    backend: Literal["http", "inmemory"] = "http"
    endpoint: Optional[str] = None
    debounce_ms: int = 500
    timeout: float = 10.0
    frame_prefix: str = "step-preview-"


class CatalogConfig(BaseModel):
    """Configuration for the variable catalog."""

    endpoint: Optional[str] = None
    reload_debounce_ms: int = 500
    timeout: float = 5.0


class AutocompleteConfig(BaseModel):
    """Configuration for variable autocomplete."""

    blur_grace_ms: int = 200


class FlowSyncConfig(BaseModel):
    """Top-level configuration model."""

    preview: PreviewConfig = PreviewConfig()
    catalog: CatalogConfig = CatalogConfig()
    autocomplete: AutocompleteConfig = AutocompleteConfig()


def load_config(path: Optional[str] = None) -> FlowSyncConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to FLOWSYNC_CONFIG env
            variable or 'flowsync.yaml' in the current directory.
    """

    config_path = path or os.getenv("FLOWSYNC_CONFIG", "flowsync.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = FlowSyncConfig(**data)
    else:
        config = FlowSyncConfig()

    env_preview_url = os.getenv("FLOWSYNC_PREVIEW_URL")
    if env_preview_url:
        config.preview.endpoint = env_preview_url
    env_variables_url = os.getenv("FLOWSYNC_VARIABLES_URL")
    if env_variables_url:
        config.catalog.endpoint = env_variables_url
    return config
