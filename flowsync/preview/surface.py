"""Preview surfaces that rendered markup is swapped into."""

from __future__ import annotations

import logging
from typing import Dict, Optional, Protocol

from .stream import StreamFragment

logger = logging.getLogger(__name__)


class PreviewSurface(Protocol):
    """Named regions of rendered preview markup."""

    def replace(self, target: str, content: str) -> None:
        """Replace the whole content of region ``target``."""

    def apply_fragment(self, fragment: StreamFragment) -> None:
        """Apply one stream fragment to the region it targets."""


class InMemoryPreviewSurface:
    """Keeps region contents in a dictionary.

    Useful for tests and headless tooling.
    """

    def __init__(self) -> None:
        self.regions: Dict[str, str] = {}

    def get(self, target: str) -> Optional[str]:
        return self.regions.get(target)

    def replace(self, target: str, content: str) -> None:
        self.regions[target] = content

    def apply_fragment(self, fragment: StreamFragment) -> None:
        action, target = fragment.action, fragment.target
        if not target:
            logger.warning(f"Ignoring stream fragment without target (action={action!r})")
            return

        if action in ("replace", "update"):
            self.regions[target] = fragment.content
        elif action == "append":
            self.regions[target] = self.regions.get(target, "") + fragment.content
        elif action == "prepend":
            self.regions[target] = fragment.content + self.regions.get(target, "")
        elif action == "remove":
            self.regions.pop(target, None)
        else:
            logger.warning(f"Unsupported stream action {action!r} for target {target!r}")
