"""Set of workflow variables offered for interpolation."""

from __future__ import annotations

import logging
from typing import FrozenSet, Iterable, List, Tuple

from ..contracts import VariableToken
from .sources import VariableSource

logger = logging.getLogger(__name__)


def _unique(names: Iterable[object]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(n for n in names if isinstance(n, str) and n))


class VariableCatalog:
    """Known variable names for the workflow being edited.

    The names live in an immutable tuple that :meth:`reload` swaps by
    reference, so readers always see either the complete old set or the
    complete new one. Reloads are last-issued-wins: a result that completes
    after a newer reload was already applied is dropped.
    """

    def __init__(self, names: Iterable[str] = ()) -> None:
        self._names: Tuple[str, ...] = _unique(names)
        self._issued = 0
        self._applied = 0

    def __len__(self) -> int:
        return len(self._names)

    def __contains__(self, name: object) -> bool:
        return name in self._names

    @property
    def names(self) -> Tuple[str, ...]:
        """Variable names in source order."""
        return self._names

    def snapshot(self) -> FrozenSet[str]:
        return frozenset(self._names)

    def tokens(self) -> List[VariableToken]:
        return [VariableToken(name=name) for name in self._names]

    def filter(self, query: str) -> List[str]:
        """Case-insensitive substring match, preserving catalog order."""
        names = self._names
        needle = query.strip().lower()
        if not needle:
            return list(names)
        return [name for name in names if needle in name.lower()]

    def replace(self, names: Iterable[str]) -> None:
        """Swap in a new set of names immediately."""
        self._issued += 1
        self._applied = self._issued
        self._names = _unique(names)

    def clear(self) -> None:
        self.replace(())

    async def reload(self, source: VariableSource) -> bool:
        """Refresh the catalog from ``source``.

        Returns ``True`` when the new set was applied. A failing source leaves
        the previous set in place and is logged as a warning.
        """

        self._issued += 1
        generation = self._issued
        try:
            fetched = await source.fetch()
        except Exception as e:
            logger.warning(
                f"Variable catalog reload from {source!r} failed: {e}. "
                f"Keeping {len(self._names)} previously loaded variable(s)."
            )
            return False

        if generation < self._applied:
            logger.debug(f"Discarding stale catalog reload #{generation}")
            return False

        self._names = _unique(fetched)
        self._applied = generation
        logger.info(f"Variable catalog reloaded with {len(self._names)} variable(s)")
        return True
