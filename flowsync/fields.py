"""Raw editable field sets for workflow steps.

A :class:`FieldSet` mirrors what a browser form would serialize for one step:
an ordered list of ``(name, value)`` pairs. Names are step-relative
(``title``, ``options[0][label]``) but may carry an outer form prefix such as
``workflow[steps][3][title]``; only the trailing part is significant.

Repeated groups are addressed either with an explicit index
(``options[2][label]``) or append style (``branches[][condition]``), in which
case a new entry starts whenever a key repeats inside the current entry.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

FieldValue = Union[str, bool]

TRUTHY_VALUES = frozenset({"true", "1", "on", "yes"})

# Groups whose entries are edited as individual indexed inputs.
REPEATED_GROUPS = ("options", "branches")

_PREFIX_RE = re.compile(r"^\w+\[steps\]\[\d*\]")
_GROUP_RE = re.compile(r"^(?P<group>\w+)\[(?P<index>\d*)\]\[(?P<key>\w+)\]$")
_BRACKET_RE = re.compile(r"^\[(?P<name>\w+)\]")


def normalize_name(name: str) -> str:
    """Strip an outer form prefix and return the step-relative field name.

    ``workflow[steps][3][options][0][label]`` becomes ``options[0][label]`` and
    ``workflow[steps][][title]`` becomes ``title``.
    """

    match = _PREFIX_RE.match(name)
    if not match:
        return name
    rest = name[match.end():]
    head = _BRACKET_RE.match(rest)
    if not head:
        return rest
    return head.group("name") + rest[head.end():]


def parse_group_name(name: str) -> Optional[Tuple[str, Optional[int], str]]:
    """Split ``group[N][key]`` into ``(group, N, key)``; ``N`` is ``None`` for ``[]``."""

    match = _GROUP_RE.match(normalize_name(name))
    if not match:
        return None
    index = match.group("index")
    return match.group("group"), int(index) if index else None, match.group("key")


def coerce_bool(value: Any) -> bool:
    """Interpret a checkbox value."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in TRUTHY_VALUES


class FieldSet:
    """Ordered collection of a step's raw editable fields."""

    def __init__(self, pairs: Optional[Iterable[Tuple[str, FieldValue]]] = None) -> None:
        self._pairs: List[Tuple[str, FieldValue]] = []
        for name, value in pairs or ():
            self._pairs.append((normalize_name(name), value))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "FieldSet":
        """Build a field set from a plain mapping.

        Lists under a repeated group name (``{"options": [{"label": "A"}]}``)
        are flattened into indexed group fields; other lists and dicts are
        JSON-encoded the way the editor keeps them in hidden inputs.
        """

        pairs: List[Tuple[str, FieldValue]] = []
        for name, value in data.items():
            if name in REPEATED_GROUPS and isinstance(value, list):
                for i, entry in enumerate(value):
                    if not isinstance(entry, Mapping):
                        continue
                    for key, item in entry.items():
                        pairs.append((f"{name}[{i}][{key}]", _as_field_value(item)))
            else:
                pairs.append((name, _as_field_value(value)))
        return cls(pairs)

    def __iter__(self) -> Iterator[Tuple[str, FieldValue]]:
        return iter(list(self._pairs))

    def __len__(self) -> int:
        return len(self._pairs)

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        name = normalize_name(name)
        return any(n == name for n, _ in self._pairs)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FieldSet):
            return NotImplemented
        return self._pairs == other._pairs

    def __repr__(self) -> str:
        return f"FieldSet({self._pairs!r})"

    def to_pairs(self) -> List[Tuple[str, FieldValue]]:
        return list(self._pairs)

    def copy(self) -> "FieldSet":
        return FieldSet(self._pairs)

    # ------------------------------------------------------------------
    def get(self, name: str, default: Optional[FieldValue] = None) -> Optional[FieldValue]:
        """Return the first value stored under ``name``."""
        name = normalize_name(name)
        for field_name, value in self._pairs:
            if field_name == name:
                return value
        return default

    def get_text(self, name: str) -> str:
        value = self.get(name)
        if value is None or isinstance(value, bool):
            return ""
        return str(value)

    def get_bool(self, name: str) -> bool:
        return coerce_bool(self.get(name))

    def set(self, name: str, value: FieldValue) -> None:
        """Replace the first value stored under ``name`` or append a new field."""
        name = normalize_name(name)
        for i, (field_name, _) in enumerate(self._pairs):
            if field_name == name:
                self._pairs[i] = (name, value)
                return
        self._pairs.append((name, value))

    def remove(self, name: str) -> None:
        name = normalize_name(name)
        self._pairs = [(n, v) for n, v in self._pairs if n != name]

    def remove_group(self, group: str) -> int:
        """Drop every field belonging to repeated group ``group``."""
        kept = []
        removed = 0
        for name, value in self._pairs:
            parsed = parse_group_name(name)
            if parsed and parsed[0] == group:
                removed += 1
                continue
            kept.append((name, value))
        self._pairs = kept
        return removed

    def has_group(self, group: str) -> bool:
        return any(
            (parsed := parse_group_name(name)) is not None and parsed[0] == group
            for name, _ in self._pairs
        )

    def indexed_group(self, group: str) -> List[Dict[str, FieldValue]]:
        """Collect the entries of repeated group ``group`` in index order.

        Explicitly indexed fields land at their index regardless of the order
        they appear in; indexes that never receive a field are absent from the
        result rather than padded. Append-style fields are numbered after the
        highest explicit index in the order they appear.
        """

        explicit: Dict[int, Dict[str, FieldValue]] = {}
        appended: List[Dict[str, FieldValue]] = []
        for name, value in self._pairs:
            parsed = parse_group_name(name)
            if not parsed or parsed[0] != group:
                continue
            _, index, key = parsed
            if index is None:
                if not appended or key in appended[-1]:
                    appended.append({})
                appended[-1][key] = value
            else:
                explicit.setdefault(index, {})[key] = value
        return [explicit[i] for i in sorted(explicit)] + appended


def _as_field_value(value: Any) -> FieldValue:
    if isinstance(value, bool):
        return value
    if value is None:
        return ""
    if isinstance(value, (list, dict)):
        return json.dumps(value)
    return str(value)
