"""Data sources the variable catalog can be reloaded from."""

from __future__ import annotations

import abc
from typing import Callable, Iterable, List, Optional

import httpx

from ..contracts import StepRecord, StepType
from ..text import find_tokens


class VariableSource(metaclass=abc.ABCMeta):
    """Supplies the ordered list of variable names for a workflow."""

    @abc.abstractmethod
    async def fetch(self) -> List[str]:
        raise NotImplementedError


class StaticVariableSource(VariableSource):
    """Fixed list of names, for tests and offline tooling."""

    def __init__(self, names: Iterable[str]) -> None:
        self._names = list(names)

    async def fetch(self) -> List[str]:
        return list(self._names)

    def __repr__(self) -> str:
        return f"StaticVariableSource({len(self._names)} names)"


class HttpVariableSource(VariableSource):
    """Loads ``{"variables": [...]}`` from the workflow's variables endpoint."""

    def __init__(
        self,
        url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 5.0,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._client = client

    async def fetch(self) -> List[str]:
        if self._client is not None:
            response = await self._client.get(self.url, headers={"Accept": "application/json"})
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self.url, headers={"Accept": "application/json"})
        response.raise_for_status()

        data = response.json()
        variables = data.get("variables") if isinstance(data, dict) else None
        if not isinstance(variables, list):
            raise ValueError(f"Response from {self.url} has no 'variables' list")
        return [str(name) for name in variables]

    def __repr__(self) -> str:
        return f"HttpVariableSource({self.url!r})"


class StepVariableSource(VariableSource):
    """Derives variables from the question steps of the current step list.

    Every question with a variable name contributes it once, in document
    order.
    """

    def __init__(self, steps: Callable[[], Iterable[StepRecord]]) -> None:
        self._steps = steps

    async def fetch(self) -> List[str]:
        return step_variables(self._steps())

    def __repr__(self) -> str:
        return "StepVariableSource()"


def step_variables(steps: Iterable[StepRecord]) -> List[str]:
    names: List[str] = []
    for step in steps:
        if step.type != StepType.QUESTION.value or step.payload is None:
            continue
        name = step.payload.variable_name.strip()
        if name and name not in names:
            names.append(name)
    return names


def undefined_references(steps: Iterable[StepRecord], known: Iterable[str]) -> List[tuple]:
    """List ``(step_index, field, name)`` for ``{{name}}`` tokens not in ``known``."""
    known_names = set(known)
    missing = []
    for step in steps:
        texts = {"title": step.title, "description": step.description}
        if step.payload is not None:
            for field, value in step.payload.model_dump(exclude={"kind"}).items():
                if isinstance(value, str):
                    texts[field] = value
        for field, text in texts.items():
            for name in find_tokens(text):
                if name not in known_names:
                    missing.append((step.index, field, name))
    return missing


__all__ = [
    "HttpVariableSource",
    "StaticVariableSource",
    "StepVariableSource",
    "VariableSource",
    "step_variables",
    "undefined_references",
]
