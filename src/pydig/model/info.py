"""
Machine-readable descriptions of constructor inputs and outputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .keys import type_name


def _render(target_type: Any, tokens: list[str]) -> str:
    rendered = type_name(target_type)
    if not tokens:
        return rendered
    return f"{rendered}[{', '.join(tokens)}]"


@dataclass(frozen=True)
class Input:
    """One input parameter of a constructor."""

    target_type: Any
    optional: bool = False
    name: str | None = None
    group: str | None = None

    def __str__(self) -> str:
        tokens = []
        if self.optional:
            tokens.append("optional")
        if self.name is not None:
            tokens.append(f'name = "{self.name}"')
        if self.group is not None:
            tokens.append(f'group = "{self.group}"')
        return _render(self.target_type, tokens)


@dataclass(frozen=True)
class Output:
    """One value produced by a constructor."""

    target_type: Any
    name: str | None = None
    group: str | None = None

    def __str__(self) -> str:
        tokens = []
        if self.name is not None:
            tokens.append(f'name = "{self.name}"')
        if self.group is not None:
            tokens.append(f'group = "{self.group}"')
        return _render(self.target_type, tokens)


@dataclass
class ProvideInfo:
    """
    Filled by `provide(..., info=ProvideInfo())` once the constructor is registered.
    """

    id: int = -1
    inputs: list[Input] = field(default_factory=list)
    outputs: list[Output] = field(default_factory=list)
