"""
Declared shape of a callable: its parameter and result slots.

A `FunctionShape` is what the descriptor builders in `params` and `results`
consume. `SignatureIntrospector` derives one from annotations; callers can
also declare it by hand and pass it to `provide(..., shape=...)`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


class _HasDefault:
    def __repr__(self) -> str:
        return "HAS_DEFAULT"


# A default the class computes itself, such as a dataclass default_factory.
HAS_DEFAULT: Any = _HasDefault()


@dataclass(frozen=True)
class Slot:
    """One declared input or output."""

    annotation: Any
    field: str | None = None
    name: str | None = None
    group: str | None = None
    flatten: bool = False
    optional: bool = False
    default: Any = MISSING
    keyword_only: bool = False
    # Set for In/Out aggregates only.
    fields: tuple[Slot, ...] | None = None

    @property
    def is_aggregate(self) -> bool:
        return self.fields is not None

    @property
    def has_default(self) -> bool:
        return self.default is not MISSING


@dataclass(frozen=True)
class FunctionShape:
    """Parameter and result slots of a callable."""

    params: tuple[Slot, ...] = field(default_factory=tuple)
    results: tuple[Slot, ...] = field(default_factory=tuple)
    # True when results came from a `tuple[...]` return annotation.
    multiple_results: bool = False
