"""
Source locations of user-supplied callables, used in diagnostics.
"""

from __future__ import annotations

import functools
import inspect
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Location:
    """Where a constructor or invoked function was defined."""

    module: str
    name: str
    file: str
    line: int

    @classmethod
    def of(cls, func: Any) -> Location:
        """Inspect `func` and return its location."""
        target = func
        while isinstance(target, functools.partial):
            target = target.func
        target = inspect.unwrap(target) if callable(target) else target

        module = getattr(target, "__module__", None) or "<unknown>"
        name = getattr(target, "__qualname__", None) or type(target).__qualname__

        try:
            file = inspect.getsourcefile(target) or "<unknown>"
        except TypeError:
            file = "<unknown>"

        code = getattr(target, "__code__", None)
        if code is not None:
            line = code.co_firstlineno
        else:
            try:
                _, line = inspect.getsourcelines(target)
            except (OSError, TypeError):
                line = 0

        return cls(module, name, file, line)

    def __str__(self) -> str:
        return f'"{self.module}".{self.name} ({self.file}:{self.line})'
