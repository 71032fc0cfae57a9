"""
Key implementation for the object graph.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import UnionType
from typing import Any, Union, get_args, get_origin


def type_name(target_type: Any) -> str:
    """Render a type the way it is written in source."""
    origin = get_origin(target_type)
    if origin is None:
        if target_type is Ellipsis:
            return "..."
        if target_type is type(None):
            return "None"
        name = getattr(target_type, "__name__", None)
        if isinstance(name, str):
            return name
        return repr(target_type).replace("typing.", "")

    args = get_args(target_type)
    if origin in (Union, UnionType):
        return " | ".join(type_name(arg) for arg in args)
    return f"{type_name(origin)}[{', '.join(type_name(arg) for arg in args)}]"


@dataclass(frozen=True)
class Key:
    """
    Identity of a bindable value: a type plus at most one of name or group.

    Two keys are equal only when type, name and group all match.
    """

    target_type: Any
    name: str | None = None
    group: str | None = None

    def __post_init__(self) -> None:
        if self.name is not None and self.group is not None:
            raise ValueError(
                f"a key cannot be both named and grouped: name={self.name!r} group={self.group!r}"
            )

    @classmethod
    def of(cls, target_type: Any, name: str | None = None) -> Key:
        """Create a key for a single, optionally named, value."""
        return cls(target_type, name=name)

    @classmethod
    def grouped(cls, target_type: Any, group: str) -> Key:
        """Create a key for the value group `group` of `target_type`."""
        return cls(target_type, group=group)

    @property
    def is_group(self) -> bool:
        return self.group is not None

    def __str__(self) -> str:
        rendered = type_name(self.target_type)
        if self.name is not None:
            return f'{rendered}[name = "{self.name}"]'
        if self.group is not None:
            return f'{rendered}[group = "{self.group}"]'
        return rendered

    def __hash__(self) -> int:
        return hash((self.target_type, self.name, self.group))
