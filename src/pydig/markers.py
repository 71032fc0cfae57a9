"""
Annotation markers and aggregate base classes.

Markers are attached with `typing.Annotated`:

    def new_service(
        primary: Annotated[Database, Name("primary")],
        handlers: Annotated[list[Handler], Group("handlers")],
        cache: Annotated[Cache, Maybe()],
    ) -> Service: ...
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Name:
    """Qualifies a parameter or result with a name."""

    value: str


@dataclass(frozen=True)
class Group:
    """
    Places a result into, or consumes, a value group.

    On results, `flatten=True` adds each element of a returned list to the
    group instead of the list itself.
    """

    value: str
    flatten: bool = False


@dataclass(frozen=True)
class Maybe:
    """Marks a dependency as optional."""


class In:
    """
    Base class for parameter objects.

    Each annotated field of a subclass is resolved as a separate dependency
    and the object is built with `cls(**fields)`:

        @dataclass
        class ServiceParams(In):
            db: Database
            cache: Annotated[Cache, Maybe()]

    Pass `ignore_private=True` in the class statement to skip fields whose
    names start with an underscore instead of rejecting them.
    """

    __pydig_ignore_private__ = False

    def __init_subclass__(cls, ignore_private: bool = False, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls.__pydig_ignore_private__ = ignore_private


class Out:
    """
    Base class for result objects.

    Each annotated field of a returned instance is provided as a separate
    value.
    """


def is_in(target: Any) -> bool:
    return isinstance(target, type) and issubclass(target, In) and target is not In


def is_out(target: Any) -> bool:
    return isinstance(target, type) and issubclass(target, Out) and target is not Out
