"""
Parameter descriptors: what a constructor or invoked function consumes.

Descriptors are built once, at registration time, from the declared
`FunctionShape`. Building them is also where unsupported shapes are
rejected, so no partially-built descriptor ever reaches the graph.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, get_args, get_origin

from ..errors import RegistrationError
from ..markers import is_in, is_out
from .info import Input
from .keys import Key, type_name
from .shape import HAS_DEFAULT, Slot


class NodeRegistry(Protocol):
    def new_node(self, payload: Any, key: Key | None = None) -> int: ...


@dataclass(frozen=True)
class ParamSingle:
    """An explicitly requested value, optionally named and optional."""

    target_type: Any
    name: str | None = None
    optional: bool = False
    slot: Slot | None = None

    @property
    def key(self) -> Key:
        return Key(self.target_type, name=self.name)

    def zero_value(self) -> Any:
        """Value used when an optional dependency is absent."""
        if self.slot is None or not self.slot.has_default or self.slot.default is HAS_DEFAULT:
            return None
        return self.slot.default

    def inputs(self) -> list[Input]:
        return [Input(self.target_type, optional=self.optional, name=self.name)]

    def __str__(self) -> str:
        return str(self.key)


@dataclass(frozen=True)
class ParamGroupedSlice:
    """All values of a value group, consumed as a list."""

    group: str
    list_type: Any

    @property
    def element_type(self) -> Any:
        return get_args(self.list_type)[0]

    @property
    def key(self) -> Key:
        return Key(self.element_type, group=self.group)

    def inputs(self) -> list[Input]:
        return [Input(self.list_type, group=self.group)]

    def __str__(self) -> str:
        return str(self.key)


@dataclass(frozen=True)
class ParamObjectField:
    field_name: str
    param: Param


@dataclass(frozen=True)
class ParamObject:
    """A parameter object whose fields are each a separate dependency."""

    target_type: type
    fields: tuple[ParamObjectField, ...] = ()

    def inputs(self) -> list[Input]:
        return [entry for f in self.fields for entry in f.param.inputs()]

    def __str__(self) -> str:
        return type_name(self.target_type)


Param = ParamSingle | ParamGroupedSlice | ParamObject


@dataclass(frozen=True)
class ParamEntry:
    """A top-level parameter and how it is passed to the function."""

    field_name: str | None
    keyword_only: bool
    param: Param


@dataclass(frozen=True)
class ParamList:
    """All parameters of a function, in declaration order."""

    entries: tuple[ParamEntry, ...] = field(default_factory=tuple)

    @property
    def params(self) -> list[Param]:
        return [entry.param for entry in self.entries]

    def inputs(self) -> list[Input]:
        return [item for param in self.params for item in param.inputs()]


def build_param_list(slots: tuple[Slot, ...], registry: NodeRegistry) -> ParamList:
    """Build the descriptor of a function's parameters."""
    entries = []
    for position, slot in enumerate(slots, start=1):
        try:
            param = new_param(slot, registry)
        except RegistrationError as err:
            raise RegistrationError(f"bad argument {position}", err) from err
        entries.append(ParamEntry(slot.field, slot.keyword_only, param))
    return ParamList(tuple(entries))


def new_param(slot: Slot, registry: NodeRegistry) -> Param:
    annotation = slot.annotation

    if is_out(annotation):
        raise RegistrationError(
            f"cannot depend on result objects: {type_name(annotation)} is an Out"
        )
    if get_origin(annotation) is type and any(is_in(arg) for arg in get_args(annotation)):
        raise RegistrationError(
            f"cannot depend on the class of a parameter object, use the object instead: {annotation!r}"
        )

    if slot.is_aggregate or is_in(annotation):
        if slot.name is not None or slot.group is not None or slot.optional:
            raise RegistrationError(
                f"parameter objects cannot be named, grouped or optional: {type_name(annotation)}"
            )
        return _new_param_object(slot, registry)

    if slot.group is not None:
        return _new_param_grouped_slice(slot, registry)

    return ParamSingle(annotation, name=slot.name, optional=slot.optional, slot=slot)


def _new_param_object(slot: Slot, registry: NodeRegistry) -> ParamObject:
    fields = []
    for field_slot in slot.fields or ():
        try:
            param = new_param(field_slot, registry)
        except RegistrationError as err:
            raise RegistrationError(
                f"bad field {field_slot.field!r} of {type_name(slot.annotation)}", err
            ) from err
        fields.append(ParamObjectField(field_slot.field or "", param))
    return ParamObject(slot.annotation, tuple(fields))


def _new_param_grouped_slice(slot: Slot, registry: NodeRegistry) -> ParamGroupedSlice:
    assert slot.group is not None
    label = slot.field or type_name(slot.annotation)

    if get_origin(slot.annotation) is not list or len(get_args(slot.annotation)) != 1:
        raise RegistrationError(
            f"value groups may be consumed as lists only: {label} ({type_name(slot.annotation)}) is not a list"
        )
    if slot.flatten:
        raise RegistrationError(f"cannot use flatten in parameter value groups: {label} specifies flatten")
    if slot.name is not None:
        raise RegistrationError(
            f'cannot use named values with value groups: name "{slot.name}" requested with group "{slot.group}"'
        )
    if slot.optional:
        raise RegistrationError(f"value groups cannot be optional: {label}")

    param = ParamGroupedSlice(slot.group, slot.annotation)
    registry.new_node(param, param.key)
    return param
