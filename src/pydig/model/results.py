"""
Result descriptors: what a constructor produces and under which keys.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Protocol, get_args, get_origin

from ..errors import RegistrationError
from ..markers import is_in, is_out
from .info import Output
from .keys import Key, type_name
from .shape import FunctionShape, Slot


class ValueWriter(Protocol):
    def set_value(self, key: Key, value: Any) -> None: ...

    def append_group(self, key: Key, value: Any) -> None: ...


@dataclass(frozen=True)
class ResultOptions:
    """Provide-level overrides applied to every result of a constructor."""

    name: str | None = None
    group: str | None = None
    as_types: tuple[Any, ...] = ()


@dataclass(frozen=True)
class ResultSingle:
    """A single value, optionally named and aliased under extra types."""

    target_type: Any
    name: str | None = None
    as_types: tuple[Any, ...] = ()

    def keys(self) -> list[Key]:
        return [Key(t, name=self.name) for t in (self.target_type, *self.as_types)]

    def extract(self, writer: ValueWriter, value: Any) -> None:
        for key in self.keys():
            writer.set_value(key, value)

    def extract_zero(self, writer: ValueWriter) -> None:
        self.extract(writer, None)

    def outputs(self) -> list[Output]:
        return [Output(key.target_type, name=self.name) for key in self.keys()]


@dataclass(frozen=True)
class ResultGrouped:
    """A contribution to a value group."""

    target_type: Any
    group: str
    flatten: bool = False

    @property
    def key(self) -> Key:
        return Key(self.target_type, group=self.group)

    def keys(self) -> list[Key]:
        return [self.key]

    def extract(self, writer: ValueWriter, value: Any) -> None:
        if not self.flatten:
            writer.append_group(self.key, value)
            return
        for item in value:
            writer.append_group(self.key, item)

    def extract_zero(self, writer: ValueWriter) -> None:
        if not self.flatten:
            writer.append_group(self.key, None)

    def outputs(self) -> list[Output]:
        return [Output(self.target_type, group=self.group)]


@dataclass(frozen=True)
class ResultObjectField:
    field_name: str
    result: Result


@dataclass(frozen=True)
class ResultObject:
    """A result object whose fields are each provided separately."""

    target_type: type
    fields: tuple[ResultObjectField, ...] = ()

    def keys(self) -> list[Key]:
        return [key for f in self.fields for key in f.result.keys()]

    def extract(self, writer: ValueWriter, value: Any) -> None:
        if not isinstance(value, self.target_type):
            raise TypeError(
                f"expected a {type_name(self.target_type)} result object, got {type(value).__qualname__}"
            )
        for f in self.fields:
            f.result.extract(writer, getattr(value, f.field_name))

    def extract_zero(self, writer: ValueWriter) -> None:
        for f in self.fields:
            f.result.extract_zero(writer)

    def outputs(self) -> list[Output]:
        return [output for f in self.fields for output in f.result.outputs()]


Result = ResultSingle | ResultGrouped | ResultObject


@dataclass(frozen=True)
class ResultList:
    """All results of a constructor, in declaration order."""

    results: tuple[Result, ...] = field(default_factory=tuple)
    multiple: bool = False

    def extract(self, writer: ValueWriter, returned: Any) -> None:
        """Route the constructor's return value into `writer`."""
        if self.multiple:
            if not isinstance(returned, tuple) or len(returned) != len(self.results):
                raise TypeError(
                    f"expected a tuple of {len(self.results)} results, got {returned!r}"
                )
            values = returned
        else:
            values = (returned,)
        for result, value in zip(self.results, values, strict=True):
            result.extract(writer, value)

    def extract_zero(self, writer: ValueWriter) -> None:
        for result in self.results:
            result.extract_zero(writer)

    def walk(self) -> Iterator[tuple[str, ResultSingle | ResultGrouped]]:
        """Yield every leaf result with its path, such as `[1].reader`."""
        for position, result in enumerate(self.results):
            yield from _walk(result, f"[{position}]")

    def outputs(self) -> list[Output]:
        return [output for result in self.results for output in result.outputs()]


def _walk(result: Result, path: str) -> Iterator[tuple[str, ResultSingle | ResultGrouped]]:
    if isinstance(result, ResultObject):
        for f in result.fields:
            yield from _walk(f.result, f"{path}.{f.field_name}")
    else:
        yield path, result


def build_result_list(shape: FunctionShape, options: ResultOptions) -> ResultList:
    """Build the descriptor of a constructor's results."""
    if not shape.results:
        raise RegistrationError("must provide at least one value, declare a return annotation")

    results = []
    for position, slot in enumerate(shape.results, start=1):
        try:
            results.append(new_result(slot, options))
        except RegistrationError as err:
            raise RegistrationError(f"bad result {position}", err) from err
    return ResultList(tuple(results), multiple=shape.multiple_results)


def new_result(slot: Slot, options: ResultOptions) -> Result:
    annotation = slot.annotation

    if is_in(annotation):
        raise RegistrationError(
            f"cannot provide parameter objects: {type_name(annotation)} is an In"
        )
    if slot.optional:
        raise RegistrationError(f"results cannot be optional: {type_name(annotation)}")

    if slot.is_aggregate or is_out(annotation):
        if options.name is not None or options.group is not None or options.as_types:
            raise RegistrationError(
                f"cannot apply name, group or as_types to result object {type_name(annotation)}"
            )
        return _new_result_object(slot)

    name = _merge("name", options.name, slot.name)
    group = _merge("group", options.group, slot.group)

    if name is not None and group is not None:
        raise RegistrationError(
            f'cannot use named values with value groups: name "{name}" provided with group "{group}"'
        )

    if group is not None:
        if options.as_types:
            raise RegistrationError(f'cannot use as_types with value groups: group "{group}"')
        target = annotation
        if slot.flatten:
            if get_origin(annotation) is not list or len(get_args(annotation)) != 1:
                raise RegistrationError(
                    f"flattened value groups must be produced as lists: {type_name(annotation)}"
                )
            target = get_args(annotation)[0]
        return ResultGrouped(target, group, flatten=slot.flatten)

    for as_type in options.as_types:
        _check_as_type(annotation, as_type)
    return ResultSingle(annotation, name=name, as_types=tuple(options.as_types))


def _new_result_object(slot: Slot) -> ResultObject:
    fields = []
    for field_slot in slot.fields or ():
        try:
            result = new_result(field_slot, ResultOptions())
        except RegistrationError as err:
            raise RegistrationError(
                f"bad field {field_slot.field!r} of {type_name(slot.annotation)}", err
            ) from err
        fields.append(ResultObjectField(field_slot.field or "", result))
    return ResultObject(slot.annotation, tuple(fields))


def _merge(option: str, from_options: str | None, from_slot: str | None) -> str | None:
    if from_options is not None and from_slot is not None and from_options != from_slot:
        raise RegistrationError(
            f"conflicting {option}: {from_options!r} given to provide, {from_slot!r} annotated"
        )
    return from_options if from_options is not None else from_slot


def _check_as_type(result_type: Any, as_type: Any) -> None:
    if not isinstance(as_type, type):
        raise RegistrationError(f"invalid as_types entry {as_type!r}: must be a class")
    if getattr(as_type, "_is_protocol", False) or not isinstance(result_type, type):
        return
    if not issubclass(result_type, as_type):
        raise RegistrationError(
            f"invalid as_types entry {type_name(as_type)}: "
            f"{type_name(result_type)} is not a subclass of it"
        )
