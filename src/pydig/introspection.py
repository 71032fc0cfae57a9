"""
Signature introspection: derive a FunctionShape from a callable's annotations.
"""

from __future__ import annotations

import dataclasses
import inspect
from typing import Annotated, Any, ClassVar, get_args, get_origin, get_type_hints

from .errors import RegistrationError
from .markers import Group, Maybe, Name, is_in, is_out
from .model.keys import type_name
from .model.shape import HAS_DEFAULT, MISSING, FunctionShape, Slot


class SignatureIntrospector:
    """Reads parameter and result slots from annotations."""

    @staticmethod
    def extract_shape(func: Any) -> FunctionShape:
        """Extract both parameter and result slots of `func`."""
        signature = SignatureIntrospector._signature(func)
        params = SignatureIntrospector._params_from(func, signature)
        results, multiple = SignatureIntrospector._results_from(func, signature)
        return FunctionShape(params, results, multiple)

    @staticmethod
    def extract_params(func: Any) -> tuple[Slot, ...]:
        """Extract only the parameter slots, as needed to invoke `func`."""
        signature = SignatureIntrospector._signature(func)
        return SignatureIntrospector._params_from(func, signature)

    @staticmethod
    def _signature(func: Any) -> inspect.Signature:
        try:
            return inspect.signature(func, eval_str=True)
        except (TypeError, ValueError, NameError) as err:
            raise RegistrationError(f"cannot inspect the signature of {func!r}", err) from err

    @staticmethod
    def _params_from(func: Any, signature: inspect.Signature) -> tuple[Slot, ...]:
        slots = []
        for parameter in signature.parameters.values():
            # Variadic arguments are never filled.
            if parameter.kind in (parameter.VAR_POSITIONAL, parameter.VAR_KEYWORD):
                continue
            if parameter.annotation is parameter.empty:
                raise RegistrationError(
                    f"parameter {parameter.name!r} of {_label(func)} has no type annotation"
                )
            default = MISSING if parameter.default is parameter.empty else parameter.default
            slots.append(
                slot_from_annotation(
                    parameter.annotation,
                    field=parameter.name,
                    default=default,
                    keyword_only=parameter.kind is parameter.KEYWORD_ONLY,
                )
            )
        return tuple(slots)

    @staticmethod
    def _results_from(func: Any, signature: inspect.Signature) -> tuple[tuple[Slot, ...], bool]:
        returned: Any = func if inspect.isclass(func) else signature.return_annotation
        if returned is signature.empty or returned is None or returned is type(None):
            return (), False

        if get_origin(returned) is tuple:
            args = get_args(returned)
            if Ellipsis not in args:
                return tuple(slot_from_annotation(arg, result=True) for arg in args), True

        return (slot_from_annotation(returned, result=True),), False


def split_annotated(annotation: Any) -> tuple[Any, tuple[Any, ...]]:
    """Split `Annotated[T, *markers]` into `T` and its markers."""
    if get_origin(annotation) is Annotated:
        return annotation.__origin__, annotation.__metadata__
    return annotation, ()


def slot_from_annotation(
    annotation: Any,
    field: str | None = None,
    default: Any = MISSING,
    keyword_only: bool = False,
    result: bool = False,
) -> Slot:
    """Build the slot for one annotated parameter, field or result."""
    base, markers = split_annotated(annotation)

    name: str | None = None
    group: str | None = None
    flatten = False
    optional = default is not MISSING
    for marker in markers:
        if isinstance(marker, Name):
            name = marker.value
        elif isinstance(marker, Group):
            group = marker.value
            flatten = marker.flatten
        elif isinstance(marker, Maybe):
            optional = True

    fields = None
    if is_in(base) or is_out(base):
        fields = aggregate_fields(base, result=result)

    return Slot(
        annotation=base,
        field=field,
        name=name,
        group=group,
        flatten=flatten,
        optional=optional,
        default=default,
        keyword_only=keyword_only,
        fields=fields,
    )


def aggregate_fields(cls: type, result: bool = False) -> tuple[Slot, ...]:
    """Slots for the annotated fields of an In or Out class, in declaration order."""
    try:
        hints = get_type_hints(cls, include_extras=True)
    except NameError as err:
        raise RegistrationError(f"cannot resolve the annotations of {type_name(cls)}", err) from err

    defaults: dict[str, Any] = {}
    if dataclasses.is_dataclass(cls):
        # Fields outside __init__ cannot be passed in, but can still be read back.
        declared = [f for f in dataclasses.fields(cls) if f.init or result]
        order = [f.name for f in declared]
        for f in declared:
            if f.default is not dataclasses.MISSING:
                defaults[f.name] = f.default
            elif f.default_factory is not dataclasses.MISSING:
                defaults[f.name] = HAS_DEFAULT
    else:
        order = list(hints)
        defaults = {n: getattr(cls, n) for n in order if hasattr(cls, n)}

    ignore_private = bool(getattr(cls, "__pydig_ignore_private__", False))
    slots = []
    for field_name in order:
        hint = hints.get(field_name)
        if hint is None or get_origin(hint) is ClassVar or field_name.startswith("__"):
            continue
        if field_name.startswith("_"):
            if ignore_private:
                continue
            raise RegistrationError(
                f"private fields are not allowed in {type_name(cls)}, "
                f"did you mean to rename {field_name!r}?"
            )
        default = MISSING if result else defaults.get(field_name, MISSING)
        slots.append(slot_from_annotation(hint, field=field_name, default=default, result=result))
    return tuple(slots)


def _label(func: Any) -> str:
    return getattr(func, "__qualname__", None) or repr(func)
