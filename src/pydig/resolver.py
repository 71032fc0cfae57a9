"""
Dependency resolution: build argument lists by walking parameter descriptors.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

from .errors import (
    DigError,
    MissingDependenciesError,
    MissingTypesError,
    ParamGroupFailedError,
    ParamSingleFailedError,
)
from .location import Location
from .model.keys import Key, type_name
from .model.params import Param, ParamGroupedSlice, ParamList, ParamObject, ParamSingle

if TYPE_CHECKING:
    from .scope import Scope

logger = logging.getLogger(__name__)


class _Absent:
    def __repr__(self) -> str:
        return "ABSENT"


# An optional dependency that could not be provided.
ABSENT: Any = _Absent()


class DependencyResolver:
    """Resolves parameters against one scope, calling constructors on demand."""

    def __init__(self, scope: Scope):
        self._scope = scope

    def build_list(self, param_list: ParamList) -> tuple[list[Any], dict[str, Any]]:
        """Build the positional and keyword arguments for a function call."""
        args: list[Any] = []
        kwargs: dict[str, Any] = {}
        for entry in param_list.entries:
            value = self.build(entry.param)
            if value is ABSENT:
                assert isinstance(entry.param, ParamSingle)
                value = entry.param.zero_value()
            if entry.keyword_only and entry.field_name is not None:
                kwargs[entry.field_name] = value
            else:
                args.append(value)
        return args, kwargs

    def build(self, param: Param) -> Any:
        """Build one parameter. Returns ABSENT for a missing optional dependency."""
        if isinstance(param, ParamSingle):
            return self._build_single(param)
        if isinstance(param, ParamGroupedSlice):
            return self._build_group(param)
        return self._build_object(param)

    def _build_single(self, param: ParamSingle) -> Any:
        scope = self._scope
        value, found = scope.get_value(param.key)
        if found:
            return value

        providers = scope.get_value_providers(param.key)
        if not providers:
            if param.optional:
                return ABSENT
            raise missing_types_error(scope, [param.key])

        provider = providers[0]
        try:
            provider.call()
        except MissingDependenciesError as err:
            # The provider itself lacks dependencies, which only makes an
            # optional parameter absent.
            if param.optional:
                logger.debug("Optional %s is absent: %s", param.key, err)
                return ABSENT
            raise ParamSingleFailedError(param.key, provider.location, err) from err
        except DigError as err:
            raise ParamSingleFailedError(param.key, provider.location, err) from err

        value, _ = scope.get_value(param.key)
        return value

    def _build_group(self, param: ParamGroupedSlice) -> list[Any]:
        scope = self._scope
        failures: list[tuple[Location, DigError]] = []
        for provider in scope.get_group_providers(param.key):
            try:
                provider.call()
            except DigError as err:
                failures.append((provider.location, err))

        if failures:
            location, reason = failures[0]
            raise ParamGroupFailedError(param.key, location, reason, list(failures)) from reason

        return scope.get_value_group(param.key)

    def _build_object(self, param: ParamObject) -> Any:
        values: dict[str, Any] = {}
        for field in param.fields:
            value = self.build(field.param)
            if value is ABSENT:
                slot = field.param.slot if isinstance(field.param, ParamSingle) else None
                if slot is not None and slot.has_default:
                    # The class supplies its own default.
                    continue
                value = None
            values[field.field_name] = value
        return instantiate(param.target_type, values)


def instantiate(cls: type, values: dict[str, Any]) -> Any:
    """Create a parameter object from its resolved field values."""
    if dataclasses.is_dataclass(cls):
        return cls(**values)
    instance = cls.__new__(cls)
    for field_name, value in values.items():
        setattr(instance, field_name, value)
    return instance


def find_missing_dependencies(scope: Scope, param_list: ParamList) -> MissingTypesError | None:
    """Check that every required direct dependency has at least one provider."""
    missing = list(dict.fromkeys(_missing_keys(scope, param_list.params)))
    if not missing:
        return None
    return missing_types_error(scope, missing)


def _missing_keys(scope: Scope, params: list[Param]) -> Iterator[Key]:
    for param in params:
        if isinstance(param, ParamSingle):
            if not param.optional and not scope.get_value_providers(param.key):
                yield param.key
        elif isinstance(param, ParamObject):
            yield from _missing_keys(scope, [f.param for f in param.fields])


def missing_types_error(scope: Scope, keys: list[Key]) -> MissingTypesError:
    """Build an error for `keys`, suggesting similar keys that are provided."""
    available = scope.visible_provider_keys()
    suggestions: dict[Key, list[str]] = {}
    for key in keys:
        hints = []
        for other in available:
            if other.group is not None or other == key:
                continue
            if other.target_type == key.target_type:
                hints.append(f"did you mean {other}?")
            elif other.name == key.name and _is_strict_subclass(other.target_type, key.target_type):
                hints.append(
                    f"did you mean to provide {type_name(other.target_type)} "
                    f"with as_types=({type_name(key.target_type)},)?"
                )
        if hints:
            suggestions[key] = hints
    return MissingTypesError(keys, suggestions)


def _is_strict_subclass(candidate: Any, requested: Any) -> bool:
    if not isinstance(candidate, type) or not isinstance(requested, type):
        return False
    if candidate is requested or getattr(requested, "_is_protocol", False):
        return False
    return issubclass(candidate, requested)
