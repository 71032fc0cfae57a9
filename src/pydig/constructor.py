"""
Constructor nodes: one registered constructor and its call-once state.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .errors import (
    ArgumentsFailedError,
    ConstructorFailedError,
    DigError,
    MissingDependenciesError,
    RegistrationError,
)
from .introspection import SignatureIntrospector
from .location import Location
from .model.info import Input, Output
from .model.keys import Key
from .model.params import ParamList, build_param_list
from .model.results import ResultList, ResultOptions, build_result_list
from .model.shape import FunctionShape
from .resolver import DependencyResolver, find_missing_dependencies
from .store import StagingWriter

if TYPE_CHECKING:
    from .model.info import ProvideInfo
    from .scope import Scope

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProvideOptions:
    """Per-call modifiers accepted by `Scope.provide`."""

    name: str | None = None
    group: str | None = None
    as_types: tuple[Any, ...] = ()
    location: Callable[..., Any] | Location | None = None
    info: ProvideInfo | None = None
    shape: FunctionShape | None = None

    def validate(self) -> None:
        if self.group is not None:
            if self.name is not None:
                raise RegistrationError(
                    f'cannot use named values with value groups: name "{self.name}" '
                    f'provided with group "{self.group}"'
                )
            if self.as_types:
                raise RegistrationError(
                    f'cannot use as_types with value groups: as_types provided with group "{self.group}"'
                )
        for as_type in self.as_types:
            if not isinstance(as_type, type):
                raise RegistrationError(f"invalid as_types entry {as_type!r}: must be a class")

    def result_options(self) -> ResultOptions:
        return ResultOptions(name=self.name, group=self.group, as_types=self.as_types)

    def resolve_location(self, constructor: Any) -> Location:
        if isinstance(self.location, Location):
            return self.location
        return Location.of(self.location if self.location is not None else constructor)


class ConstructorNode:
    """
    A user constructor registered in exactly one scope.

    The constructor runs lazily, the first time one of its outputs is
    needed, and at most once if it succeeds. Its arguments are resolved
    from, and its outputs committed into, the scope that owns it.
    """

    def __init__(self, constructor: Callable[..., Any], scope: Scope, options: ProvideOptions):
        shape = options.shape or SignatureIntrospector.extract_shape(constructor)

        self._constructor = constructor
        self._scope = scope
        self._called = False
        self.param_list: ParamList = build_param_list(shape.params, scope.graph)
        self.result_list: ResultList = build_result_list(shape, options.result_options())
        self.location = options.resolve_location(constructor)
        self.id = scope.root.next_node_id()
        self.order = scope.graph.new_node(self)

    @property
    def called(self) -> bool:
        return self._called

    @property
    def scope(self) -> Scope:
        return self._scope

    @property
    def constructor(self) -> Callable[..., Any]:
        return self._constructor

    @property
    def primary_key(self) -> Key:
        """The first key this node produces, used to name it in diagnostics."""
        for _, result in self.result_list.walk():
            return result.keys()[0]
        raise RegistrationError(f"{self.location} produces no values")

    def inputs(self) -> list[Input]:
        return self.param_list.inputs()

    def outputs(self) -> list[Output]:
        return self.result_list.outputs()

    def call(self) -> None:
        """Run the constructor unless it already succeeded, then commit its outputs."""
        if self._called:
            return

        scope = self._scope
        missing = find_missing_dependencies(scope, self.param_list)
        if missing is not None:
            raise MissingDependenciesError(self.location, missing) from missing

        with scope.resolution_frame(self.location):
            try:
                args, kwargs = DependencyResolver(scope).build_list(self.param_list)
            except DigError as err:
                raise ArgumentsFailedError(self.location, err) from err

            staging = StagingWriter()
            if scope.options.dry_run:
                self.result_list.extract_zero(staging)
            else:
                logger.debug("Calling constructor %s", self.location)
                try:
                    returned = self._constructor(*args, **kwargs)
                    self.result_list.extract(staging, returned)
                except Exception as err:
                    raise ConstructorFailedError(self.location, err) from err

        staging.commit(scope.store)
        self._called = True
        logger.debug("Committed outputs of %s", self.location)

    def __repr__(self) -> str:
        return f"ConstructorNode(id={self.id}, order={self.order}, location={self.location})"
