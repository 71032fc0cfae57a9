"""
Scopes: nodes of the container tree, each with its own providers and graph.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, TypeVar

from .constructor import ConstructorNode, ProvideOptions
from .errors import (
    ArgumentsFailedError,
    CycleDetectedError,
    CycleEntry,
    DigError,
    InvalidFunctionError,
    InvokeError,
    MissingDependenciesError,
    ProvideError,
    RegistrationError,
    ResolutionDepthError,
)
from .introspection import SignatureIntrospector
from .location import Location
from .model.graph import GraphHolder, is_acyclic
from .model.info import Input, Output, ProvideInfo
from .model.keys import Key, type_name
from .model.params import ParamGroupedSlice, build_param_list
from .model.results import ResultGrouped
from .model.shape import FunctionShape
from .resolver import DependencyResolver, find_missing_dependencies
from .store import Store

if TYPE_CHECKING:
    from .container import ContainerOptions

T = TypeVar("T")

logger = logging.getLogger(__name__)


class Scope:
    """
    One node of the container tree.

    A scope owns a store and a dependency graph. It sees its own providers
    and, read-only, those of its ancestors: for a single key the nearest
    scope with a provider wins, value groups collect contributions from the
    whole path. Values are cached in the scope that owns their constructor.
    """

    def __init__(self, name: str, parent: Scope | None, options: ContainerOptions):
        self._name = name
        self._parent = parent
        self._root: Scope = parent.root if parent is not None else self
        self._options = options
        self._children: list[Scope] = []
        self._nodes: list[ConstructorNode] = []
        self._verified_acyclic = False
        self.store = Store(options.rng)
        self.graph = GraphHolder(self.store)

        if parent is None:
            self._ids = itertools.count(1)
            self._depth = 0

    # Tree

    @property
    def name(self) -> str:
        return self._name

    @property
    def parent(self) -> Scope | None:
        return self._parent

    @property
    def root(self) -> Scope:
        return self._root

    @property
    def children(self) -> list[Scope]:
        return list(self._children)

    @property
    def options(self) -> ContainerOptions:
        return self._options

    def create_child(self, name: str = "") -> Scope:
        """Create a child scope with an empty store and an independent graph."""
        child = Scope(name, self, self._options)
        self._children.append(child)
        logger.debug("Created scope %r under %r", name, self._name)
        return child

    def path_from_root(self) -> list[Scope]:
        """Ancestors from the root down to, and including, this scope."""
        path: list[Scope] = []
        scope: Scope | None = self
        while scope is not None:
            path.append(scope)
            scope = scope.parent
        path.reverse()
        return path

    # Visible state across the path

    def get_value(self, key: Key) -> tuple[Any, bool]:
        """Cached value of `key` from the scope whose provider is visible here."""
        for scope in reversed(self.path_from_root()):
            if scope.store.has_providers(key):
                return scope.store.get_value(key)
        return None, False

    def get_value_providers(self, key: Key) -> list[ConstructorNode]:
        """Providers of a single key, from the nearest scope that has any."""
        for scope in reversed(self.path_from_root()):
            providers = scope.store.providers_for(key)
            if providers:
                return providers
        return []

    def get_group_providers(self, key: Key) -> list[ConstructorNode]:
        """Providers contributing to a value group, from the root down."""
        return [node for scope in self.path_from_root() for node in scope.store.providers_for(key)]

    def get_value_group(self, key: Key) -> list[Any]:
        """All values of a value group along the path, in unspecified order."""
        path = self.path_from_root()
        if len(path) == 1:
            return self.store.read_group(key)
        items = [value for scope in path for value in scope.store.read_group(key)]
        self._options.rng.shuffle(items)
        return items

    def visible_provider_keys(self) -> list[Key]:
        keys: dict[Key, None] = {}
        for scope in self.path_from_root():
            for key in scope.store.provider_keys():
                keys.setdefault(key, None)
        return list(keys)

    def known_types(self) -> list[Any]:
        """Every type this scope can provide, sorted by name."""
        types: dict[Any, None] = {}
        for key in self.visible_provider_keys():
            types.setdefault(key.target_type, None)
        return sorted(types, key=type_name)

    @property
    def nodes(self) -> list[ConstructorNode]:
        """Constructors registered in this scope, in registration order."""
        return list(self._nodes)

    # Resolution bookkeeping

    def next_node_id(self) -> int:
        return next(self._root._ids)

    @contextmanager
    def resolution_frame(self, location: Location) -> Iterator[None]:
        """Count one level of nested constructor calls across the whole tree."""
        root = self._root
        limit = self._options.max_resolution_depth
        if root._depth >= limit:
            raise ResolutionDepthError(location, limit)
        root._depth += 1
        try:
            yield
        finally:
            root._depth -= 1

    # Provide

    def provide(
        self,
        constructor: Callable[..., Any],
        *,
        name: str | None = None,
        group: str | None = None,
        as_types: tuple[Any, ...] | list[Any] = (),
        location: Callable[..., Any] | Location | None = None,
        info: ProvideInfo | None = None,
        shape: FunctionShape | None = None,
    ) -> None:
        """
        Register a constructor for every value it produces.

        Args:
            constructor: Function or class building one or more values
            name: Name every result is provided under
            group: Value group every result is added to
            as_types: Extra types every result is also provided as
            location: Callable or Location reported in diagnostics instead of the constructor's own
            info: Filled with the node id, inputs and outputs once registered
            shape: Declared parameters and results, replacing introspection

        Raises:
            InvalidFunctionError: If `constructor` is not callable
            RegistrationError: If the options conflict
            ProvideError: If the constructor cannot be added; the scope is left unchanged
        """
        if constructor is None:
            raise InvalidFunctionError("can't provide None")
        if not callable(constructor):
            raise InvalidFunctionError(
                f"must provide constructor function, got {constructor!r} (type {type(constructor).__qualname__})"
            )

        options = ProvideOptions(name, group, tuple(as_types), location, info, shape)
        options.validate()

        try:
            node = self._provide(constructor, options)
        except DigError as err:
            raise ProvideError(options.resolve_location(constructor), err) from err

        if info is not None:
            info.id = node.id
            info.inputs = node.inputs()
            info.outputs = node.outputs()

    def _provide(self, constructor: Callable[..., Any], options: ProvideOptions) -> ConstructorNode:
        # Everything added to the graph from here on is undone on failure.
        self.graph.snapshot()
        try:
            node = ConstructorNode(constructor, self, options)
            keys = self._find_and_validate_results(node)

            previous = {key: self.store.providers_for(key) for key in keys}
            for key in keys:
                self.store.register_provider(key, node)

            self._verified_acyclic = False
            if not self._options.defer_acyclic_verification:
                acyclic, cycle = is_acyclic(self.graph)
                if not acyclic:
                    error = self._cycle_error(cycle, "this function introduces a cycle")
                    for key, nodes in previous.items():
                        self.store.restore_providers(key, nodes)
                    logger.warning("Rejected %s: %s", node.location, error)
                    raise error
                self._verified_acyclic = True
        except DigError:
            self.graph.rollback()
            raise

        self._nodes.append(node)
        logger.debug("Provided %s for %s", node.location, ", ".join(str(k) for k in keys))
        return node

    def _find_and_validate_results(self, node: ConstructorNode) -> list[Key]:
        """All keys produced by `node`, rejecting single keys provided twice."""
        key_paths: dict[Key, str] = {}
        for path, result in node.result_list.walk():
            if isinstance(result, ResultGrouped):
                # Any number of constructors may feed a group.
                key_paths.setdefault(result.key, path)
                continue
            for key in result.keys():
                if key in key_paths:
                    raise RegistrationError(
                        f"cannot provide {key} from {path}: already provided by {key_paths[key]}"
                    )
                existing = self.store.providers_for(key)
                if existing:
                    locations = "; ".join(str(n.location) for n in existing)
                    raise RegistrationError(
                        f"cannot provide {key} from {path}: already provided by {locations}"
                    )
                key_paths[key] = path

        if not key_paths:
            raise RegistrationError(f"{node.location} must provide at least one value")
        return list(key_paths)

    def _cycle_error(self, cycle: list[int], message: str) -> CycleDetectedError:
        path = []
        for index in cycle:
            payload = self.graph.lookup(index)
            if isinstance(payload, ParamGroupedSlice):
                path.append(CycleEntry(payload.key, None))
            else:
                path.append(CycleEntry(payload.primary_key, payload.location))
        return CycleDetectedError(path, message)

    # Invoke

    def invoke(self, function: Callable[..., T]) -> T | None:
        """
        Call `function` after constructing everything it depends on.

        Returns:
            Whatever `function` returns, or None in dry-run mode

        Raises:
            InvalidFunctionError: If `function` is not callable
            InvokeError: If the parameters of `function` have an unsupported shape
            MissingDependenciesError: If a required dependency has no provider
            CycleDetectedError: If the graph visible from this scope has a cycle
            ArgumentsFailedError: If building an argument failed
            Exception: Whatever `function` itself raises, unchanged
        """
        if function is None:
            raise InvalidFunctionError("can't invoke None")
        if not callable(function):
            raise InvalidFunctionError(
                f"can't invoke non-function {function!r} (type {type(function).__qualname__})"
            )

        location = Location.of(function)
        try:
            param_list = build_param_list(SignatureIntrospector.extract_params(function), self.graph)
        except RegistrationError as err:
            raise InvokeError(location, err) from err

        missing = find_missing_dependencies(self, param_list)
        if missing is not None:
            raise MissingDependenciesError(location, missing) from missing

        self.verify_acyclic()

        try:
            args, kwargs = DependencyResolver(self).build_list(param_list)
        except DigError as err:
            raise ArgumentsFailedError(location, err) from err

        if self._options.dry_run:
            return None
        logger.debug("Invoking %s", location)
        return function(*args, **kwargs)

    def verify_acyclic(self) -> None:
        """Check every scope on the path once; later calls reuse the result."""
        for scope in self.path_from_root():
            if scope._verified_acyclic:
                continue
            acyclic, cycle = is_acyclic(scope.graph)
            if not acyclic:
                raise scope._cycle_error(cycle, "cycle detected in dependency graph")
            scope._verified_acyclic = True

    # Diagnostics

    def describe(self) -> list[tuple[ConstructorNode, list[Input], list[Output]]]:
        """Per-constructor inputs and outputs, for external renderers."""
        return [(node, node.inputs(), node.outputs()) for node in self._nodes]

    def __repr__(self) -> str:
        return f"Scope(name={self._name!r}, providers={len(self._nodes)})"
