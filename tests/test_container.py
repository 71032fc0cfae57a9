#!/usr/bin/env python3
"""
Unit tests for providing constructors and invoking functions on a container.
"""

import random
import unittest
from dataclasses import dataclass, field
from typing import Annotated
from unittest.mock import patch

import pydig.scope
from pydig import (
    ArgumentsFailedError,
    ConstructorFailedError,
    Container,
    ContainerOptions,
    CycleDetectedError,
    FunctionShape,
    Group,
    In,
    InvalidFunctionError,
    InvokeError,
    Key,
    Location,
    Maybe,
    MissingDependenciesError,
    MissingTypesError,
    Name,
    Out,
    ParamGroupFailedError,
    ParamSingleFailedError,
    ProvideError,
    ProvideInfo,
    RegistrationError,
    ResolutionDepthError,
    Slot,
    is_cycle_detected,
    root_cause,
)


class A:
    pass


@dataclass
class B:
    a: A


@dataclass
class C:
    b: B


class Reader:
    pass


class FileReader(Reader):
    pass


def _identity(target):
    """Build a function that takes one `target` and returns it."""

    def identity(value):
        return value

    identity.__annotations__ = {"value": target}
    return identity


class TestScenarios(unittest.TestCase):
    """End-to-end provide and invoke scenarios."""

    def test_chain_is_built_once(self):
        """Both constructors run once and share the single A."""
        calls = {"a": 0, "b": 0}

        def new_a() -> A:
            calls["a"] += 1
            return A()

        def new_b(a: A) -> B:
            calls["b"] += 1
            return B(a)

        container = Container()
        container.provide(new_a)
        container.provide(new_b)

        received = []

        def consume(b: B, a: A) -> None:
            received.append((b, a))

        container.invoke(consume)
        container.invoke(consume)

        self.assertEqual(calls, {"a": 1, "b": 1})
        (b1, a1), (b2, a2) = received
        self.assertIs(b1, b2)
        self.assertIs(b1.a, a1)
        self.assertIs(a1, a2)

    def test_mutual_dependency_is_rejected(self):
        """The provide that closes a cycle fails and names both constructors."""

        class X:
            pass

        class Y:
            pass

        def new_x(y: Y) -> X:
            return X()

        def new_y(x: X) -> Y:
            return Y()

        container = Container()
        container.provide(new_x)

        with self.assertLogs("pydig.scope", level="WARNING"):
            with self.assertRaises(ProvideError) as ctx:
                container.provide(new_y)

        self.assertTrue(is_cycle_detected(ctx.exception))
        cycle = root_cause(ctx.exception)
        assert isinstance(cycle, CycleDetectedError)
        self.assertEqual({entry.key for entry in cycle.path}, {Key(X), Key(Y)})
        self.assertEqual(cycle.path[0], cycle.path[-1])
        self.assertIn("this function introduces a cycle", str(cycle))
        self.assertIn("new_x", str(cycle))
        self.assertIn("new_y", str(cycle))

    def test_value_group(self):
        """Every contribution to a group is delivered, in some order."""
        container = Container()
        container.provide(lambda: 7, shape=FunctionShape(results=(Slot(int),)), group="g")
        container.provide(lambda: 8, shape=FunctionShape(results=(Slot(int),)), group="g")

        def consume(values: Annotated[list[int], Group("g")]) -> list[int]:
            return values

        self.assertEqual(sorted(container.invoke(consume)), [7, 8])
        self.assertEqual(sorted(container.invoke(consume)), [7, 8])

    def test_optional_parameter_object_field(self):
        """A missing optional field is left at its zero value."""

        class Foo:
            pass

        class Bar:
            def __init__(self, foo):
                self.foo = foo

        @dataclass
        class OptionalFoo(In):
            foo: Annotated[Foo, Maybe()]

        def new_bar(params: OptionalFoo) -> Bar:
            return Bar(params.foo)

        container = Container()
        container.provide(new_bar)

        bar = container.invoke(_identity(Bar))
        self.assertIsInstance(bar, Bar)
        self.assertIsNone(bar.foo)

    def test_failed_constructor_is_retried(self):
        """A failing constructor is wrapped and called again on the next invoke."""

        class Z:
            pass

        calls = []

        def new_z() -> Z:
            calls.append(1)
            raise RuntimeError("database unreachable")

        def consume(z: Z) -> None:
            pass

        container = Container()
        container.provide(new_z)

        for _ in range(2):
            with self.assertRaises(ArgumentsFailedError) as ctx:
                container.invoke(consume)
            single = ctx.exception.reason
            self.assertIsInstance(single, ParamSingleFailedError)
            self.assertIsInstance(single.reason, ConstructorFailedError)
            self.assertIsInstance(root_cause(ctx.exception), RuntimeError)
            self.assertIn("database unreachable", str(ctx.exception))

        self.assertEqual(len(calls), 2)


class TestAcyclicity(unittest.TestCase):
    """Test cycle rejection, rollback and deferred verification."""

    def test_three_node_cycle_leaves_no_trace(self):
        """A rejected provide leaves providers and graph as they were."""

        def new_a(b: B) -> A:
            return A()

        def new_b(c: C) -> B:
            return B(A())

        def new_c(a: A) -> C:
            return C(B(A()))

        container = Container()
        container.provide(new_a)
        container.provide(new_b)
        nodes_before = container.graph.count()
        keys_before = container.store.provider_keys()

        with self.assertRaises(ProvideError) as ctx:
            container.provide(new_c)

        self.assertTrue(is_cycle_detected(ctx.exception))
        self.assertEqual(container.graph.count(), nodes_before)
        self.assertEqual(container.store.provider_keys(), keys_before)
        self.assertEqual(len(container.nodes), 2)

        # The same key can still be provided by a constructor that closes no cycle.
        container.provide(lambda: C(B(A())), shape=FunctionShape(results=(Slot(C),)))
        self.assertIsInstance(container.invoke(_identity(A)), A)

    def test_cycle_through_value_group(self):
        """A group contributor depending on a consumer of its group is rejected."""

        def new_a(values: Annotated[list[int], Group("g")]) -> A:
            return A()

        def new_value(a: A) -> Annotated[int, Group("g")]:
            return 1

        container = Container()
        container.provide(new_a)
        nodes_before = container.graph.count()
        keys_before = container.store.provider_keys()

        with self.assertRaises(ProvideError) as ctx:
            container.provide(new_value)

        self.assertTrue(is_cycle_detected(ctx.exception))
        self.assertIn('int[group = "g"] (value group)', str(ctx.exception))
        self.assertEqual(container.graph.count(), nodes_before)
        self.assertEqual(container.store.provider_keys(), keys_before)
        self.assertIsInstance(container.invoke(_identity(A)), A)

    def test_deferred_verification(self):
        """Cycles are reported on invoke and the check result is cached."""

        class X:
            pass

        class Y:
            pass

        def new_x(y: Y) -> X:
            return X()

        def new_y(x: X) -> Y:
            return Y()

        container = Container(defer_acyclic_verification=True)
        container.provide(new_x)
        container.provide(new_y)

        with self.assertRaises(CycleDetectedError):
            container.invoke(_identity(X))

    def test_verification_runs_once_per_change(self):
        """Invoke re-checks the graph only after new providers were added."""
        container = Container(defer_acyclic_verification=True)
        container.provide(lambda: A(), shape=FunctionShape(results=(Slot(A),)))

        with patch("pydig.scope.is_acyclic", wraps=pydig.scope.is_acyclic) as checked:
            container.invoke(_identity(A))
            container.invoke(_identity(A))
            self.assertEqual(checked.call_count, 1)

            container.provide(lambda a: B(a), shape=FunctionShape((Slot(A),), (Slot(B),)))
            self.assertEqual(checked.call_count, 1)
            container.invoke(_identity(B))
            self.assertEqual(checked.call_count, 2)


class TestOptional(unittest.TestCase):
    """Test optional dependencies."""

    def test_default_is_used_when_absent(self):
        """An unprovided parameter with a default receives the default."""

        def configure(port: int = 8080, host: str | None = None) -> tuple[int, str | None]:
            return port, host

        self.assertEqual(Container().invoke(configure), (8080, None))

    def test_provided_value_wins_over_default(self):
        """A provided optional dependency is used."""
        container = Container()
        container.provide(lambda: 9090, shape=FunctionShape(results=(Slot(int),)))

        def configure(port: int = 8080) -> int:
            return port

        self.assertEqual(container.invoke(configure), 9090)

    def test_provider_with_missing_dependencies_makes_optional_absent(self):
        """An optional dependency whose provider lacks dependencies is absent."""

        class Foo:
            pass

        class Missing:
            pass

        calls = []

        def new_foo(missing: Missing) -> Foo:
            calls.append(1)
            return Foo()

        def consume(foo: Annotated[Foo, Maybe()]) -> object:
            return foo

        container = Container()
        container.provide(new_foo)

        self.assertIsNone(container.invoke(consume))
        self.assertEqual(calls, [])

    def test_parameter_object_keeps_field_defaults(self):
        """Absent fields with defaults are left to the class."""

        @dataclass
        class Params(In):
            a: A
            retries: int = 3
            label: str = "default"

        container = Container()
        container.provide(A)
        container.provide(lambda: "custom", shape=FunctionShape(results=(Slot(str),)))

        params = container.invoke(_identity(Params))
        self.assertIsInstance(params.a, A)
        self.assertEqual(params.retries, 3)
        self.assertEqual(params.label, "custom")


class TestAtomicity(unittest.TestCase):
    """Test that failed constructors commit nothing."""

    def test_partial_result_object(self):
        """A result object missing a field commits none of its fields."""

        class Pair(Out):
            a: A
            b: B

        def new_pair() -> Pair:
            pair = Pair()
            pair.a = A()
            return pair

        container = Container()
        container.provide(new_pair)

        with self.assertRaises(ArgumentsFailedError) as ctx:
            container.invoke(_identity(A))

        self.assertIsInstance(root_cause(ctx.exception), AttributeError)
        self.assertEqual(container.store.get_value(Key(A)), (None, False))
        self.assertEqual(container.store.get_value(Key(B)), (None, False))

    def test_wrong_number_of_results(self):
        """A short tuple commits none of the declared results."""

        def new_pair() -> tuple[A, Reader]:
            return (A(),)  # type: ignore[return-value]

        container = Container()
        container.provide(new_pair)

        with self.assertRaises(ArgumentsFailedError):
            container.invoke(_identity(A))
        self.assertEqual(container.store.get_value(Key(A)), (None, False))


class TestDryRun(unittest.TestCase):
    """Test wiring validation without calling anything."""

    def test_nothing_is_called(self):
        """Constructors and the invoked function are never called."""
        calls = []

        def new_a() -> A:
            calls.append("a")
            return A()

        def new_b(a: A) -> B:
            calls.append("b")
            return B(a)

        def consume(b: B) -> str:
            calls.append("consume")
            return "ran"

        container = Container(dry_run=True)
        container.provide(new_a)
        container.provide(new_b)

        self.assertIsNone(container.invoke(consume))
        self.assertEqual(calls, [])
        self.assertEqual(container.store.get_value(Key(B)), (None, True))

    def test_missing_dependencies_are_still_reported(self):
        """Dry runs still validate the wiring."""
        container = Container(dry_run=True)
        with self.assertRaises(MissingDependenciesError):
            container.invoke(_identity(A))


class TestProvide(unittest.TestCase):
    """Test provide validation and options."""

    def test_invalid_functions(self):
        """None and non-callables are rejected."""
        container = Container()
        with self.assertRaises(InvalidFunctionError):
            container.provide(None)  # type: ignore[arg-type]
        with self.assertRaises(InvalidFunctionError):
            container.provide(42)  # type: ignore[arg-type]
        with self.assertRaises(InvalidFunctionError):
            container.invoke(42)  # type: ignore[arg-type]

    def test_function_without_results(self):
        """Constructors must produce something."""

        def setup() -> None:
            pass

        with self.assertRaises(ProvideError) as ctx:
            Container().provide(setup)
        self.assertIn("must provide at least one value", str(ctx.exception))

    def test_duplicate_key(self):
        """A key can be provided only once per scope."""

        def new_a() -> A:
            return A()

        def other_a() -> A:
            return A()

        container = Container()
        container.provide(new_a)
        with self.assertRaises(ProvideError) as ctx:
            container.provide(other_a)

        self.assertIn("cannot provide A from [0]: already provided by", str(ctx.exception))
        self.assertIn("new_a", str(ctx.exception))
        self.assertEqual(len(container.nodes), 1)

    def test_duplicate_within_one_constructor(self):
        """A constructor cannot produce the same key twice."""

        def new_two() -> tuple[A, A]:
            return A(), A()

        with self.assertRaises(ProvideError) as ctx:
            Container().provide(new_two)
        self.assertIn("cannot provide A from [1]: already provided by [0]", str(ctx.exception))

    def test_conflicting_options(self):
        """Name and group together are rejected before anything is built."""
        with self.assertRaises(RegistrationError):
            Container().provide(A, name="x", group="y")
        with self.assertRaises(RegistrationError):
            Container().provide(A, group="y", as_types=(object,))

    def test_named_values(self):
        """Named values are resolved by name."""

        class Database:
            def __init__(self, dsn):
                self.dsn = dsn

        container = Container()
        container.provide(lambda: Database("rw"), shape=FunctionShape(results=(Slot(Database),)))
        container.provide(
            lambda: Database("ro"), shape=FunctionShape(results=(Slot(Database),)), name="ro"
        )

        def consume(rw: Database, ro: Annotated[Database, Name("ro")]) -> tuple[str, str]:
            return rw.dsn, ro.dsn

        self.assertEqual(container.invoke(consume), ("rw", "ro"))

    def test_as_types(self):
        """A value is also provided under each as-type."""

        def new_reader() -> FileReader:
            return FileReader()

        container = Container()
        container.provide(new_reader, as_types=(Reader,))

        def consume(reader: Reader, file_reader: FileReader) -> bool:
            return reader is file_reader

        self.assertTrue(container.invoke(consume))

    def test_info(self):
        """The info sink receives the id, inputs and outputs."""

        def new_b(a: A, label: Annotated[str, Name("label"), Maybe()]) -> B:
            return B(a)

        container = Container()
        first, second = ProvideInfo(), ProvideInfo()
        container.provide(A, info=first)
        container.provide(new_b, info=second)

        self.assertGreater(second.id, first.id)
        self.assertEqual([str(i) for i in second.inputs], ["A", 'str[optional, name = "label"]'])
        self.assertEqual([str(o) for o in second.outputs], ["B"])

    def test_location_option(self):
        """Diagnostics report the given location instead of the constructor's."""

        def new_a() -> A:
            raise RuntimeError("boom")

        location = Location("app.wiring", "build_everything", "wiring.py", 3)
        container = Container()
        container.provide(new_a, location=location)

        with self.assertRaises(ArgumentsFailedError) as ctx:
            container.invoke(_identity(A))

        self.assertEqual(ctx.exception.reason.location, location)
        self.assertIn("build_everything", str(ctx.exception))

    def test_declared_shape_for_builtin(self):
        """Builtins are provided with an explicit shape."""
        container = Container()
        container.provide(dict, shape=FunctionShape(results=(Slot(dict),)))
        self.assertEqual(container.invoke(_identity(dict)), {})

    def test_keyword_only_parameters(self):
        """Keyword-only parameters are passed by keyword."""

        def new_b(*, a: A) -> B:
            return B(a)

        container = Container()
        container.provide(A)
        container.provide(new_b)
        self.assertIsInstance(container.invoke(_identity(B)).a, A)

    def test_class_constructor(self):
        """Classes are constructors of themselves."""
        container = Container()
        container.provide(A)
        container.provide(B)
        container.provide(C)

        c = container.invoke(_identity(C))
        self.assertIsInstance(c.b.a, A)


class TestAggregates(unittest.TestCase):
    """Test parameter and result objects and value groups."""

    def test_in_and_out(self):
        """Result object fields feed parameter object fields."""

        @dataclass
        class Connections(Out):
            primary: Annotated[Reader, Name("primary")]
            replica: Annotated[Reader, Name("replica")]
            route: Annotated[str, Group("routes")]

        @dataclass
        class Params(In):
            primary: Annotated[Reader, Name("primary")]
            replica: Annotated[Reader, Name("replica")]
            routes: Annotated[list[str], Group("routes")]

        def connect() -> Connections:
            return Connections(Reader(), Reader(), "/health")

        container = Container()
        container.provide(connect)

        params = container.invoke(_identity(Params))
        self.assertIsNot(params.primary, params.replica)
        self.assertEqual(params.routes, ["/health"])

    def test_fields_outside_init_are_not_injected(self):
        """Parameter object fields excluded from __init__ keep their own value."""

        @dataclass
        class Params(In):
            a: A
            cache: dict = field(init=False, default_factory=dict)

        container = Container()
        container.provide(A)
        container.provide(lambda: {"provided": True}, shape=FunctionShape(results=(Slot(dict),)))

        params = container.invoke(_identity(Params))
        self.assertIsInstance(params.a, A)
        self.assertEqual(params.cache, {})

    def test_flattened_group(self):
        """Flattened results contribute each element separately."""

        def core_routes() -> Annotated[list[str], Group("routes", flatten=True)]:
            return ["/a", "/b"]

        def admin_route() -> Annotated[str, Group("routes")]:
            return "/admin"

        container = Container(rng=random.Random(1))
        container.provide(core_routes)
        container.provide(admin_route)

        def consume(routes: Annotated[list[str], Group("routes")]) -> list[str]:
            return routes

        self.assertEqual(sorted(container.invoke(consume)), ["/a", "/admin", "/b"])

    def test_group_failure_still_calls_other_providers(self):
        """Every group provider is attempted before the failure is reported."""
        calls = []

        def good() -> Annotated[int, Group("g")]:
            calls.append("good")
            return 1

        def bad() -> Annotated[int, Group("g")]:
            calls.append("bad")
            raise ValueError("nope")

        container = Container()
        container.provide(bad)
        container.provide(good)

        def consume(values: Annotated[list[int], Group("g")]) -> None:
            pass

        with self.assertRaises(ArgumentsFailedError) as ctx:
            container.invoke(consume)

        self.assertIsInstance(ctx.exception.reason, ParamGroupFailedError)
        self.assertEqual(sorted(calls), ["bad", "good"])
        self.assertIsInstance(root_cause(ctx.exception), ValueError)

    def test_empty_group(self):
        """A group nobody contributes to resolves to an empty list."""

        def consume(values: Annotated[list[int], Group("g")]) -> list[int]:
            return values

        self.assertEqual(Container().invoke(consume), [])


class TestInvoke(unittest.TestCase):
    """Test invoke results and failures."""

    def test_returns_function_result(self):
        """Invoke returns what the function returns."""
        container = Container()
        container.provide(A)
        self.assertIsInstance(container.invoke(_identity(A)), A)

    def test_function_exception_propagates_unchanged(self):
        """Exceptions raised by the invoked function are not wrapped."""
        error = ValueError("from the function")

        def consume(a: A) -> None:
            raise error

        container = Container()
        container.provide(A)

        with self.assertRaises(ValueError) as ctx:
            container.invoke(consume)
        self.assertIs(ctx.exception, error)

    def test_all_missing_types_are_reported(self):
        """Every missing direct dependency is listed at once."""

        def consume(a: A, b: B, reader: Annotated[Reader, Maybe()]) -> None:
            pass

        with self.assertRaises(MissingDependenciesError) as ctx:
            Container().invoke(consume)

        missing = ctx.exception.reason
        assert isinstance(missing, MissingTypesError)
        self.assertEqual(missing.keys, [Key(A), Key(B)])
        self.assertIn("missing types: A, B", str(ctx.exception))

    def test_missing_type_suggestions(self):
        """Similar provided keys are suggested."""

        def new_file_reader() -> FileReader:
            return FileReader()

        container = Container()
        container.provide(A, name="main")
        container.provide(new_file_reader)

        with self.assertRaises(MissingDependenciesError) as ctx:
            container.invoke(_identity(A))
        self.assertIn('did you mean A[name = "main"]?', str(ctx.exception))

        with self.assertRaises(MissingDependenciesError) as ctx:
            container.invoke(_identity(Reader))
        self.assertIn("did you mean to provide FileReader with as_types=(Reader,)?", str(ctx.exception))

    def test_unsupported_parameters_name_the_function(self):
        """Shape errors in an invoked function carry its location."""

        def consume(values: Annotated[int, Group("g")]) -> None:
            pass

        with self.assertRaises(InvokeError) as ctx:
            Container().invoke(consume)

        self.assertEqual(ctx.exception.location, Location.of(consume))
        self.assertIsInstance(ctx.exception.reason, RegistrationError)
        self.assertIn("value groups may be consumed as lists only", str(ctx.exception))

    def test_resolution_depth(self):
        """Nesting deeper than the limit is reported, not overflowed."""
        container = Container(max_resolution_depth=2)
        container.provide(A)
        container.provide(B)
        container.provide(C)

        with self.assertRaises(ArgumentsFailedError) as ctx:
            container.invoke(_identity(C))
        self.assertIsInstance(root_cause(ctx.exception), ResolutionDepthError)

        self.assertIsInstance(container.invoke(_identity(B)), B)

    def test_options(self):
        """Options are frozen on the container."""
        container = Container(dry_run=True, max_resolution_depth=10)
        self.assertTrue(container.options.dry_run)
        self.assertEqual(container.options.max_resolution_depth, 10)
        with self.assertRaises(ValueError):
            ContainerOptions(max_resolution_depth=0)

    def test_describe(self):
        """Each constructor is listed with its inputs and outputs."""
        container = Container()
        container.provide(A)
        container.provide(B)

        described = [
            (node.location.name, [str(i) for i in inputs], [str(o) for o in outputs])
            for node, inputs, outputs in container.describe()
        ]
        self.assertEqual(described, [("A", [], ["A"]), ("B", ["A"], ["B"])])


if __name__ == "__main__":
    unittest.main()
