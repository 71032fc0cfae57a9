"""
pydig - an in-process object graph resolver.

Register constructors with `provide`, then `invoke` a function: everything
it needs is constructed on demand, at most once, in dependency order.

- Typed keys: a type plus an optional name or value group
- Parameter and result objects (`In`/`Out`) for structured signatures
- Incremental dependency graph with cycle detection and rollback
- Nested scopes that extend or shadow their parent's bindings
"""

from .container import Container, ContainerOptions
from .errors import (
    ArgumentsFailedError,
    ConstructorFailedError,
    CycleDetectedError,
    CycleEntry,
    DigError,
    InvalidFunctionError,
    InvokeError,
    MissingDependenciesError,
    MissingTypesError,
    ParamGroupFailedError,
    ParamSingleFailedError,
    ProvideError,
    RegistrationError,
    ResolutionDepthError,
    is_cycle_detected,
    root_cause,
)
from .location import Location
from .markers import Group, In, Maybe, Name, Out
from .model import FunctionShape, Input, Key, Output, ProvideInfo, Slot
from .scope import Scope

__all__ = [
    "ArgumentsFailedError",
    "ConstructorFailedError",
    "Container",
    "ContainerOptions",
    "CycleDetectedError",
    "CycleEntry",
    "DigError",
    "FunctionShape",
    "Group",
    "In",
    "Input",
    "InvalidFunctionError",
    "InvokeError",
    "Key",
    "Location",
    "Maybe",
    "MissingDependenciesError",
    "MissingTypesError",
    "Name",
    "Out",
    "Output",
    "ParamGroupFailedError",
    "ParamSingleFailedError",
    "ProvideError",
    "ProvideInfo",
    "RegistrationError",
    "ResolutionDepthError",
    "Scope",
    "Slot",
    "is_cycle_detected",
    "root_cause",
]
