"""
Errors raised while registering constructors and resolving the graph.

Wrapping errors keep the error they wrap in `reason` and are raised from it,
so both `root_cause()` and tracebacks can walk back to the original failure.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .location import Location
    from .model.keys import Key


class DigError(Exception):
    """Base class for all errors raised by pydig."""


class InvalidFunctionError(DigError):
    """Raised when a non-callable is passed to provide or invoke."""


class RegistrationError(DigError):
    """Raised when a constructor or its options have an unsupported shape."""

    def __init__(self, message: str, reason: BaseException | None = None):
        self.reason = reason
        if reason is not None:
            message = f"{message}: {reason}"
        super().__init__(message)


class ProvideError(DigError):
    """Raised when a constructor could not be added to a scope."""

    def __init__(self, location: Location, reason: BaseException):
        self.location = location
        self.reason = reason
        super().__init__(f"cannot provide function {location}: {reason}")


class InvokeError(DigError):
    """Raised when a function has a shape that cannot be invoked."""

    def __init__(self, location: Location, reason: BaseException):
        self.location = location
        self.reason = reason
        super().__init__(f"cannot invoke function {location}: {reason}")


@dataclass(frozen=True)
class CycleEntry:
    """One participant of a dependency cycle."""

    key: Key
    location: Location | None

    def __str__(self) -> str:
        if self.location is None:
            return f"{self.key} (value group)"
        return f"{self.key} provided by {self.location}"


class CycleDetectedError(DigError):
    """Raised when the dependency graph contains a cycle."""

    def __init__(self, path: list[CycleEntry], message: str = "cycle detected in dependency graph"):
        self.path = path
        rendered = "\n\tdepends on ".join(str(entry) for entry in path)
        super().__init__(f"{message}: {rendered}")


class MissingTypesError(DigError):
    """Raised when one or more required keys have no provider."""

    def __init__(self, keys: list[Key], suggestions: dict[Key, list[str]] | None = None):
        self.keys = keys
        self.suggestions = suggestions or {}
        parts = []
        for key in keys:
            hint = "; ".join(self.suggestions.get(key, []))
            parts.append(f"{key} ({hint})" if hint else str(key))
        noun = "type" if len(keys) == 1 else "types"
        super().__init__(f"missing {noun}: " + ", ".join(parts))


class MissingDependenciesError(DigError):
    """Raised when a function's direct dependencies are not all provided."""

    def __init__(self, location: Location, reason: BaseException):
        self.location = location
        self.reason = reason
        super().__init__(f"missing dependencies for function {location}: {reason}")


class ArgumentsFailedError(DigError):
    """Raised when the arguments of a function could not be built."""

    def __init__(self, location: Location, reason: BaseException):
        self.location = location
        self.reason = reason
        super().__init__(f"could not build arguments for function {location}: {reason}")


class ConstructorFailedError(DigError):
    """Raised when a user constructor raised an exception."""

    def __init__(self, location: Location, reason: BaseException):
        self.location = location
        self.reason = reason
        super().__init__(f"function {location} raised an exception: {reason}")


class ParamSingleFailedError(DigError):
    """Raised when the constructor of a single value failed."""

    def __init__(self, key: Key, location: Location, reason: BaseException):
        self.key = key
        self.location = location
        self.reason = reason
        super().__init__(f"failed to build {key}: {reason}")


class ParamGroupFailedError(DigError):
    """Raised when at least one contributor to a value group failed."""

    def __init__(
        self,
        key: Key,
        location: Location,
        reason: BaseException,
        failures: list[tuple[Location, BaseException]] | None = None,
    ):
        self.key = key
        self.location = location
        self.reason = reason
        self.failures = failures or [(location, reason)]
        super().__init__(f"could not build value group {key}: {reason}")


class ResolutionDepthError(DigError):
    """Raised when nested constructor calls exceed the configured depth."""

    def __init__(self, location: Location, depth: int):
        self.location = location
        self.depth = depth
        super().__init__(
            f"resolution depth limit of {depth} exceeded while calling {location}"
        )


def root_cause(err: BaseException) -> BaseException:
    """Follow `reason` links to the innermost error."""
    seen: set[int] = set()
    while isinstance(getattr(err, "reason", None), BaseException) and id(err) not in seen:
        seen.add(id(err))
        err = err.reason  # type: ignore[attr-defined]
    return err


def is_cycle_detected(err: BaseException) -> bool:
    """Whether `err` was ultimately caused by a dependency cycle."""
    return isinstance(root_cause(err), CycleDetectedError)
