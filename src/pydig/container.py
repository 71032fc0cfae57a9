"""
The root of a scope tree and its configuration.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field

from .scope import Scope


@dataclass(frozen=True)
class ContainerOptions:
    """
    Configuration fixed when a container is created and shared by all its scopes.

    Attributes:
        defer_acyclic_verification: Skip the cycle check after each provide;
            the graph is verified on the first invoke instead
        dry_run: Never call constructors or invoked functions; every result
            is None
        rng: Source of randomness for value group ordering
        max_resolution_depth: Maximum number of nested constructor calls
    """

    defer_acyclic_verification: bool = False
    dry_run: bool = False
    rng: random.Random = field(default_factory=random.Random, compare=False)
    max_resolution_depth: int = 128

    def __post_init__(self) -> None:
        if self.max_resolution_depth < 1:
            raise ValueError(
                f"max_resolution_depth must be at least 1, got {self.max_resolution_depth}"
            )


class Container(Scope):
    """
    Root scope of an object graph.

    Example:
        ```python
        def new_config() -> Config:
            return Config("prod")

        def new_service(config: Config) -> Service:
            return Service(config)

        container = Container()
        container.provide(new_config)
        container.provide(new_service)

        def run(service: Service) -> str:
            return service.name

        container.invoke(run)
        ```
    """

    def __init__(
        self,
        *,
        defer_acyclic_verification: bool = False,
        dry_run: bool = False,
        rng: random.Random | None = None,
        max_resolution_depth: int = 128,
    ):
        options = ContainerOptions(
            defer_acyclic_verification=defer_acyclic_verification,
            dry_run=dry_run,
            rng=rng if rng is not None else random.Random(),
            max_resolution_depth=max_resolution_depth,
        )
        super().__init__("", None, options)

    def __repr__(self) -> str:
        return f"Container(providers={len(self.nodes)}, children={len(self.children)})"
