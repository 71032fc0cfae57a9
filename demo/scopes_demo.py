#!/usr/bin/env python3
"""
Demonstration of nested scopes, parameter/result objects and dry runs.

A request scope sees everything its parent provides, can shadow single
values and adds its own contributions to value groups.
"""

import logging
from dataclasses import dataclass
from typing import Annotated

from pydig import Container, Group, In, Maybe, Name, Out


@dataclass
class Settings:
    environment: str


@dataclass
class Connections(Out):
    """Two connections produced by one constructor."""

    reader: Annotated[str, Name("reader")]
    writer: Annotated[str, Name("writer")]


@dataclass
class RepositoryParams(In):
    reader: Annotated[str, Name("reader")]
    writer: Annotated[str, Name("writer")]
    cache_size: Annotated[int, Maybe()] = 128


class Repository:
    def __init__(self, params: RepositoryParams):
        self.reader = params.reader
        self.writer = params.writer
        self.cache_size = params.cache_size


def new_settings() -> Settings:
    return Settings("production")


def connect(settings: Settings) -> Connections:
    print(f"  connecting to the {settings.environment} database")
    return Connections(f"{settings.environment}-replica", f"{settings.environment}-primary")


def new_staging_settings() -> Settings:
    return Settings("staging")


def health_route() -> Annotated[str, Group("routes")]:
    return "/health"


def user_routes() -> Annotated[list[str], Group("routes", flatten=True)]:
    return ["/users", "/users/{id}"]


def main():
    """Main demo function."""
    print("=== pydig Scopes Demo ===\n")

    container = Container()
    container.provide(new_settings)
    container.provide(connect)
    container.provide(Repository)
    container.provide(health_route)

    api = container.create_child("api")
    api.provide(user_routes)

    print("1. Parameter and result objects:")
    print("-" * 30)

    def describe(repository: Repository) -> None:
        print(f"  reads from {repository.reader}, writes to {repository.writer}")
        print(f"  cache size (default kept): {repository.cache_size}")

    container.invoke(describe)

    print("\n2. Child scopes reuse values built by their parent:")
    print("-" * 30)

    def same_repository(repository: Repository) -> Repository:
        return repository

    print(f"  same instance: {api.invoke(same_repository) is container.invoke(same_repository)}")

    print("\n3. Value groups collect contributions along the path:")
    print("-" * 30)

    def list_routes(routes: Annotated[list[str], Group("routes")]) -> list[str]:
        return sorted(routes)

    print(f"  root: {container.invoke(list_routes)}")
    print(f"  api:  {api.invoke(list_routes)}")

    print("\n4. Shadowing in a child scope:")
    print("-" * 30)

    staging = container.create_child("staging")
    staging.provide(new_staging_settings)

    def environment(settings: Settings) -> str:
        return settings.environment

    print(f"  root sees:    {container.invoke(environment)}")
    print(f"  staging sees: {staging.invoke(environment)}")

    print("\n5. Dry run:")
    print("-" * 30)

    dry = Container(dry_run=True)
    dry.provide(new_settings)
    dry.provide(connect)
    dry.provide(Repository)
    dry.invoke(describe)
    print("  wiring is valid, nothing was constructed")

    print("\nDemo completed successfully!")


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING)
    main()
