"""
Per-scope storage of providers, cached values and value groups.
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING, Any

from .model.keys import Key

if TYPE_CHECKING:
    from .constructor import ConstructorNode


class Store:
    """
    Flat maps from key to providers, cached single values and grouped values.

    Single values are overwritten when set again; group values are only ever
    appended. `read_group` returns a shuffled copy so nothing can come to
    depend on registration order.
    """

    def __init__(self, rng: random.Random):
        self._rng = rng
        self._providers: dict[Key, list[ConstructorNode]] = {}
        self._values: dict[Key, Any] = {}
        self._groups: dict[Key, list[Any]] = {}

    def set_value(self, key: Key, value: Any) -> None:
        self._values[key] = value

    def get_value(self, key: Key) -> tuple[Any, bool]:
        if key in self._values:
            return self._values[key], True
        return None, False

    def append_group(self, key: Key, value: Any) -> None:
        self._groups.setdefault(key, []).append(value)

    def read_group(self, key: Key) -> list[Any]:
        items = list(self._groups.get(key, ()))
        self._rng.shuffle(items)
        return items

    def register_provider(self, key: Key, node: ConstructorNode) -> None:
        self._providers.setdefault(key, []).append(node)

    def providers_for(self, key: Key) -> list[ConstructorNode]:
        return list(self._providers.get(key, ()))

    def has_providers(self, key: Key) -> bool:
        return bool(self._providers.get(key))

    def restore_providers(self, key: Key, nodes: list[ConstructorNode]) -> None:
        """Reset the providers of `key`, used to undo a rejected registration."""
        if nodes:
            self._providers[key] = list(nodes)
        else:
            self._providers.pop(key, None)

    def provider_keys(self) -> list[Key]:
        return [key for key, nodes in self._providers.items() if nodes]


class StagingWriter:
    """
    Collects the values produced by one constructor call.

    Nothing reaches the real store until `commit`, so a constructor that
    fails part-way leaves no partial output behind.
    """

    def __init__(self) -> None:
        self._values: dict[Key, Any] = {}
        self._groups: dict[Key, list[Any]] = {}

    def set_value(self, key: Key, value: Any) -> None:
        self._values[key] = value

    def append_group(self, key: Key, value: Any) -> None:
        self._groups.setdefault(key, []).append(value)

    def commit(self, store: Store) -> None:
        for key, value in self._values.items():
            store.set_value(key, value)
        for key, values in self._groups.items():
            for value in values:
                store.append_group(key, value)
