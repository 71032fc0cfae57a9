"""
Dependency graph over constructor nodes and cycle detection.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any, Protocol

from .keys import Key
from .params import Param, ParamGroupedSlice, ParamObject, ParamSingle

if TYPE_CHECKING:
    from ..store import Store

logger = logging.getLogger(__name__)


class Graph(Protocol):
    """Directed graph whose nodes are identified by their position."""

    def count(self) -> int: ...

    def edges_from(self, index: int) -> list[int]: ...


class GraphHolder:
    """
    Graph of the nodes registered in one scope.

    Nodes are constructor nodes plus one node per consumed value group.
    Edges are not stored: they are derived from each node's parameters and
    the providers currently registered in the owning store, so they always
    reflect the latest registrations.
    """

    def __init__(self, store: Store):
        self._store = store
        self._nodes: list[Any] = []
        # Group consumption nodes, by group key.
        self._orders: dict[Key, int] = {}
        self._snapshot: int | None = None

    def new_node(self, payload: Any, key: Key | None = None) -> int:
        """Add a node and return its index. Group nodes are added once per key."""
        if key is not None and key in self._orders:
            return self._orders[key]
        index = len(self._nodes)
        self._nodes.append(payload)
        if key is not None:
            self._orders[key] = index
        logger.debug("Added graph node %d: %s", index, key if key is not None else payload)
        return index

    def lookup(self, index: int) -> Any:
        return self._nodes[index]

    def count(self) -> int:
        return len(self._nodes)

    def group_order(self, key: Key) -> int | None:
        return self._orders.get(key)

    def edges_from(self, index: int) -> list[int]:
        """Indices of the nodes whose outputs node `index` requires."""
        payload = self._nodes[index]
        if isinstance(payload, ParamGroupedSlice):
            return [provider.order for provider in self._store.providers_for(payload.key)]

        orders: list[int] = []
        for param in payload.param_list.params:
            orders.extend(self._param_orders(param))
        return orders

    def _param_orders(self, param: Param) -> Iterator[int]:
        if isinstance(param, ParamSingle):
            for provider in self._store.providers_for(param.key):
                yield provider.order
        elif isinstance(param, ParamGroupedSlice):
            order = self._orders.get(param.key)
            if order is not None:
                yield order
        elif isinstance(param, ParamObject):
            for field in param.fields:
                yield from self._param_orders(field.param)

    def snapshot(self) -> None:
        """Remember the current node count so `rollback` can undo later additions."""
        self._snapshot = len(self._nodes)

    def rollback(self) -> None:
        """Drop every node added since the last `snapshot`."""
        if self._snapshot is None:
            return
        keep = self._snapshot
        del self._nodes[keep:]
        self._orders = {key: order for key, order in self._orders.items() if order < keep}
        self._snapshot = None
        logger.debug("Rolled graph back to %d nodes", keep)


WHITE, GRAY, BLACK = 0, 1, 2


def find_cycle(graph: Graph, start: int, colors: dict[int, int] | None = None) -> list[int] | None:
    """
    Depth-first search from `start` for a cycle.

    Returns the cycle as a list of node indices starting and ending with the
    re-entered node, or None. `colors` may be shared between calls so nodes
    already proven cycle-free are not visited twice.
    """
    if colors is None:
        colors = {}
    if colors.get(start, WHITE) != WHITE:
        return None

    parents: dict[int, int] = {}
    colors[start] = GRAY
    stack: list[tuple[int, Iterator[int]]] = [(start, iter(graph.edges_from(start)))]

    while stack:
        node, neighbors = stack[-1]
        for neighbor in neighbors:
            state = colors.get(neighbor, WHITE)
            if state == WHITE:
                parents[neighbor] = node
                colors[neighbor] = GRAY
                stack.append((neighbor, iter(graph.edges_from(neighbor))))
                break
            if state == GRAY:
                return _cycle_path(parents, node, neighbor)
        else:
            colors[node] = BLACK
            stack.pop()

    return None


def _cycle_path(parents: dict[int, int], tail: int, head: int) -> list[int]:
    path = [tail]
    while path[-1] != head:
        path.append(parents[path[-1]])
    path.reverse()
    return path + [head]


def is_acyclic(graph: Graph) -> tuple[bool, list[int]]:
    """Check the whole graph. Returns (True, []) or (False, cycle)."""
    colors: dict[int, int] = {}
    for index in range(graph.count()):
        cycle = find_cycle(graph, index, colors)
        if cycle is not None:
            logger.debug("Cycle detected: %s", cycle)
            return False, cycle
    return True, []
