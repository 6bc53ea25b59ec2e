# scheduler.py
from __future__ import annotations

import heapq
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Tuple

from .dag import TaskGraph, build_graph
from .errors import CycleError, UnknownTaskError
from .model import TaskDefinition

_UNVISITED, _IN_PROGRESS, _DONE = 0, 1, 2


@dataclass(frozen=True)
class Plan:
    """What a run of `target` will execute, and in which order."""
    target: str
    closure: FrozenSet[str]
    order: Tuple[str, ...]
    waves: Tuple[Tuple[str, ...], ...]

    def wave_of(self, name: str) -> int:
        for i, wave in enumerate(self.waves):
            if name in wave:
                return i
        raise KeyError(name)


def ancestor_closure(graph: TaskGraph, target: str) -> FrozenSet[str]:
    """Target plus everything reachable by walking predecessor edges."""
    if target not in graph.tasks:
        raise UnknownTaskError(target)

    seen = {target}
    stack = [target]
    while stack:
        node = stack.pop()
        for p in graph.predecessors[node]:
            if p not in seen:
                seen.add(p)
                stack.append(p)
    return frozenset(seen)


def find_cycle(graph: TaskGraph, nodes: Iterable[str]) -> List[str] | None:
    """
    Three-state DFS over successor edges, restricted to `nodes`.

    Returns the first cycle found as a name sequence that starts and ends on
    the same task (["A", "B", "A"]), or None if the subgraph is acyclic.
    """
    allowed = set(nodes)
    state: Dict[str, int] = {n: _UNVISITED for n in allowed}

    for root in graph.by_declaration(allowed):
        if state[root] != _UNVISITED:
            continue

        path: List[str] = [root]
        state[root] = _IN_PROGRESS
        # one iterator of (sorted) children per frame on the path
        stack = [iter(_children(graph, root, allowed))]

        while stack:
            child = next(stack[-1], None)
            if child is None:
                stack.pop()
                state[path.pop()] = _DONE
                continue
            if state[child] == _IN_PROGRESS:
                return path[path.index(child):] + [child]
            if state[child] == _UNVISITED:
                state[child] = _IN_PROGRESS
                path.append(child)
                stack.append(iter(_children(graph, child, allowed)))

    return None


def _children(graph: TaskGraph, node: str, allowed: set[str]) -> List[str]:
    return graph.by_declaration(s for s in graph.successors[node] if s in allowed)


def topo_order(graph: TaskGraph, nodes: Iterable[str]) -> List[str]:
    """
    Kahn's algorithm restricted to `nodes`.

    Among tasks that are eligible at the same time the one declared first
    goes first, so the result only depends on the table.
    """
    allowed = set(nodes)
    indeg = {n: len(graph.predecessors[n] & allowed) for n in allowed}
    heap = [(graph.index[n], n) for n, d in indeg.items() if d == 0]
    heapq.heapify(heap)

    order: List[str] = []
    while heap:
        _, node = heapq.heappop(heap)
        order.append(node)
        for child in graph.successors[node]:
            if child not in allowed:
                continue
            indeg[child] -= 1
            if indeg[child] == 0:
                heapq.heappush(heap, (graph.index[child], child))

    if len(order) != len(allowed):
        stuck = graph.by_declaration(n for n, d in indeg.items() if d > 0)
        raise CycleError(find_cycle(graph, stuck) or stuck)
    return order


def topo_levels(graph: TaskGraph, order: List[str]) -> List[List[str]]:
    """
    Group a topological order into waves.

    A task sits one wave after the latest of its own predecessors, so no two
    tasks in a wave depend on each other and nothing waits longer than its
    own dependencies require.
    """
    allowed = set(order)
    level: Dict[str, int] = {}
    for node in order:
        preds = [level[p] for p in graph.predecessors[node] if p in allowed]
        level[node] = max(preds) + 1 if preds else 0

    waves: List[List[str]] = [[] for _ in range(max(level.values(), default=-1) + 1)]
    for node in graph.by_declaration(order):
        waves[level[node]].append(node)
    return waves


def schedule(graph: TaskGraph, target: str) -> Plan:
    """
    Plan a run of `target`:
      1. ancestor closure (minimal subset)
      2. cycle check inside the closure
      3. deterministic topological order
      4. wave grouping
    Raises UnknownTaskError / CycleError before anything could run.
    """
    closure = ancestor_closure(graph, target)

    cycle = find_cycle(graph, closure)
    if cycle:
        raise CycleError(cycle)

    order = topo_order(graph, closure)
    waves = topo_levels(graph, order)
    return Plan(
        target=target,
        closure=closure,
        order=tuple(order),
        waves=tuple(tuple(w) for w in waves),
    )


def plan_for(tasks: Iterable[TaskDefinition], target: str) -> Plan:
    return schedule(build_graph(tasks), target)
