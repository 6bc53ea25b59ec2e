# dag.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List

from .errors import DuplicateTaskError, UnknownTaskError
from .model import TaskDefinition


@dataclass(frozen=True)
class TaskGraph:
    """
    Validated dependency graph over task names.

    Edge X -> Y means "X must complete before Y".
      successors[X]   -> every Y with an edge X -> Y
      predecessors[Y] -> every X with an edge X -> Y
      index[name]     -> position of the task in the declaration order
    """
    tasks: Dict[str, TaskDefinition]
    successors: Dict[str, FrozenSet[str]]
    predecessors: Dict[str, FrozenSet[str]]
    index: Dict[str, int]

    @property
    def names(self) -> List[str]:
        return list(self.tasks)

    def task(self, name: str) -> TaskDefinition:
        try:
            return self.tasks[name]
        except KeyError:
            raise UnknownTaskError(name) from None

    def edges(self) -> List[tuple[str, str]]:
        return [
            (src, dst)
            for src in self.tasks
            for dst in sorted(self.successors[src], key=self.index.__getitem__)
        ]

    def by_declaration(self, names: Iterable[str]) -> List[str]:
        return sorted(names, key=self.index.__getitem__)


def build_graph(tasks: Iterable[TaskDefinition]) -> TaskGraph:
    """
    Build a DAG from TaskDefinition objects.

    Requires:
      - task.name: unique across the table
      - task.after / task.before: names that exist in the table

    Both checks run before any edge is added, whether or not anything is
    going to be executed.
    """
    by_name: Dict[str, TaskDefinition] = {}
    for t in tasks:
        if t.name in by_name:
            raise DuplicateTaskError(t.name)
        by_name[t.name] = t

    for t in by_name.values():
        for ref in (*t.after, *t.before):
            if ref not in by_name:
                raise UnknownTaskError(ref, referenced_by=t.name)

    succ: Dict[str, set[str]] = {n: set() for n in by_name}   # dep -> dependents
    pred: Dict[str, set[str]] = {n: set() for n in by_name}   # dependent -> deps

    for t in by_name.values():
        # after: N -> T ; before: T -> N  (set union, one edge either way)
        for dep in t.after:
            succ[dep].add(t.name)
            pred[t.name].add(dep)
        for nxt in t.before:
            succ[t.name].add(nxt)
            pred[nxt].add(t.name)

    return TaskGraph(
        tasks=by_name,
        successors={n: frozenset(s) for n, s in succ.items()},
        predecessors={n: frozenset(p) for n, p in pred.items()},
        index={n: i for i, n in enumerate(by_name)},
    )
