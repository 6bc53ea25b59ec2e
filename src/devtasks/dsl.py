# src/devtasks/dsl.py
from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Optional

from .model import EnvSource, TaskDefinition, merge_env


# ---------------------------------------------------------------------
# Functional helper
# ---------------------------------------------------------------------

def task(
    name: str,
    command: Optional[str] = None,
    *,
    description: str = "",
    cwd: str | None = None,
    env: EnvSource = None,
    after: Optional[Iterable[str]] = None,
    before: Optional[Iterable[str]] = None,
) -> TaskDefinition:
    """Create a task. Leave `command` out for a pure join point."""
    return TaskDefinition(
        name=name,
        command=command,
        description=description,
        cwd=cwd,
        environment=merge_env(env),
        after=tuple(after or ()),
        before=tuple(before or ()),
    )


# ---------------------------------------------------------------------
# Builder API
# ---------------------------------------------------------------------

class TaskBuilder:
    def __init__(self, name: str):
        self.name = name
        self._command: Optional[str] = None
        self._description = ""
        self._cwd: Optional[str] = None
        self._env: list[tuple[str, str]] = []
        self._after: list[str] = []
        self._before: list[str] = []

    def runs(self, command: str):
        self._command = command
        return self

    def describe(self, description: str):
        self._description = description
        return self

    def in_dir(self, cwd: str):
        self._cwd = cwd
        return self

    def with_env(self, **env):
        # later calls override earlier ones for the same key
        self._env.extend((k, str(v)) for k, v in env.items())
        return self

    def after(self, *task_names: str):
        self._after.extend(task_names)
        return self

    def before(self, *task_names: str):
        self._before.extend(task_names)
        return self

    def build(self) -> TaskDefinition:
        return TaskDefinition(
            name=self.name,
            command=self._command,
            description=self._description,
            cwd=self._cwd,
            environment=merge_env(self._env),
            after=tuple(self._after),
            before=tuple(self._before),
        )


def build(name: str) -> TaskBuilder:
    """Convenience: build('test').runs('pytest').after('lint').build()"""
    return TaskBuilder(name)


# ---------------------------------------------------------------------
# Matrix
# ---------------------------------------------------------------------

class Matrix:
    """
    Minimal matrix expander.

    Example:
        matrix("py", ["3.11", "3.12"]).tasks(
            lambda v: task(f"test-py{v}", f"tox -e py{v}")
        )
    """
    def __init__(self, key: str, values: Iterable[Any]):
        self.key = key
        self.values = list(values)

    def tasks(self, builder: Callable[[Any], TaskDefinition]) -> List[TaskDefinition]:
        return [builder(v) for v in self.values]


def matrix(key: str, values: Iterable[Any]) -> Matrix:
    return Matrix(key, values)


# ---------------------------------------------------------------------
# Table helper (single-file story)
# ---------------------------------------------------------------------

def table(*items: TaskDefinition | Iterable[TaskDefinition]) -> List[TaskDefinition]:
    """
    Collect tasks (and lists of tasks, e.g. from a matrix) in declaration order.

    Users can write:
        from devtasks.dsl import table, task

        def tasks():
            return table(
                task("build", "make"),
                task("test", "make test", after=["build"]),
            )

    Or define TASKS directly:
        TASKS = table(task(...), task(...))
    """
    out: List[TaskDefinition] = []
    for item in items:
        if isinstance(item, TaskDefinition):
            out.append(item)
        else:
            out.extend(item)
    return out
