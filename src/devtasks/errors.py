# errors.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


class TaskError(Exception):
    """Base class for every error raised while building, planning, or running tasks."""

    # exit status used when the error ends a CLI invocation or a task run
    exit_code: int = 1


# ----------------------------------------------------------------------
# Structural errors (raised before anything runs)
# ----------------------------------------------------------------------

@dataclass
class DuplicateTaskError(TaskError):
    name: str

    def __str__(self) -> str:
        return f"Duplicate task name: '{self.name}'"


@dataclass
class UnknownTaskError(TaskError):
    """
    `referenced_by` is the task whose after/before list points at `name`.
    None means the name came from the caller (a run target).
    """
    name: str
    referenced_by: Optional[str] = None

    def __str__(self) -> str:
        if self.referenced_by is None:
            return f"Unknown task: {self.name}"
        return f"Task '{self.referenced_by}' references unknown task '{self.name}'"


@dataclass
class CycleError(TaskError):
    cycle: List[str] = field(default_factory=list)

    def __str__(self) -> str:
        return "Dependency cycle: " + " -> ".join(self.cycle)


# ----------------------------------------------------------------------
# Runtime errors (recorded per task)
# ----------------------------------------------------------------------

@dataclass
class InvalidCwdError(TaskError):
    task: str
    cwd: str

    def __str__(self) -> str:
        return f"[{self.task}] working directory not found: {self.cwd}"


@dataclass
class CommandFailureError(TaskError):
    """`duration` is the time spent in the process, None if it never started."""
    task: str
    command: str
    exit_code: int = 1
    output: str = ""
    duration: Optional[float] = None

    def __str__(self) -> str:
        return f"[{self.task}] command failed (exit={self.exit_code}): {self.command}"
