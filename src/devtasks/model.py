# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Mapping, Optional, Tuple, Union

EnvSource = Union[Mapping[str, str], Iterable[Tuple[str, str]], None]


def _unique(names: Iterable[str] | None) -> Tuple[str, ...]:
    # keep first occurrence, drop repeats
    return tuple(dict.fromkeys(names or ()))


def merge_env(*sources: EnvSource) -> Dict[str, str]:
    """
    Merge environment sources left to right.

    Each source is a mapping or a sequence of (key, value) pairs. A key seen
    again later overrides the earlier value.
    """
    merged: Dict[str, str] = {}
    for src in sources:
        if not src:
            continue
        items = src.items() if isinstance(src, Mapping) else src
        for k, v in items:
            merged[str(k)] = str(v)
    return merged


@dataclass(frozen=True)
class TaskDefinition:
    """
    One task in the table.

    `after`  -> tasks that must finish before this one starts
    `before` -> tasks that may only start after this one finishes

    A task without a command is a join point: it runs nothing and succeeds
    as soon as its predecessors have.
    """
    name: str
    command: Optional[str] = None
    description: str = ""
    cwd: Optional[str] = None
    environment: Dict[str, str] = field(default_factory=dict)
    after: Tuple[str, ...] = ()
    before: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Task name must be a non-empty string")
        # frozen: go through object.__setattr__ to normalize
        object.__setattr__(self, "after", _unique(self.after))
        object.__setattr__(self, "before", _unique(self.before))
        object.__setattr__(self, "environment", merge_env(self.environment))

    def __hash__(self) -> int:
        # environment is a dict; hash its items so equal tasks hash equal
        return hash((
            self.name,
            self.command,
            self.description,
            self.cwd,
            tuple(sorted(self.environment.items())),
            self.after,
            self.before,
        ))

    @property
    def is_noop(self) -> bool:
        return self.command is None


# ----------------------------------------------------------------------
# Per-run task state
# ----------------------------------------------------------------------

PENDING = "pending"
RUNNING = "running"
SUCCEEDED = "succeeded"
FAILED = "failed"
SKIPPED = "skipped"

_TRANSITIONS = {
    PENDING: {RUNNING, SKIPPED},
    RUNNING: {SUCCEEDED, FAILED},
    SUCCEEDED: set(),
    FAILED: set(),
    SKIPPED: set(),
}


@dataclass
class TaskRun:
    """Status of one task during a single run. Thrown away afterwards."""
    name: str
    state: str = PENDING
    exit_code: Optional[int] = None
    output: str = ""
    error: Optional[Exception] = None
    duration: Optional[float] = None
    skipped_because: Optional[str] = None

    def move_to(self, state: str) -> None:
        if state not in _TRANSITIONS.get(self.state, set()):
            raise RuntimeError(f"Task '{self.name}' cannot go from {self.state} to {state}")
        self.state = state

    @property
    def finished(self) -> bool:
        return self.state in (SUCCEEDED, FAILED, SKIPPED)
