"""Loading task tables from Python or JSON files."""

from __future__ import annotations

import json
import runpy
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import DuplicateTaskError
from .model import TaskDefinition
from .settings import DEFAULT_TASK_FILES


class TaskSpec(BaseModel):
    """Schema of one task entry in a JSON task file."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True, coerce_numbers_to_str=True)

    name: Optional[str] = None
    command: Optional[str] = Field(default=None, alias="exec")
    description: str = ""
    cwd: Optional[str] = None
    environment: Dict[str, str] = Field(default_factory=dict, alias="env")
    after: List[str] = Field(default_factory=list)
    before: List[str] = Field(default_factory=list)

    def to_task(self, name: Optional[str] = None) -> TaskDefinition:
        return TaskDefinition(
            name=name or self.name or "",
            command=self.command,
            description=self.description,
            cwd=self.cwd,
            environment=self.environment,
            after=tuple(self.after),
            before=tuple(self.before),
        )


class _Pairs(list):
    """Key/value pairs of one JSON object, in file order."""


def _plain(value: Any) -> Any:
    # nested objects: later duplicate keys win, like a normal dict
    if isinstance(value, _Pairs):
        return {k: _plain(v) for k, v in value}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


def _spec(raw: Any, where: str) -> TaskSpec:
    try:
        return TaskSpec.model_validate(_plain(raw))
    except ValidationError as e:
        raise ValueError(f"Invalid task {where}:\n{e}") from e


def parse_tasks_json(text: str) -> List[TaskDefinition]:
    """
    Parse a JSON task table.

    Accepted shapes:
      - [{"name": "build", "exec": "make", ...}, ...]
      - {"build": {"exec": "make", ...}, ...}   (name taken from the key)
    """
    raw = json.loads(text, object_pairs_hook=_Pairs)

    tasks: List[TaskDefinition] = []
    if isinstance(raw, _Pairs):
        seen: set[str] = set()
        for name, body in raw:
            if name in seen:
                raise DuplicateTaskError(name)
            seen.add(name)
            spec = _spec(body, f"'{name}'")
            if spec.name is not None and spec.name != name:
                raise ValueError(f"Task '{name}' declares a different name: '{spec.name}'")
            tasks.append(spec.to_task(name))
    elif isinstance(raw, list):
        for i, body in enumerate(raw):
            spec = _spec(body, f"#{i}")
            if not spec.name:
                raise ValueError(f"Task #{i} has no name")
            tasks.append(spec.to_task())
    else:
        raise TypeError("Task file must contain a JSON list or object of tasks")
    return tasks


def load_tasks(path: str | Path) -> List[TaskDefinition]:
    """
    Load a task table from a file.

    `.py`   -> must define tasks() -> List[TaskDefinition] or TASKS = [...]
    `.json` -> see parse_tasks_json()
    """
    p = Path(path).expanduser().resolve()
    if not p.exists():
        raise FileNotFoundError(f"Tasks file not found: {p}")

    if p.suffix == ".json":
        return parse_tasks_json(p.read_text(encoding="utf-8"))
    if p.suffix != ".py":
        raise ValueError(f"Tasks file must be a .py or .json file, got: {p.name}")

    globals_dict = runpy.run_path(str(p), run_name=f"devtasks_file_{p.stem}")

    tasks = None
    if "tasks" in globals_dict and callable(globals_dict["tasks"]):
        tasks = globals_dict["tasks"]()
    elif "TASKS" in globals_dict:
        tasks = globals_dict["TASKS"]

    if not isinstance(tasks, (list, tuple)) or not all(isinstance(t, TaskDefinition) for t in tasks):
        raise TypeError(
            "Tasks file must return/define a list of TaskDefinition. "
            "Define tasks() -> List[TaskDefinition] or TASKS = [...]."
        )
    return list(tasks)


def find_task_files(directory: str | Path = ".") -> List[Path]:
    """Default task files present in `directory`, in lookup order."""
    d = Path(directory)
    return [d / name for name in DEFAULT_TASK_FILES if (d / name).is_file()]
