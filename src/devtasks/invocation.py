# invocation.py
# Pure mapping from a TaskDefinition (+ arguments) to something runnable.
# Nothing here touches the filesystem or spawns processes.

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

from .model import TaskDefinition
from .settings import DEFAULT_SHELL


@dataclass(frozen=True)
class Invocation:
    """argv + cwd + env, ready to hand to subprocess."""
    task: str
    argv: List[str]
    cwd: Optional[Path]
    env: Dict[str, str] = field(default_factory=dict)


def program_name(task: TaskDefinition) -> str:
    """Name the command sees as $0."""
    return f"task-{task.name}"


def resolve_cwd(task: TaskDefinition, root: str | Path | None = None) -> Optional[Path]:
    if task.cwd is None:
        return None
    cwd = Path(task.cwd).expanduser()
    if not cwd.is_absolute() and root is not None:
        cwd = Path(root) / cwd
    return cwd


def build_invocation(
    task: TaskDefinition,
    args: Sequence[str] = (),
    *,
    shell: str = DEFAULT_SHELL,
    root: str | Path | None = None,
    base_env: Optional[Mapping[str, str]] = None,
) -> Invocation:
    """
    Turn a task into `<shell> -e -c <command> task-<name> [args...]`.

    `args` become the command's positional parameters ($1, $@). The task's
    environment is layered over `base_env` (the current process environment
    by default) without modifying it.
    """
    if task.command is None:
        raise ValueError(f"Task '{task.name}' has no command to invoke")

    env = dict(os.environ if base_env is None else base_env)
    env.update(task.environment)

    return Invocation(
        task=task.name,
        argv=[shell, "-e", "-c", task.command, program_name(task), *args],
        cwd=resolve_cwd(task, root),
        env=env,
    )


def render_script(task: TaskDefinition, *, shell: str = DEFAULT_SHELL) -> str:
    """
    Shell script equivalent of running the task on its own:
    set -e, export the environment, cd into cwd, then the command.
    """
    lines = [f"#!/usr/bin/env {shell}", "set -e"]
    for k, v in task.environment.items():
        lines.append(f"export {k}={shlex.quote(v)}")
    if task.cwd is not None:
        lines.append(f"cd {shlex.quote(task.cwd)}")
    if task.command is not None:
        lines.append(task.command)
    return "\n".join(lines) + "\n"
