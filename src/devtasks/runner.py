from __future__ import annotations

import os
import subprocess
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set

from .dag import TaskGraph
from .errors import CommandFailureError, InvalidCwdError, TaskError
from .invocation import build_invocation
from .model import (
    FAILED,
    PENDING,
    RUNNING,
    SKIPPED,
    SUCCEEDED,
    TaskDefinition,
    TaskRun,
)
from .scheduler import Plan
from .settings import DEFAULT_SHELL, EXIT_CANNOT_EXECUTE, EXIT_SHELL_NOT_FOUND
from .ui.console import Console, get_console


# ----------------------------------------------------------------------
# Results
# ----------------------------------------------------------------------

@dataclass
class RunResult:
    """Aggregate outcome of one run. `runs` follows the plan's topological order."""
    target: str
    runs: Dict[str, TaskRun]
    failures: List[str] = field(default_factory=list)  # completion order

    @property
    def ok(self) -> bool:
        return all(r.state == SUCCEEDED for r in self.runs.values())

    @property
    def failed(self) -> List[str]:
        return [n for n, r in self.runs.items() if r.state == FAILED]

    @property
    def skipped(self) -> List[str]:
        return [n for n, r in self.runs.items() if r.state == SKIPPED]

    @property
    def exit_code(self) -> int:
        """
        0 if the target succeeded, the target's own code if it failed,
        otherwise the code of the first failure that stopped it.
        """
        target = self.runs[self.target]
        if target.state == SUCCEEDED:
            return 0
        if target.state == FAILED:
            return target.exit_code or 1
        for name in self.failures:
            code = self.runs[name].exit_code
            if code:
                return code
        return 1


@dataclass
class _Outcome:
    exit_code: int
    output: str
    duration: float


# ----------------------------------------------------------------------
# Execution primitives
# ----------------------------------------------------------------------

def _run_task(
    task: TaskDefinition,
    args: Sequence[str],
    root: Path,
    shell: str,
) -> _Outcome:
    """Run one task's command to completion. Raises on failure."""
    inv = build_invocation(task, args, shell=shell, root=root)
    if inv.cwd is not None and not inv.cwd.is_dir():
        raise InvalidCwdError(task=task.name, cwd=str(inv.cwd))

    started = time.monotonic()
    try:
        proc = subprocess.run(
            inv.argv,
            cwd=str(inv.cwd) if inv.cwd is not None else None,
            env=inv.env,
            text=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
        )
    except (OSError, ValueError) as e:
        # the process never started
        if isinstance(e, FileNotFoundError):
            code = EXIT_SHELL_NOT_FOUND
        elif isinstance(e, PermissionError):
            code = EXIT_CANNOT_EXECUTE
        else:
            code = 1
        raise CommandFailureError(
            task=task.name,
            command=task.command or "",
            exit_code=code,
            output=str(e),
        ) from e

    duration = time.monotonic() - started
    if proc.returncode != 0:
        raise CommandFailureError(
            task=task.name,
            command=task.command or "",
            exit_code=proc.returncode,
            output=proc.stdout or "",
            duration=duration,
        )
    return _Outcome(exit_code=0, output=proc.stdout or "", duration=duration)


def _descendants(graph: TaskGraph, name: str, closure: Set[str]) -> List[str]:
    seen: Set[str] = set()
    stack = [name]
    while stack:
        node = stack.pop()
        for child in graph.successors[node]:
            if child in closure and child not in seen:
                seen.add(child)
                stack.append(child)
    return graph.by_declaration(seen)


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------

def run_plan(
    plan: Plan,
    graph: TaskGraph,
    *,
    extra_args: Sequence[str] = (),
    root: str | Path = ".",
    shell: str = DEFAULT_SHELL,
    max_workers: int | None = None,
    console: Optional[Console] = None,
) -> RunResult:
    """
    Execute a plan.

    - A task is released as soon as its own predecessors succeeded.
    - Ready tasks run in parallel on a thread pool; a task stays pending
      until a worker is free for it.
    - On failure, every pending descendant is skipped (fail-fast); unrelated
      tasks keep going and everything already started is awaited.
    - `extra_args` go to the target's command only.
    """
    console = console or get_console()
    root_p = Path(root).resolve()
    closure = set(plan.closure)
    position = {name: i for i, name in enumerate(plan.order)}

    runs: Dict[str, TaskRun] = {name: TaskRun(name) for name in plan.order}
    result = RunResult(target=plan.target, runs=runs)

    indeg = {n: len(graph.predecessors[n] & closure) for n in plan.order}
    ready: List[str] = [n for n in plan.order if indeg[n] == 0]

    if max_workers is None:
        c = os.cpu_count() or 2
        max_workers = max(1, c - 1)

    def release(name: str) -> None:
        for nxt in graph.successors[name]:
            if nxt not in closure:
                continue
            indeg[nxt] -= 1
            if indeg[nxt] == 0 and runs[nxt].state == PENDING:
                ready.append(nxt)

    def fail(name: str, exc: TaskError, output: str = "", duration: float | None = None) -> None:
        run = runs[name]
        run.move_to(FAILED)
        run.error = exc
        run.exit_code = exc.exit_code
        run.output = output
        run.duration = duration
        result.failures.append(name)
        console.print_task_output(name, output)
        console.print_task_failed(run)
        for d in _descendants(graph, name, closure):
            if runs[d].state == PENDING:
                runs[d].move_to(SKIPPED)
                runs[d].skipped_because = name
                console.print_task_skipped(runs[d])

    in_flight: Dict[Future, str] = {}

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        while ready or in_flight:
            # start ready tasks in plan order, never more than the pool can run
            ready.sort(key=position.__getitem__)
            while ready and len(in_flight) < max_workers:
                name = ready.pop(0)
                task = graph.tasks[name]
                runs[name].move_to(RUNNING)
                console.print_task_started(name)

                if task.is_noop:
                    runs[name].move_to(SUCCEEDED)
                    runs[name].exit_code = 0
                    console.print_task_succeeded(runs[name])
                    release(name)
                    ready.sort(key=position.__getitem__)
                    continue

                args = list(extra_args) if name == plan.target else []
                fut = pool.submit(_run_task, task, args, root_p, shell)
                in_flight[fut] = name

            if not in_flight:
                break

            done, _ = wait(list(in_flight), return_when=FIRST_COMPLETED)
            for fut in sorted(done, key=lambda f: position[in_flight[f]]):
                name = in_flight.pop(fut)
                try:
                    outcome = fut.result()
                except CommandFailureError as e:
                    fail(name, e, output=e.output, duration=e.duration)
                    continue
                except InvalidCwdError as e:
                    fail(name, e)
                    continue

                run = runs[name]
                run.move_to(SUCCEEDED)
                run.exit_code = outcome.exit_code
                run.output = outcome.output
                run.duration = outcome.duration
                console.print_task_output(name, outcome.output)
                console.print_task_succeeded(run)
                release(name)

    console.print_debug(f"run finished: failures={result.failures}")
    return result
