# cli.py
from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import List, Tuple

import click

from devtasks.dag import TaskGraph, build_graph
from devtasks.errors import CycleError, DuplicateTaskError, TaskError, UnknownTaskError
from devtasks.invocation import render_script
from devtasks.loader import find_task_files, load_tasks
from devtasks.model import TaskDefinition
from devtasks.report import export_json, plan_to_dict
from devtasks.runner import run_plan
from devtasks.scheduler import schedule
from devtasks.settings import (
    DEFAULT_SHELL,
    DEFAULT_TASK_FILES,
    ENV_FILE,
    ENV_SHELL,
    ENV_WORKERS,
    EXIT_INTERRUPTED,
    EXIT_NO_TARGET,
)
from devtasks.ui.console import Console, get_console, set_console


def discover_tasks_file(file_arg: str | None) -> Path:
    """
    Discover the tasks file from argument or default.

    Raises:
        SystemExit: If no file can be found or several defaults exist
    """
    console = get_console()

    if file_arg:
        path = Path(file_arg)
        if not path.exists():
            console.print_error(
                "Tasks file not found",
                f"Could not find tasks file: {file_arg}",
                suggestion="Create a tasks file or specify a different path:\n  devtasks --file my_tasks.py list",
            )
            sys.exit(1)
        return path

    candidates = find_task_files(".")
    if not candidates:
        console.print_error(
            "No tasks file found",
            "Could not find any tasks file.",
            details=["Looked for:", *(f"  {n}" for n in DEFAULT_TASK_FILES)],
            suggestion=f"Create tasks.py / tasks.json or set {ENV_FILE}.",
        )
        sys.exit(1)

    if len(candidates) > 1:
        console.print_error(
            "Multiple tasks files found",
            "Found more than one default tasks file. Please specify which one to use:",
            details=[str(c) for c in candidates],
            suggestion="  devtasks --file tasks.py list",
        )
        sys.exit(1)

    return candidates[0]


def _structural_error_title(exc: TaskError) -> str:
    if isinstance(exc, DuplicateTaskError):
        return "Duplicate task"
    if isinstance(exc, UnknownTaskError):
        return "Unknown task"
    if isinstance(exc, CycleError):
        return "Dependency cycle"
    return "Invalid tasks"


def _load(ctx) -> Tuple[Path, List[TaskDefinition], TaskGraph]:
    """Load + validate the task table. Graph checks always run, even for `list`."""
    console = get_console()
    path = discover_tasks_file(ctx.obj.get("file"))
    console.print_debug(f"loading tasks from {path}")

    try:
        tasks = load_tasks(path)
    except (FileNotFoundError, ValueError, TypeError) as e:
        console.print_error("Failed to load tasks", f"Could not load tasks from {path}", details=[str(e)])
        sys.exit(1)
    except TaskError as e:
        console.print_error(_structural_error_title(e), str(e))
        sys.exit(1)
    except Exception as e:
        # anything a .py tasks file raises while it is executed
        console.print_error("Failed to load tasks", f"Could not load tasks from {path}", details=[f"{type(e).__name__}: {e}"])
        if console.debug:
            console.print_exception(e)
        sys.exit(1)

    try:
        graph = build_graph(tasks)
    except TaskError as e:
        console.print_error(_structural_error_title(e), str(e))
        sys.exit(1)

    console.print_debug(f"{len(tasks)} task(s), {len(graph.edges())} edge(s)")
    return path, tasks, graph


def _list_and_exit(tasks: List[TaskDefinition]) -> None:
    get_console().print_listing(tasks)
    sys.exit(EXIT_NO_TARGET)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.option(
    "--file",
    "file_",
    default=None,
    envvar=ENV_FILE,
    help="Tasks file (.py or .json); defaults to tasks.py / tasks.json in the current directory",
)
@click.pass_context
def cli(ctx, debug, file_):
    """devtasks: dependency-aware task runner."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["file"] = file_


@cli.command("list")
@click.pass_context
def list_cmd(ctx):
    """List tasks (name: description). Exits non-zero: nothing was run."""
    _path, tasks, _graph = _load(ctx)
    _list_and_exit(tasks)


@cli.command(
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False},
)
@click.argument("name", required=False)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.option("--workers", default=None, type=int, envvar=ENV_WORKERS, help="Number of parallel workers")
@click.option("--shell", default=DEFAULT_SHELL, envvar=ENV_SHELL, show_default=True, help="Shell used to run commands")
@click.option("--root", default=".", show_default=True, help="Base directory for relative task cwd values")
@click.pass_context
def run(ctx, name, args, workers, shell, root):
    """Run NAME and everything it depends on. ARGS go to NAME's command only."""
    console = get_console()
    path, tasks, graph = _load(ctx)

    if name is None:
        _list_and_exit(tasks)

    try:
        p = schedule(graph, name)
    except UnknownTaskError as e:
        console.print_error("Unknown task", str(e), suggestion="Run `devtasks list` to see available tasks.")
        sys.exit(EXIT_NO_TARGET)
    except CycleError as e:
        console.print_error("Dependency cycle", str(e), details=[f"target={name}"])
        sys.exit(1)

    try:
        console.print_run_started(p, source=str(path))
        console.print_plan(p)
        result = run_plan(
            p,
            graph,
            extra_args=args,
            root=root,
            shell=shell,
            max_workers=workers,
            console=console,
        )
        console.print_results(result)
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(EXIT_INTERRUPTED)
    except Exception as e:
        console.print_exception(e)
        sys.exit(1)

    sys.exit(result.exit_code)


@cli.command()
@click.argument("name")
@click.option("--json", "as_json", is_flag=True, help="Print the plan as JSON")
@click.pass_context
def plan(ctx, name, as_json):
    """Show the waves NAME would run, without running anything."""
    console = get_console()
    _path, _tasks, graph = _load(ctx)
    try:
        p = schedule(graph, name)
    except (UnknownTaskError, CycleError) as e:
        console.print_error(_structural_error_title(e), str(e))
        sys.exit(1)
    if as_json:
        click.echo(json.dumps(plan_to_dict(p), indent=2))
    else:
        console.print_plan(p)


@cli.command()
@click.option("--output", "-o", type=click.Path(dir_okay=False), default=None, help="Write JSON here instead of stdout")
@click.pass_context
def export(ctx, output):
    """Export the task table as JSON (name, description, after, before, cwd)."""
    _path, tasks, _graph = _load(ctx)
    data = export_json(tasks)
    if output:
        Path(output).write_text(data + "\n", encoding="utf-8")
        get_console().print_info(f"Wrote {len(tasks)} task(s) to {output}")
    else:
        click.echo(data)


@cli.command()
@click.argument("name")
@click.option("--shell", default=DEFAULT_SHELL, envvar=ENV_SHELL, show_default=True)
@click.pass_context
def script(ctx, name, shell):
    """Print the standalone shell script for one task."""
    console = get_console()
    _path, _tasks, graph = _load(ctx)
    try:
        task = graph.task(name)
    except UnknownTaskError as e:
        console.print_error("Unknown task", str(e))
        sys.exit(EXIT_NO_TARGET)
    click.echo(render_script(task, shell=shell), nl=False)


if __name__ == "__main__":
    cli()
