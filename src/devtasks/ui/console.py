"""Console output formatting utilities for devtasks."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING, Iterable, Optional, Sequence

if TYPE_CHECKING:
    from devtasks.model import TaskDefinition, TaskRun
    from devtasks.runner import RunResult
    from devtasks.scheduler import Plan


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug

    def print_listing(self, tasks: Iterable[TaskDefinition]) -> None:
        """Print every task with its description, in declaration order."""
        print("Available tasks:")
        for t in tasks:
            print(f"  {t.name}: {t.description}")

    def print_run_started(self, plan: Plan, source: Optional[str] = None) -> None:
        """Print run start information."""
        print("\nRUN STARTED")
        if source:
            print(f"Tasks file: {source}")
        print(f"Target: {plan.target}")
        print(f"Tasks: {len(plan.order)}")
        print(f"Waves: {len(plan.waves)}")
        print()

    def print_plan(self, plan: Plan) -> None:
        """Print the waves of a plan."""
        for i, wave in enumerate(plan.waves):
            print(f"=== Wave {i + 1}: {', '.join(wave)} ===")

    def print_task_started(self, name: str) -> None:
        print(f"Running task: {name}")

    def print_task_output(self, name: str, output: str) -> None:
        """Print captured command output, one prefixed line at a time."""
        for line in output.splitlines():
            print(f"[{name}] {line}")

    def print_task_succeeded(self, run: TaskRun) -> None:
        print(f"TASK SUCCEEDED: {run.name}{_duration(run.duration)}")

    def print_task_failed(self, run: TaskRun) -> None:
        """Print failure message (exit code and cause, when known)."""
        print(f"TASK FAILED: {run.name}{_duration(run.duration)}")
        if run.exit_code is not None:
            print(f"Exit code: {run.exit_code}")
        if run.error is not None:
            print(f"Error: {run.error}")

    def print_task_skipped(self, run: TaskRun) -> None:
        print(f"TASK SKIPPED: {run.name} (ancestor failed: {run.skipped_because})")

    def print_results(self, result: RunResult) -> None:
        """Print final results summary."""
        print("\n" + "=" * 40)
        print("RESULTS")
        print("=" * 40)
        for name, run in result.runs.items():
            print(f"  {name}: {run.state.upper()}")
        if result.ok:
            print("RUN SUCCEEDED")
        else:
            print(
                f"RUN FAILED (failed: {_names(result.failed)}; "
                f"skipped: {_names(result.skipped)})"
            )

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        print(f"\nERROR: {title}", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        if details:
            for detail in details:
                print(f"  {detail}", file=sys.stderr)
        if suggestion:
            print(f"\n{suggestion}", file=sys.stderr)

    def print_exception(self, exc: Exception) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exc()
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        print(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)


def _duration(seconds: Optional[float]) -> str:
    return "" if seconds is None else f" ({seconds:.1f}s)"


def _names(names: Sequence[str]) -> str:
    return ", ".join(names) if names else "-"


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
