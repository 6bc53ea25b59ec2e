# tasks.py
# Development tasks for devtasks itself: `devtasks run check`
from __future__ import annotations

from devtasks.dsl import table, task, matrix


def tasks():
    return table(
        task(
            "install",
            "python -m pip install -e '.[test]'",
            description="Install the package with test extras",
        ),
        task(
            "lint",
            "ruff check src tests",
            description="Lint the codebase",
            after=["install"],
        ),
        matrix("suite", ["dag", "scheduler", "runner", "cli"]).tasks(
            lambda s: task(
                f"test-{s}",
                f"pytest -q tests/test_{s}.py \"$@\"",
                description=f"Run the {s} tests",
                after=["install"],
                env={"PYTHONDONTWRITEBYTECODE": "1"},
            )
        ),
        task(
            "test",
            description="Run every test suite",
            after=["test-dag", "test-scheduler", "test-runner", "test-cli"],
        ),
        task(
            "check",
            description="Lint and test",
            after=["lint", "test"],
        ),
    )
