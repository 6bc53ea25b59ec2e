from .dag import TaskGraph, build_graph
from .dsl import TaskBuilder, build, matrix, table, task
from .errors import (
    CommandFailureError,
    CycleError,
    DuplicateTaskError,
    InvalidCwdError,
    TaskError,
    UnknownTaskError,
)
from .loader import load_tasks
from .model import TaskDefinition, TaskRun
from .runner import RunResult, run_plan
from .scheduler import Plan, plan_for, schedule

__all__ = [
    "task", "table", "matrix", "TaskBuilder", "build",
    "TaskDefinition", "TaskRun", "TaskGraph", "build_graph",
    "Plan", "schedule", "plan_for", "run_plan", "RunResult", "load_tasks",
    "TaskError", "DuplicateTaskError", "UnknownTaskError", "CycleError",
    "InvalidCwdError", "CommandFailureError",
]
