# report.py
# Machine-readable views of a task table (no side effects).

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List

from .model import TaskDefinition
from .scheduler import Plan


def task_to_dict(task: TaskDefinition) -> Dict[str, Any]:
    """The exported subset of a task: name, description, after, before, cwd."""
    return {
        "name": task.name,
        "description": task.description,
        "after": list(task.after),
        "before": list(task.before),
        "cwd": task.cwd,
    }


def export_tasks(tasks: Iterable[TaskDefinition]) -> List[Dict[str, Any]]:
    return [task_to_dict(t) for t in tasks]


def export_json(tasks: Iterable[TaskDefinition]) -> str:
    return json.dumps(export_tasks(tasks), indent=2)


def plan_to_dict(plan: Plan) -> Dict[str, Any]:
    return {
        "target": plan.target,
        "order": list(plan.order),
        "waves": [list(w) for w in plan.waves],
    }
