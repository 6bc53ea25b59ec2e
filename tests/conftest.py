from pathlib import Path

import pytest

from devtasks.dsl import task
from devtasks.ui.console import Console

EXAMPLES_DIR = Path(__file__).resolve().parent.parent / "examples"


@pytest.fixture
def examples_dir():
    return EXAMPLES_DIR


@pytest.fixture
def diamond():
    """A <- B, A <- C, (B, C) <- D"""
    return [
        task("A", description="first"),
        task("B", after=["A"]),
        task("C", after=["A"]),
        task("D", after=["B", "C"]),
    ]


@pytest.fixture
def console():
    return Console(debug=True)


@pytest.fixture
def log_file(tmp_path):
    """Tasks append their name here; read back with read_log()."""
    return tmp_path / "log.txt"


def read_log(path: Path) -> list[str]:
    if not path.exists():
        return []
    return path.read_text().split()


def logging_task(name: str, log: Path, **kwargs):
    return task(name, f'echo {name} >> "{log}"', **kwargs)
