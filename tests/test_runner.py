import os

import pytest

from conftest import logging_task, read_log
from devtasks.dag import build_graph
from devtasks.dsl import task
from devtasks.errors import CommandFailureError, InvalidCwdError
from devtasks.model import FAILED, SKIPPED, SUCCEEDED
from devtasks.runner import run_plan
from devtasks.scheduler import schedule
from devtasks.ui.console import Console


def _run(tasks, target, console, **kwargs):
    graph = build_graph(tasks)
    plan = schedule(graph, target)
    return run_plan(plan, graph, console=console, **kwargs)


def test_diamond_runs_in_dependency_order(log_file, console):
    tasks = [
        logging_task("A", log_file),
        logging_task("B", log_file, after=["A"]),
        logging_task("C", log_file, after=["A"]),
        logging_task("D", log_file, after=["B", "C"]),
    ]
    result = _run(tasks, "D", console, max_workers=2)

    log = read_log(log_file)
    assert log[0] == "A"
    assert set(log[1:3]) == {"B", "C"}
    assert log[3] == "D"
    assert result.ok
    assert result.exit_code == 0
    assert list(result.runs) == ["A", "B", "C", "D"]


def test_only_ancestors_run(log_file, console):
    tasks = [
        logging_task("A", log_file),
        logging_task("B", log_file, after=["A"]),
        logging_task("C", log_file, after=["A"]),
        logging_task("D", log_file, after=["B", "C"]),
    ]
    result = _run(tasks, "B", console)
    assert read_log(log_file) == ["A", "B"]
    assert set(result.runs) == {"A", "B"}


def test_noop_join_task_succeeds(log_file, console):
    tasks = [
        logging_task("build", log_file),
        logging_task("test", log_file),
        task("all", after=["build", "test"]),
    ]
    result = _run(tasks, "all", console)
    assert result.runs["all"].state == SUCCEEDED
    assert result.runs["all"].exit_code == 0
    assert sorted(read_log(log_file)) == ["build", "test"]
    assert result.exit_code == 0


def test_failure_skips_descendants(log_file, console, capsys):
    tasks = [
        task("A", "exit 3"),
        logging_task("B", log_file, after=["A"]),
        logging_task("C", log_file, after=["A"]),
        logging_task("D", log_file, after=["B", "C"]),
    ]
    result = _run(tasks, "D", console)

    assert read_log(log_file) == []
    assert result.runs["A"].state == FAILED
    assert isinstance(result.runs["A"].error, CommandFailureError)
    assert result.failed == ["A"]
    assert result.skipped == ["B", "C", "D"]
    assert result.runs["D"].skipped_because == "A"
    assert not result.ok
    assert result.exit_code == 3

    out = capsys.readouterr().out
    assert "TASK FAILED: A" in out
    assert "TASK SKIPPED: B (ancestor failed: A)" in out


def test_independent_tasks_still_run(log_file, console):
    tasks = [
        task("bad", "exit 2"),
        logging_task("good", log_file),
        logging_task("end", log_file, after=["bad", "good"]),
    ]
    result = _run(tasks, "end", console, max_workers=1)

    assert read_log(log_file) == ["good"]
    assert result.runs["good"].state == SUCCEEDED
    assert result.runs["end"].state == SKIPPED
    assert result.failures == ["bad"]
    # target skipped -> first failure's status
    assert result.exit_code == 2


def test_target_failure_sets_exit_code(console):
    tasks = [task("prep", "true"), task("target", "exit 5", after=["prep"])]
    result = _run(tasks, "target", console)
    assert result.runs["prep"].state == SUCCEEDED
    assert result.runs["target"].state == FAILED
    assert result.exit_code == 5


def test_extra_args_go_to_target_only(log_file, console):
    tasks = [
        task("A", f'echo "A:$#" >> "{log_file}"'),
        task("T", f'echo "T:$1:$2:$0" >> "{log_file}"', after=["A"]),
    ]
    _run(tasks, "T", console, extra_args=["x", "y"])
    assert read_log(log_file) == ["A:0", "T:x:y:task-T"]


def test_environment_applied_per_task(log_file, console, monkeypatch):
    monkeypatch.setenv("DEVTASKS_PARENT_VAR", "inherited")
    tasks = [
        task(
            "show",
            f'echo "$GREETING-$DEVTASKS_PARENT_VAR" >> "{log_file}"',
            env=[("GREETING", "hello"), ("GREETING", "hi")],
        ),
        task("other", f'echo "other-${{GREETING:-unset}}" >> "{log_file}"', after=["show"]),
    ]
    _run(tasks, "other", console)

    assert read_log(log_file) == ["hi-inherited", "other-unset"]
    assert "GREETING" not in os.environ


def test_relative_cwd_resolved_against_root(tmp_path, log_file, console):
    (tmp_path / "sub").mkdir()
    tasks = [task("where", f'basename "$PWD" >> "{log_file}"', cwd="sub")]
    result = _run(tasks, "where", console, root=tmp_path)
    assert result.ok
    assert read_log(log_file) == ["sub"]


def test_missing_cwd_fails_before_running(tmp_path, log_file, console):
    tasks = [
        logging_task("setup", log_file, cwd="does-not-exist"),
        logging_task("build", log_file, after=["setup"]),
    ]
    result = _run(tasks, "build", console, root=tmp_path)

    assert read_log(log_file) == []
    err = result.runs["setup"].error
    assert isinstance(err, InvalidCwdError)
    assert err.task == "setup"
    assert "does-not-exist" in err.cwd
    assert result.runs["build"].state == SKIPPED
    assert result.exit_code == 1


def test_missing_shell_reports_127(console):
    result = _run([task("t", "true")], "t", console, shell="devtasks-no-such-shell")
    assert result.runs["t"].state == FAILED
    assert result.exit_code == 127


def test_output_is_captured_and_prefixed(console, capsys):
    result = _run([task("hello", "echo hello; echo oops >&2")], "hello", console)
    assert result.runs["hello"].output.split() == ["hello", "oops"]
    out = capsys.readouterr().out
    assert "Running task: hello" in out
    assert "[hello] hello" in out
    assert "[hello] oops" in out
    assert "TASK SUCCEEDED: hello" in out


def test_failed_output_is_kept(console):
    result = _run([task("t", "echo before-fail; exit 4")], "t", console)
    assert "before-fail" in result.runs["t"].output
    assert result.runs["t"].error.exit_code == 4


def test_same_wave_tasks_run_concurrently(tmp_path, console):
    marker = tmp_path / "c-started"
    wait_for_c = (
        f'for i in $(seq 100); do [ -f "{marker}" ] && exit 0; sleep 0.05; done; exit 1'
    )
    tasks = [
        task("A", "true"),
        task("B", wait_for_c, after=["A"]),
        task("C", f'touch "{marker}"; sleep 0.2', after=["A"]),
        task("D", after=["B", "C"]),
    ]
    result = _run(tasks, "D", console, max_workers=2)
    assert result.ok, result.runs["B"].output


def test_fresh_state_each_run(log_file, console):
    tasks = [logging_task("A", log_file), task("B", "exit 1", after=["A"])]
    first = _run(tasks, "B", console)
    second = _run(tasks, "B", console)
    assert first.runs["A"] is not second.runs["A"]
    assert read_log(log_file) == ["A", "A"]
    assert second.failed == ["B"]


@pytest.mark.parametrize("workers", [1, 4])
def test_worker_count_does_not_change_outcome(log_file, console, workers):
    tasks = [
        logging_task("a", log_file),
        logging_task("b", log_file, after=["a"]),
        logging_task("c", log_file, after=["b"]),
    ]
    result = _run(tasks, "c", console, max_workers=workers)
    assert read_log(log_file) == ["a", "b", "c"]
    assert result.ok


def test_unstartable_shell_is_recorded_as_task_failure(tmp_path, log_file, console):
    # a directory cannot be executed
    tasks = [
        task("bad", "true"),
        logging_task("end", log_file, after=["bad"]),
    ]
    result = _run(tasks, "end", console, shell=str(tmp_path))

    assert read_log(log_file) == []
    assert result.runs["bad"].state == FAILED
    err = result.runs["bad"].error
    assert isinstance(err, CommandFailureError)
    assert err.task == "bad"
    assert err.exit_code == 126
    assert result.runs["end"].state == SKIPPED
    assert result.runs["end"].skipped_because == "bad"
    assert result.exit_code == 126


def test_environment_rejected_by_os_fails_task(log_file, console):
    tasks = [
        logging_task("good", log_file),
        task("bad", "true", env={"X": "a\x00b"}),
        logging_task("end", log_file, after=["good", "bad"]),
    ]
    result = _run(tasks, "end", console, max_workers=2)

    assert read_log(log_file) == ["good"]
    assert result.runs["good"].state == SUCCEEDED
    assert result.runs["bad"].state == FAILED
    assert result.runs["bad"].exit_code == 1
    assert result.runs["bad"].error.task == "bad"
    assert result.runs["end"].skipped_because == "bad"


def test_failed_task_has_duration(console, capsys):
    result = _run([task("t", "exit 2")], "t", console)
    assert result.runs["t"].duration is not None
    assert result.runs["t"].error.duration == result.runs["t"].duration
    assert "TASK FAILED: t (" in capsys.readouterr().out


class _EventConsole(Console):
    def __init__(self):
        super().__init__()
        self.events = []

    def print_task_started(self, name):
        self.events.append(("started", name))

    def print_task_succeeded(self, run):
        self.events.append(("succeeded", run.name))


def test_tasks_wait_for_a_free_worker():
    console = _EventConsole()
    tasks = [task("a", "sleep 0.1"), task("b", "true"), task("c", after=["a", "b"])]
    result = _run(tasks, "c", console, max_workers=1)

    assert result.ok
    assert console.events == [
        ("started", "a"),
        ("succeeded", "a"),
        ("started", "b"),
        ("succeeded", "b"),
        ("started", "c"),
        ("succeeded", "c"),
    ]
