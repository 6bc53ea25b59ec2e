from __future__ import annotations

# Files looked up in the current directory when --file / DEVTASKS_FILE is not given.
DEFAULT_TASK_FILES = ("tasks.py", "tasks.json")

DEFAULT_SHELL = "bash"

ENV_FILE = "DEVTASKS_FILE"
ENV_SHELL = "DEVTASKS_SHELL"
ENV_WORKERS = "DEVTASKS_WORKERS"

# Exit status when no target was selected (listing) or a target is unknown.
EXIT_NO_TARGET = 1
EXIT_INTERRUPTED = 130
# Shell could not be started at all (same code a shell uses for "command not found").
EXIT_SHELL_NOT_FOUND = 127
# Shell found but could not be executed (permission denied).
EXIT_CANNOT_EXECUTE = 126
