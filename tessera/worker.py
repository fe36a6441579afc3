"""Worker process - executes tasks for an engine over stdin/stdout.

The engine starts the worker as a child process and waits for a READY line.
Each following stdin line is one JSON dispatch context:

    {"definition": "app.tasks.Add", "args": "[1, 2]", "kwargs": "{\\"c\\": 3}"}

and each is answered by exactly one JSON envelope line on stdout. A
SHUTDOWN line or end of input stops the worker. Logs go to stderr.
"""

import contextlib
import importlib
import json
import sys
from collections.abc import Iterable
from typing import TextIO

import structlog

from .config import Settings, get_settings
from .executors.execute_task import ExecuteTask
from .logs import configure_logging

logger = structlog.get_logger("tessera.worker")

READY = "READY"
SHUTDOWN = "SHUTDOWN"


class Worker:
    """Line-oriented task executor."""

    def __init__(self, settings: Settings, execute_task: ExecuteTask | None = None):
        self.settings = settings
        self.execute_task = execute_task or ExecuteTask()
        self.processed = 0

    def load_task_modules(self, modules: Iterable[str]) -> None:
        """Import modules so the tasks they define get registered."""
        for module in modules:
            with contextlib.redirect_stdout(sys.stderr):
                importlib.import_module(module)
            logger.info("task_module_loaded", module=module)

    def handle_line(self, line: str) -> str:
        """Execute one dispatch context and encode its envelope.

        Task output printed to stdout goes to stderr, keeping stdout for envelopes.
        """
        with contextlib.redirect_stdout(sys.stderr):
            envelope = self.execute_task(line)
        self.processed += 1
        return json.dumps(envelope)

    def serve(self, stdin: TextIO, stdout: TextIO) -> int:
        """Answer dispatch contexts until SHUTDOWN or end of input."""
        stdout.write(READY + "\n")
        stdout.flush()
        logger.info("worker_ready", tasks=len(self.execute_task.registry.definitions()))

        for line in stdin:
            line = line.strip()
            if not line:
                continue
            if line == SHUTDOWN:
                break

            stdout.write(self.handle_line(line) + "\n")
            stdout.flush()

        logger.info("worker_shutdown", processed=self.processed)
        return self.processed


def main(argv: list[str] | None = None) -> None:
    """Entry point for tessera-worker command.

    Task modules come from the command line and from TESSERA_TASK_MODULES.
    """
    settings = get_settings()
    configure_logging(settings)

    modules = [*settings.task_modules, *(sys.argv[1:] if argv is None else argv)]

    worker = Worker(settings)
    try:
        worker.load_task_modules(modules)
    except ImportError as e:
        logger.error("task_module_import_failed", error=str(e))
        sys.exit(1)

    worker.serve(sys.stdin, sys.stdout)


if __name__ == "__main__":
    main()
