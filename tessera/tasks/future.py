"""Handle for a task submitted to the engine."""

import threading
from typing import Any

import structlog

from ..client import Client, get_client
from ..errors import RemoteTaskError, resolve_error_class
from .models import TaskFailure, TaskId, TaskSuccess

logger = structlog.get_logger("tessera.future")


class Future:
    """A task in flight on the engine.

    The terminal result is cached after the first successful await. The
    engine never changes a terminal result, so later calls return or raise
    the same outcome without another round trip.
    """

    def __init__(self, task_id: TaskId, client: Client | None = None):
        self._task_id = task_id
        self._client = client
        self._result: TaskSuccess | TaskFailure | None = None
        self._lock = threading.Lock()

    @property
    def task_id(self) -> TaskId:
        return self._task_id

    def done(self) -> bool:
        """Whether the terminal result is already known locally."""
        return self._result is not None

    def result(self) -> Any:
        """Block until the task finishes; return its value or raise its error."""
        outcome = self._await()
        if isinstance(outcome, TaskSuccess):
            return outcome.value()
        raise rebuild_error(outcome)

    def _await(self) -> TaskSuccess | TaskFailure:
        with self._lock:
            if self._result is None:
                if self._client is None:
                    self._client = get_client()
                self._result = self._client.await_task(self._task_id)
            return self._result

    def __repr__(self) -> str:
        state = self._result.type if self._result is not None else "pending"
        return f"<Future task_id={self._task_id!r} state={state}>"


def rebuild_error(failure: TaskFailure) -> Exception:
    """Rebuild a remote failure as a local exception where possible."""
    remote = failure.to_error()
    error_class = resolve_error_class(failure.error_class)
    if error_class is None:
        return remote

    try:
        error = error_class(failure.message)
    except Exception:
        # Constructor needs more than a message
        logger.debug("error_rebuild_failed", error=failure.error_class)
        return remote

    error.__cause__ = remote
    return error