"""Client for the task engine.

The process-wide client is created lazily from the configured `Config` the
first time a task is submitted or awaited.
"""

import threading
from typing import Any

import structlog

from .config import Settings, get_config, get_settings
from .tasks.models import TaskFailure, TaskId, TaskSuccess
from .transport.connection import Connection, connect
from .transport.messages import (
    AwaitTaskMessage,
    NewTaskMessage,
    StoreState,
    StoreStateMessage,
    decode_store_state,
    decode_task_id,
    decode_task_result,
    encode_message,
)

logger = structlog.get_logger("tessera.client")


class Client:
    """Encodes requests, sends them over a connection, decodes responses."""

    def __init__(self, connection: Connection, queue: str = "default"):
        self.connection = connection
        self.queue = queue

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "Client":
        settings = settings or get_settings()
        return cls(connect(get_config(), settings), queue=settings.queue)

    def new_task(self, definition: str, args: list[Any], kwargs: dict[str, Any]) -> TaskId:
        """Submit a task and return the id the engine assigned to it."""
        message = NewTaskMessage.build(definition, args, kwargs, queue=self.queue)
        task_id = decode_task_id(self.connection.request(encode_message(message)))
        logger.debug("task_submitted", definition=definition, task_id=task_id)
        return task_id

    def await_task(self, task_id: TaskId) -> TaskSuccess | TaskFailure:
        """Block until the engine reports the task's terminal result."""
        message = AwaitTaskMessage(task_id=task_id)
        result = decode_task_result(self.connection.request(encode_message(message)))
        logger.debug("task_awaited", task_id=task_id, outcome=result.type)
        return result

    def store_state(self) -> StoreState:
        return decode_store_state(self.connection.request(encode_message(StoreStateMessage())))

    def close(self) -> None:
        self.connection.close()


_lock = threading.Lock()
_client: Client | None = None


def get_client() -> Client:
    """Get the process-wide client, connecting on first use."""
    global _client
    with _lock:
        if _client is None:
            _client = Client.from_settings()
        return _client


def set_client(client: Client | None) -> None:
    """Install a client, e.g. one bound to an explicit connection."""
    global _client
    with _lock:
        _client = client


def reset_client() -> None:
    """Close and forget the process-wide client."""
    global _client
    with _lock:
        client, _client = _client, None
    if client is not None:
        client.close()
