"""Engine wire messages and their JSON encoding.

Every request is one JSON object tagged by `type`. Over TCP each JSON
payload is framed by an 8-byte big-endian length header.
"""

import json
import struct
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from ..errors import ProtocolError
from ..tasks.models import TaskFailure, TaskId, TaskSuccess, task_result_adapter

FRAME_HEADER = struct.Struct(">Q")


class NewTaskMessage(BaseModel):
    """Submit a task. `args`/`kwargs` are JSON text of their own."""

    model_config = ConfigDict(frozen=True)

    type: Literal["new_task"] = "new_task"
    queue: str = "default"
    definition: str
    args: str
    kwargs: str

    @classmethod
    def build(
        cls,
        definition: str,
        args: list[Any] | tuple[Any, ...],
        kwargs: dict[str, Any],
        queue: str = "default",
    ) -> "NewTaskMessage":
        return cls(
            queue=queue,
            definition=definition,
            args=json.dumps(list(args)),
            kwargs=json.dumps(kwargs),
        )


class AwaitTaskMessage(BaseModel):
    """Block until the engine holds a terminal result for a task."""

    model_config = ConfigDict(frozen=True)

    type: Literal["await_task"] = "await_task"
    task_id: TaskId


class StoreStateMessage(BaseModel):
    """Ask the engine for a snapshot of its task store."""

    model_config = ConfigDict(frozen=True)

    type: Literal["get_store_state"] = "get_store_state"


Message = NewTaskMessage | AwaitTaskMessage | StoreStateMessage


class StoredTaskStatus(str, Enum):
    """Status of a task held in the engine's store."""

    ENQUEUED = "enqueued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    RETRYING = "retrying"
    FAILED = "failed"


class StoredTask(BaseModel):
    id: TaskId
    status: StoredTaskStatus
    definition: str
    args: str
    kwargs: str


class StoreState(BaseModel):
    """Snapshot of the engine's task store."""

    tasks: list[StoredTask] = Field(default_factory=list)


def encode_message(message: Message) -> str:
    return message.model_dump_json()


def _loads(text: str | bytes) -> Any:
    try:
        return json.loads(text)
    except (ValueError, TypeError) as e:
        raise ProtocolError(f"Undecodable response from engine: {e}") from e


def _raise_if_rejected(payload: Any) -> None:
    if isinstance(payload, dict) and payload.get("type") == "error" and "class" not in payload:
        raise ProtocolError(payload.get("message") or "Engine rejected the message")


def decode_task_id(text: str | bytes) -> TaskId:
    """Decode the engine's answer to a `new_task` message."""
    payload = _loads(text)
    _raise_if_rejected(payload)
    if not isinstance(payload, str) or not payload:
        raise ProtocolError(f"Expected a task id, got {payload!r}")
    return payload


def decode_task_result(text: str | bytes) -> TaskSuccess | TaskFailure:
    """Decode the engine's answer to an `await_task` message."""
    payload = _loads(text)
    _raise_if_rejected(payload)
    try:
        return task_result_adapter.validate_python(payload)
    except PydanticValidationError as e:
        raise ProtocolError(f"Malformed task result: {e}") from e


def decode_store_state(text: str | bytes) -> StoreState:
    """Decode the engine's answer to a `get_store_state` message."""
    payload = _loads(text)
    _raise_if_rejected(payload)
    try:
        return StoreState.model_validate(payload)
    except PydanticValidationError as e:
        raise ProtocolError(f"Malformed store state: {e}") from e


def pack_frame(payload: str) -> bytes:
    """Prefix a JSON payload with its length for the TCP transport."""
    data = payload.encode("utf-8")
    return FRAME_HEADER.pack(len(data)) + data
