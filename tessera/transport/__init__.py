"""Engine transport - wire messages and connections."""

from .connection import Connection, HttpConnection, TcpConnection, connect
from .messages import (
    AwaitTaskMessage,
    NewTaskMessage,
    StoreState,
    StoreStateMessage,
    StoredTask,
    StoredTaskStatus,
)

__all__ = [
    "Connection",
    "HttpConnection",
    "TcpConnection",
    "connect",
    "AwaitTaskMessage",
    "NewTaskMessage",
    "StoreState",
    "StoreStateMessage",
    "StoredTask",
    "StoredTaskStatus",
]
