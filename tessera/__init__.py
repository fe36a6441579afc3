"""tessera - submit tasks to a remote engine and await their results."""

from . import config as _config
from .client import Client, get_client, reset_client, set_client
from .config import Config, Settings, configure, get_config, get_settings
from .errors import (
    ConfigurationError,
    ProtocolError,
    RemoteTaskError,
    TesseraError,
    UnresolvedTaskDefinition,
    ValidationError,
)
from .executors import ExecuteTask, get_executor
from .tasks.future import Future
from .tasks.registry import registry
from .tasks.task import Task, TaskPipe

__version__ = "0.1.0"


def reset_config() -> None:
    """Forget the configuration and close the client built from it."""
    reset_client()
    _config.reset_config()


__all__ = [
    "Client",
    "Config",
    "ConfigurationError",
    "ExecuteTask",
    "Future",
    "ProtocolError",
    "RemoteTaskError",
    "Settings",
    "Task",
    "TaskPipe",
    "TesseraError",
    "UnresolvedTaskDefinition",
    "ValidationError",
    "configure",
    "get_client",
    "get_config",
    "get_executor",
    "get_settings",
    "registry",
    "reset_client",
    "reset_config",
    "set_client",
]
