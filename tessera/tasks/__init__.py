"""Task definitions and schemas."""

from .models import TaskFailure, TaskId, TaskRequest, TaskResult, TaskSuccess
from .registry import TaskRegistry, registry

__all__ = [
    "TaskFailure",
    "TaskId",
    "TaskRequest",
    "TaskResult",
    "TaskSuccess",
    "TaskRegistry",
    "registry",
]
