"""Executors - the task dispatcher and the shared submission pool."""

from .base import BaseExecutor
from .execute_task import ExecuteTask
from .pool import CallerRunsThreadPool, get_executor, shutdown_executor

__all__ = ["BaseExecutor", "ExecuteTask", "CallerRunsThreadPool", "get_executor", "shutdown_executor"]
