"""Base executor interface."""

import time
from abc import ABC, abstractmethod
from typing import Any

import structlog

from ..tasks.models import TaskFailure, TaskSuccess

logger = structlog.get_logger("tessera.executor")


class BaseExecutor(ABC):
    """Base class for executors that turn a dispatch context into a result."""

    @abstractmethod
    def execute(self, ctx: Any) -> TaskSuccess | TaskFailure:
        """Execute a task and return its terminal result."""
        pass

    def describe(self, ctx: Any) -> dict[str, Any]:
        """Fields identifying the task in log events."""
        return {}

    def run_with_timing(self, ctx: Any) -> TaskSuccess | TaskFailure:
        """Execute with timing measurement."""
        log = logger.bind(**self.describe(ctx))
        start = time.perf_counter()
        result = self.execute(ctx)
        elapsed_ms = int((time.perf_counter() - start) * 1000)

        if isinstance(result, TaskSuccess):
            log.info("task_completed", duration_ms=elapsed_ms)
        else:
            log.warning(
                "task_failed",
                error=result.error_class,
                message=result.message,
                duration_ms=elapsed_ms,
            )
        return result
