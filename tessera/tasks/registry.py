"""Task registry mapping definition names to task factories."""

import threading
from collections.abc import Callable
from typing import Any

import structlog

from ..errors import UnresolvedTaskDefinition

logger = structlog.get_logger("tessera.registry")


# Factory: builds a fresh callable that runs the task
TaskFactory = Callable[[], Callable[..., Any]]


class TaskRegistry:
    """Registry mapping definition names to task factories."""

    def __init__(self):
        self._factories: dict[str, TaskFactory] = {}
        self._lock = threading.Lock()

    def register(self, definition: str, factory: TaskFactory) -> None:
        """Register a factory under a definition name."""
        with self._lock:
            existing = self._factories.get(definition)
            if existing is not None and existing is not factory:
                logger.warning("task_definition_replaced", definition=definition)
            self._factories[definition] = factory

    def task(self, definition: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator to register a plain function under a definition name."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self.register(definition, lambda: func)
            return func

        return decorator

    def get_factory(self, definition: str) -> TaskFactory | None:
        """Get the factory for a definition name."""
        with self._lock:
            return self._factories.get(definition)

    def resolve(self, definition: str) -> TaskFactory:
        """Get the factory for a definition.

        Tasks must be registered up front, by importing the modules that
        define them; a definition name never triggers an import.
        """
        factory = self.get_factory(definition)
        if factory is None:
            logger.debug("task_definition_unresolved", definition=definition)
            raise UnresolvedTaskDefinition(definition)
        return factory

    def __contains__(self, definition: str) -> bool:
        return self.get_factory(definition) is not None

    def definitions(self) -> list[str]:
        with self._lock:
            return sorted(self._factories)


# Global registry instance
registry = TaskRegistry()
