"""Task capability - makes a class callable on the engine.

Example:

    class SayHello(Task):
        def run(self, name, message=""):
            return f"Hello, {name}! {message}"

    future = SayHello.call("Alice", message="How are you?")
    future.result()

    greetings = SayHello.pipe(lambda p: [p.call(name) for name in names])
"""

from collections.abc import Callable
from concurrent.futures import Future as PoolFuture
from typing import Any, ClassVar

import structlog

from ..client import get_client
from ..errors import qualified_name
from ..executors.pool import CallerRunsThreadPool, get_executor
from .future import Future
from .registry import TaskRegistry, registry

logger = structlog.get_logger("tessera.task")


class Task:
    """Base class for tasks.

    Subclasses implement `run` and register themselves under their fully
    qualified name, or under `definition` when given as a class keyword:

        class Resize(Task, definition="images.resize"):
            ...
    """

    definition: ClassVar[str]
    registry: ClassVar[TaskRegistry] = registry

    def __init_subclass__(cls, definition: str | None = None, **kwargs: Any):
        super().__init_subclass__(**kwargs)
        cls.definition = definition or qualified_name(cls)
        cls.registry.register(cls.definition, cls)

    def run(self, *args: Any, **kwargs: Any) -> Any:
        raise NotImplementedError(f"{type(self).__name__} must implement run()")

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self.run(*args, **kwargs)

    @classmethod
    def call(cls, *args: Any, **kwargs: Any) -> Future:
        """Submit the task to the engine without waiting for it to run."""
        client = get_client()
        task_id = client.new_task(definition=cls.definition, args=list(args), kwargs=kwargs)
        return Future(task_id, client=client)

    @classmethod
    def pipe(cls, builder: Callable[["TaskPipe"], Any]) -> list[Any]:
        """Submit a batch of calls concurrently and return results in call order."""
        task_pipe = TaskPipe(cls)
        builder(task_pipe)
        return task_pipe.join()


class TaskPipe:
    """Collects submissions made on the shared pool and joins them in order."""

    def __init__(
        self,
        task_class: type[Task],
        submissions: list[PoolFuture] | None = None,
        executor: CallerRunsThreadPool | None = None,
    ):
        self.task_class = task_class
        self._submissions = submissions if submissions is not None else []
        self._executor = executor

    def task(self, task_class: type[Task]) -> "TaskPipe":
        """A view of this pipe that submits another task class."""
        return TaskPipe(task_class, self._submissions, self._executor)

    def call(self, *args: Any, **kwargs: Any) -> None:
        """Submit one call of the pipe's task class."""
        executor = self._executor if self._executor is not None else get_executor()
        self._submissions.append(executor.submit(self.task_class.call, *args, **kwargs))

    def join(self) -> list[Any]:
        """Await every call in the order it was made."""
        logger.debug("pipe_joining", definition=self.task_class.definition, count=len(self))
        return [submission.result().result() for submission in self._submissions]

    def __len__(self) -> int:
        return len(self._submissions)
