"""Executes tasks on behalf of the engine.

The engine hands over a task definition name and JSON-encoded arguments;
the result always comes back as an envelope, never as a raised exception:

    {"type": "success", "result": "<JSON text>"}
    {"type": "failure", "class": "...", "message": "...", "backtrace": [...]}
"""

import json
from collections.abc import Mapping
from typing import Any

from ..errors import ValidationError
from ..tasks.models import TaskFailure, TaskRequest, TaskSuccess
from ..tasks.registry import TaskRegistry, registry as default_registry
from .base import BaseExecutor

REQUIRED_FIELDS = ("definition", "args", "kwargs")


class ExecuteTask(BaseExecutor):
    """Resolves a named task, runs it, and normalizes the outcome."""

    def __init__(self, registry: TaskRegistry | None = None):
        self.registry = registry if registry is not None else default_registry

    def __call__(self, ctx: Mapping[str, Any] | str | bytes) -> dict[str, Any]:
        """Run a dispatch context and return the wire envelope."""
        return self.run_with_timing(ctx).to_envelope()

    def dispatch(self, definition: str, args: str, kwargs: str) -> dict[str, Any]:
        """Run a task given its definition and JSON-encoded arguments."""
        return self({"definition": definition, "args": args, "kwargs": kwargs})

    def execute(self, ctx: Any) -> TaskSuccess | TaskFailure:
        try:
            request = self.validate(ctx)
            factory = self.registry.resolve(request.definition)
            args = request.decode_args()
            kwargs = request.decode_kwargs()

            task = factory()
            return TaskSuccess.of(task(*args, **kwargs))
        except Exception as e:
            return TaskFailure.from_exception(e)

    def validate(self, ctx: Any) -> TaskRequest:
        """Check a dispatch context has every field, each a string."""
        if isinstance(ctx, (str, bytes)):
            try:
                ctx = json.loads(ctx)
            except ValueError as e:
                raise ValidationError(f"Task context is not valid JSON: {e}") from e

        if not isinstance(ctx, Mapping):
            raise ValidationError("Task context must be an object")

        for key in REQUIRED_FIELDS:
            value = ctx.get(key)
            if value is None:
                raise ValidationError(f"Missing task {key}")
            if not isinstance(value, str):
                raise ValidationError(f"Task {key} must be a string")

        return TaskRequest.model_validate({key: ctx[key] for key in REQUIRED_FIELDS})

    def describe(self, ctx: Any) -> dict[str, Any]:
        if isinstance(ctx, Mapping) and isinstance(ctx.get("definition"), str):
            return {"definition": ctx["definition"]}
        return {}
