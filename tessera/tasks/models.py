"""Task models - dispatch contexts and result envelopes."""

import json
import traceback
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictStr, TypeAdapter

from ..errors import ProtocolError, RemoteTaskError, qualified_name

# Opaque id issued by the engine on submission
TaskId = str


class TaskRequest(BaseModel):
    """What the engine hands to the dispatcher for one task.

    `args` and `kwargs` stay JSON-encoded strings so the outer shape never
    depends on a task's argument shapes.
    """

    model_config = ConfigDict(extra="ignore")

    definition: StrictStr
    args: StrictStr
    kwargs: StrictStr

    def decode_args(self) -> list[Any]:
        args = json.loads(self.args)
        if not isinstance(args, list):
            raise TypeError("Task args must encode a JSON array")
        return args

    def decode_kwargs(self) -> dict[str, Any]:
        kwargs = json.loads(self.kwargs)
        if not isinstance(kwargs, dict):
            raise TypeError("Task kwargs must encode a JSON object")
        return kwargs


class TaskSuccess(BaseModel):
    """Terminal envelope of a task that returned a value."""

    model_config = ConfigDict(frozen=True)

    type: Literal["success"] = "success"

    # JSON text when produced by the dispatcher; engines may pass it decoded
    result: Any = None

    @classmethod
    def of(cls, value: Any) -> "TaskSuccess":
        """Create a success envelope, encoding the value as JSON text."""
        return cls(result=json.dumps(value))

    def value(self) -> Any:
        """The task's return value. String results are always JSON text."""
        if isinstance(self.result, str):
            try:
                return json.loads(self.result)
            except ValueError as e:
                raise ProtocolError(f"Task result is not JSON text: {self.result!r}") from e
        return self.result

    def to_envelope(self) -> dict[str, Any]:
        return self.model_dump()


class TaskFailure(BaseModel):
    """Terminal envelope of a task that raised."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: Literal["failure", "error"] = "failure"
    error_class: str = Field(alias="class")
    message: str = ""
    backtrace: list[str] = Field(default_factory=list)

    @classmethod
    def from_exception(cls, exc: BaseException) -> "TaskFailure":
        """Create a failure envelope from a raised exception."""
        return cls(
            error_class=qualified_name(type(exc)),
            message=str(exc),
            backtrace=[frame.rstrip("\n") for frame in traceback.format_tb(exc.__traceback__)],
        )

    def to_error(self) -> RemoteTaskError:
        return RemoteTaskError(self.error_class, self.message, self.backtrace)

    def to_envelope(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


TaskResult = Annotated[TaskSuccess | TaskFailure, Field(discriminator="type")]

task_result_adapter: TypeAdapter[TaskSuccess | TaskFailure] = TypeAdapter(TaskResult)
