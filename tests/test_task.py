import json

import pytest

import tessera
from tessera import Future, RemoteTaskError, Task
from tessera.executors import CallerRunsThreadPool
from tessera.tasks.task import TaskPipe


class SuccessTask(Task):
    def run(self, a, b, c):
        return a + b + c


class FailureTask(Task):
    def run(self):
        raise StandardError("Task failed")


class StandardError(Exception):
    pass


class EchoTask(Task):
    def run(self, index):
        return index


class SayHello(Task):
    def run(self, name, message=""):
        return f"Hello, {name}! {message}".strip()


class PickyError(Exception):
    def __init__(self, code, message):
        super().__init__(message)
        self.code = code


class PickyTask(Task):
    def run(self):
        raise PickyError(7, "picky")


def test_call_submits_new_task(engine):
    future = SayHello.call("John", message="How are you?")

    assert isinstance(future, Future)
    assert future.task_id
    assert engine.requests_of("new_task") == [
        {
            "type": "new_task",
            "queue": "default",
            "definition": SayHello.definition,
            "args": '["John"]',
            "kwargs": '{"message": "How are you?"}',
        }
    ]


def test_call_with_no_arguments(engine):
    SayHello.call()

    (request,) = engine.requests_of("new_task")
    assert request["args"] == "[]"
    assert request["kwargs"] == "{}"


def test_call_does_not_await(engine):
    SuccessTask.call(1, 2, c=3)

    assert engine.requests_of("await_task") == []


def test_successful_task_round_trip(engine):
    future = SuccessTask.call(1, 2, c=3)

    assert future.result() == 6


def test_failing_task_raises_reconstructed_error(engine):
    future = FailureTask.call()

    with pytest.raises(StandardError, match="^Task failed$") as excinfo:
        future.result()

    cause = excinfo.value.__cause__
    assert isinstance(cause, RemoteTaskError)
    assert cause.kind == tessera.errors.qualified_name(StandardError)
    assert cause.trace


def test_builtin_error_is_reconstructed(engine):
    future = SuccessTask.call(1, "2", c=3)

    with pytest.raises(TypeError):
        future.result()


def test_unknown_error_kind_raises_remote_task_error():
    class StubConnection:
        def request(self, message):
            if json.loads(message)["type"] == "new_task":
                return '"0-1-0"'
            return json.dumps(
                {
                    "type": "failure",
                    "class": "Elsewhere::NotHere",
                    "message": "remote boom",
                    "backtrace": ["remote.rb:1"],
                }
            )

        def close(self):
            pass

    tessera.set_client(tessera.Client(StubConnection()))

    with pytest.raises(RemoteTaskError) as excinfo:
        SuccessTask.call().result()

    assert excinfo.value.kind == "Elsewhere::NotHere"
    assert excinfo.value.message == "remote boom"
    assert excinfo.value.trace == ["remote.rb:1"]


def test_error_that_cannot_be_rebuilt_raises_remote_task_error(engine):
    with pytest.raises(RemoteTaskError, match="picky") as excinfo:
        PickyTask.call().result()

    assert excinfo.value.kind == tessera.errors.qualified_name(PickyError)


def test_awaiting_twice_returns_same_value_without_new_request(engine):
    future = SuccessTask.call(1, 2, c=3)

    assert future.result() == 6
    assert future.done()
    assert future.result() == 6
    assert len(engine.requests_of("await_task")) == 1


def test_awaiting_failure_twice_raises_same_error(engine):
    future = FailureTask.call()

    for _ in range(2):
        with pytest.raises(StandardError, match="Task failed"):
            future.result()
    assert len(engine.requests_of("await_task")) == 1


def test_task_id_is_read_only(engine):
    future = SuccessTask.call(1, 2, c=3)

    with pytest.raises(AttributeError):
        future.task_id = "other"


def test_call_without_configuration_raises():
    with pytest.raises(tessera.ConfigurationError):
        SuccessTask.call(1, 2, c=3)


def test_rejected_submission_raises_protocol_error():
    class RejectingConnection:
        def request(self, message):
            return json.dumps({"type": "error", "message": "unknown variant `new_task`"})

        def close(self):
            pass

    tessera.set_client(tessera.Client(RejectingConnection()))

    with pytest.raises(tessera.ProtocolError):
        SuccessTask.call(1, 2, c=3)


def test_task_instances_run_directly():
    assert SuccessTask()(1, 2, c=3) == 6


@pytest.mark.parametrize("count", [1, 10, 1000])
def test_pipe_returns_results_in_call_order(engine, count):
    results = EchoTask.pipe(lambda p: [p.call(i) for i in range(count)])

    assert results == list(range(count))


def test_pipe_keeps_order_when_pool_is_saturated(engine):
    pool = CallerRunsThreadPool(min_threads=1, max_threads=1, max_queue=1)
    task_pipe = TaskPipe(EchoTask, executor=pool)

    for i in range(50):
        task_pipe.call(i)

    assert task_pipe.join() == list(range(50))
    pool.shutdown()


def test_pipe_can_switch_task_class(engine):
    def build(p):
        p.call(1)
        p.task(SayHello).call("Ann")
        p.call(2)

    assert EchoTask.pipe(build) == [1, "Hello, Ann!", 2]


def test_pipe_surfaces_task_failure(engine):
    def build(p):
        p.call(1, 2, c=3)
        p.task(FailureTask).call()

    with pytest.raises(StandardError, match="Task failed"):
        SuccessTask.pipe(build)


def test_store_state_lists_submitted_tasks(engine):
    future = SuccessTask.call(1, 2, c=3)

    state = tessera.get_client().store_state()

    assert [task.id for task in state.tasks] == [future.task_id]
    assert state.tasks[0].definition == SuccessTask.definition
