import itertools
import json
import socketserver
import threading
import time

import pytest

import tessera
from tessera.executors import ExecuteTask, shutdown_executor
from tessera.transport.messages import FRAME_HEADER, pack_frame


class FakeEngine:
    """In-process engine speaking the wire protocol.

    Submitted tasks run straight away through ExecuteTask; awaiting returns
    the stored envelope.
    """

    def __init__(self, execute_task: ExecuteTask | None = None):
        self.execute_task = execute_task or ExecuteTask()
        self.tasks: dict[str, dict] = {}
        self.results: dict[str, dict] = {}
        self.requests: list[dict] = []
        self.closed = False
        self._ids = itertools.count()
        self._lock = threading.Lock()

    def request(self, message: str) -> str:
        payload = json.loads(message)
        with self._lock:
            self.requests.append(payload)

        kind = payload.get("type")
        if kind == "new_task":
            return json.dumps(self._new_task(payload))
        if kind == "await_task":
            return json.dumps(self.results[payload["task_id"]])
        if kind == "get_store_state":
            with self._lock:
                return json.dumps({"tasks": [dict(task) for task in self.tasks.values()]})
        return json.dumps({"type": "error", "message": f"unknown variant `{kind}`"})

    def _new_task(self, payload: dict) -> str:
        with self._lock:
            task_id = f"0-{int(time.time() * 1000)}-{next(self._ids)}"
            self.tasks[task_id] = {
                "id": task_id,
                "status": "processing",
                "definition": payload["definition"],
                "args": payload["args"],
                "kwargs": payload["kwargs"],
            }

        envelope = self.execute_task(payload)

        with self._lock:
            self.results[task_id] = envelope
            self.tasks[task_id]["status"] = "completed" if envelope["type"] == "success" else "failed"
        return task_id

    def requests_of(self, kind: str) -> list[dict]:
        with self._lock:
            return [r for r in self.requests if r["type"] == kind]

    def close(self) -> None:
        self.closed = True


class _FrameHandler(socketserver.BaseRequestHandler):
    def handle(self):
        while True:
            header = self._recv_exact(FRAME_HEADER.size)
            if header is None:
                return
            (length,) = FRAME_HEADER.unpack(header)
            message = self._recv_exact(length)
            if message is None:
                return
            self.request.sendall(pack_frame(self.server.engine.request(message.decode("utf-8"))))

    def _recv_exact(self, size):
        buf = b""
        while len(buf) < size:
            chunk = self.request.recv(size - len(buf))
            if not chunk:
                return None
            buf += chunk
        return buf


class _EngineServer(socketserver.ThreadingTCPServer):
    daemon_threads = True
    allow_reuse_address = True


@pytest.fixture
def tcp_engine():
    """A FakeEngine listening on localhost with length-prefixed framing."""
    server = _EngineServer(("127.0.0.1", 0), _FrameHandler)
    server.engine = FakeEngine()
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()


@pytest.fixture(autouse=True)
def clean_state():
    yield
    tessera.reset_config()
    shutdown_executor()


@pytest.fixture
def engine():
    fake = FakeEngine()
    tessera.set_client(tessera.Client(fake))
    return fake
