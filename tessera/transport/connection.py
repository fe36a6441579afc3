"""Connections to the task engine.

A connection does one thing: send one encoded message and block until the
single response for it arrives.
"""

import socket
import threading
from typing import Protocol, runtime_checkable

import httpx
import structlog

from ..config import Config, Settings
from ..errors import ProtocolError
from .messages import FRAME_HEADER, pack_frame

logger = structlog.get_logger("tessera.connection")


@runtime_checkable
class Connection(Protocol):
    def request(self, message: str) -> str:
        """Send one message and return the engine's response."""
        ...

    def close(self) -> None:
        ...


class TcpConnection:
    """Length-prefixed JSON over TCP.

    Each calling thread gets its own socket so that requests issued from
    the worker pool overlap instead of queueing behind one stream.
    """

    def __init__(self, host: str, port: int, timeout: float | None = 10.0):
        self.host = host
        self.port = port
        self.timeout = timeout
        self._local = threading.local()
        self._sockets: list[socket.socket] = []
        self._lock = threading.Lock()
        self._closed = False

    def _get_socket(self) -> socket.socket:
        sock = getattr(self._local, "sock", None)
        if sock is not None:
            return sock

        with self._lock:
            if self._closed:
                raise ProtocolError("Connection is closed")
            try:
                sock = socket.create_connection((self.host, self.port), timeout=self.timeout)
            except OSError as e:
                raise ProtocolError(f"Cannot connect to engine at {self.host}:{self.port}: {e}") from e
            # Awaiting a task may take arbitrarily long
            sock.settimeout(None)
            self._sockets.append(sock)

        self._local.sock = sock
        logger.debug("connection_opened", host=self.host, port=self.port)
        return sock

    def _discard_socket(self, sock: socket.socket) -> None:
        self._local.sock = None
        with self._lock:
            if sock in self._sockets:
                self._sockets.remove(sock)
        sock.close()

    def request(self, message: str) -> str:
        sock = self._get_socket()
        try:
            sock.sendall(pack_frame(message))
            (length,) = FRAME_HEADER.unpack(_recv_exact(sock, FRAME_HEADER.size))
            return _recv_exact(sock, length).decode("utf-8")
        except (OSError, UnicodeDecodeError) as e:
            # The stream is out of sync after a partial exchange
            self._discard_socket(sock)
            raise ProtocolError(f"Request to engine failed: {e}") from e

    def close(self) -> None:
        with self._lock:
            self._closed = True
            sockets, self._sockets = self._sockets, []
        for sock in sockets:
            sock.close()


def _recv_exact(sock: socket.socket, size: int) -> bytes:
    buf = bytearray()
    while len(buf) < size:
        chunk = sock.recv(size - len(buf))
        if not chunk:
            raise ConnectionError("Engine closed the connection")
        buf.extend(chunk)
    return bytes(buf)


class HttpConnection:
    """Posts each message to an HTTP gateway in front of the engine."""

    def __init__(
        self,
        base_url: str,
        path: str = "/messages",
        timeout: float | None = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url
        self.path = path
        # No read timeout: awaiting a task blocks until it finishes
        self._client = httpx.Client(
            base_url=base_url,
            headers={"Content-Type": "application/json"},
            timeout=httpx.Timeout(None, connect=timeout),
            transport=transport,
        )

    def request(self, message: str) -> str:
        try:
            response = self._client.post(self.path, content=message.encode("utf-8"))
        except httpx.HTTPError as e:
            raise ProtocolError(f"Request to engine failed: {e}") from e

        if not response.is_success:
            raise ProtocolError(f"Engine returned {response.status_code}: {response.text}")
        return response.text

    def close(self) -> None:
        self._client.close()


def connect(config: Config, settings: Settings) -> Connection:
    """Open the connection selected by settings for a configuration."""
    host = config.host or settings.default_host
    port = config.port or settings.default_port

    if settings.transport == "http":
        connection: Connection = HttpConnection(
            f"http://{host}:{port}",
            path=settings.http_path,
            timeout=settings.connect_timeout_seconds,
        )
    else:
        connection = TcpConnection(host, port, timeout=settings.connect_timeout_seconds)

    logger.info("connection_configured", transport=settings.transport, host=host, port=port)
    return connection
