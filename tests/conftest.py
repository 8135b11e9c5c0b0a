"""Shared fixtures: a scripted AMCP server on 127.0.0.1."""

from __future__ import annotations

import socket
import threading
import time
from typing import Callable, Optional, Union

import pytest

CLOSE = object()  # handler return value: drop the client connection

Reply = Union[str, bytes, None, object]


class FakeAmcpServer:
    """Answers every received line with ``handler(line)``.

    A ``None`` reply sends nothing (the client will time out); ``CLOSE``
    closes the connection. A list reply is sent piece by piece, with
    numbers in it taken as pauses in seconds.
    """

    def __init__(self, handler: Callable[[str], Reply]) -> None:
        self.handler = handler
        self.received: list[str] = []
        self.connections = 0
        self._stop = threading.Event()
        self._srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._srv.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._srv.bind(("127.0.0.1", 0))
        self._srv.listen()
        self._srv.settimeout(0.1)
        self.host, self.port = self._srv.getsockname()
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self) -> None:
        while not self._stop.is_set():
            try:
                conn, _ = self._srv.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            self.connections += 1
            threading.Thread(target=self._handle, args=(conn,), daemon=True).start()

    def _handle(self, conn: socket.socket) -> None:
        with conn, conn.makefile("rb") as reader:
            for raw in reader:
                line = raw.decode("utf-8").rstrip("\r\n")
                self.received.append(line)
                reply = self.handler(line)
                if reply is CLOSE:
                    return
                if reply is None:
                    continue
                chunks = reply if isinstance(reply, (list, tuple)) else [reply]
                try:
                    for chunk in chunks:
                        if isinstance(chunk, (int, float)):
                            time.sleep(chunk)
                        else:
                            conn.sendall(chunk.encode("utf-8") if isinstance(chunk, str) else chunk)
                except OSError:
                    return  # client hung up mid-reply

    def close(self) -> None:
        self._stop.set()
        self._thread.join(timeout=1)
        self._srv.close()


def scripted(replies: dict, default: Optional[str] = "400 ERROR\r\n") -> Callable[[str], Reply]:
    """Handler answering from a command -> reply mapping."""
    return lambda line: replies.get(line, default)


@pytest.fixture
def amcp_server():
    servers: list[FakeAmcpServer] = []

    def start(handler: Callable[[str], Reply]) -> FakeAmcpServer:
        srv = FakeAmcpServer(handler)
        servers.append(srv)
        return srv

    yield start
    for srv in servers:
        srv.close()


@pytest.fixture
def free_port() -> int:
    """A port nothing is listening on."""
    s = socket.socket()
    s.bind(("127.0.0.1", 0))
    port = s.getsockname()[1]
    s.close()
    return port
