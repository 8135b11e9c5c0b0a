from dataclasses import dataclass, field
from typing import BinaryIO, Optional, Tuple
import logging, socket, threading, time

from .codec import AmcpResponse, encode_command, read_response
from .errors import AmcpConnectionError, NotConnectedError, ReceiveError, SendError

log = logging.getLogger(__name__)

DEFAULT_PORT = 5250


class _DeadlineReader:
    """readline() over a socket file, bounded by one deadline for the whole exchange."""

    def __init__(self, sock: socket.socket, reader: BinaryIO, deadline: float):
        self._sock = sock
        self._reader = reader
        self._deadline = deadline

    def arm(self) -> None:
        """Set the socket timeout to what is left; socket.timeout once the deadline has passed."""
        remaining = self._deadline - time.monotonic()
        if remaining <= 0:
            raise socket.timeout("deadline exceeded")
        self._sock.settimeout(remaining)

    def readline(self) -> bytes:
        self.arm()
        return self._reader.readline()


@dataclass
class AmcpClient:
    """
    One TCP session to an AMCP server.

    Replies carry no request id, so exactly one command/reply exchange may be
    in flight at a time: `send` holds `_lock` from the write until the whole
    envelope has been read. Share one client between threads rather than
    opening several.
    """
    timeout: float = 5.0

    # internal
    _host: str = ""
    _port: int = 0
    _sock: Optional[socket.socket] = field(default=None, repr=False)
    _reader: Optional[BinaryIO] = field(default=None, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    # --- state ---
    @property
    def is_connected(self) -> bool:
        return self._sock is not None

    def connection_info(self) -> Optional[Tuple[str, int]]:
        if not self.is_connected:
            return None
        return self._host, self._port

    # --- connection ---
    def connect(self, host: str, port: int = DEFAULT_PORT, timeout: Optional[float] = None) -> None:
        """Open the TCP session. A previous session is closed before dialing."""
        with self._lock:
            self._close()
            addr = f"{host}:{port}"
            try:
                sock = socket.create_connection((host, int(port)), timeout=self.timeout if timeout is None else timeout)
            except OSError as e:
                raise AmcpConnectionError(f"Failed to connect to {addr}: {e}") from e
            self._sock = sock
            self._reader = sock.makefile("rb")
            self._host, self._port = host, int(port)
        log.info("Connected to AMCP server %s", addr)

    def disconnect(self) -> None:
        with self._lock:
            was_connected = self._close()
        if was_connected:
            log.info("Disconnected from AMCP server")

    def _close(self) -> bool:
        """Drop the socket. Caller holds _lock."""
        sock, reader = self._sock, self._reader
        self._sock = None
        self._reader = None
        self._host, self._port = "", 0
        if sock is None:
            return False
        for closable in (reader, sock):
            if closable is None:
                continue
            try:
                closable.close()
            except OSError as e:
                log.debug("Error closing connection: %s", e)
        return True

    def _abort(self, reason: str) -> None:
        """Tear down a desynchronized session. Caller holds _lock."""
        log.warning("Dropping AMCP connection: %s", reason)
        self._close()

    def __enter__(self) -> "AmcpClient":
        return self

    def __exit__(self, *exc) -> None:
        self.disconnect()

    # --- exchange ---
    def send(self, command: str, timeout: Optional[float] = None) -> AmcpResponse:
        """
        Send one command and block until its full reply envelope is read.

        Raises NotConnectedError before any I/O when there is no session.
        `timeout` is one deadline for the write and the whole reply. A timeout or socket failure mid-exchange leaves the stream in an
        unknown position, so the session is closed before SendError /
        ReceiveError is raised.
        """
        with self._lock:
            if self._sock is None or self._reader is None:
                raise NotConnectedError()
            sock = self._sock
            deadline = time.monotonic() + (self.timeout if timeout is None else timeout)
            reader = _DeadlineReader(sock, self._reader, deadline)

            log.debug(">> %s", command)
            try:
                reader.arm()
                sock.sendall(encode_command(command))
            except socket.timeout as e:
                self._abort("timed out sending command")
                raise ReceiveError(f"Timed out sending {command!r}", timed_out=True) from e
            except OSError as e:
                self._abort(f"send failed: {e}")
                raise SendError(f"Failed to send command: {e}") from e

            try:
                response = read_response(reader)
            except socket.timeout as e:
                self._abort("timed out waiting for reply")
                raise ReceiveError(f"Timed out waiting for reply to {command!r}", timed_out=True) from e
            except ReceiveError:
                self._abort("connection closed by server")
                raise
            except OSError as e:
                self._abort(f"receive failed: {e}")
                raise ReceiveError(f"Failed to read response: {e}") from e

        log.debug("<< %s%s", response.status_line, " (+data)" if response.data is not None else "")
        return response
