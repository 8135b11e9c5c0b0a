"""
AMCP envelope codec.

Requests are one line of text terminated by CRLF. Replies are a status line
``<code> <message>`` optionally followed, for 2xx replies that do not end in
" OK", by data lines and a blank terminator line.
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO, List, Optional, Tuple

from .errors import ProtocolError, ReceiveError

TERMINATOR = "\r\n"
ENCODING = "utf-8"


class ResponseOutcome(str, Enum):
    SUCCESS = "success"
    SUCCESS_WITH_DATA = "success_with_data"
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    OTHER = "other"  # 1xx / 3xx: not a success, not specially distinguished


def is_success_code(code: int) -> bool:
    return 200 <= code < 300


def is_error_code(code: int) -> bool:
    return 400 <= code < 600


def classify(code: int, has_data: bool = False) -> ResponseOutcome:
    if is_success_code(code):
        return ResponseOutcome.SUCCESS_WITH_DATA if has_data else ResponseOutcome.SUCCESS
    if 400 <= code < 500:
        return ResponseOutcome.CLIENT_ERROR
    if 500 <= code < 600:
        return ResponseOutcome.SERVER_ERROR
    return ResponseOutcome.OTHER


@dataclass
class AmcpResponse:
    code: int
    message: str = ""
    data: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return is_success_code(self.code)

    @property
    def is_error(self) -> bool:
        return is_error_code(self.code)

    @property
    def outcome(self) -> ResponseOutcome:
        return classify(self.code, self.data is not None)

    @property
    def status_line(self) -> str:
        """The status line as the server would have sent it, without terminator."""
        return f"{self.code} {self.message}" if self.message else str(self.code)

    @property
    def lines(self) -> List[str]:
        return self.data.split("\n") if self.data is not None else []

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "data": self.data, "outcome": self.outcome.value}

    def __str__(self) -> str:
        return self.status_line


# ---------- encode ----------
def encode_command(command: str) -> bytes:
    """Append the line terminator once. Command syntax is the caller's business."""
    return (command + TERMINATOR).encode(ENCODING)


# ---------- decode ----------
def parse_status_line(line: str) -> Tuple[int, str]:
    """Split 'CODE MESSAGE' (or bare 'CODE') into (code, message)."""
    token, _, message = line.strip().partition(" ")
    if not token:
        raise ProtocolError("Empty response")
    if not (token.isascii() and token.isdigit()):
        raise ProtocolError(f"Invalid response code: {line.strip()!r}")
    return int(token, 10), message


def expects_data(code: int, line: str, message: str) -> bool:
    if not is_success_code(code):
        return False
    return not (line.strip().endswith(" OK") or not message)


def _readline(reader: BinaryIO, what: str) -> str:
    raw = reader.readline()
    if not raw:
        raise ReceiveError(f"Connection closed while reading {what}")
    if not raw.endswith(b"\n"):
        raise ReceiveError(f"Connection closed mid-line while reading {what} (partial data: {raw!r})")
    return raw.decode(ENCODING, errors="replace").rstrip("\r\n")


def read_response(reader: BinaryIO) -> AmcpResponse:
    """
    Read one complete reply envelope from `reader` (anything with readline()
    returning bytes, e.g. socket.makefile('rb')).
    Socket errors and timeouts propagate to the caller untouched.
    """
    line = _readline(reader, "status line")
    code, message = parse_status_line(line)
    if not expects_data(code, line, message):
        return AmcpResponse(code=code, message=message)

    data: List[str] = []
    while True:
        row = _readline(reader, "data block")
        if not row:
            break
        data.append(row)
    return AmcpResponse(code=code, message=message, data="\n".join(data) if data else None)
