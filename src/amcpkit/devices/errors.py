from __future__ import annotations
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..runners.sequence import SequenceResult, StepResult


class AmcpError(Exception):
    """Base class for everything the AMCP client raises."""


class NotConnectedError(AmcpError):
    def __init__(self, message: str = "Not connected to server"):
        super().__init__(message)


class AmcpConnectionError(AmcpError, ConnectionError):
    """Dial failure: refused, timed out, unresolvable host."""


class SendError(AmcpError):
    pass


class ReceiveError(AmcpError):
    def __init__(self, message: str, timed_out: bool = False):
        super().__init__(message)
        self.timed_out = timed_out


class ProtocolError(AmcpError):
    """Malformed status line or framing violation."""


class StepFailedError(AmcpError):
    """
    A fail-fast sequence stopped at `step`.
    `result` holds every step issued so far, the failing one last.
    """

    def __init__(self, step: "StepResult", result: Optional["SequenceResult"] = None):
        self.step = step
        self.result = result
        super().__init__(f"{result.name + ': ' if result else ''}step {step.index} ({step.name}) failed: {step.describe()}")
