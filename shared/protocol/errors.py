from __future__ import annotations

from enum import Enum, IntEnum
from typing import Optional


class Phase(str, Enum):
    """Stage of a request/response exchange an error was raised in."""

    SEND_HEADER = "send header"
    SEND_BODY = "send body"
    RECV_HEADER = "receive header"
    RECV_BODY = "receive body"


class ErrorCode(IntEnum):
    """Domain specific error codes."""

    PROTOCOL = 1000
    SHORT_WRITE = 1001
    NO_PROGRESS = 1002
    MESSAGE_TOO_LARGE = 1003
    TRANSPORT_FAILURE = 1004
    MALFORMED_PAYLOAD = 1005
    UNEXPECTED_RESPONSE = 1006
    SERVER_FAILURE = 1007
    CALL_TIMEOUT = 1008
    CLIENT_CLOSED = 1009
    STORE_FAILURE = 1010


class ProtocolError(Exception):
    """Structured protocol exception carrying code + message + exchange phase."""

    default_code = ErrorCode.PROTOCOL

    def __init__(self, message: str = "", code: Optional[ErrorCode] = None, phase: Optional[Phase] = None) -> None:
        self.code = code if code is not None else self.default_code
        self.message = message
        self.phase = phase
        super().__init__(message)

    def wrap(self, context: str, phase: Optional[Phase] = None) -> "ProtocolError":
        """Prefix the message with `context` and record the phase if none is set yet."""
        self.message = f"{context}: {self.message}" if self.message else context
        self.args = (self.message,)
        if self.phase is None:
            self.phase = phase
        return self

    def __str__(self) -> str:
        return f"{self.message} ({self.code.name})"


class FramingError(ProtocolError):
    """The byte stream could not be framed into whole messages."""


class ShortWriteError(FramingError):
    default_code = ErrorCode.SHORT_WRITE


class NoProgressError(FramingError):
    default_code = ErrorCode.NO_PROGRESS


class MessageTooLargeError(FramingError):
    default_code = ErrorCode.MESSAGE_TOO_LARGE


class TransportError(ProtocolError):
    """Underlying connection failure; the original exception is kept as __cause__."""

    default_code = ErrorCode.TRANSPORT_FAILURE


class DecodeError(ProtocolError):
    default_code = ErrorCode.MALFORMED_PAYLOAD


class ServerFailureError(ProtocolError):
    """The server answered with a FAILURE response."""

    default_code = ErrorCode.SERVER_FAILURE

    def __init__(self, failure_code: int, failure_message: str) -> None:
        self.failure_code = failure_code
        self.failure_message = failure_message
        super().__init__(f"server failure {failure_code}: {failure_message}")


class CallTimeoutError(ProtocolError):
    default_code = ErrorCode.CALL_TIMEOUT


class ClientClosedError(ProtocolError):
    default_code = ErrorCode.CLIENT_CLOSED


class StoreError(ProtocolError):
    default_code = ErrorCode.STORE_FAILURE


class NegativeReadError(RuntimeError):
    """A connection reported a negative byte count. Never raised by a correct connection."""


__all__ = [
    "Phase",
    "ErrorCode",
    "ProtocolError",
    "FramingError",
    "ShortWriteError",
    "NoProgressError",
    "MessageTooLargeError",
    "TransportError",
    "DecodeError",
    "ServerFailureError",
    "CallTimeoutError",
    "ClientClosedError",
    "StoreError",
    "NegativeReadError",
]
