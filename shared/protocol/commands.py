from __future__ import annotations

from enum import IntEnum
from typing import Union


class RequestType(IntEnum):
    """
    Message type discriminators for client -> server frames.
    Only LEADER, CLIENT and HEARTBEAT have codecs in this package.
    """

    LEADER = 0
    CLIENT = 1
    HEARTBEAT = 2
    OPEN = 3
    PREPARE = 4
    EXEC = 5
    QUERY = 6
    FINALIZE = 7
    EXEC_SQL = 8
    QUERY_SQL = 9
    INTERRUPT = 10


class ResponseType(IntEnum):
    """Message type discriminators for server -> client frames."""

    FAILURE = 0
    SERVER = 1
    WELCOME = 2
    SERVERS = 3
    DB = 4
    STMT = 5
    RESULT = 6
    ROWS = 7
    EMPTY = 8


def normalize_type(mtype: Union[int, IntEnum]) -> int:
    """Convert enum/int into the raw header byte, rejecting out-of-range values."""
    value = int(mtype)
    if not (0 <= value <= 0xFF):
        raise ValueError(f"message type must be 0-255, got {value}")
    return value


def describe_response(mtype: int) -> str:
    """Human readable name for a response type byte, for logs."""
    try:
        return ResponseType(mtype).name
    except ValueError:
        return f"UNKNOWN({mtype})"


__all__ = [
    "RequestType",
    "ResponseType",
    "normalize_type",
    "describe_response",
]
