"""Protocol-wide constants shared by client and server."""

PROTOCOL_VERSION = 0x86104DD760433FE5
HEADER_SIZE = 8  # bytes: words(4) + type(1) + flags(1) + extra(2)
WORD_SIZE = 8  # body length unit
STATIC_BUFFER_SIZE = 4096  # default primary body capacity
MAX_MESSAGE_SIZE = 4 * 1024 * 1024  # upper bound for a single body
MAX_CONSECUTIVE_EMPTY_READS = 100
DEFAULT_HEARTBEAT_INTERVAL = 15  # seconds
DEFAULT_HEARTBEAT_CALL_TIMEOUT = 1.0  # seconds
ENCODING = "utf-8"

__all__ = [
    "PROTOCOL_VERSION",
    "HEADER_SIZE",
    "WORD_SIZE",
    "STATIC_BUFFER_SIZE",
    "MAX_MESSAGE_SIZE",
    "MAX_CONSECUTIVE_EMPTY_READS",
    "DEFAULT_HEARTBEAT_INTERVAL",
    "DEFAULT_HEARTBEAT_CALL_TIMEOUT",
    "ENCODING",
]
