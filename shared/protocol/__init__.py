"""
Shared protocol package: wire constants, message types, the message buffer,
stream framing and payload codecs used by the client (and any server peer).
"""

from .codecs import (
    Failure,
    Server,
    Servers,
    Welcome,
    decode_failure,
    decode_server,
    decode_servers,
    decode_welcome,
    encode_client,
    encode_failure,
    encode_heartbeat,
    encode_leader,
    encode_server,
    encode_servers,
    encode_welcome,
)
from .commands import RequestType, ResponseType, describe_response, normalize_type
from .constants import HEADER_SIZE, PROTOCOL_VERSION, STATIC_BUFFER_SIZE, WORD_SIZE
from .errors import (
    CallTimeoutError,
    ClientClosedError,
    DecodeError,
    ErrorCode,
    FramingError,
    MessageTooLargeError,
    NegativeReadError,
    NoProgressError,
    Phase,
    ProtocolError,
    ServerFailureError,
    ShortWriteError,
    StoreError,
    TransportError,
)
from .framing import Connection, FramedTransport, StreamConnection
from .message import Buffer, Message, pack_header, round_up, unpack_header

__all__ = [
    "Failure",
    "Server",
    "Servers",
    "Welcome",
    "decode_failure",
    "decode_server",
    "decode_servers",
    "decode_welcome",
    "encode_client",
    "encode_failure",
    "encode_heartbeat",
    "encode_leader",
    "encode_server",
    "encode_servers",
    "encode_welcome",
    "RequestType",
    "ResponseType",
    "describe_response",
    "normalize_type",
    "HEADER_SIZE",
    "PROTOCOL_VERSION",
    "STATIC_BUFFER_SIZE",
    "WORD_SIZE",
    "CallTimeoutError",
    "ClientClosedError",
    "DecodeError",
    "ErrorCode",
    "FramingError",
    "MessageTooLargeError",
    "NegativeReadError",
    "NoProgressError",
    "Phase",
    "ProtocolError",
    "ServerFailureError",
    "ShortWriteError",
    "StoreError",
    "TransportError",
    "Connection",
    "FramedTransport",
    "StreamConnection",
    "Buffer",
    "Message",
    "pack_header",
    "round_up",
    "unpack_header",
]
