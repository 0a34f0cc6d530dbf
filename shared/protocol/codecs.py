"""Encoders and decoders for the payloads exchanged by the client."""

from __future__ import annotations

from typing import List, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError

from .commands import RequestType, ResponseType, describe_response
from .errors import DecodeError, ErrorCode, ServerFailureError
from .message import Message

ModelT = TypeVar("ModelT", bound=BaseModel)


class Welcome(BaseModel):
    """Answer to a client registration."""

    heartbeat_timeout: int = Field(..., ge=0, description="Heartbeat period in milliseconds")


class Server(BaseModel):
    address: str = Field(..., min_length=1)


class Servers(BaseModel):
    addresses: List[str] = Field(default_factory=list)


class Failure(BaseModel):
    code: int = Field(..., ge=0)
    message: str = ""


def _build(model: Type[ModelT], **fields) -> ModelT:
    try:
        return model(**fields)
    except ValidationError as exc:
        raise DecodeError(f"{model.__name__} validation failed: {exc}") from exc


# --- Requests ------------------------------------------------------------
def encode_leader(msg: Message) -> None:
    msg.reset()
    msg.put_uint64(0)
    msg.finalize(RequestType.LEADER)


def encode_client(msg: Message, client_id: int) -> None:
    msg.reset()
    msg.put_uint64(client_id)
    msg.finalize(RequestType.CLIENT)


def encode_heartbeat(msg: Message, timestamp: int) -> None:
    msg.reset()
    msg.put_uint64(timestamp)
    msg.finalize(RequestType.HEARTBEAT)


# --- Responses -----------------------------------------------------------
def decode_failure(msg: Message) -> Failure:
    msg.body1.offset = 0
    if msg.mtype != ResponseType.FAILURE:
        raise DecodeError(
            f"expected FAILURE response, got {describe_response(msg.mtype)}",
            code=ErrorCode.UNEXPECTED_RESPONSE,
        )
    return _build(Failure, code=msg.get_uint64(), message=msg.get_string())


def _expect(msg: Message, expected: ResponseType) -> None:
    """Rewind the body and check the response type, raising the server's failure if any."""
    if msg.mtype == ResponseType.FAILURE:
        failure = decode_failure(msg)
        raise ServerFailureError(failure.code, failure.message)
    if msg.mtype != expected:
        raise DecodeError(
            f"expected {expected.name} response, got {describe_response(msg.mtype)}",
            code=ErrorCode.UNEXPECTED_RESPONSE,
        )
    msg.body1.offset = 0


def decode_welcome(msg: Message) -> Welcome:
    _expect(msg, ResponseType.WELCOME)
    return _build(Welcome, heartbeat_timeout=msg.get_uint64())


def decode_server(msg: Message) -> Server:
    _expect(msg, ResponseType.SERVER)
    return _build(Server, address=msg.get_string())


def decode_servers(msg: Message) -> List[str]:
    """Addresses in the order the server listed them."""
    _expect(msg, ResponseType.SERVERS)
    addresses = []
    while msg.has_more():
        addresses.append(msg.get_string())
    return _build(Servers, addresses=addresses).addresses


# --- Helpers used by tests and fake servers ------------------------------
def encode_servers(msg: Message, addresses: List[str]) -> None:
    msg.reset()
    for address in addresses:
        msg.put_string(address)
    msg.finalize(ResponseType.SERVERS)


def encode_welcome(msg: Message, heartbeat_timeout: int) -> None:
    msg.reset()
    msg.put_uint64(heartbeat_timeout)
    msg.finalize(ResponseType.WELCOME)


def encode_server(msg: Message, address: str) -> None:
    msg.reset()
    msg.put_string(address)
    msg.finalize(ResponseType.SERVER)


def encode_failure(msg: Message, code: int, message: str) -> None:
    msg.reset()
    msg.put_uint64(code)
    msg.put_string(message)
    msg.finalize(ResponseType.FAILURE)


__all__ = [
    "Welcome",
    "Server",
    "Servers",
    "Failure",
    "encode_leader",
    "encode_client",
    "encode_heartbeat",
    "decode_failure",
    "decode_welcome",
    "decode_server",
    "decode_servers",
    "encode_servers",
    "encode_welcome",
    "encode_server",
    "encode_failure",
]
