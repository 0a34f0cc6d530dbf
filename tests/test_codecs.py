from __future__ import annotations

import pytest

from shared.protocol import (
    DecodeError,
    ErrorCode,
    Message,
    RequestType,
    ServerFailureError,
    decode_server,
    decode_servers,
    decode_welcome,
    encode_failure,
    encode_heartbeat,
    encode_server,
    encode_servers,
    encode_welcome,
)


def test_heartbeat_request_carries_timestamp():
    msg = Message(16)
    encode_heartbeat(msg, 1700000000)

    assert msg.mtype == RequestType.HEARTBEAT
    assert msg.words == 1
    assert bytes(msg.segments()[0]) == (1700000000).to_bytes(8, "little")


def test_heartbeat_request_is_reusable():
    msg = Message(16)
    encode_heartbeat(msg, 1)
    encode_heartbeat(msg, 2)

    assert msg.words == 1
    assert bytes(msg.segments()[0]) == (2).to_bytes(8, "little")


def test_servers_keep_server_order():
    msg = Message(512)
    encode_servers(msg, ["10.0.0.1:9000", "10.0.0.2:9000", "node-three.example:9000"])

    assert decode_servers(msg) == ["10.0.0.1:9000", "10.0.0.2:9000", "node-three.example:9000"]


def test_empty_servers_response():
    msg = Message()
    encode_servers(msg, [])

    assert decode_servers(msg) == []


def test_failure_response_raises_server_error():
    msg = Message()
    encode_failure(msg, 5, "not leader")

    with pytest.raises(ServerFailureError) as info:
        decode_servers(msg)

    assert info.value.failure_code == 5
    assert info.value.failure_message == "not leader"
    assert info.value.code is ErrorCode.SERVER_FAILURE


def test_unexpected_response_type():
    msg = Message()
    encode_welcome(msg, 15000)

    with pytest.raises(DecodeError) as info:
        decode_server(msg)

    assert info.value.code is ErrorCode.UNEXPECTED_RESPONSE
    assert decode_welcome(msg).heartbeat_timeout == 15000


def test_empty_server_address_is_rejected():
    msg = Message()
    encode_server(msg, "")

    with pytest.raises(DecodeError, match="validation failed"):
        decode_server(msg)
