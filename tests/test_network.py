from __future__ import annotations

import asyncio

import pytest

from client.core import Client
from client.storage import InMemoryServerStore
from shared.protocol import (
    CallTimeoutError,
    ClientClosedError,
    Message,
    Phase,
    RequestType,
    TransportError,
    encode_server,
    encode_welcome,
    pack_header,
    unpack_header,
)

from tests.helpers import FakeServer, read_frame


class EchoConnection:
    """
    Peer answering every complete request frame with a frame of type + 100
    echoing the request body. Every operation yields to the event loop and
    reads trickle out one byte at a time, so overlapping calls would garble.
    """

    def __init__(self) -> None:
        self.pending = bytearray()
        self.outgoing = bytearray()
        self.wire = []
        self.closed = False

    async def send(self, data) -> int:
        await asyncio.sleep(0)
        self.wire.append(bytes(data))
        self.pending += data
        while len(self.pending) >= 8:
            words, mtype, _, _ = unpack_header(bytes(self.pending[:8]))
            size = 8 + words * 8
            if len(self.pending) < size:
                break
            body = bytes(self.pending[8:size])
            del self.pending[:size]
            self.outgoing += pack_header(words, mtype + 100) + body
        return len(data)

    async def recv_into(self, buffer: memoryview) -> int:
        await asyncio.sleep(0)
        if self.closed:
            raise ConnectionResetError("closed")
        if not self.outgoing:
            return 0
        buffer[:1] = self.outgoing[:1]
        del self.outgoing[:1]
        return 1

    def close(self) -> None:
        self.closed = True


def _request(mtype: int, value: int) -> Message:
    msg = Message(16)
    msg.put_uint64(value)
    msg.finalize(mtype)
    return msg


def _answer(request: Message, response: Message) -> None:
    if request.mtype == RequestType.LEADER:
        encode_server(response, "10.0.0.1:9000")
    elif request.mtype == RequestType.CLIENT:
        encode_welcome(response, 3000)


@pytest.mark.asyncio
async def test_concurrent_calls_do_not_interleave():
    conn = EchoConnection()
    client = Client(conn, "echo:0", InMemoryServerStore())
    first, second = _request(1, 111), _request(2, 222)
    first_reply, second_reply = Message(), Message()

    await asyncio.gather(client.call(first, first_reply), client.call(second, second_reply))

    assert (first_reply.mtype, first_reply.get_uint64()) == (101, 111)
    assert (second_reply.mtype, second_reply.get_uint64()) == (102, 222)
    frames = [bytes(first.header), bytes(first.segments()[0]), bytes(second.header), bytes(second.segments()[0])]
    assert conn.wire in (frames, frames[2:] + frames[:2])


@pytest.mark.asyncio
async def test_leader_and_register(pipe):
    conn, (reader, writer) = pipe
    server = FakeServer(reader, writer, _answer)
    serving = asyncio.create_task(server.serve())
    client = Client(conn, "10.0.0.1:9000", InMemoryServerStore())

    assert await client.leader() == "10.0.0.1:9000"
    assert (await client.register(7)).heartbeat_timeout == 3000
    assert [request.mtype for request in server.requests] == [RequestType.LEADER, RequestType.CLIENT]
    assert server.requests[1].get_uint64() == 7

    await client.close()
    await serving


@pytest.mark.asyncio
async def test_call_after_close_fails():
    client = Client(EchoConnection(), "echo:0", InMemoryServerStore())
    await client.close()
    await client.close()

    with pytest.raises(ClientClosedError):
        await client.call(_request(1, 1), Message())


@pytest.mark.asyncio
async def test_peer_hangup_reports_receive_phase(pipe):
    conn, (reader, writer) = pipe

    async def hang_up() -> None:
        await read_frame(reader)
        writer.close()

    peer = asyncio.create_task(hang_up())
    client = Client(conn, "10.0.0.1:9000", InMemoryServerStore())

    with pytest.raises(TransportError) as info:
        await client.call(_request(RequestType.LEADER, 0), Message(), timeout=1)

    assert info.value.phase is Phase.RECV_HEADER
    assert str(info.value).startswith("failed to receive response: failed to receive header")
    await peer
    await client.close()


@pytest.mark.asyncio
async def test_call_timeout(pipe):
    conn, (reader, writer) = pipe
    server = FakeServer(reader, writer, lambda request, response: None)
    serving = asyncio.create_task(server.serve())
    client = Client(conn, "10.0.0.1:9000", InMemoryServerStore())

    with pytest.raises(CallTimeoutError):
        await client.call(_request(RequestType.LEADER, 0), Message(), timeout=0.05)

    await client.close()
    await asyncio.wait_for(serving, 1)
