from __future__ import annotations

import asyncio
import contextlib
import struct
from typing import Iterator, Optional, Protocol, Union

from .constants import MAX_CONSECUTIVE_EMPTY_READS, PROTOCOL_VERSION, WORD_SIZE
from .errors import (
    NegativeReadError,
    NoProgressError,
    Phase,
    ProtocolError,
    ShortWriteError,
    TransportError,
)
from .message import Message

Bytes = Union[bytes, bytearray, memoryview]


class Connection(Protocol):
    """Byte stream the framing layer runs on."""

    async def recv_into(self, buffer: memoryview) -> int:
        """Read at most len(buffer) bytes into buffer, returning the count (may be 0)."""
        ...

    async def send(self, data: Bytes) -> int:
        """Write data in a single attempt, returning how many bytes were accepted."""
        ...

    def close(self) -> None:
        ...


class StreamConnection:
    """Connection over an asyncio StreamReader/StreamWriter pair."""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.reader = reader
        self.writer = writer

    @property
    def peername(self) -> Optional[str]:
        peer = self.writer.get_extra_info("peername")
        if isinstance(peer, tuple):
            return f"{peer[0]}:{peer[1]}"
        return str(peer) if peer else None

    async def recv_into(self, buffer: memoryview) -> int:
        chunk = await self.reader.read(len(buffer))
        if not chunk and self.reader.at_eof():
            raise ConnectionResetError("connection closed by peer")
        buffer[: len(chunk)] = chunk
        return len(chunk)

    async def send(self, data: Bytes) -> int:
        if self.writer.is_closing():
            raise ConnectionResetError("connection is closed")
        self.writer.write(data)
        await self.writer.drain()
        return len(data)

    def close(self) -> None:
        if not self.writer.is_closing():
            self.writer.close()

    async def wait_closed(self) -> None:
        with contextlib.suppress(ConnectionError):
            await self.writer.wait_closed()


@contextlib.contextmanager
def _stage(context: str, phase: Phase) -> Iterator[None]:
    """Tag errors raised inside the block with the operation that failed."""
    try:
        yield
    except ProtocolError as exc:
        raise exc.wrap(context, phase)
    except (OSError, EOFError) as exc:
        raise TransportError(str(exc) or type(exc).__name__, phase=phase).wrap(context) from exc


class FramedTransport:
    """Exact-length reads and writes of whole messages over a Connection."""

    def __init__(self, conn: Connection, max_empty_reads: int = MAX_CONSECUTIVE_EMPTY_READS) -> None:
        if max_empty_reads <= 0:
            raise ValueError("max_empty_reads must be positive")
        self.conn = conn
        self.max_empty_reads = max_empty_reads

    async def write_exact(self, data: Bytes) -> None:
        n = await self.conn.send(data)
        if n != len(data):
            raise ShortWriteError(f"short write: {n} of {len(data)} bytes")

    async def read_exact(self, buffer: memoryview) -> None:
        """Fill buffer completely, tolerating short reads."""
        offset = 0
        while offset < len(buffer):
            offset += await self._fill(buffer[offset:])

    async def _fill(self, buffer: memoryview) -> int:
        # At most max_empty_reads consecutive reads may come back empty.
        for _ in range(self.max_empty_reads):
            n = await self.conn.recv_into(buffer)
            if n < 0:
                raise NegativeReadError(f"connection returned negative read count {n}")
            if n > 0:
                return n
        raise NoProgressError(f"no progress after {self.max_empty_reads} consecutive empty reads")

    async def send_handshake(self, version: int = PROTOCOL_VERSION) -> None:
        """Announce the protocol version, sent once before the first message."""
        with _stage("failed to send protocol version", Phase.SEND_HEADER):
            await self.write_exact(struct.pack("<Q", version))

    async def send_message(self, msg: Message) -> None:
        with _stage("failed to send header", Phase.SEND_HEADER):
            await self.write_exact(msg.header)
        with _stage("failed to send body", Phase.SEND_BODY):
            for segment in msg.segments():
                if len(segment):
                    await self.write_exact(segment)

    async def recv_message(self, msg: Message) -> None:
        with _stage("failed to receive header", Phase.RECV_HEADER):
            await self.read_exact(memoryview(msg.header))
            msg.decode_header()
        with _stage("failed to receive body", Phase.RECV_BODY):
            await self.read_exact(msg.prepare_receive(msg.words * WORD_SIZE))


__all__ = ["Connection", "StreamConnection", "FramedTransport"]
