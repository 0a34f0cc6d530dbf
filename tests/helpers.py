from __future__ import annotations

import asyncio
import struct
from typing import Callable, List, Optional

from shared.protocol.constants import HEADER_SIZE, WORD_SIZE
from shared.protocol.message import Message

Handler = Callable[[Message, Message], None]


async def read_frame(reader: asyncio.StreamReader) -> Message:
    msg = Message()
    msg.decode_header(await reader.readexactly(HEADER_SIZE))
    body = await reader.readexactly(msg.words * WORD_SIZE)
    msg.prepare_receive(len(body))[:] = body
    return msg


async def write_frame(writer: asyncio.StreamWriter, msg: Message) -> None:
    writer.write(bytes(msg.header))
    for segment in msg.segments():
        writer.write(bytes(segment))
    await writer.drain()


class FakeServer:
    """Answers each request frame with whatever `handler` encodes into the response."""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter, handler: Handler) -> None:
        self.reader = reader
        self.writer = writer
        self.handler = handler
        self.requests: List[Message] = []
        self.version: Optional[int] = None

    async def serve(self, handshake: bool = False) -> None:
        try:
            if handshake:
                self.version = struct.unpack("<Q", await self.reader.readexactly(8))[0]
            while True:
                request = await read_frame(self.reader)
                self.requests.append(request)
                response = Message()
                self.handler(request, response)
                if response.words or response.mtype:
                    await write_frame(self.writer, response)
        except (asyncio.IncompleteReadError, ConnectionError):
            pass
        finally:
            self.writer.close()


