from __future__ import annotations

import asyncio
import socket

import pytest_asyncio

from shared.protocol.framing import StreamConnection


@pytest_asyncio.fixture
async def pipe():
    """A connected (client connection, (server reader, server writer)) pair over a socketpair."""
    left, right = socket.socketpair()
    client_reader, client_writer = await asyncio.open_connection(sock=left)
    server_reader, server_writer = await asyncio.open_connection(sock=right)
    yield StreamConnection(client_reader, client_writer), (server_reader, server_writer)
    for writer in (client_writer, server_writer):
        writer.close()
