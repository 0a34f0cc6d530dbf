from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional, Tuple

from client.config import CLIENT_CONFIG
from client.storage.servers import ServerStore
from shared.protocol.errors import ProtocolError, TransportError
from shared.protocol.framing import StreamConnection

from .network import Client

logger = logging.getLogger(__name__)


def parse_address(address: str) -> Tuple[str, int]:
    """Split "host:port" (or "[v6]:port") into its parts."""
    host, sep, port = address.rpartition(":")
    if not sep or not host or not port.isdigit():
        raise ValueError(f"invalid server address {address!r}, expected host:port")
    return host.strip("[]"), int(port)


async def connect(
    address: str,
    store: ServerStore,
    config: Optional[Dict[str, Any]] = None,
    log: Optional[logging.Logger] = None,
) -> Client:
    """
    Dial `address`, perform the protocol handshake, register and start the heartbeat.

    The heartbeat period is the one the server reports at registration; the
    configured interval is used when the server reports none. Nothing here is
    retried: on failure the connection is closed and the error raised.
    """
    config = config or CLIENT_CONFIG
    host, port = parse_address(address)
    try:
        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(host, port), config["connect_timeout"]
        )
    except (OSError, asyncio.TimeoutError) as exc:
        raise TransportError(f"failed to connect to {address}: {str(exc) or 'timed out'}") from exc

    conn = StreamConnection(reader, writer)
    client = Client(
        conn,
        address,
        store,
        heartbeat_interval=config["heartbeat_interval"],
        heartbeat_call_timeout=config["heartbeat_call_timeout"],
        max_empty_reads=config["max_empty_reads"],
        max_message_size=config["max_message_size"],
        request_buffer_size=config["request_buffer_size"],
        response_buffer_size=config["response_buffer_size"],
        log=log,
    )
    try:
        await client.transport.send_handshake()
        welcome = await client.register(config["client_id"], timeout=config["connect_timeout"])
    except ProtocolError:
        await client.close()
        raise

    if welcome.heartbeat_timeout:
        client.heartbeat_interval = welcome.heartbeat_timeout / 1000
    client.start()
    client.logger.info("Connected to %s, heartbeat every %.3fs", conn.peername or address, client.heartbeat_interval)
    return client


__all__ = ["connect", "parse_address"]
