from __future__ import annotations

import asyncio
import logging
import sys

from client.config import CLIENT_CONFIG, load_config
from client.core import connect, parse_address
from client.storage import InMemoryServerStore, ServerStore, SQLiteServerStore
from shared.protocol.errors import ProtocolError

logger = logging.getLogger(__name__)


def _open_store() -> ServerStore:
    if CLIENT_CONFIG["store_path"]:
        return SQLiteServerStore(CLIENT_CONFIG["store_path"])
    return InMemoryServerStore()


async def run_client(address: str) -> int:
    """Connect, report the leader, watch one heartbeat refresh and print the membership."""
    try:
        parse_address(address)
    except ValueError as exc:
        logger.error("%s", exc)
        return 2

    try:
        store = _open_store()
    except ProtocolError as exc:
        logger.error("Cannot open server store: %s", exc)
        return 1

    try:
        try:
            client = await connect(address, store)
        except ProtocolError as exc:
            logger.error("Cannot connect to %s: %s", address, exc)
            return 1

        try:
            print("Leader:", await client.leader(timeout=CLIENT_CONFIG["connect_timeout"]))
            await asyncio.sleep(client.heartbeat_interval * 1.5)
            print("Servers:", ", ".join(await store.get()) or "(none)")
        except ProtocolError as exc:
            logger.error("Probe failed: %s", exc)
            return 1
        finally:
            await client.close()
    finally:
        store.close()
    return 0


def main() -> None:
    load_config()
    logging.basicConfig(level=CLIENT_CONFIG["log_level"])
    address = sys.argv[1] if len(sys.argv) > 1 else f"{CLIENT_CONFIG['server_host']}:{CLIENT_CONFIG['server_port']}"
    sys.exit(asyncio.run(run_client(address)))


if __name__ == "__main__":
    main()
