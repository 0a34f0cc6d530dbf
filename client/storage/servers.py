from __future__ import annotations

import asyncio
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, List

from shared.protocol.errors import StoreError


class ServerStore(ABC):
    """Directory of the server addresses last reported by the cluster."""

    @abstractmethod
    async def get(self) -> List[str]:
        """Return the known addresses, in the order they were set."""

    @abstractmethod
    async def set(self, addresses: Iterable[str]) -> None:
        """Replace the known addresses with `addresses`."""

    def close(self) -> None:
        """Release any resources held by the store."""


class InMemoryServerStore(ServerStore):
    def __init__(self, addresses: Iterable[str] = ()) -> None:
        self._addresses = list(addresses)
        self._lock = asyncio.Lock()

    async def get(self) -> List[str]:
        async with self._lock:
            return list(self._addresses)

    async def set(self, addresses: Iterable[str]) -> None:
        async with self._lock:
            self._addresses = list(addresses)


class SQLiteServerStore(ServerStore):
    """Addresses persisted in a single SQLite table."""

    def __init__(self, path: str) -> None:
        self.path = Path(path)
        self._lock = asyncio.Lock()
        try:
            self.conn = sqlite3.connect(self.path, check_same_thread=False)
            self._init_schema()
        except sqlite3.Error as exc:
            raise StoreError(f"cannot open server store {self.path}: {exc}") from exc

    def _init_schema(self) -> None:
        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS servers (
                address TEXT PRIMARY KEY
            )
            """
        )
        self.conn.commit()

    async def _run(self, func, *args):
        # sqlite3 blocks; keep it off the event loop and one statement batch at a time.
        async with self._lock:
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, func, *args)

    async def get(self) -> List[str]:
        return await self._run(self._select)

    async def set(self, addresses: Iterable[str]) -> None:
        await self._run(self._replace, list(addresses))

    def _select(self) -> List[str]:
        try:
            rows = self.conn.execute("SELECT address FROM servers ORDER BY rowid ASC").fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"failed to query servers: {exc}") from exc
        return [row[0] for row in rows]

    def _replace(self, addresses: List[str]) -> None:
        try:
            with self.conn:
                self.conn.execute("DELETE FROM servers")
                self.conn.executemany(
                    "INSERT OR IGNORE INTO servers (address) VALUES (?)",
                    [(address,) for address in addresses],
                )
        except sqlite3.Error as exc:
            raise StoreError(f"failed to update servers: {exc}") from exc

    def close(self) -> None:
        self.conn.close()


__all__ = ["ServerStore", "InMemoryServerStore", "SQLiteServerStore"]
