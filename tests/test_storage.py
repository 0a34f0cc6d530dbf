from __future__ import annotations

import asyncio

import pytest

from client.storage import InMemoryServerStore, SQLiteServerStore
from shared.protocol import StoreError


@pytest.mark.asyncio
async def test_in_memory_store_replaces_snapshot():
    store = InMemoryServerStore(["10.0.0.9:9000"])
    await store.set(["10.0.0.1:9000", "10.0.0.2:9000"])

    assert await store.get() == ["10.0.0.1:9000", "10.0.0.2:9000"]


@pytest.mark.asyncio
async def test_sqlite_store_keeps_order_across_updates(tmp_path):
    store = SQLiteServerStore(str(tmp_path / "servers.db"))
    await store.set(["10.0.0.3:9000", "10.0.0.1:9000"])
    await store.set(["10.0.0.2:9000", "10.0.0.1:9000"])
    store.close()

    reopened = SQLiteServerStore(str(tmp_path / "servers.db"))
    assert await reopened.get() == ["10.0.0.2:9000", "10.0.0.1:9000"]
    reopened.close()


@pytest.mark.asyncio
async def test_sqlite_store_errors_are_store_errors(tmp_path):
    store = SQLiteServerStore(str(tmp_path / "servers.db"))
    store.close()

    with pytest.raises(StoreError):
        await store.set(["10.0.0.1:9000"])


@pytest.mark.asyncio
async def test_sqlite_store_serializes_concurrent_updates(tmp_path):
    store = SQLiteServerStore(str(tmp_path / "servers.db"))

    await asyncio.gather(store.set(["10.0.0.1:9000"]), store.set(["10.0.0.2:9000", "10.0.0.3:9000"]))

    assert await store.get() == ["10.0.0.2:9000", "10.0.0.3:9000"]
    store.close()
