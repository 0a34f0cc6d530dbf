from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from typing import Any, List, MutableMapping, Optional, Tuple

from client.storage.servers import ServerStore
from shared.protocol import codecs
from shared.protocol.constants import (
    DEFAULT_HEARTBEAT_CALL_TIMEOUT,
    DEFAULT_HEARTBEAT_INTERVAL,
    MAX_CONSECUTIVE_EMPTY_READS,
    MAX_MESSAGE_SIZE,
)
from shared.protocol.errors import CallTimeoutError, ClientClosedError, ProtocolError, StoreError
from shared.protocol.framing import Connection, FramedTransport
from shared.protocol.message import Message

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_SIZE = 16
DEFAULT_RESPONSE_SIZE = 512


class TargetAdapter(logging.LoggerAdapter):
    """Prefix log lines with the server address a client talks to."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        return f"[{self.extra['target']}] {msg}", kwargs


class Client:
    """
    One connection to one server.

    The protocol carries no request identifiers, so a response can only be
    matched to its request if exchanges never overlap: every call, including
    the ones issued by the heartbeat task, goes through the same lock.
    """

    def __init__(
        self,
        conn: Connection,
        address: str,
        store: ServerStore,
        heartbeat_interval: float = DEFAULT_HEARTBEAT_INTERVAL,
        heartbeat_call_timeout: float = DEFAULT_HEARTBEAT_CALL_TIMEOUT,
        max_empty_reads: int = MAX_CONSECUTIVE_EMPTY_READS,
        max_message_size: int = MAX_MESSAGE_SIZE,
        request_buffer_size: int = DEFAULT_REQUEST_SIZE,
        response_buffer_size: int = DEFAULT_RESPONSE_SIZE,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.conn = conn
        self.address = address
        self.store = store
        self.heartbeat_interval = heartbeat_interval
        self.heartbeat_call_timeout = heartbeat_call_timeout
        self.max_message_size = max_message_size
        self.request_buffer_size = request_buffer_size
        self.response_buffer_size = response_buffer_size
        self.transport = FramedTransport(conn, max_empty_reads)
        self.logger = TargetAdapter(log or logger, {"target": address})

        self._lock = asyncio.Lock()
        self._stop = asyncio.Event()
        self._closed = False
        self._heartbeat_task: Optional[asyncio.Task] = None

    def _new_messages(self) -> Tuple[Message, Message]:
        """Request/response pair sized from the configured buffer sizes."""
        request = Message(self.request_buffer_size, max_size=self.max_message_size)
        response = Message(self.response_buffer_size, max_size=self.max_message_size)
        return request, response

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        """Start the background heartbeat."""
        if self._heartbeat_task is None:
            self._heartbeat_task = asyncio.create_task(
                self._heartbeat_loop(), name=f"client-heartbeat-{self.address}"
            )
            self._heartbeat_task.add_done_callback(self._on_heartbeat_done)

    def _on_heartbeat_done(self, task: asyncio.Task) -> None:
        # Protocol failures end the loop normally; anything raised here is an invariant violation.
        if task.cancelled() or task.exception() is None:
            return
        exc = task.exception()
        self.logger.critical("Heartbeat aborted: %r", exc)
        asyncio.get_running_loop().call_exception_handler(
            {"message": f"heartbeat for {self.address} aborted", "exception": exc, "task": task}
        )

    async def call(self, request: Message, response: Message, timeout: Optional[float] = None) -> None:
        """
        Send `request` and read the reply into `response`.

        `timeout` bounds how long the caller waits. The exchange itself is not
        interrupted: it keeps the lock until the whole response frame has been
        read, so the connection stays in sync for the next caller.
        """
        if self._closed:
            raise ClientClosedError(f"client for {self.address} is closed")
        exchange = asyncio.ensure_future(self._exchange(request, response))
        exchange.add_done_callback(_retrieve_exception)
        try:
            await asyncio.wait_for(asyncio.shield(exchange), timeout)
        except asyncio.TimeoutError:
            self.logger.warning("Call abandoned after %.3fs, exchange still in flight", timeout)
            raise CallTimeoutError(f"call to {self.address} timed out after {timeout}s") from None

    async def _exchange(self, request: Message, response: Message) -> None:
        async with self._lock:
            if self._closed:
                raise ClientClosedError(f"client for {self.address} is closed")
            try:
                await self.transport.send_message(request)
            except ProtocolError as exc:
                raise exc.wrap("failed to send request")
            try:
                await self.transport.recv_message(response)
            except ProtocolError as exc:
                raise exc.wrap("failed to receive response")
            self.logger.debug("Exchanged %r for %r", request, response)

    async def register(self, client_id: int, timeout: Optional[float] = None) -> codecs.Welcome:
        """Announce this client to the server and learn the heartbeat period it expects."""
        request, response = self._new_messages()
        codecs.encode_client(request, client_id)
        await self.call(request, response, timeout=timeout)
        return codecs.decode_welcome(response)

    async def leader(self, timeout: Optional[float] = None) -> str:
        """Ask the server for the address of the current cluster leader."""
        request, response = self._new_messages()
        codecs.encode_leader(request)
        await self.call(request, response, timeout=timeout)
        return codecs.decode_server(response).address

    async def close(self) -> None:
        """Stop the heartbeat and close the connection. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._stop.set()
        self.conn.close()
        task = self._heartbeat_task
        try:
            if task is not None and task is not asyncio.current_task():
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        finally:
            wait_closed = getattr(self.conn, "wait_closed", None)
            if wait_closed is not None:
                await wait_closed()
            self.logger.info("Client closed")

    async def _heartbeat_loop(self) -> None:
        request, response = self._new_messages()

        while True:
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(self._stop.wait(), self.heartbeat_interval)
            if self._stop.is_set():
                self.logger.debug("Heartbeat stopped")
                return

            codecs.encode_heartbeat(request, int(time.time()))
            try:
                await self.call(request, response, timeout=self.heartbeat_call_timeout)
                addresses = codecs.decode_servers(response)
                await self._publish(addresses)
            except ProtocolError as exc:
                # No retry: the owner notices the stale directory and replaces the client.
                self.logger.warning("Heartbeat failed, giving up: %s", exc)
                return
            self.logger.debug("Heartbeat refreshed %d servers", len(addresses))

    async def _publish(self, addresses: List[str]) -> None:
        try:
            await self.store.set(addresses)
        except StoreError:
            raise
        except Exception as exc:
            raise StoreError(f"failed to update server store: {exc}") from exc


def _retrieve_exception(task: asyncio.Future) -> None:
    # Marks the result as seen when the caller stopped waiting on it.
    if not task.cancelled():
        task.exception()


__all__ = ["Client", "TargetAdapter"]
