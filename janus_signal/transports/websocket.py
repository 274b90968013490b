"""Janus WebSocket transport.

Owns the aiohttp client session and the socket read task. Sends are
fire-and-forget; a failed send is logged and the pending transaction is left
to time out.
"""

from __future__ import annotations

import asyncio
import logging

import aiohttp

from janus_signal.config import get_transport_config
from janus_signal.errors import JanusTransportError
from janus_signal.transports.ports import Receiver, decode_payload, deliver

log = logging.getLogger("janus.transport")

JANUS_PROTOCOL = "janus-protocol"


class JanusWebSocketTransport:
    def __init__(
        self,
        url: str | None = None,
        *,
        client_session: aiohttp.ClientSession | None = None,
        heartbeat_s: float | None = None,
    ):
        self.url = url or get_transport_config().ws_url
        self._client_session = client_session
        self._owns_client_session = client_session is None
        self._heartbeat_s = heartbeat_s
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._read_task: asyncio.Task | None = None
        self._send_tasks: set[asyncio.Task] = set()

    @property
    def connected(self) -> bool:
        return self._ws is not None and not self._ws.closed

    async def connect(self) -> None:
        if self._client_session is None:
            self._client_session = aiohttp.ClientSession()
        self._ws = await self._client_session.ws_connect(
            self.url,
            protocols=(JANUS_PROTOCOL,),
            heartbeat=self._heartbeat_s,
        )
        log.info(f"Connected to Janus at {self.url}")

    def output(self, data: str) -> None:
        ws = self._ws
        if ws is None or ws.closed:
            raise JanusTransportError("WebSocket is not connected")
        task = asyncio.create_task(ws.send_str(data))
        self._send_tasks.add(task)
        task.add_done_callback(self._on_sent)

    def _on_sent(self, task: asyncio.Task) -> None:
        self._send_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.warning(f"Janus WebSocket send failed: {type(exc).__name__}: {exc}")

    def start(self, receiver: Receiver) -> asyncio.Task:
        """Start feeding inbound signals to `receiver`."""
        if self._ws is None:
            raise JanusTransportError("WebSocket is not connected")
        self._read_task = asyncio.create_task(self._read_loop(self._ws, receiver))
        return self._read_task

    async def _read_loop(self, ws: aiohttp.ClientWebSocketResponse, receiver: Receiver) -> None:
        async for msg in ws:
            if msg.type == aiohttp.WSMsgType.TEXT:
                payload = decode_payload(msg.data)
                if payload is not None:
                    deliver(payload, receiver)
            elif msg.type == aiohttp.WSMsgType.ERROR:
                log.warning(f"Janus WebSocket error: {ws.exception()}")
                break
        log.info(f"Janus WebSocket {self.url} closed")

    async def close(self) -> None:
        if self._read_task:
            self._read_task.cancel()
            try:
                await self._read_task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                log.debug(f"Janus read task ended during close: {e}")

        if self._send_tasks:
            await asyncio.gather(*self._send_tasks, return_exceptions=True)

        if self._ws is not None and not self._ws.closed:
            await self._ws.close()

        if self._owns_client_session and self._client_session and not self._client_session.closed:
            await self._client_session.close()

        self._ws = None
        self._read_task = None
