"""Janus REST transport (HTTP POST + long-poll GET).

Requests are POSTed to the endpoint matching their session/handle and the
JSON reply is handed to the receiver. Asynchronous events arrive through a
long-poll loop started once the session exists.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time

import aiohttp

from janus_signal.config import get_transport_config
from janus_signal.errors import JanusHTTPError, JanusTransportError
from janus_signal.models import ErrorCode, Signal
from janus_signal.transports.ports import Receiver, deliver

log = logging.getLogger("janus.transport")


def _session_gone(payload: object) -> bool:
    if not isinstance(payload, dict) or payload.get("janus") != "error":
        return False
    error = payload.get("error")
    return isinstance(error, dict) and error.get("code") == ErrorCode.SESSION_NOT_FOUND


class JanusHttpTransport:
    def __init__(
        self,
        base_url: str | None = None,
        *,
        client_session: aiohttp.ClientSession | None = None,
        max_events: int | None = None,
        timeout_s: float | None = None,
        apisecret: str | None = None,
    ):
        cfg = get_transport_config()
        self.base_url = (base_url or cfg.http_url).rstrip("/")
        self.max_events = max_events or cfg.max_events
        self._timeout = aiohttp.ClientTimeout(total=timeout_s if timeout_s is not None else cfg.http_timeout_s)
        self._apisecret = apisecret
        self._client_session = client_session
        self._owns_client_session = client_session is None
        self._receiver: Receiver | None = None
        self._poll_task: asyncio.Task | None = None
        self._post_tasks: set[asyncio.Task] = set()
        self._closed = False

    def bind(self, receiver: Receiver) -> None:
        """Deliver POST replies and polled events to `receiver`."""
        self._receiver = receiver

    def url_for(self, message: Signal) -> str:
        session_id = message.get("session_id")
        handle_id = message.get("handle_id")
        if session_id is None:
            return self.base_url
        if handle_id is None:
            return f"{self.base_url}/{session_id}"
        return f"{self.base_url}/{session_id}/{handle_id}"

    def _ensure_client_session(self) -> aiohttp.ClientSession:
        if self._client_session is None:
            self._client_session = aiohttp.ClientSession(timeout=self._timeout)
        return self._client_session

    async def request_json(self, method: str, url: str, **kwargs) -> object | None:
        session = self._ensure_client_session()
        async with session.request(method, url, **kwargs) as resp:
            text = await resp.text()
            if resp.status >= 400:
                detail = text.strip() or resp.reason
                raise JanusHTTPError(resp.status, method=method, url=url, detail=detail)
            if not text:
                return None
            try:
                return json.loads(text)
            except json.JSONDecodeError as e:
                raise JanusTransportError("invalid JSON reply", payload_preview=text[:200]) from e

    def output(self, data: str) -> None:
        if self._closed:
            raise JanusTransportError("HTTP transport is closed")
        if self._receiver is None:
            raise JanusTransportError("HTTP transport has no receiver bound")
        message = json.loads(data)
        url = self.url_for(message)
        task = asyncio.create_task(self._post(url, data))
        self._post_tasks.add(task)
        task.add_done_callback(self._on_posted)

    async def _post(self, url: str, data: str) -> None:
        reply = await self.request_json(
            "POST", url, data=data, headers={"Content-Type": "application/json"}
        )
        if reply is not None and self._receiver is not None:
            deliver(reply, self._receiver)

    def _on_posted(self, task: asyncio.Task) -> None:
        self._post_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.warning(f"Janus HTTP request failed: {type(exc).__name__}: {exc}")

    def start_polling(self, session_id: int | str) -> asyncio.Task:
        """Long-poll the session's event endpoint until closed."""
        if self._receiver is None:
            raise JanusTransportError("HTTP transport has no receiver bound")
        self._poll_task = asyncio.create_task(self._poll_loop(session_id, self._receiver))
        return self._poll_task

    async def _poll_loop(self, session_id: int | str, receiver: Receiver) -> None:
        url = f"{self.base_url}/{session_id}"
        while not self._closed:
            params = {"maxev": str(self.max_events), "rid": str(int(time.time() * 1000))}
            if self._apisecret:
                params["apisecret"] = self._apisecret
            try:
                reply = await self.request_json("GET", url, params=params)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                log.warning(f"Janus long-poll for session {session_id} failed: {type(e).__name__}: {e}")
                return
            if reply is None:
                continue
            deliver(reply, receiver)
            if _session_gone(reply):
                log.info(f"Janus session {session_id} no longer exists; stopping long-poll")
                return

    async def close(self) -> None:
        self._closed = True
        if self._poll_task:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                log.debug(f"Janus long-poll task ended during close: {e}")

        if self._post_tasks:
            await asyncio.gather(*self._post_tasks, return_exceptions=True)

        if self._owns_client_session and self._client_session and not self._client_session.closed:
            await self._client_session.close()

        self._poll_task = None
