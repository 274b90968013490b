"""Janus plugin handles.

A handle represents one plugin attached to a Janus session; each WebRTC
connection through the gateway is associated with a single handle. Once
attached, the handle's id accompanies every signal it sends and identifies
(as `sender`) the events addressed to it.
See https://janus.conf.meetecho.com/docs/rest.html#handles.
"""

from __future__ import annotations

import asyncio

from janus_signal.errors import JanusTransportError
from janus_signal.models import ASYNC_REQUEST, Listener, Signal
from janus_signal.session import JanusSession, response_id


class JanusPluginHandle:
    def __init__(self, session: JanusSession):
        self.session = session
        self.id: int | str | None = None
        self.room_id: int | str | None = None
        self.feed_id: int | str | None = None

    def to_dict(self) -> dict:
        return {
            "room_id": self.room_id,
            "id": self.id,
            "feed_id": self.feed_id,
        }

    async def attach(self, plugin: str) -> Signal:
        """Attaches this handle to the Janus server and sets its id."""
        payload = {
            "plugin": plugin,
            "force-bundle": True,
            "force-rtcp-mux": True,
        }
        resp = await self.session.send("attach", payload)
        self.id = response_id(resp)
        return resp

    def detach(self) -> asyncio.Future[Signal]:
        return self.send("detach")

    def hangup(self) -> asyncio.Future[Signal]:
        """Janus usually hangs up on its own; clients may ask explicitly."""
        return self.send("hangup")

    def on(self, event: str, listener: Listener) -> None:
        """Like JanusSession.on, but only for signals sent by this handle."""

        def _filtered(signal: Signal):
            if signal.get("sender") == self.id:
                return listener(signal)
            return None

        self.session.on(event, _filtered)

    def send(self, kind: str, payload: Signal | None = None) -> asyncio.Future[Signal]:
        """Send a signal on behalf of this handle (see JanusSession.send)."""
        message: Signal = {}
        if self.id is not None:
            message["handle_id"] = self.id
        if payload:
            message.update(payload)
        return self.session.send(kind, message)

    def send_message(self, body: object) -> asyncio.Future[Signal]:
        """Send a plugin-specific message."""
        return self.send(ASYNC_REQUEST, {"body": body})

    def send_jsep(self, jsep: dict, body: dict | None = None) -> asyncio.Future[Signal]:
        """Send a JSEP offer or answer."""
        return self.send(ASYNC_REQUEST, {"body": body if body else {}, "jsep": jsep})

    def send_trickle(self, candidate: object) -> asyncio.Future[Signal]:
        """Send one ICE candidate, or a list of them."""
        if isinstance(candidate, (list, tuple)):
            return self.send("trickle", {"candidates": list(candidate)})
        return self.send("trickle", {"candidate": candidate})

    # VideoRoom plugin helpers

    async def create_room(self) -> Signal:
        resp = await self.send(ASYNC_REQUEST, {"body": {"request": "create"}})
        plugindata = resp.get("plugindata")
        data = plugindata.get("data") if isinstance(plugindata, dict) else None
        if not isinstance(data, dict) or data.get("room") is None:
            raise JanusTransportError("videoroom create reply carries no room", payload_preview=str(resp)[:200])
        self.room_id = data["room"]
        return resp

    def join_publisher(self) -> asyncio.Future[Signal]:
        return self.send(
            ASYNC_REQUEST,
            {"body": {"request": "join", "ptype": "publisher", "room": self.room_id}},
        )
