"""Shared pytest fixtures for janus_signal tests."""

import asyncio
import json

import pytest

from janus_signal import JanusSession, SessionOptions


class Wire:
    """Stands in for a transport: records every outgoing message."""

    def __init__(self):
        self.sent: list[dict] = []

    def __call__(self, data: str) -> None:
        self.sent.append(json.loads(data))

    def kinds(self) -> list[str]:
        return [m["janus"] for m in self.sent]

    def of_kind(self, kind: str) -> list[dict]:
        return [m for m in self.sent if m["janus"] == kind]

    def reply(self, session: JanusSession, signal: dict, to: dict | None = None) -> dict:
        """Feed `signal` to the session in the transaction of `to` (default: last sent)."""
        request = to if to is not None else self.sent[-1]
        signal = {"transaction": request["transaction"], **signal}
        session.receive(signal)
        return signal


@pytest.fixture
def wire():
    return Wire()


@pytest.fixture
def diagnostics():
    return []


@pytest.fixture
def make_session(wire, diagnostics):
    def _make(**options):
        options.setdefault("keepalive_s", None)
        return JanusSession(wire, SessionOptions(**options), diagnostics=diagnostics.append)

    return _make


@pytest.fixture
def wait_until():
    async def _wait(predicate, timeout: float = 2.0):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not met in time")
            await asyncio.sleep(0.005)

    return _wait
