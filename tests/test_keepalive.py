"""
Unit tests for the keepalive state machine.

Tests cover:
- Debouncing: outbound traffic restarts the countdown
- Keepalives after a quiet period
- Retry budget and forced disposal
- Immediate disposal when the server no longer knows the session
"""

import asyncio

import pytest

from janus_signal import SessionDisposedError

SESSION_NOT_FOUND = {"janus": "error", "error": {"code": 458, "reason": "No such session 1"}}
UNKNOWN_ERROR = {"janus": "error", "error": {"code": 490, "reason": "Unknown error"}}


class TestKeepaliveTimer:
    @pytest.mark.asyncio
    async def test_disabled_keepalive_arms_nothing(self, make_session):
        session = make_session(keepalive_s=None)
        session.send("message")
        assert session._keepalive_timer is None

    @pytest.mark.asyncio
    async def test_sends_restart_the_countdown(self, make_session):
        session = make_session(keepalive_s=30)
        session.send("message")
        first = session._keepalive_timer
        session.send("trickle")
        second = session._keepalive_timer

        assert first is not None and first.cancelled()
        assert second is not None and not second.cancelled()
        assert second.when() >= first.when()

    @pytest.mark.asyncio
    async def test_keepalive_sent_after_quiet_period(self, make_session, wire, wait_until):
        session = make_session(keepalive_s=0.01)
        session.id = 1
        session.send("message")

        await wait_until(lambda: wire.of_kind("keepalive"))
        keepalive = wire.of_kind("keepalive")[0]
        assert keepalive["session_id"] == 1

        # The keepalive itself re-arms the timer.
        wire.reply(session, {"janus": "ack", "session_id": 1}, to=keepalive)
        await wait_until(lambda: len(wire.of_kind("keepalive")) >= 2)
        session.dispose()

    @pytest.mark.asyncio
    async def test_busy_session_sends_no_keepalive(self, make_session, wire):
        session = make_session(keepalive_s=0.2)
        for _ in range(5):
            session.send("trickle")
            await asyncio.sleep(0.02)
        assert wire.of_kind("keepalive") == []
        session.dispose()


class TestKeepaliveFailures:
    @pytest.mark.asyncio
    async def test_retry_limit_disposes_session(self, make_session, wire, wait_until, diagnostics):
        session = make_session(keepalive_s=0.01, keepalive_retries=2, timeout_s=None)
        session.id = 1
        pending = session.send("message")

        for count in (1, 2, 3):
            await wait_until(lambda: len(wire.of_kind("keepalive")) >= count)
            assert not session.disposed
            wire.reply(session, {**UNKNOWN_ERROR, "session_id": 1}, to=wire.of_kind("keepalive")[count - 1])
            await asyncio.sleep(0)
            if count < 3:
                assert session.keepalives_tried == count

        await wait_until(lambda: session.disposed)
        assert session.keepalives_tried == 0
        with pytest.raises(SessionDisposedError):
            await pending
        assert any(
            d["type"] == "error" and "retry limit" in str(d["data"].get("message")) for d in diagnostics
        )

        sent = len(wire.sent)
        await asyncio.sleep(0.05)
        assert len(wire.sent) == sent

    @pytest.mark.asyncio
    async def test_timeouts_count_as_failures(self, make_session, wait_until):
        session = make_session(keepalive_s=0.01, keepalive_retries=1, timeout_s=0.01)
        session.id = 1
        session.send("trickle", {"transaction": "kick-off"})
        session.receive({"janus": "ack", "session_id": 1, "transaction": "kick-off"})

        await wait_until(lambda: session.disposed)

    @pytest.mark.asyncio
    async def test_session_not_found_disposes_immediately(self, make_session, wire, wait_until):
        session = make_session(keepalive_s=0.01, timeout_s=None)
        session.id = 1
        session.send("message")

        await wait_until(lambda: wire.of_kind("keepalive"))
        wire.reply(session, {**SESSION_NOT_FOUND, "session_id": 1}, to=wire.of_kind("keepalive")[0])

        await wait_until(lambda: session.disposed)
        assert len(session.txns) == 0

    @pytest.mark.asyncio
    async def test_unlimited_retries_keep_the_session(self, make_session, wire, wait_until):
        session = make_session(keepalive_s=0.01, timeout_s=None)
        session.id = 1

        session.send("trickle")
        for count in (1, 2, 3):
            await wait_until(lambda: len(wire.of_kind("keepalive")) >= count)
            wire.reply(session, {**UNKNOWN_ERROR, "session_id": 1}, to=wire.of_kind("keepalive")[count - 1])
        await asyncio.sleep(0)

        assert not session.disposed
        session.dispose()

    @pytest.mark.asyncio
    async def test_normal_send_resets_failure_count(self, make_session, wire, wait_until):
        session = make_session(keepalive_s=0.01, keepalive_retries=5, timeout_s=None)
        session.id = 1
        session.send("trickle")

        await wait_until(lambda: wire.of_kind("keepalive"))
        wire.reply(session, {**UNKNOWN_ERROR, "session_id": 1}, to=wire.of_kind("keepalive")[0])
        await wait_until(lambda: session.keepalives_tried == 1)

        session.send("message")
        assert session.keepalives_tried == 0
        session.dispose()

    @pytest.mark.asyncio
    async def test_successful_keepalive_resets_failure_count(self, make_session, wire, wait_until):
        session = make_session(keepalive_s=0.01, keepalive_retries=5, timeout_s=None)
        session.id = 1
        session.send("trickle")

        await wait_until(lambda: wire.of_kind("keepalive"))
        wire.reply(session, {**UNKNOWN_ERROR, "session_id": 1}, to=wire.of_kind("keepalive")[0])
        await wait_until(lambda: session.keepalives_tried == 1)

        await wait_until(lambda: len(wire.of_kind("keepalive")) >= 2)
        wire.reply(session, {"janus": "ack", "session_id": 1}, to=wire.of_kind("keepalive")[1])
        await wait_until(lambda: session.keepalives_tried == 0)
        session.dispose()
