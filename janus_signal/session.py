"""Janus session engine.

A Janus session is the context from within which plugin handles are opened.
Once created on the server it is given an id that must accompany every later
signalling message. See https://janus.conf.meetecho.com/docs/rest.html#sessions.

The engine owns no socket. Outgoing messages are handed to an injected output
callable as JSON text; the integrator feeds every decoded inbound message to
`receive`. All state lives on the running asyncio loop.
"""

from __future__ import annotations

import asyncio
import functools
import json

from janus_signal.config import SessionOptions
from janus_signal.diagnostics import Diagnostics
from janus_signal.errors import (
    JanusError,
    JanusProtocolError,
    JanusTransportError,
    SessionDisposedError,
    TransactionTimeoutError,
)
from janus_signal.events import EventRegistry
from janus_signal.models import (
    ACK,
    ASYNC_REQUEST,
    DiagnosticSink,
    ErrorCode,
    Listener,
    Output,
    Signal,
)
from janus_signal.transactions import Transaction, TransactionTable

KEEPALIVE = "keepalive"


def response_id(resp: Signal) -> int | str:
    """Return data.id from a create/attach success response."""
    data = resp.get("data")
    if isinstance(data, dict) and data.get("id") is not None:
        return data["id"]
    raise JanusTransportError("success response carries no data.id", payload_preview=str(resp)[:200])


def _reject_if_pending(future: asyncio.Future, exc: BaseException) -> None:
    if not future.done():
        future.set_exception(exc)


class JanusSession:
    def __init__(
        self,
        output: Output,
        options: SessionOptions | None = None,
        diagnostics: DiagnosticSink | None = None,
    ):
        self.output = output
        self.options = options or SessionOptions()
        self.id: int | str | None = None
        self.txns = TransactionTable()
        self.events = EventRegistry()
        self.keepalives_tried = 0
        self.disposed = False
        self._keepalive_timer: asyncio.TimerHandle | None = None
        self._diag = Diagnostics(diagnostics)

    @property
    def pending(self) -> int:
        return len(self.txns)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "options": self.options.to_dict(),
            "keepalives_tried": self.keepalives_tried,
        }

    # -----------------
    # Lifecycle
    # -----------------

    async def create(self) -> Signal:
        """Creates this session on the Janus server and sets its id."""
        if self.id is not None:
            raise JanusError(f"Janus session {self.id} was already created")
        resp = await self.send("create")
        self.id = response_id(resp)
        return resp

    async def destroy(self) -> Signal:
        """Destroys this session on the server, then disposes of it locally.

        Janus also closes the signalling transport (where applicable) and any
        open WebRTC connections of the session.
        """
        resp = await self.send("destroy")
        self.dispose()
        return resp

    def dispose(self) -> None:
        """Stop processing signals for this session.

        Outstanding transactions are rejected with SessionDisposedError. Safe to
        call more than once.
        """
        self._kill_keepalive()
        self.events.clear()
        self.disposed = True
        for txn in self.txns.drain():
            txn.reject(SessionDisposedError())

    # -----------------
    # Signals
    # -----------------

    def is_error(self, signal: Signal) -> bool:
        """Whether a response should reject its transaction.

        Override to recognise plugin-specific error conventions.
        """
        return signal.get("janus") == "error"

    def on(self, event: str, listener: Listener) -> None:
        """Call `listener` for every incoming signal whose `janus` is `event`."""
        self.events.on(event, listener)

    def send(self, kind: str, payload: Signal | None = None) -> asyncio.Future[Signal]:
        """Send a signal, beginning a new transaction.

        The returned future resolves with the response in the same
        transaction, or fails on an error response, on timeout, or when the
        session is disposed.
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future[Signal] = loop.create_future()

        if self.disposed:
            loop.call_soon(_reject_if_pending, future, SessionDisposedError())
            return future

        payload = dict(payload) if payload else {}
        txid = payload.pop("transaction", None) or self.txns.new_id()

        txn = Transaction(id=txid, kind=kind, future=future)
        self.txns.add(txn)
        if self.options.timeout_s:
            txn.timer = loop.call_later(self.options.timeout_s, self._expire, txn)
        future.add_done_callback(functools.partial(self._forget_cancelled, txn))

        message: Signal = {"janus": kind}
        if self.id is not None:
            # No id yet only while the create request itself is being sent.
            message["session_id"] = self.id
        message["transaction"] = txid
        if self.options.apisecret:
            message["apisecret"] = self.options.apisecret
        message.update(payload)

        try:
            self._transmit(message)
        except Exception as e:
            self._diag.error({"message": f"Failed to send Janus {kind} (#{txid})", "error": e})
            self.txns.pop(txid, txn)
            txn.cancel_timer()
            loop.call_soon(_reject_if_pending, future, e)
            return future

        if kind == KEEPALIVE:
            self._arm_keepalive()
        else:
            self.reset_keepalive()
        return future

    def receive(self, signal: Signal) -> None:
        """Process one decoded inbound signal.

        Call this for every message the transport delivers (a WebSocket
        message, or each datum of an HTTP long-poll response), not just for
        responses. Responses settle the future of their transaction.
        """
        session_id = signal.get("session_id")
        if self.options.multi_session and session_id != self.id:
            if self.options.verbose:
                self._diag.debug(
                    f"Janus multi-session enabled: {session_id} ignored as "
                    f"this session's current id is {self.id}."
                )
            return

        if self.options.verbose:
            self._log_incoming(signal)

        if session_id != self.id:
            self._diag.warn(
                "Incorrect session ID received in Janus signalling message: "
                f"was {session_id}, expected {self.id}."
            )

        self.events.dispatch(signal, self._on_listener_error)

        txid = signal.get("transaction")
        if txid is None or isinstance(txid, (dict, list)):
            return

        txn = self.txns.get(txid)
        if txn is None:
            # Not sent via this session, a second reply to one request, or the
            # transaction already timed out or was disposed.
            return

        if signal.get("janus") == ACK and txn.kind == ASYNC_REQUEST:
            # Plugin is processing asynchronously; the real reply follows
            # under the same transaction.
            return

        self.txns.pop(txid)
        if self.is_error(signal):
            txn.reject(JanusProtocolError(signal))
        else:
            txn.resolve(signal)

    def _transmit(self, message: Signal) -> None:
        if self.options.verbose:
            self._log_outgoing(message)
        self.output(json.dumps(message))

    def _expire(self, txn: Transaction) -> None:
        if self.txns.pop(txn.id, txn) is None:
            return
        txn.timer = None
        txn.reject(TransactionTimeoutError(txn.id))

    def _forget_cancelled(self, txn: Transaction, future: asyncio.Future) -> None:
        if future.cancelled():
            self.txns.pop(txn.id, txn)
            txn.cancel_timer()

    def _on_listener_error(self, event: str, exc: BaseException) -> None:
        self._diag.error({"message": f"Listener for Janus {event} event failed", "error": exc})

    # -----------------
    # Keepalive
    # -----------------

    def reset_keepalive(self) -> None:
        """Restart the keepalive countdown after outbound activity."""
        self.keepalives_tried = 0
        self._arm_keepalive()

    def _arm_keepalive(self) -> None:
        self._kill_keepalive()
        if self.disposed or not self.options.keepalive_s:
            return
        loop = asyncio.get_running_loop()
        self._keepalive_timer = loop.call_later(self.options.keepalive_s, self._send_keepalive)

    def _kill_keepalive(self) -> None:
        if self._keepalive_timer is not None:
            self._keepalive_timer.cancel()
            self._keepalive_timer = None

    def _send_keepalive(self) -> None:
        self._keepalive_timer = None
        future = self.send(KEEPALIVE)
        future.add_done_callback(self._on_keepalive_done)

    def _on_keepalive_done(self, future: asyncio.Future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is None:
            self.keepalives_tried = 0
            return
        if isinstance(exc, SessionDisposedError):
            return

        self._diag.error({"message": "Error received from keepalive", "error": exc})

        retries = self.options.keepalive_retries
        if retries:
            self.keepalives_tried += 1
            if self.keepalives_tried > retries:
                self._diag.error(
                    {
                        "message": "Keep alive retry limit reached. Disposing session.",
                        "session": self.id,
                    }
                )
                self.dispose()
                self.keepalives_tried = 0
            else:
                self._diag.warn(
                    {
                        "message": (
                            f"Keep alive failed. This will retry {retries - self.keepalives_tried + 1} "
                            "more times, unless the session doesn't exist anymore."
                        ),
                        "session": self.id,
                    }
                )

        if isinstance(exc, JanusProtocolError) and exc.code == ErrorCode.SESSION_NOT_FOUND:
            self._diag.error(
                {"message": "Disposing non-existent session", "session": exc.signal.get("session_id")}
            )
            self.dispose()

    # -----------------
    # Verbose logging
    # -----------------

    def _log_outgoing(self, message: Signal) -> None:
        kind = message.get("janus")
        jsep = message.get("jsep")
        if kind == ASYNC_REQUEST and isinstance(jsep, dict) and jsep.get("type"):
            kind = jsep["type"]
        text = f"> Outgoing Janus {kind or 'signal'} (#{message.get('transaction')}): "
        self._diag.debug({"message": text, "signal": message})

    def _log_incoming(self, signal: Signal) -> None:
        kind = signal.get("janus") or "signal"
        txid = signal.get("transaction")
        if txid:
            text = f"< Incoming Janus {kind} (#{txid}): "
        else:
            text = f"< Incoming Janus {kind}: "
        self._diag.debug({"message": text, "signal": signal})
