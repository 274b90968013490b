"""Janus signalling exceptions.

Every transaction-level failure reaches the caller as one of these, raised
from the future that `send` returned. Callers can tell a timeout from a
server-side error from a torn-down session without scraping strings.
"""

from __future__ import annotations

from typing import Any


class JanusError(RuntimeError):
    """Base class for Janus session/transport errors."""


class TransactionTimeoutError(JanusError):
    """No response arrived for a transaction within the session timeout."""

    def __init__(self, transaction: str):
        self.transaction = transaction
        super().__init__(f"Signalling transaction with txid {transaction} timed out.")


class SessionDisposedError(JanusError):
    """The session was disposed while the transaction was outstanding."""

    def __init__(self, message: str = "Janus session was disposed."):
        super().__init__(message)


class JanusProtocolError(JanusError):
    """The server answered a transaction with an error signal."""

    def __init__(self, signal: dict[str, Any]):
        self.signal = signal
        error = signal.get("error") if isinstance(signal, dict) else None
        if not isinstance(error, dict):
            error = {}
        self.code: int | None = error.get("code")
        self.reason: str | None = error.get("reason")
        super().__init__(self.__str__())

    @property
    def transaction(self) -> str | None:
        return self.signal.get("transaction")

    def __str__(self) -> str:
        if self.code is not None:
            return f"Janus error {self.code}: {self.reason or 'no reason given'}"
        return f"Janus error response: {self.signal!r}"


class JanusTransportError(JanusError):
    """Malformed data or a dead connection on the signalling transport."""

    def __init__(self, message: str, *, payload_preview: str | None = None):
        self.message = message
        self.payload_preview = payload_preview
        super().__init__(self.__str__())

    def __str__(self) -> str:
        if self.payload_preview:
            return f"Janus transport error: {self.message} (payload={self.payload_preview!r})"
        return f"Janus transport error: {self.message}"


class JanusHTTPError(JanusTransportError):
    """HTTP error from the Janus REST endpoint."""

    def __init__(
        self,
        status: int,
        *,
        method: str,
        url: str,
        detail: str | None = None,
    ):
        self.status = int(status)
        self.method = method
        self.url = url
        self.detail = detail
        super().__init__(f"HTTP {self.status}")

    def __str__(self) -> str:
        detail = (self.detail or "").strip()
        if detail:
            return f"Janus HTTP {self.status} {self.method} {self.url}: {detail}"
        return f"Janus HTTP {self.status} {self.method} {self.url}"
