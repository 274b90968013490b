"""Ports for signalling transports.

A JanusSession only needs a fire-and-forget `output(text)`; transports push
decoded inbound signals into a receiver (normally `JanusSession.receive`).
"""

from __future__ import annotations

import json
import logging
from typing import Callable, Protocol

from janus_signal.models import Signal

log = logging.getLogger("janus.transport")

Receiver = Callable[[Signal], None]


class Transport(Protocol):
    def output(self, data: str) -> None: ...

    async def close(self) -> None: ...


def decode_payload(text: str) -> object | None:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        log.warning(f"Dropping undecodable Janus payload: {text[:200]!r}")
        return None


def deliver(payload: object, receiver: Receiver) -> int:
    """Pass a decoded payload (one signal or a batch) to the receiver.

    Returns the number of signals delivered. A receiver failure is logged and
    does not stop the rest of the batch.
    """
    if isinstance(payload, dict):
        signals = [payload]
    elif isinstance(payload, list):
        signals = [s for s in payload if isinstance(s, dict)]
    else:
        return 0

    for signal in signals:
        try:
            receiver(signal)
        except Exception:
            log.exception(f"Janus receiver failed for {signal.get('janus')!r} signal")
    return len(signals)
