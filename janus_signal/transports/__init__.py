"""Signalling transports for Janus sessions."""

from janus_signal.transports.http import JanusHttpTransport
from janus_signal.transports.ports import Receiver, Transport
from janus_signal.transports.websocket import JanusWebSocketTransport

__all__ = [
    "JanusHttpTransport",
    "JanusWebSocketTransport",
    "Receiver",
    "Transport",
]
