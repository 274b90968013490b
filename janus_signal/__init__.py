"""Janus Gateway signalling client.

Correlates request/response transactions and dispatches events over any
transport that can send text and deliver decoded JSON messages.
"""

from janus_signal.config import SessionOptions, get_session_options, get_transport_config, load_env
from janus_signal.errors import (
    JanusError,
    JanusHTTPError,
    JanusProtocolError,
    JanusTransportError,
    SessionDisposedError,
    TransactionTimeoutError,
)
from janus_signal.handle import JanusPluginHandle
from janus_signal.models import ErrorCode, Signal
from janus_signal.session import JanusSession

__all__ = [
    "ErrorCode",
    "JanusError",
    "JanusHTTPError",
    "JanusPluginHandle",
    "JanusProtocolError",
    "JanusSession",
    "JanusTransportError",
    "SessionDisposedError",
    "SessionOptions",
    "Signal",
    "TransactionTimeoutError",
    "get_session_options",
    "get_transport_config",
    "load_env",
]
