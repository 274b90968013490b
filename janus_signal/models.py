"""Shared Janus signalling data structures."""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Callable

# A decoded Janus message. Well-known keys: janus, transaction, session_id,
# handle_id, sender, apisecret, data, plugindata, jsep, error.
Signal = dict[str, Any]

# Listener callbacks receive the raw inbound signal. They may return an
# awaitable, which is scheduled on the running loop.
Listener = Callable[[Signal], object]

# Receives {"type": "warn" | "debug" | "error", "data": ...}
DiagnosticSink = Callable[[dict], object]

# Fire-and-forget transport output; receives the JSON-encoded message.
Output = Callable[[str], object]

# Plugin requests that may be acked before the real response arrives.
ASYNC_REQUEST = "message"
ACK = "ack"


class ErrorCode(IntEnum):
    """Janus core error codes (janus/apierror.h)."""

    OK = 0
    UNAUTHORIZED = 403
    UNAUTHORIZED_PLUGIN = 405
    UNKNOWN = 490
    TRANSPORT_SPECIFIC = 450
    MISSING_REQUEST = 452
    UNKNOWN_REQUEST = 453
    INVALID_JSON = 454
    INVALID_JSON_OBJECT = 455
    MISSING_MANDATORY_ELEMENT = 456
    INVALID_REQUEST_PATH = 457
    SESSION_NOT_FOUND = 458
    HANDLE_NOT_FOUND = 459
    PLUGIN_NOT_FOUND = 460
    PLUGIN_ATTACH = 461
    PLUGIN_MESSAGE = 462
    PLUGIN_DETACH = 463
    JSEP_UNKNOWN_TYPE = 464
    JSEP_INVALID_SDP = 465
    TRICKLE_INVALID_STREAM = 466
    INVALID_ELEMENT_TYPE = 467
    SESSION_CONFLICT = 468
    UNEXPECTED_ANSWER = 469
    TOKEN_NOT_FOUND = 470
    WEBRTC_STATE = 471
    NOT_ACCEPTING_SESSIONS = 472
