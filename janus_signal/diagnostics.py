"""Diagnostic output for sessions.

Integrators can inject a sink that receives {"type": ..., "data": ...}; without
one, diagnostics go to the "janus" logger.
"""

from __future__ import annotations

import logging

from janus_signal.models import DiagnosticSink

log = logging.getLogger("janus")

_LEVELS = {
    "debug": logging.DEBUG,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


class Diagnostics:
    def __init__(self, sink: DiagnosticSink | None = None, logger: logging.Logger | None = None):
        self._sink = sink
        self._log = logger or log

    def emit(self, kind: str, data: object) -> None:
        level = _LEVELS.get(kind)
        if level is None:
            return
        if self._sink is not None:
            self._sink({"type": kind, "data": data})
        else:
            error = data.get("error") if isinstance(data, dict) else None
            exc_info = error if isinstance(error, BaseException) else None
            self._log.log(level, "%s", data, exc_info=exc_info)

    def debug(self, data: object) -> None:
        self.emit("debug", data)

    def warn(self, data: object) -> None:
        self.emit("warn", data)

    def error(self, data: object) -> None:
        self.emit("error", data)
