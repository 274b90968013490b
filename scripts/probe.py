#!/usr/bin/env python3
"""Probe a Janus gateway over WebSocket.

Creates a session, attaches a plugin handle, logs every event addressed to it
for a while, then destroys the session.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Iterable

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from janus_signal import JanusError, JanusPluginHandle, JanusSession, get_session_options, load_env
from janus_signal.config import get_transport_config
from janus_signal.transports import JanusWebSocketTransport

log = logging.getLogger("probe")

EVENTS = ("event", "webrtcup", "media", "slowlink", "hangup", "detached", "timeout")


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    logging.getLogger("aiohttp").setLevel(logging.WARNING)


def _parse_args(argv: Iterable[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Janus signalling probe")
    parser.add_argument("url", nargs="?", default=None, help="WebSocket URL (default: $JANUS_WS_URL)")
    parser.add_argument("--plugin", default="janus.plugin.echotest")
    parser.add_argument("--duration", type=float, default=10.0)
    parser.add_argument("--apisecret", default=None)
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(list(argv))


async def _probe(args: argparse.Namespace) -> int:
    transport = JanusWebSocketTransport(args.url or get_transport_config().ws_url)
    await transport.connect()

    overrides: dict[str, object] = {"verbose": args.verbose}
    if args.apisecret:
        overrides["apisecret"] = args.apisecret
    session = JanusSession(transport.output, get_session_options(**overrides))
    transport.start(session.receive)

    try:
        await session.create()
        log.info(f"Created session {session.id}")

        handle = JanusPluginHandle(session)
        await handle.attach(args.plugin)
        log.info(f"Attached {args.plugin} as handle {handle.id}")

        for event in EVENTS:
            handle.on(event, lambda signal: log.info(f"[{signal.get('janus')}] {signal}"))

        await asyncio.sleep(args.duration)
        await handle.detach()
        await session.destroy()
        return 0
    except JanusError as e:
        log.error(f"Probe failed: {e}")
        return 1
    finally:
        session.dispose()
        await transport.close()


def main(argv: Iterable[str]) -> int:
    args = _parse_args(argv)
    _configure_logging(args.verbose)
    load_env()
    try:
        return asyncio.run(_probe(args))
    except KeyboardInterrupt:
        log.info("Interrupted")
        return 130


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
