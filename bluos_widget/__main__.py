#!/usr/bin/env python3
# BeoSound 5c
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
BluOS widget service (beo-player-bluos-widget)

    python3 -m bluos_widget [host]

Host defaults to player.ip from the config file.  Serves the widget feed
on server.port (8766).
"""

import asyncio
import logging
import signal
import sys

from .lib.config import cfg
from .server import DEFAULT_PORT, WidgetServer
from .sync import BACKOFF_MAX, LONG_POLL_TIMEOUT
from .widget import NodeWidget

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger('beo-player-bluos-widget')


async def main():
    host = sys.argv[1] if len(sys.argv) > 1 else cfg("player", "ip", default="")
    if not host:
        logger.error("No BluOS host configured (pass one or set player.ip in config)")
        sys.exit(1)

    widget = NodeWidget(
        host,
        port=int(cfg("player", "port", default=11000)),
        timeout=int(cfg("poll", "timeout", default=LONG_POLL_TIMEOUT)),
        backoff_max=float(cfg("poll", "backoff_max", default=BACKOFF_MAX)),
    )
    server = WidgetServer(widget, port=int(cfg("server", "port", default=DEFAULT_PORT)))

    await widget.start()
    await server.start()

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, stop_event.set)
    try:
        await stop_event.wait()
    finally:
        logger.info("Shutting down")
        await server.stop()
        await widget.shutdown()


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
