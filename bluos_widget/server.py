# BeoSound 5c
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
HTTP + WebSocket front for the browser widget.

  GET  /ws                 — push-only feed of media_update messages
  GET  /player/status      — current media data
  POST /player/play        — {"url": optional stream URL}
  POST /player/pause       — {"toggle": optional bool}
  POST /player/play_pause
  POST /player/stop
  POST /player/prev
  POST /player/next
  POST /player/seek        — {"seconds": N} or {"percent": 0-100}
  POST /player/volume      — {"level": 0-100}
  POST /player/mute        — {"mute": bool}

Rejected commands (seek without a known track length, volume out of range)
answer 400 with the reason.
"""

import asyncio
import json
import logging

from aiohttp import web

from .lib.errors import InvalidOperation
from .widget import NodeWidget

log = logging.getLogger(__name__)

DEFAULT_PORT = 8766


def _cors_headers():
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
    }


async def _json_body(request: web.Request) -> dict:
    try:
        data = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


class WidgetServer:

    def __init__(self, widget: NodeWidget, port: int = DEFAULT_PORT,
                 host: str = "0.0.0.0"):
        self.widget = widget
        self.port = port
        self.host = host
        self._ws_clients: set[web.WebSocketResponse] = set()
        self._runner: web.AppRunner | None = None
        self._send_tasks: set[asyncio.Task] = set()
        widget.add_listener(self._on_media_update)

    # ── App ──

    def make_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/ws", self._handle_ws)
        app.router.add_get("/player/status", self._handle_status)
        app.router.add_post("/player/play", self._handle_play)
        app.router.add_post("/player/pause", self._handle_pause)
        app.router.add_post("/player/play_pause", self._handle_play_pause)
        app.router.add_post("/player/stop", self._handle_stop)
        app.router.add_post("/player/prev", self._handle_prev)
        app.router.add_post("/player/next", self._handle_next)
        app.router.add_post("/player/seek", self._handle_seek)
        app.router.add_post("/player/volume", self._handle_volume)
        app.router.add_post("/player/mute", self._handle_mute)
        return app

    async def start(self):
        self._runner = web.AppRunner(self.make_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        log.info("Widget server: HTTP + WebSocket on port %d", self.port)

    async def stop(self):
        self.widget.remove_listener(self._on_media_update)
        for ws in list(self._ws_clients):
            await ws.close()
        self._ws_clients.clear()
        if self._runner:
            await self._runner.cleanup()
            self._runner = None

    # ── WebSocket broadcasting ──

    def _on_media_update(self, media_data: dict, reason: str):
        if not self._ws_clients:
            return
        task = asyncio.create_task(self.broadcast_media_update(media_data, reason))
        self._send_tasks.add(task)
        task.add_done_callback(self._send_tasks.discard)

    async def broadcast_media_update(self, media_data: dict, reason: str = "update"):
        """Push a media_update to all connected WebSocket clients."""
        if not self._ws_clients:
            return

        message = json.dumps({
            "type": "media_update",
            "reason": reason,
            "data": media_data,
        })

        disconnected = set()
        for ws in self._ws_clients:
            try:
                await ws.send_str(message)
            except (ConnectionError, RuntimeError):
                disconnected.add(ws)
        self._ws_clients -= disconnected

        if reason != "tick":
            log.info("Broadcast media update to %d clients: %s",
                     len(self._ws_clients), reason)

    async def _handle_ws(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)

        self._ws_clients.add(ws)
        log.info("WebSocket client connected (%d total)", len(self._ws_clients))

        try:
            await ws.send_json({
                "type": "media_update",
                "reason": "client_connect",
                "data": self.widget.media_data(),
            })
            # Push-only; incoming messages are ignored
            async for _ in ws:
                pass
        finally:
            self._ws_clients.discard(ws)
            log.info("WebSocket client disconnected (%d remaining)",
                     len(self._ws_clients))

        return ws

    # ── HTTP route handlers ──

    async def _run_command(self, coro) -> web.Response:
        try:
            ok = await coro
        except InvalidOperation as e:
            return web.json_response(
                {"status": "error", "error": str(e)},
                status=400, headers=_cors_headers())
        return web.json_response(
            {"status": "ok" if ok else "error"},
            headers=_cors_headers())

    async def _handle_status(self, request: web.Request) -> web.Response:
        status = self.widget.media_data()
        status["device"] = self.widget.base_url
        status["ws_clients"] = len(self._ws_clients)
        return web.json_response(status, headers=_cors_headers())

    async def _handle_play(self, request: web.Request) -> web.Response:
        data = await _json_body(request)
        return await self._run_command(self.widget.commands.play(url=data.get("url")))

    async def _handle_pause(self, request: web.Request) -> web.Response:
        data = await _json_body(request)
        return await self._run_command(
            self.widget.commands.pause(toggle=bool(data.get("toggle"))))

    async def _handle_play_pause(self, request: web.Request) -> web.Response:
        return await self._run_command(self.widget.commands.play_pause())

    async def _handle_stop(self, request: web.Request) -> web.Response:
        return await self._run_command(self.widget.commands.stop())

    async def _handle_prev(self, request: web.Request) -> web.Response:
        return await self._run_command(self.widget.commands.prev())

    async def _handle_next(self, request: web.Request) -> web.Response:
        return await self._run_command(self.widget.commands.next())

    async def _handle_seek(self, request: web.Request) -> web.Response:
        data = await _json_body(request)
        if "percent" in data:
            return await self._run_command(
                self.widget.commands.seek_percent(data["percent"]))
        return await self._run_command(self.widget.commands.seek(data.get("seconds")))

    async def _handle_volume(self, request: web.Request) -> web.Response:
        data = await _json_body(request)
        return await self._run_command(self.widget.commands.set_volume(data.get("level")))

    async def _handle_mute(self, request: web.Request) -> web.Response:
        data = await _json_body(request)
        return await self._run_command(
            self.widget.commands.set_mute(bool(data.get("mute", True))))
