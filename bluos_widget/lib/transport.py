# BeoSound 5c
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
HTTP transport for the BluOS control API (port 11000, all GET).

Usage:
    transport = BluOSTransport("192.168.1.81")
    await transport.start()
    xml = await transport.send("/Status", {"timeout": "100", "etag": etag})
    await transport.stop()

Connection refused, timeouts and non-2xx answers are raised as
NetworkError; a body that will not decode as text is a ParseError.
"""

import asyncio
import logging

import aiohttp

from .errors import NetworkError, ParseError

logger = logging.getLogger(__name__)

BLUOS_PORT = 11000
DEFAULT_TIMEOUT = 10  # seconds, for control requests


class BluOSTransport:
    """Sends GET requests to one BluOS device and returns the body as text."""

    def __init__(self, host: str, port: int = BLUOS_PORT,
                 session: aiohttp.ClientSession | None = None,
                 timeout: float = DEFAULT_TIMEOUT):
        self.host = host
        self.port = port
        self.base_url = f"http://{host}:{port}"
        self.timeout = timeout
        self._session = session
        self._owns_session = False

    @property
    def session(self) -> aiohttp.ClientSession | None:
        return self._session

    async def start(self):
        """Open a session unless one was handed in at construction."""
        if self._session is None:
            self._session = aiohttp.ClientSession(
                headers={"User-Agent": "BeoSound5c-BluOSWidget/1.0"},
            )
            self._owns_session = True
            logger.info("BluOS transport ready -> %s", self.base_url)

    async def stop(self):
        """Close the session if we opened it."""
        if self._session and self._owns_session:
            await self._session.close()
        self._session = None
        self._owns_session = False

    async def send(self, path: str, query: dict | None = None,
                   timeout: float | None = None) -> str:
        """GET ``{base_url}{path}?{query}`` and return the response text."""
        if self._session is None:
            raise NetworkError(f"transport for {self.base_url} not started")

        url = f"{self.base_url}{path}"
        params = {k: str(v) for k, v in (query or {}).items()}
        total = timeout if timeout is not None else self.timeout
        try:
            async with self._session.get(
                url, params=params,
                timeout=aiohttp.ClientTimeout(total=total),
            ) as resp:
                resp.raise_for_status()
                text = await resp.text()
                logger.debug("GET %s %s -> HTTP %d (%d bytes)",
                             path, params, resp.status, len(text))
                return text
        except asyncio.TimeoutError as e:
            raise NetworkError(f"{path} timed out after {total:.0f}s") from e
        except aiohttp.ClientResponseError as e:
            raise NetworkError(f"{path} returned HTTP {e.status}") from e
        except aiohttp.ClientError as e:
            raise NetworkError(f"{path} failed: {e}") from e
        except UnicodeDecodeError as e:
            raise ParseError(f"{path} returned undecodable text: {e}") from e
