# BeoSound 5c
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Cover artwork helpers.

The widget paints its background with the dominant colour of the current
cover.  Fetching is async (aiohttp); decoding and quantising runs in a
small thread pool since Pillow is CPU-bound.
"""

import asyncio
import logging
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
from io import BytesIO

import aiohttp
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

ARTWORK_CACHE_SIZE = 50
SAMPLE_SIZE = (64, 64)
PALETTE_COLORS = 5

_artwork_executor = ThreadPoolExecutor(max_workers=2)


class ArtworkCache:
    """LRU cache of processed artwork (URL -> info dict)."""

    def __init__(self, max_size=ARTWORK_CACHE_SIZE):
        self.max_size = max_size
        self._cache: OrderedDict[str, dict] = OrderedDict()

    def get(self, url: str):
        if url in self._cache:
            self._cache.move_to_end(url)
            return self._cache[url]
        return None

    def put(self, url: str, data: dict):
        if url in self._cache:
            self._cache.move_to_end(url)
        elif len(self._cache) >= self.max_size:
            self._cache.popitem(last=False)
        self._cache[url] = data

    def __contains__(self, url: str):
        return url in self._cache

    def __len__(self):
        return len(self._cache)


def dominant_color(image_bytes: bytes) -> dict | None:
    """Return ``{'color': (r, g, b), 'size': (w, h)}`` for an encoded image.

    The image is shrunk and quantised to a small palette; the most frequent
    palette entry wins.  Returns None if Pillow can't read the bytes.
    """
    try:
        image = Image.open(BytesIO(image_bytes))
        size = image.size
        image = image.convert("RGB")
        image.thumbnail(SAMPLE_SIZE)
        quantized = image.quantize(colors=PALETTE_COLORS)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.warning("Could not read artwork: %s", e)
        return None

    colors = quantized.getcolors()
    if not colors:
        return None
    _, index = max(colors)
    palette = quantized.getpalette()
    r, g, b = palette[index * 3:index * 3 + 3]
    return {"color": (r, g, b), "size": size}


def css_color(color) -> str | None:
    """(r, g, b) -> 'rgb(r,g,b)' for the widget's --player-background-color."""
    if not color:
        return None
    return "rgb({})".format(",".join(str(c) for c in color))


async def fetch_artwork(session: aiohttp.ClientSession, url: str,
                        cache: ArtworkCache | None = None) -> dict | None:
    """Fetch *url* and return its dominant colour info, or None on failure."""
    if cache is not None:
        cached = cache.get(url)
        if cached is not None:
            logger.debug("Artwork cache hit for %s", url)
            return cached

    try:
        async with session.get(url, timeout=aiohttp.ClientTimeout(total=10)) as resp:
            resp.raise_for_status()
            image_bytes = await resp.read()
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        logger.warning("Error fetching artwork %s: %s", url, e)
        return None

    if not image_bytes:
        logger.warning("Artwork URL returned 0 bytes")
        return None

    loop = asyncio.get_running_loop()
    result = await loop.run_in_executor(_artwork_executor, dominant_color, image_bytes)
    if result and cache is not None:
        cache.put(url, result)
        logger.debug("Cached artwork for %s (%d items in cache)", url, len(cache))
    return result
