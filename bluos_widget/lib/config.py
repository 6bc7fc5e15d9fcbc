# BeoSound 5c
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Configuration loader for the BluOS widget service.

Loads a single JSON config file.  Search order:
  1. $BLUOS_WIDGET_CONFIG              (explicit override)
  2. /etc/bluos-widget/config.json     (deployed)
  3. config.json                       (CWD — handy for local dev)

Usage:
    from bluos_widget.lib.config import cfg

    player_ip    = cfg("player", "ip", default="")
    poll_timeout = cfg("poll", "timeout", default=100)
    server       = cfg("server")  # returns the whole dict
"""

import json
import logging
import os

logger = logging.getLogger(__name__)

_config: dict | None = None

# BluOS refuses (or misbehaves with) long-poll timeouts below this
MIN_POLL_TIMEOUT = 10
RECOMMENDED_POLL_TIMEOUT = 60


def _search_paths() -> list[str]:
    paths = [
        "/etc/bluos-widget/config.json",
        "config.json",
    ]
    override = os.environ.get("BLUOS_WIDGET_CONFIG")
    if override:
        paths.insert(0, override)
    return paths


def _validate(config: dict, path: str) -> None:
    """Warn about missing or suspicious config values."""
    player = config.get("player")
    if not isinstance(player, dict):
        player = {}
    if not player.get("ip"):
        logger.warning("Config %s: missing player.ip — widget has no device to watch", path)
    port = player.get("port", 11000)
    if not isinstance(port, int) or not 0 < port < 65536:
        logger.warning("Config %s: player.port '%s' is not a valid port", path, port)
    poll = config.get("poll")
    if not isinstance(poll, dict):
        poll = {}
    timeout = poll.get("timeout", 100)
    if not isinstance(timeout, (int, float)):
        logger.warning("Config %s: poll.timeout '%s' is not a number", path, timeout)
    elif timeout < MIN_POLL_TIMEOUT:
        logger.error("Config %s: poll.timeout %s is below the protocol minimum of %ds",
                     path, timeout, MIN_POLL_TIMEOUT)
    elif timeout < RECOMMENDED_POLL_TIMEOUT:
        logger.warning("Config %s: poll.timeout %s is below the recommended %ds",
                       path, timeout, RECOMMENDED_POLL_TIMEOUT)


def _read_file(path: str) -> dict | None:
    """Parse one candidate file. None if it is missing or unusable."""
    try:
        with open(path) as f:
            data = json.load(f)
    except FileNotFoundError:
        return None
    except json.JSONDecodeError as e:
        logger.error("Invalid JSON in %s: %s", path, e)
        return None
    if not isinstance(data, dict):
        logger.error("Config %s: top level must be an object, got %s",
                     path, type(data).__name__)
        return None
    return data


def load_config() -> dict:
    """Return the widget config, reading it from disk on first use."""
    global _config
    if _config is None:
        for path in _search_paths():
            data = _read_file(path)
            if data is not None:
                logger.info("Config loaded from %s", path)
                _validate(data, path)
                _config = data
                break
        else:
            logger.warning("No widget config found — running on defaults")
            _config = {}
    return _config


def cfg(section: str, key: str | None = None, *, default=None):
    """Look up ``config[section]`` or ``config[section][key]``.

    Missing sections, missing keys and explicit nulls all give *default*.
    """
    value = load_config().get(section)
    if key is not None:
        value = value.get(key) if isinstance(value, dict) else None
    return default if value is None else value


def reload_config():
    """Drop the cached config and read it again."""
    global _config
    _config = None
    return load_config()
