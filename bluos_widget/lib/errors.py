# BeoSound 5c
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Error taxonomy for the BluOS widget.

  NetworkError      — device unreachable, timed out or answered non-2xx.
                      The sync loop backs off and retries.
  ParseError        — the device answered but the payload made no sense.
                      Treated like NetworkError by the loop, kept separate
                      so logs can tell the two apart.
  InvalidOperation  — a command was rejected before anything was sent
                      (seek without a known duration, volume out of range).
"""


class WidgetError(Exception):
    """Base class for everything the widget raises on purpose."""


class NetworkError(WidgetError):
    pass


class ParseError(WidgetError):
    pass


class InvalidOperation(WidgetError):
    pass
