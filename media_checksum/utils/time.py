#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Time utility functions for the media stream checksum tool.
"""

from datetime import datetime, timezone


def utc_now_str() -> str:
    """Return current UTC time in ISO-8601 format with 'Z'."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def format_mtime(mtime: float) -> str:
    """Render a POSIX modification time as UTC ISO-8601."""
    return datetime.fromtimestamp(mtime, timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
