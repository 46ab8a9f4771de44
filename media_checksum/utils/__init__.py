"""Utility functions for the media stream checksum tool."""

from .time import utc_now_str, format_mtime
from .path import ensure_dir, tmp_sibling

__all__ = ['utc_now_str', 'format_mtime', 'ensure_dir', 'tmp_sibling']
