#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Global configuration and constants for the media stream checksum tool.
"""

import os
from typing import Set, Tuple

# Record format
RECORD_VERSION = 1

# Storage locations
DEFAULT_LEDGER_NAME = "media_checksum_ledger.jsonl"
LEDGER_HEADER = "// media-checksum ledger, one JSON record per line"
LEDGER_TMP_SUFFIX = ".tmp"
XATTR_KEY = "user.media_checksum.record"

# Hashing defaults (can be overridden by CLI)
DEFAULT_HASH_ALGOS: Tuple[str, ...] = ("murmur3",)
DEFAULT_CHUNK_SIZE = 1024 * 1024
DEFAULT_WORKERS = os.cpu_count() or 1
DEFAULT_FFMPEG_TIMEOUT = 0
# PCM width for decoded audio without a recorded sample width
DEFAULT_SAMPLE_BITS = 32

# FLAC import
FLAC_EXT = ".flac"
FLAC_UNSET_MD5 = "0" * 32

# Environment overrides
ENV_NO_XATTR = "MEDIA_CHECKSUM_NO_XATTR"
ENV_FFMPEG_TIMEOUT = "MEDIA_CHECKSUM_FFMPEG_TIMEOUT"

# Exit codes
EXIT_CLEAN = 0
EXIT_ERROR = 1
EXIT_DISORDER = 2
EXIT_INTERRUPTED = 130

# File type categories
AUDIO_EXT: Set[str] = {
    ".aac", ".ac3", ".aif", ".aiff", ".alac", ".ape", ".dts", ".flac", ".m4a",
    ".mka", ".mp2", ".mp3", ".oga", ".ogg", ".opus", ".tta", ".wav", ".wma", ".wv",
}
VIDEO_EXT: Set[str] = {
    ".3gp", ".avi", ".flv", ".m2ts", ".m4v", ".mkv", ".mov", ".mp4", ".mpeg",
    ".mpg", ".mts", ".mxf", ".ogv", ".ts", ".vob", ".webm", ".wmv",
}
SUPPORTED_EXT: Set[str] = AUDIO_EXT | VIDEO_EXT
