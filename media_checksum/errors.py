#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Exception hierarchy for the media stream checksum tool.

Per-file errors (decode failures, unmatched stream selections) are folded into
that file's outcome by the scheduler. Storage errors that make the whole run
unsafe propagate up to ``main``.
"""

from typing import Optional


class MediaChecksumError(Exception):
    """Base class for all errors raised by this package."""


class DecodeError(MediaChecksumError):
    """The stream source could not produce bytes for a file."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class UnsupportedStreamError(MediaChecksumError):
    """No stream in the container matched the selection policy."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class UnknownAlgorithmError(MediaChecksumError):
    """A requested digest algorithm is not registered."""


class RecordFormatError(MediaChecksumError):
    """A serialized record could not be parsed."""


class StorageError(MediaChecksumError):
    """A storage backend failed to read or write."""


class UnsupportedFilesystemError(StorageError):
    """Extended attributes are not supported for this file or platform."""


class WriteError(StorageError):
    """A storage backend could not persist a record."""


class LedgerError(StorageError):
    """The ledger document could not be opened."""
