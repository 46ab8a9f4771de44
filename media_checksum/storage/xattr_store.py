#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Extended attribute record store for the media stream checksum tool.

Each file carries at most one serialized record under a fixed attribute key,
so the record follows the file through renames and moves on the same
filesystem.
"""

import errno
import logging
import os
from typing import Optional

from ..config import XATTR_KEY
from ..errors import RecordFormatError, StorageError, UnsupportedFilesystemError, WriteError
from ..models.record import Record
from .base import Backend, StorageBackend

logger = logging.getLogger(__name__)

_UNSUPPORTED_ERRNOS = {errno.ENOTSUP, errno.EOPNOTSUPP, errno.ENOSYS}
_MISSING_ERRNOS = {getattr(errno, "ENODATA", errno.ENOENT), getattr(errno, "ENOATTR", errno.ENOENT), errno.ENOENT}


class XattrStore(StorageBackend):
    """Stores one record per file in the file's extended attributes."""

    backend = Backend.XATTR

    def __init__(self, key: str = XATTR_KEY):
        self.key = key
        self.available = hasattr(os, "getxattr")
        self._warned = False

    def _unsupported(self, path: str, reason: str) -> UnsupportedFilesystemError:
        self.available = False
        return UnsupportedFilesystemError(f"Extended attributes unavailable for {path}: {reason}")

    def warn_unavailable(self, exc: UnsupportedFilesystemError) -> None:
        """Log the degrade-to-ledger warning once per run."""
        if not self._warned:
            logger.warning("%s; continuing with the ledger only", exc)
            self._warned = True

    def read(self, path: str) -> Optional[Record]:
        if not hasattr(os, "getxattr"):
            raise self._unsupported(path, "platform has no xattr support")
        try:
            raw = os.getxattr(path, self.key)
        except OSError as e:
            if e.errno in _MISSING_ERRNOS:
                return None
            if e.errno in _UNSUPPORTED_ERRNOS:
                raise self._unsupported(path, e.strerror) from e
            raise StorageError(f"Could not read extended attribute of {path}: {e}") from e

        try:
            record = Record.from_json(raw.decode("utf-8"))
        except (UnicodeDecodeError, RecordFormatError) as e:
            logger.warning("Ignoring unreadable extended attribute on %s: %s", path, e)
            return None
        # The stored path is blank; the file's current name is the truth
        return record.with_path(path)

    def write(self, path: str, record: Record) -> None:
        if not hasattr(os, "setxattr"):
            raise self._unsupported(path, "platform has no xattr support")
        payload = record.with_path("").to_json().encode("utf-8")
        try:
            os.setxattr(path, self.key, payload)
        except OSError as e:
            if e.errno in _UNSUPPORTED_ERRNOS:
                raise self._unsupported(path, e.strerror) from e
            raise WriteError(f"Could not write extended attribute of {path}: {e}") from e
        logger.debug("Wrote extended attribute %s on %s", self.key, path)

    def remove(self, path: str) -> None:
        if not hasattr(os, "removexattr"):
            raise self._unsupported(path, "platform has no xattr support")
        try:
            os.removexattr(path, self.key)
        except OSError as e:
            if e.errno in _MISSING_ERRNOS:
                return
            if e.errno in _UNSUPPORTED_ERRNOS:
                raise self._unsupported(path, e.strerror) from e
            raise WriteError(f"Could not remove extended attribute of {path}: {e}") from e
