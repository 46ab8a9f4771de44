#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Storage backend interface for the media stream checksum tool.
"""

from enum import Enum
from typing import Optional

from ..models.record import Record


class Backend(str, Enum):
    """Identifies one of the two record stores."""
    XATTR = "xattr"
    LEDGER = "ledger"


class StorageBackend:
    """Persists and retrieves records keyed by file path."""

    backend: Backend

    def read(self, path: str) -> Optional[Record]:
        """Return the stored record for ``path``, or None if untracked."""
        raise NotImplementedError

    def write(self, path: str, record: Record) -> None:
        """Store ``record`` for ``path``, replacing any previous one."""
        raise NotImplementedError

    def remove(self, path: str) -> None:
        """Forget the record for ``path``. Missing records are not an error."""
        raise NotImplementedError
