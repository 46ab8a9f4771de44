#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
JSON-lines ledger store for the media stream checksum tool.

The ledger is a sidecar text document: a fixed comment header followed by one
compact JSON record per line, in insertion order. It is loaded once per run,
edited in memory, and committed at most once through a temp file and an
atomic rename.
"""

import logging
import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ..config import LEDGER_HEADER
from ..errors import LedgerError, RecordFormatError, WriteError
from ..models.record import Record
from ..utils.path import tmp_sibling
from .base import Backend, StorageBackend

logger = logging.getLogger(__name__)


class LedgerStore(StorageBackend):
    """Ordered record set persisted as a single document."""

    backend = Backend.LEDGER

    def __init__(self, ledger_path: Path):
        self.ledger_path = Path(ledger_path)
        self._records: Dict[str, Record] = {}
        self._raw_text = ""
        self._loaded = False
        self._dirty = False

    # ------------------------------------------------------------------
    # loading
    # ------------------------------------------------------------------
    def load(self) -> 'LedgerStore':
        """Read the whole document. A missing ledger is an empty one."""
        self._records.clear()
        self._dirty = False
        try:
            self._raw_text = self.ledger_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            self._raw_text = ""
        except (OSError, UnicodeDecodeError) as e:
            raise LedgerError(f"Could not read ledger {self.ledger_path}: {e}") from e

        skipped = 0
        for lineno, line in enumerate(self._raw_text.splitlines(), start=1):
            line = line.strip()
            if not line or line.startswith("//"):
                continue
            try:
                record = Record.from_json(line)
            except RecordFormatError as e:
                skipped += 1
                logger.warning("Skipping ledger line %d of %s: %s", lineno, self.ledger_path, e)
                continue
            # A later line for the same path supersedes an earlier one in place
            self._records[record.path] = record

        self._loaded = True
        logger.debug("Loaded %d records from %s (%d skipped)", len(self._records), self.ledger_path, skipped)
        return self

    def _ensure_loaded(self):
        if not self._loaded:
            self.load()

    # ------------------------------------------------------------------
    # StorageBackend
    # ------------------------------------------------------------------
    def read(self, path: str) -> Optional[Record]:
        self._ensure_loaded()
        return self._records.get(path)

    def write(self, path: str, record: Record) -> None:
        """Stage ``record``; an existing entry keeps its position."""
        self._ensure_loaded()
        self._records[path] = record.with_path(path)
        self._dirty = True

    def remove(self, path: str) -> None:
        self._ensure_loaded()
        if self._records.pop(path, None) is not None:
            self._dirty = True

    # ------------------------------------------------------------------
    # whole-document operations
    # ------------------------------------------------------------------
    def records(self) -> List[Record]:
        """All records in insertion order."""
        self._ensure_loaded()
        return list(self._records.values())

    def paths(self) -> List[str]:
        self._ensure_loaded()
        return list(self._records.keys())

    def __len__(self) -> int:
        self._ensure_loaded()
        return len(self._records)

    @property
    def exists(self) -> bool:
        return self.ledger_path.exists()

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def raw_text(self) -> str:
        """The document exactly as it was read from disk."""
        self._ensure_loaded()
        return self._raw_text

    def prune(self, keep: Optional[Iterable[str]] = None) -> List[str]:
        """Drop entries whose files no longer exist on disk.

        Paths listed in ``keep`` are never pruned. Returns the removed paths in
        ledger order.
        """
        self._ensure_loaded()
        keep_set = set(keep or ())
        removed = [
            path for path in self._records
            if path not in keep_set and not os.path.exists(path)
        ]
        for path in removed:
            del self._records[path]
        if removed:
            self._dirty = True
        return removed

    def render(self, records: Optional[Iterable[Record]] = None) -> str:
        """Serialize ``records`` (default: this ledger) as a ledger document."""
        if records is None:
            records = self.records()
        lines = [LEDGER_HEADER]
        lines.extend(record.to_json() for record in records)
        return "\n".join(lines) + "\n"

    def check_writable(self) -> None:
        """Fail before any work is done if the ledger cannot be replaced."""
        target = self.ledger_path
        directory = target.parent if str(target.parent) else Path(".")
        if not directory.is_dir():
            raise WriteError(f"Ledger directory does not exist: {directory}")
        if not os.access(directory, os.W_OK | os.X_OK):
            raise WriteError(f"Permission denied writing ledger directory: {directory}")
        if target.exists() and not os.access(target, os.W_OK):
            raise WriteError(f"Permission denied writing ledger: {target}")

    def commit(self) -> bool:
        """Write the document if anything changed. Returns True if written."""
        self._ensure_loaded()
        if not self._dirty:
            return False
        text = self.render()
        self.write_document(self.ledger_path, text)
        self._raw_text = text
        self._dirty = False
        logger.info("Wrote %d records to %s", len(self._records), self.ledger_path)
        return True

    @staticmethod
    def write_document(target: Path, text: str, overwrite: bool = True) -> None:
        """Atomically replace ``target`` with ``text``."""
        target = Path(target)
        if not overwrite and target.exists():
            raise WriteError(f"Refusing to overwrite existing file: {target}")
        tmp_path = tmp_sibling(target)
        try:
            with tmp_path.open("w", encoding="utf-8", newline="\n") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, target)
        except OSError as e:
            try:
                tmp_path.unlink()
            except FileNotFoundError:
                pass
            raise WriteError(f"Could not write {target}: {e}") from e
