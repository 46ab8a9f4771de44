#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Per-file outcomes and run-level reports for the media stream checksum tool.
"""

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .record import Record


class Outcome(str, Enum):
    """Classification of one file in a run."""
    OK = "OK"
    CHANGED = "CHANGED"
    CONFLICT = "CONFLICT"
    NOT_WRITTEN = "NOT_WRITTEN"
    ORPHANED = "ORPHANED"
    DECODE_ERROR = "DECODE_ERROR"
    UNSUPPORTED_STREAM = "UNSUPPORTED_STREAM"


HASH_FAILURES = {Outcome.DECODE_ERROR, Outcome.UNSUPPORTED_STREAM}


@dataclass
class FileResult:
    """Outcome for one file plus the records that produced it."""
    path: str
    outcome: Outcome
    new: Optional[Record] = None
    old: Optional[Record] = None
    message: Optional[str] = None
    written: bool = False
    write_failed: bool = False
    renamed_from: Optional[str] = None
    write_intent: Optional[Any] = field(default=None, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"path": self.path, "outcome": self.outcome.value}
        if self.message:
            data["message"] = self.message
        if self.new is not None:
            data["new"] = [s.to_dict() for s in self.new.streams]
        if self.old is not None:
            data["old"] = [s.to_dict() for s in self.old.streams]
        if self.written:
            data["written"] = True
        if self.write_failed:
            data["write_failed"] = True
        if self.renamed_from:
            data["renamed_from"] = self.renamed_from
        return data


@dataclass
class RunReport:
    """Aggregated per-file results of one run, in input order."""
    mode: str
    results: List[FileResult] = field(default_factory=list)
    pruned: List[str] = field(default_factory=list)
    ledger_written: bool = False
    xattr_available: bool = True

    def counts(self) -> Dict[str, int]:
        counter = Counter(r.outcome.value for r in self.results)
        return {o.value: counter[o.value] for o in Outcome if counter[o.value]}

    @property
    def write_failures(self) -> int:
        return sum(1 for r in self.results if r.write_failed)

    def is_clean(self) -> bool:
        """True when the run found nothing to complain about."""
        if self.mode == "write":
            return self.write_failures == 0 and not any(
                r.outcome in HASH_FAILURES for r in self.results
            )
        return all(r.outcome is Outcome.OK for r in self.results)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode,
            "clean": self.is_clean(),
            "counts": self.counts(),
            "files": [r.to_dict() for r in self.results],
            "pruned": list(self.pruned),
            "ledger_written": self.ledger_written,
            "xattr_available": self.xattr_available,
        }
