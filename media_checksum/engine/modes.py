#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Operating modes and the pure per-file decision table.

``classify`` never touches storage: it maps a freshly hashed record and the
reconciled old record onto an outcome and, for WRITE, the write to perform.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..models.outcome import Outcome
from ..models.record import Record
from .reconcile import Reconciled


class Mode(str, Enum):
    WRITE = "write"
    TEST = "test"
    COMPARE = "compare"
    PRINT = "print"
    DUMP = "dump"
    DUPLICATES = "duplicates"

    @property
    def hashes(self) -> bool:
        """Whether the mode hashes file content now."""
        return self in (Mode.WRITE, Mode.TEST, Mode.COMPARE)


@dataclass(frozen=True)
class WriteIntent:
    """A record to persist, and where."""
    record: Record
    to_xattr: bool = True
    to_ledger: bool = True


@dataclass(frozen=True)
class Decision:
    outcome: Outcome
    write: Optional[WriteIntent] = None


def _compare(new: Record, reconciled: Reconciled) -> Outcome:
    if reconciled.conflict:
        return Outcome.CONFLICT
    if reconciled.canonical is None:
        return Outcome.NOT_WRITTEN
    if new == reconciled.canonical:
        return Outcome.OK
    return Outcome.CHANGED


def classify_write(new: Record, reconciled: Reconciled) -> Decision:
    """WRITE always supersedes what was stored, in both backends."""
    return Decision(_compare(new, reconciled), WriteIntent(new))


def classify_test(new: Record, reconciled: Reconciled) -> Decision:
    return Decision(_compare(new, reconciled))


def classify_compare(new: Optional[Record], reconciled: Reconciled, exists: bool = True) -> Decision:
    """Like TEST, but a tracked file that is gone from disk is ORPHANED."""
    if not exists and reconciled.tracked:
        return Decision(Outcome.ORPHANED)
    if new is None:
        raise ValueError("A record is required for a file present on disk")
    return Decision(_compare(new, reconciled))


def classify(mode: Mode, new: Optional[Record], reconciled: Reconciled, exists: bool = True) -> Decision:
    """Dispatch to the decision function of a hashing mode."""
    if mode is Mode.WRITE:
        return classify_write(new, reconciled)
    if mode is Mode.TEST:
        return classify_test(new, reconciled)
    if mode is Mode.COMPARE:
        return classify_compare(new, reconciled, exists)
    raise ValueError(f"Mode {mode.value} does not classify hashed files")
