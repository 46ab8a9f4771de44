#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Reconciliation of the two record stores for one file.

Both backends are always read. Having a record in only one of them is a
normal state; disagreeing records are a conflict, reported to the caller
while the preferred backend supplies the canonical record.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..models.record import Record
from ..storage.base import Backend


class ReconcileState(str, Enum):
    NEITHER = "neither"
    XATTR_ONLY = "xattr_only"
    LEDGER_ONLY = "ledger_only"
    BOTH_AGREE = "both_agree"
    BOTH_CONFLICT = "both_conflict"


@dataclass(frozen=True)
class Reconciled:
    """Canonical old record for a file and how it was chosen."""
    state: ReconcileState
    canonical: Optional[Record] = None
    xattr_record: Optional[Record] = None
    ledger_record: Optional[Record] = None

    @property
    def conflict(self) -> bool:
        return self.state is ReconcileState.BOTH_CONFLICT

    @property
    def tracked(self) -> bool:
        return self.canonical is not None


def reconcile(xattr_record: Optional[Record], ledger_record: Optional[Record],
              prefer: Backend = Backend.LEDGER) -> Reconciled:
    """Pick the canonical record from what each backend holds."""
    if xattr_record is None and ledger_record is None:
        return Reconciled(ReconcileState.NEITHER)
    if ledger_record is None:
        return Reconciled(ReconcileState.XATTR_ONLY, xattr_record, xattr_record, None)
    if xattr_record is None:
        return Reconciled(ReconcileState.LEDGER_ONLY, ledger_record, None, ledger_record)
    if xattr_record == ledger_record:
        return Reconciled(ReconcileState.BOTH_AGREE, ledger_record, xattr_record, ledger_record)

    canonical = ledger_record if prefer is Backend.LEDGER else xattr_record
    return Reconciled(ReconcileState.BOTH_CONFLICT, canonical, xattr_record, ledger_record)
