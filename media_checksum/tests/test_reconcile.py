#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Tests for reconciling the extended attribute and ledger records of a file.
"""

import pytest

from media_checksum.engine.modes import Mode, classify
from media_checksum.engine.reconcile import ReconcileState, reconcile
from media_checksum.models.outcome import Outcome
from media_checksum.storage.base import Backend
from media_checksum.tests.fixtures.media import make_record

OLD = make_record("/a.mkv", (0, "audio", "md5", b"\x01"))
OTHER = make_record("/a.mkv", (0, "audio", "md5", b"\x02"))


@pytest.mark.parametrize("xattr,ledger,state,canonical", [
    (None, None, ReconcileState.NEITHER, None),
    (OLD, None, ReconcileState.XATTR_ONLY, OLD),
    (None, OLD, ReconcileState.LEDGER_ONLY, OLD),
    (OLD, OLD, ReconcileState.BOTH_AGREE, OLD),
    (OTHER, OLD, ReconcileState.BOTH_CONFLICT, OLD),
])
def test_states(xattr, ledger, state, canonical):
    result = reconcile(xattr, ledger)
    assert result.state is state
    assert result.canonical is canonical


def test_conflict_prefers_configured_backend():
    assert reconcile(OTHER, OLD, prefer=Backend.LEDGER).canonical is OLD
    assert reconcile(OTHER, OLD, prefer=Backend.XATTR).canonical is OTHER


def test_conflict_keeps_both_records():
    result = reconcile(OTHER, OLD)
    assert result.conflict
    assert result.xattr_record is OTHER
    assert result.ledger_record is OLD


class TestClassify:
    """Every combination of new hash and stored state."""

    @pytest.mark.parametrize("mode", [Mode.TEST, Mode.COMPARE])
    @pytest.mark.parametrize("xattr,ledger,new,expected", [
        (None, None, OLD, Outcome.NOT_WRITTEN),
        (OLD, None, OLD, Outcome.OK),
        (None, OLD, OLD, Outcome.OK),
        (OLD, OLD, OLD, Outcome.OK),
        (OLD, OLD, OTHER, Outcome.CHANGED),
        (None, OLD, OTHER, Outcome.CHANGED),
        (OTHER, OLD, OLD, Outcome.CONFLICT),
        (OTHER, OLD, OTHER, Outcome.CONFLICT),
    ])
    def test_verify_modes(self, mode, xattr, ledger, new, expected):
        decision = classify(mode, new, reconcile(xattr, ledger))
        assert decision.outcome is expected
        assert decision.write is None

    @pytest.mark.parametrize("xattr,ledger,expected", [
        (None, None, Outcome.NOT_WRITTEN),
        (OLD, OLD, Outcome.OK),
        (OTHER, OTHER, Outcome.CHANGED),
        (OTHER, OLD, Outcome.CONFLICT),
    ])
    def test_write_always_writes_new(self, xattr, ledger, expected):
        decision = classify(Mode.WRITE, OLD, reconcile(xattr, ledger))
        assert decision.outcome is expected
        assert decision.write.record is OLD
        assert decision.write.to_xattr and decision.write.to_ledger

    def test_compare_orphaned(self):
        decision = classify(Mode.COMPARE, None, reconcile(None, OLD), exists=False)
        assert decision.outcome is Outcome.ORPHANED

    def test_read_only_modes_rejected(self):
        with pytest.raises(ValueError):
            classify(Mode.PRINT, OLD, reconcile(None, None))
