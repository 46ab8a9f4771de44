"""Reconciliation, classification and run orchestration for the media stream checksum tool."""

from .reconcile import ReconcileState, Reconciled, reconcile
from .modes import Mode, WriteIntent, Decision, classify
from .verifier import RunConfig, VerificationEngine

__all__ = [
    'ReconcileState',
    'Reconciled',
    'reconcile',
    'Mode',
    'WriteIntent',
    'Decision',
    'classify',
    'RunConfig',
    'VerificationEngine',
]
