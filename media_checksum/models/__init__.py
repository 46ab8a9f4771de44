"""Data models for the media stream checksum tool."""

from .record import Record, StreamDigest, StreamKind, StreamSelection
from .outcome import Outcome, FileResult, RunReport

__all__ = [
    'Record', 'StreamDigest', 'StreamKind', 'StreamSelection',
    'Outcome', 'FileResult', 'RunReport',
]
