"""media-checksum - stable checksums of the streams inside media containers."""

__version__ = "1.0.0"
__author__ = "Media Checksum Team"

# Import key classes for convenient top-level access
from .engine import Mode, RunConfig, VerificationEngine, reconcile
from .models import Record, StreamDigest, Outcome, FileResult, RunReport
from .scanning import FFmpegStreamSource, HashEngine, HashScheduler, FileDiscovery
from .storage import LedgerStore, XattrStore

__all__ = [
    # Core classes
    'VerificationEngine',
    'RunConfig',
    'Mode',
    'reconcile',

    # Hashing components
    'FFmpegStreamSource',
    'HashEngine',
    'HashScheduler',
    'FileDiscovery',

    # Storage
    'LedgerStore',
    'XattrStore',

    # Data models
    'Record',
    'StreamDigest',
    'Outcome',
    'FileResult',
    'RunReport',

    # Package metadata
    '__version__',
    '__author__'
]
