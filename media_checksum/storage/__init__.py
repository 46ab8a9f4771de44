"""Record storage backends for the media stream checksum tool."""

from .base import Backend, StorageBackend
from .xattr_store import XattrStore
from .ledger import LedgerStore

__all__ = ['Backend', 'StorageBackend', 'XattrStore', 'LedgerStore']
