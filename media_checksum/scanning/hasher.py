#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Per-file stream hashing for the media stream checksum tool.
"""

import logging
import os
from typing import List, Optional, Sequence

from ..config import DEFAULT_CHUNK_SIZE
from ..errors import DecodeError, UnsupportedStreamError
from ..models.record import Record, StreamDigest, StreamSelection
from .digest import new_hasher, normalize_algorithms
from .source import StreamSource

logger = logging.getLogger(__name__)


class HashEngine:
    """Hashes every selected stream of one file into a Record.

    Each stream is read exactly once; all requested algorithms are updated
    from the same chunks. Nothing is written to any storage backend.
    """

    def __init__(self, source: StreamSource, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.source = source
        self.chunk_size = chunk_size

    def hash_file(self, path: str, decode: bool, selection: StreamSelection,
                  algorithms: Sequence[str], sample_bits: Optional[int] = None) -> Record:
        """Compute a fresh Record for ``path``.

        ``sample_bits`` pins the PCM sample width of decoded audio.

        Raises:
            DecodeError: the file is missing or the source failed
            UnsupportedStreamError: no stream matched ``selection``
        """
        algos = normalize_algorithms(algorithms)
        try:
            stat = os.stat(path)
        except OSError as e:
            raise DecodeError(f"Could not stat {path}: {e.strerror or e}", path=path) from e

        readers = self.source.get_streams(path, decode, selection, sample_bits=sample_bits)
        if not readers:
            raise UnsupportedStreamError(
                f"No {selection.value} streams found in {path}", path=path
            )

        digests: List[StreamDigest] = []
        for reader in readers:
            hashers = [new_hasher(name) for name in algos]
            for chunk in reader.chunks(self.chunk_size):
                for hasher in hashers:
                    hasher.update(chunk)
            for name, hasher in zip(algos, hashers):
                digests.append(StreamDigest(
                    stream_index=reader.index,
                    stream_kind=reader.kind,
                    algorithm=name,
                    digest=hasher.digest(),
                ))

        logger.debug("Hashed %d streams of %s", len(readers), path)
        return Record(
            streams=tuple(digests),
            path=path,
            file_size=stat.st_size,
            modify_time=stat.st_mtime,
            decoded=decode,
            selection=selection,
            sample_bits=sample_bits,
        )
