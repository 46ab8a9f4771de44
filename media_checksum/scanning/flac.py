#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
FLAC signature import for the media stream checksum tool.

A FLAC file already carries an MD5 of its decoded audio in the STREAMINFO
block. Importing reads that digest with ``metaflac`` instead of decoding
the file, and records it as a decoded audio-only MD5 pinned to the file's
bits per sample so that a later test decodes to the same PCM layout.
"""

import logging
import os
import re
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

from ..config import FLAC_EXT, FLAC_UNSET_MD5
from ..errors import DecodeError, UnsupportedStreamError
from ..models.record import Record, StreamDigest, StreamKind, StreamSelection

logger = logging.getLogger(__name__)

_MD5_RE = re.compile(r"^[0-9a-fA-F]{32}$")
_NOT_A_FLAC = "FLAC__METADATA_CHAIN_STATUS_NOT_A_FLAC_FILE"


class FlacImporter:
    """Builds records from the STREAMINFO MD5 of FLAC files.

    ``hash_file`` mirrors ``HashEngine.hash_file`` so the importer can run
    under the same scheduler. The hashing options are ignored: an imported
    record is always a decoded, audio-only MD5.
    """

    def __init__(self, metaflac: str = "metaflac", timeout: float = 0):
        self.metaflac = metaflac
        self.timeout = timeout or None

    @staticmethod
    def check_tools(metaflac: str = "metaflac") -> None:
        """Raise DecodeError if metaflac is missing from PATH."""
        if shutil.which(metaflac) is None:
            raise DecodeError(f"'{metaflac}' command not found. Make sure '{metaflac}' is in your PATH.")

    def _metaflac(self, path: str, option: str) -> str:
        cmd = [self.metaflac, option, path]
        logger.debug("Running: %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, capture_output=True, timeout=self.timeout, check=False)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise DecodeError(f"metaflac failed for {path}: {e}", path=path) from e
        stderr = result.stderr.decode("utf-8", "replace").strip()
        if _NOT_A_FLAC in stderr:
            raise DecodeError(f"{path} is not a valid FLAC file", path=path)
        if result.returncode != 0:
            raise DecodeError(f"metaflac failed for {path}: {stderr or 'exit code ' + str(result.returncode)}",
                              path=path)
        return result.stdout.decode("utf-8", "replace").strip()

    def read_signature(self, path: str) -> bytes:
        """The STREAMINFO MD5 of ``path`` as raw bytes."""
        md5 = self._metaflac(path, "--show-md5sum")
        if not _MD5_RE.match(md5):
            raise DecodeError(f"metaflac returned an invalid MD5 for {path}: {md5!r}", path=path)
        if md5 == FLAC_UNSET_MD5:
            raise DecodeError(f"{path} has no MD5 signature in its STREAMINFO block", path=path)
        return bytes.fromhex(md5)

    def read_bits_per_sample(self, path: str) -> int:
        bps = self._metaflac(path, "--show-bps")
        try:
            return int(bps)
        except ValueError as e:
            raise DecodeError(f"metaflac returned an invalid sample width for {path}: {bps!r}",
                              path=path) from e

    def hash_file(self, path: str, decode: bool, selection: StreamSelection,
                  algorithms: Sequence[str], sample_bits: Optional[int] = None) -> Record:
        """Record for ``path`` built from its embedded signature.

        Raises:
            UnsupportedStreamError: ``path`` is not a .flac file
            DecodeError: metaflac failed or the file carries no signature
        """
        if Path(path).suffix.lower() != FLAC_EXT:
            raise UnsupportedStreamError(f"Only {FLAC_EXT} files can be imported: {path}", path=path)
        try:
            stat = os.stat(path)
        except OSError as e:
            raise DecodeError(f"Could not stat {path}: {e.strerror or e}", path=path) from e

        digest = self.read_signature(path)
        bits = self.read_bits_per_sample(path)
        logger.debug("Imported FLAC signature of %s (%d bits per sample)", path, bits)
        streams: List[StreamDigest] = [
            StreamDigest(stream_index=0, stream_kind=StreamKind.AUDIO, algorithm="md5", digest=digest),
        ]
        return Record(
            streams=tuple(streams),
            path=path,
            file_size=stat.st_size,
            modify_time=stat.st_mtime,
            decoded=True,
            selection=StreamSelection.AUDIO,
            sample_bits=bits,
        )
