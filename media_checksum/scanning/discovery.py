#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
File discovery logic for the media stream checksum tool.
Expands path arguments (files and directories) into an ordered list of
media files.
"""

import logging
import os
from pathlib import Path
from typing import IO, Iterable, List, Optional, Set

from ..config import SUPPORTED_EXT

logger = logging.getLogger(__name__)


class FileDiscovery:
    """Turns user supplied paths into candidate media files.

    Order is deterministic: arguments are kept in the order given and
    directories are walked depth first with entries sorted by name.
    """

    def __init__(self, extensions: Optional[Set[str]] = None, disable_filter: bool = False,
                 canonical_paths: bool = False, exclude: Iterable[Path] = ()):
        self.extensions = SUPPORTED_EXT if extensions is None else extensions
        self.disable_filter = disable_filter
        self.canonical_paths = canonical_paths
        self.exclude = {os.path.abspath(p) for p in exclude}
        self.stats = {
            'total_scanned': 0,
            'permission_errors': 0,
            'missing': 0,
            'filtered_ext': 0,
        }
        self._unknown_exts: Set[str] = set()

    def discover_files(self, paths: Iterable[str]) -> List[str]:
        """
        Discover media files under ``paths``.

        Args:
            paths: Files or directories, in the order they should be processed

        Returns:
            Unique file paths, first occurrence wins
        """
        candidates: List[str] = []
        seen: Set[str] = set()

        for raw in paths:
            path = Path(raw)
            if path.is_dir():
                found = self._scan_recursive(path)
            elif path.is_file():
                found = [path] if self._accept(path, explicit=True) else []
            elif path.exists():
                logger.error("Path is not a regular file: %s", raw)
                continue
            else:
                self.stats['missing'] += 1
                logger.error("Path does not exist: %s", raw)
                continue

            for candidate in found:
                key = self._normalize(candidate)
                if key not in seen:
                    seen.add(key)
                    candidates.append(key)

        if self._unknown_exts:
            logger.warning(
                "Skipped files with extensions unknown to media-checksum: %s. "
                "Use --disable-filter to include them.",
                " ".join(sorted(self._unknown_exts)),
            )
        logger.debug("Discovery stats: %s", self.stats)
        return candidates

    def _scan_recursive(self, path: Path) -> List[Path]:
        """Recursively scan directory for media files."""
        found: List[Path] = []
        try:
            with os.scandir(path) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError:
            self.stats['permission_errors'] += 1
            logger.warning("Could not read directory: %s", path)
            return found

        for entry in entries:
            self.stats['total_scanned'] += 1
            try:
                if entry.is_dir(follow_symlinks=False):
                    found.extend(self._scan_recursive(Path(entry.path)))
                elif entry.is_file():
                    file_path = Path(entry.path)
                    if self._accept(file_path, explicit=False):
                        found.append(file_path)
            except OSError:
                self.stats['permission_errors'] += 1
        return found

    def _accept(self, path: Path, explicit: bool) -> bool:
        if os.path.abspath(path) in self.exclude:
            if explicit:
                logger.error("File is the ledger itself, skipping: %s", path)
            return False
        # Hidden files and files without a name are never media
        if path.name.startswith("."):
            return False
        if self.disable_filter:
            return True
        ext = path.suffix.lower()
        if ext in self.extensions:
            return True
        self.stats['filtered_ext'] += 1
        if ext:
            self._unknown_exts.add(ext)
        return False

    def _normalize(self, path: Path) -> str:
        if self.canonical_paths:
            try:
                return str(path.resolve(strict=True))
            except OSError:
                logger.warning("Unable to convert relative path to canonical path: %s", path)
        return str(path)


def read_paths_from_stream(stream: IO[str]) -> List[str]:
    """Split newline or NUL separated paths read from ``stream``."""
    data = stream.read()
    if "\0" in data:
        parts = data.split("\0")
    else:
        parts = data.splitlines()
    return [p.strip("\r\n") for p in parts if p.strip()]

