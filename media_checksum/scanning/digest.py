#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Digest algorithm registry for the media stream checksum tool.

Every algorithm is exposed as a streaming hasher with ``update(bytes)`` and
``digest() -> bytes``, so one pass over a stream can feed several of them.
"""

import hashlib
import zlib
from typing import Callable, Dict, List, Sequence

import mmh3
import xxhash

from ..errors import UnknownAlgorithmError


class _ChecksumHasher:
    """Adapts zlib's running checksums to the hasher interface."""

    def __init__(self, func: Callable[[bytes, int], int], initial: int):
        self._func = func
        self._value = initial

    def update(self, data: bytes) -> None:
        self._value = self._func(data, self._value)

    def digest(self) -> bytes:
        return (self._value & 0xFFFFFFFF).to_bytes(4, "big")


_FACTORIES: Dict[str, Callable[[], object]] = {
    "murmur3": mmh3.mmh3_x64_128,
    "md5": hashlib.md5,
    "sha1": hashlib.sha1,
    "sha256": hashlib.sha256,
    "sha384": hashlib.sha384,
    "sha512": hashlib.sha512,
    "crc32": lambda: _ChecksumHasher(zlib.crc32, 0),
    "adler32": lambda: _ChecksumHasher(zlib.adler32, 1),
    "xxh64": xxhash.xxh64,
    "xxh128": xxhash.xxh3_128,
}

_ALIASES = {"sha160": "sha1", "murmur3_128": "murmur3", "xxh3_128": "xxh128"}


def available_algorithms() -> List[str]:
    return sorted(_FACTORIES)


def canonical_name(name: str) -> str:
    """Normalize an algorithm name, resolving aliases."""
    key = name.strip().lower()
    key = _ALIASES.get(key, key)
    if key not in _FACTORIES:
        raise UnknownAlgorithmError(
            f"Unknown hash algorithm '{name}'. Choose from: {', '.join(available_algorithms())}"
        )
    return key


def new_hasher(name: str):
    """Fresh running hasher for ``name``."""
    return _FACTORIES[canonical_name(name)]()


def normalize_algorithms(names: Sequence[str]) -> List[str]:
    """Canonical names in requested order, duplicates dropped."""
    result: List[str] = []
    for name in names:
        key = canonical_name(name)
        if key not in result:
            result.append(key)
    if not result:
        raise UnknownAlgorithmError("At least one hash algorithm is required")
    return result
