#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Data structures for checksum records in the media stream checksum tool.

A Record captures the per-stream digests of one file at one point in time.
Two records are equal (``==``) when their stream digest sequences match in
algorithm, digest bytes and order. Path, size and modification time are
informational and never take part in the comparison.
"""

import json
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..config import RECORD_VERSION
from ..errors import RecordFormatError


class StreamKind(str, Enum):
    """Kind of an internal container stream."""
    AUDIO = "audio"
    VIDEO = "video"
    SUBTITLE = "subtitle"
    OTHER = "other"

    @classmethod
    def from_codec_type(cls, codec_type: Optional[str]) -> 'StreamKind':
        """Map an ffprobe ``codec_type`` onto a stream kind."""
        try:
            return cls(codec_type)
        except ValueError:
            return cls.OTHER


class StreamSelection(str, Enum):
    """Which streams of a container are hashed."""
    ALL = "all"
    AUDIO = "audio"
    VIDEO = "video"

    def matches(self, kind: StreamKind) -> bool:
        if self is StreamSelection.ALL:
            return True
        return kind.value == self.value


@dataclass(frozen=True)
class StreamDigest:
    """Digest of one stream under one algorithm."""
    stream_index: int
    stream_kind: StreamKind
    algorithm: str
    digest: bytes

    @property
    def hex(self) -> str:
        return self.digest.hex()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.stream_index,
            "kind": self.stream_kind.value,
            "algorithm": self.algorithm,
            "digest": self.hex,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StreamDigest':
        try:
            return cls(
                stream_index=int(data["index"]),
                stream_kind=StreamKind.from_codec_type(data.get("kind")),
                algorithm=str(data["algorithm"]),
                digest=bytes.fromhex(data["digest"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise RecordFormatError(f"Invalid stream digest: {e}") from e


@dataclass(frozen=True)
class Record:
    """Immutable checksum record for one file."""
    streams: Tuple[StreamDigest, ...]
    path: str = field(default="", compare=False)
    file_size: int = field(default=0, compare=False)
    modify_time: float = field(default=0.0, compare=False)
    decoded: bool = field(default=False, compare=False)
    selection: StreamSelection = field(default=StreamSelection.ALL, compare=False)
    sample_bits: Optional[int] = field(default=None, compare=False)
    version: int = field(default=RECORD_VERSION, compare=False)

    def __post_init__(self):
        # Accept any iterable of digests but always store a tuple
        if not isinstance(self.streams, tuple):
            object.__setattr__(self, "streams", tuple(self.streams))

    @property
    def algorithms(self) -> List[str]:
        """Algorithms used, in the order they were applied."""
        seen: List[str] = []
        for stream in self.streams:
            if stream.algorithm not in seen:
                seen.append(stream.algorithm)
        return seen

    def with_path(self, path: str) -> 'Record':
        """Return a copy of this record located at ``path``."""
        return replace(self, path=path)

    def to_dict(self) -> Dict[str, Any]:
        """Convert record to dictionary for serialization."""
        data = {
            "version": self.version,
            "path": self.path,
            "file_size": self.file_size,
            "modify_time": self.modify_time,
            "decoded": self.decoded,
            "selection": self.selection.value,
            "streams": [s.to_dict() for s in self.streams],
        }
        # Only decoded PCM digests pinned to a sample width carry this
        if self.sample_bits is not None:
            data["sample_bits"] = self.sample_bits
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Record':
        """Create record from dictionary."""
        if not isinstance(data, dict):
            raise RecordFormatError("Record must be a JSON object")
        version = data.get("version")
        if version != RECORD_VERSION:
            raise RecordFormatError(f"Unsupported record version: {version!r}")
        try:
            return cls(
                streams=tuple(StreamDigest.from_dict(s) for s in data["streams"]),
                path=str(data.get("path", "")),
                file_size=int(data.get("file_size", 0)),
                modify_time=float(data.get("modify_time", 0.0)),
                decoded=bool(data.get("decoded", False)),
                selection=StreamSelection(data.get("selection", "all")),
                sample_bits=None if data.get("sample_bits") is None else int(data["sample_bits"]),
                version=version,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise RecordFormatError(f"Invalid record: {e}") from e

    def to_json(self) -> str:
        """Serialize to one line of JSON, byte-stable for equal inputs."""
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"), ensure_ascii=False)

    @classmethod
    def from_json(cls, line: str) -> 'Record':
        try:
            data = json.loads(line)
        except ValueError as e:
            raise RecordFormatError(f"Invalid JSON: {e}") from e
        return cls.from_dict(data)


def find_by_content(record: Record, candidates: Iterable[Record]) -> Optional[Record]:
    """First candidate with the same content as ``record`` at a different path."""
    for candidate in candidates:
        if candidate.path != record.path and candidate == record:
            return candidate
    return None
