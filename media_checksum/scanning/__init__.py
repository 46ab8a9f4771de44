"""Stream reading, hashing and discovery for the media stream checksum tool."""

from .digest import available_algorithms, new_hasher, normalize_algorithms
from .source import StreamReader, StreamSource, FFmpegStreamSource
from .hasher import HashEngine
from .flac import FlacImporter
from .scheduler import HashJob, HashResult, HashScheduler
from .discovery import FileDiscovery, read_paths_from_stream

__all__ = [
    'available_algorithms',
    'new_hasher',
    'normalize_algorithms',
    'StreamReader',
    'StreamSource',
    'FFmpegStreamSource',
    'HashEngine',
    'FlacImporter',
    'HashJob',
    'HashResult',
    'HashScheduler',
    'FileDiscovery',
    'read_paths_from_stream',
]
