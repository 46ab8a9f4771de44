#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Stream sources for the media stream checksum tool.

A stream source turns a media file into an ordered list of per-stream byte
readers. The ffmpeg implementation probes the container with ffprobe and
then pipes each selected stream out of ffmpeg, either as copied compressed
packets or fully decoded.
"""

import json
import logging
import os
import shutil
import subprocess
import tempfile
import threading
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional

from ..config import DEFAULT_CHUNK_SIZE, DEFAULT_SAMPLE_BITS
from ..errors import DecodeError
from ..models.record import StreamKind, StreamSelection

logger = logging.getLogger(__name__)

# Only the end of ffmpeg's stderr is kept for error messages
STDERR_TAIL_BYTES = 4096


@dataclass
class StreamReader:
    """Lazily produces the bytes of one internal stream."""
    index: int
    kind: StreamKind
    opener: Callable[[int], Iterator[bytes]]
    codec: Optional[str] = None

    def chunks(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        return self.opener(chunk_size)


class StreamSource:
    """Interface: produce the selected streams of a file."""

    def get_streams(self, path: str, decode: bool, selection: StreamSelection,
                    sample_bits: Optional[int] = None) -> List[StreamReader]:
        raise NotImplementedError


class FFmpegStreamSource(StreamSource):
    """Streams bytes out of media containers with ffprobe and ffmpeg."""

    def __init__(self, ffmpeg: str = "ffmpeg", ffprobe: str = "ffprobe", timeout: float = 0):
        self.ffmpeg = ffmpeg
        self.ffprobe = ffprobe
        self.timeout = timeout or None

    @staticmethod
    def check_tools(ffmpeg: str = "ffmpeg", ffprobe: str = "ffprobe") -> None:
        """Raise DecodeError if either binary is missing from PATH."""
        for tool in (ffmpeg, ffprobe):
            if shutil.which(tool) is None:
                raise DecodeError(f"'{tool}' command not found. Make sure '{tool}' is in your PATH.")

    def probe(self, path: str) -> List[dict]:
        """Container streams as reported by ffprobe, in container order."""
        cmd = [
            self.ffprobe, "-v", "error",
            "-print_format", "json",
            "-show_streams",
            path,
        ]
        try:
            result = subprocess.run(cmd, capture_output=True, timeout=self.timeout, check=False)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise DecodeError(f"ffprobe failed for {path}: {e}", path=path) from e
        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", "replace").strip()
            raise DecodeError(f"ffprobe failed for {path}: {stderr or 'exit code ' + str(result.returncode)}", path=path)
        try:
            info = json.loads(result.stdout or b"{}")
        except ValueError as e:
            raise DecodeError(f"Could not parse ffprobe output for {path}: {e}", path=path) from e

        streams = []
        for stream in info.get("streams", []):
            try:
                stream["index"] = int(stream.get("index"))
            except (TypeError, ValueError) as e:
                raise DecodeError(f"ffprobe reported a stream without a valid index in {path}",
                                  path=path) from e
            streams.append(stream)
        return sorted(streams, key=lambda s: s["index"])

    def get_streams(self, path: str, decode: bool, selection: StreamSelection,
                    sample_bits: Optional[int] = None) -> List[StreamReader]:
        readers = []
        for stream in self.probe(path):
            kind = StreamKind.from_codec_type(stream.get("codec_type"))
            if not selection.matches(kind):
                continue
            index = stream["index"]
            cmd = self.build_command(path, index, kind, decode, sample_bits)
            readers.append(StreamReader(
                index=index,
                kind=kind,
                codec=stream.get("codec_name"),
                opener=self._opener(path, cmd),
            ))
        return readers

    def build_command(self, path: str, index: int, kind: StreamKind, decode: bool,
                      sample_bits: Optional[int] = None) -> List[str]:
        """ffmpeg invocation that writes one stream's bytes to stdout."""
        cmd = [self.ffmpeg, "-nostdin", "-v", "error", "-i", path, "-map", f"0:{index}"]
        if decode and kind is StreamKind.VIDEO:
            cmd += ["-f", "rawvideo"]
        elif decode and kind is StreamKind.AUDIO:
            # Imported FLAC signatures cover PCM at the file's own sample width
            bits = sample_bits or DEFAULT_SAMPLE_BITS
            cmd += ["-c:a", f"pcm_s{bits}le", "-f", f"s{bits}le"]
        else:
            # Subtitles and data streams have no stable decoded form
            cmd += ["-c", "copy", "-f", "data"]
        cmd.append("-")
        return cmd

    def _opener(self, path: str, cmd: List[str]) -> Callable[[int], Iterator[bytes]]:
        def read_chunks(chunk_size: int) -> Iterator[bytes]:
            logger.debug("Running: %s", " ".join(cmd))
            # stderr goes to a file so a chatty ffmpeg never blocks on a full pipe
            with tempfile.TemporaryFile() as err:
                try:
                    proc = subprocess.Popen(cmd, stdout=subprocess.PIPE, stderr=err)
                except OSError as e:
                    raise DecodeError(f"Could not start ffmpeg for {path}: {e}", path=path) from e

                timed_out = threading.Event()

                def _kill():
                    timed_out.set()
                    proc.kill()

                timer = threading.Timer(self.timeout, _kill) if self.timeout else None
                if timer is not None:
                    timer.daemon = True
                    timer.start()
                try:
                    for chunk in iter(lambda: proc.stdout.read(chunk_size), b""):
                        yield chunk
                    proc.wait()
                finally:
                    if timer is not None:
                        timer.cancel()
                    if proc.poll() is None:
                        proc.kill()
                        proc.wait()
                    proc.stdout.close()

                if timed_out.is_set():
                    raise DecodeError(f"ffmpeg timed out for {path}", path=path)
                if proc.returncode != 0:
                    err.seek(0, os.SEEK_END)
                    err.seek(max(0, err.tell() - STDERR_TAIL_BYTES))
                    message = err.read().decode("utf-8", "replace").strip() or f"exit code {proc.returncode}"
                    raise DecodeError(f"ffmpeg failed for {path}: {message}", path=path)
        return read_chunks
