#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Bounded worker pool for hashing many files in parallel.

Each job hashes one file end to end. Results are placed into a slot indexed
by the job's input position, so the returned list is in input order no
matter which worker finishes first.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from tqdm import tqdm

from ..config import DEFAULT_WORKERS
from ..errors import DecodeError, UnknownAlgorithmError, UnsupportedStreamError
from ..models.record import Record, StreamSelection
from .hasher import HashEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HashJob:
    """Parameters for hashing one file."""
    path: str
    decode: bool
    selection: StreamSelection
    algorithms: Tuple[str, ...]
    sample_bits: Optional[int] = None


@dataclass
class HashResult:
    """Result of one job: a record, or the per-file error that replaced it."""
    job: HashJob
    record: Optional[Record] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.record is not None


class HashScheduler:
    """Runs HashEngine over a batch of jobs with a bounded thread pool."""

    def __init__(self, engine: HashEngine, workers: Optional[int] = None, show_progress: bool = False):
        workers = DEFAULT_WORKERS if workers is None else workers
        if workers < 1:
            raise ValueError(f"Worker count must be at least 1, got {workers}")
        self.engine = engine
        self.workers = workers
        self.show_progress = show_progress

    def _run_job(self, job: HashJob) -> HashResult:
        """Worker boundary: per-file errors become part of the result."""
        try:
            record = self.engine.hash_file(job.path, job.decode, job.selection, job.algorithms,
                                           sample_bits=job.sample_bits)
            return HashResult(job=job, record=record)
        except (DecodeError, UnsupportedStreamError, UnknownAlgorithmError) as e:
            logger.debug("Hashing failed for %s: %s", job.path, e)
            return HashResult(job=job, error=e)
        except OSError as e:
            # An unreadable file fails alone, like a file ffmpeg cannot decode
            logger.debug("Reading failed for %s: %s", job.path, e)
            error = DecodeError(f"Could not read {job.path}: {e.strerror or e}", path=job.path)
            return HashResult(job=job, error=error)

    def run(self, jobs: Sequence[HashJob]) -> List[HashResult]:
        """Hash all jobs; the result list matches ``jobs`` index for index."""
        slots: List[Optional[HashResult]] = [None] * len(jobs)
        if not jobs:
            return []

        logger.info("Hashing %d files with %d workers", len(jobs), self.workers)
        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            futures = {executor.submit(self._run_job, job): idx for idx, job in enumerate(jobs)}
            progress = tqdm(
                total=len(jobs), desc="Hashing", unit="file",
                disable=not self.show_progress, leave=False,
            )
            try:
                for future in as_completed(futures):
                    slots[futures[future]] = future.result()
                    progress.update(1)
            finally:
                progress.close()

        return [slot for slot in slots if slot is not None]
