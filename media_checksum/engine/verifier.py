#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Verification engine for the media stream checksum tool.
Coordinates one run: reads both backends, hashes files through the
scheduler, classifies every file, and applies WRITE mode's write-back.
"""

import logging
import os
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..config import DEFAULT_HASH_ALGOS
from ..errors import DecodeError, StorageError, UnsupportedFilesystemError, WriteError
from ..models.outcome import FileResult, Outcome, RunReport
from ..models.record import Record, StreamSelection, find_by_content
from ..scanning.scheduler import HashJob, HashResult, HashScheduler
from ..storage.base import Backend
from ..storage.ledger import LedgerStore
from ..storage.xattr_store import XattrStore
from .modes import Decision, Mode, WriteIntent, classify
from .reconcile import Reconciled, reconcile

logger = logging.getLogger(__name__)


@dataclass
class RunConfig:
    """Settings for one run, built from the command line."""
    mode: Mode
    ledger_path: Path
    paths: List[str] = field(default_factory=list)
    algorithms: Tuple[str, ...] = DEFAULT_HASH_ALGOS
    decode: bool = False
    selection: StreamSelection = StreamSelection.ALL
    workers: Optional[int] = None
    prefer: Backend = Backend.LEDGER
    write_xattr: bool = True
    dry_run: bool = False
    prune: bool = False
    output_file: Optional[Path] = None
    rewrite: bool = False
    import_flac: bool = False


class VerificationEngine:
    """Runs one operating mode over a set of files."""

    def __init__(self, config: RunConfig, ledger: LedgerStore, xattr: XattrStore,
                 scheduler: Optional[HashScheduler] = None):
        self.config = config
        self.ledger = ledger
        self.xattr = xattr
        self.scheduler = scheduler

    # ------------------------------------------------------------------
    # reading
    # ------------------------------------------------------------------
    def _read_xattr(self, path: str) -> Optional[Record]:
        if not self.xattr.available or not os.path.exists(path):
            return None
        try:
            return self.xattr.read(path)
        except UnsupportedFilesystemError as e:
            self.xattr.warn_unavailable(e)
            return None
        except StorageError as e:
            logger.warning("%s; using the ledger record only", e)
            return None

    def lookup(self, path: str) -> Reconciled:
        """Reconciled old record for ``path`` from both backends."""
        return reconcile(self._read_xattr(path), self.ledger.read(path), self.config.prefer)

    def targets(self) -> List[str]:
        """Paths to operate on: explicit paths, else everything in the ledger.

        WRITE only falls back to the ledger when rewriting, and then skips
        recorded files that no longer exist.
        """
        if self.config.paths:
            return list(self.config.paths)
        if self.config.mode is not Mode.WRITE:
            return self.ledger.paths()
        if not self.config.rewrite:
            return []
        present = []
        for path in self.ledger.paths():
            if os.path.exists(path):
                present.append(path)
            else:
                logger.warning("Not rewriting %s: file no longer present on disk", path)
        return present

    # ------------------------------------------------------------------
    # hashing modes
    # ------------------------------------------------------------------
    def _job_for(self, path: str, reconciled: Reconciled) -> HashJob:
        old = reconciled.canonical
        if self.config.mode is not Mode.WRITE and old is not None:
            # Verify with the settings the record was written with
            return HashJob(path, old.decoded, old.selection, tuple(old.algorithms),
                           sample_bits=old.sample_bits)
        return HashJob(path, self.config.decode, self.config.selection, tuple(self.config.algorithms))

    def run(self) -> RunReport:
        """Execute WRITE, TEST or COMPARE and return the per-file report."""
        mode = self.config.mode
        if not mode.hashes:
            raise ValueError(f"Mode {mode.value} does not hash files")
        if mode is Mode.WRITE and self.config.rewrite:
            return self.rewrite()
        if self.scheduler is None:
            raise ValueError("A hash scheduler is required to hash files")

        self.ledger.load()
        if mode is Mode.WRITE and not self.config.dry_run:
            # Abort before any work if the ledger can never be committed
            self.ledger.check_writable()

        report = RunReport(mode=mode.value)
        targets = self.targets()
        old_by_path: Dict[str, Reconciled] = {}
        jobs: List[HashJob] = []
        for path in targets:
            reconciled = self.lookup(path)
            old_by_path[path] = reconciled
            if mode is Mode.COMPARE and not os.path.exists(path) and reconciled.tracked:
                continue
            jobs.append(self._job_for(path, reconciled))

        results: Dict[str, HashResult] = {r.job.path: r for r in self.scheduler.run(jobs)}
        ledger_records = self.ledger.records()

        intents: List[Tuple[FileResult, WriteIntent]] = []
        for path in targets:
            reconciled = old_by_path[path]
            result = results.get(path)
            file_result = self._classify(path, reconciled, result, ledger_records)
            report.results.append(file_result)
            if file_result.write_intent is not None:
                intents.append((file_result, file_result.write_intent))

        if mode is Mode.COMPARE:
            report.results.extend(self._orphans(set(targets)))

        if mode is Mode.WRITE:
            self._write_back(report, intents, targets)

        report.xattr_available = self.xattr.available
        return report

    def rewrite(self) -> RunReport:
        """Store the recorded checksums again in the current record format.

        Nothing is hashed: the reconciled record of every target is written
        back to both backends, which also repairs a backend that lost it.
        """
        self.ledger.load()
        if not self.config.dry_run:
            self.ledger.check_writable()

        report = RunReport(mode=Mode.WRITE.value)
        targets = self.targets()
        intents: List[Tuple[FileResult, WriteIntent]] = []
        for path in targets:
            reconciled = self.lookup(path)
            if not reconciled.tracked:
                logger.warning("No recorded checksum for %s", path)
                continue
            record = reconciled.canonical.with_path(path)
            outcome = Outcome.CONFLICT if reconciled.conflict else Outcome.OK
            file_result = FileResult(path, outcome, new=record, old=reconciled.canonical,
                                     message="recorded checksum rewritten")
            file_result.write_intent = WriteIntent(record)
            report.results.append(file_result)
            intents.append((file_result, file_result.write_intent))

        self._write_back(report, intents, targets)
        report.xattr_available = self.xattr.available
        return report

    def _classify(self, path: str, reconciled: Reconciled, result: Optional[HashResult],
                  ledger_records: List[Record]) -> FileResult:
        if result is None:
            # Only COMPARE skips hashing, for tracked files gone from disk
            decision = classify(self.config.mode, None, reconciled, exists=False)
            return FileResult(path, decision.outcome, old=reconciled.canonical,
                              message="file no longer present on disk")

        if not result.ok:
            outcome = Outcome.DECODE_ERROR if isinstance(result.error, DecodeError) else Outcome.UNSUPPORTED_STREAM
            return FileResult(path, outcome, old=reconciled.canonical, message=str(result.error))

        decision: Decision = classify(self.config.mode, result.record, reconciled)
        file_result = FileResult(path, decision.outcome, new=result.record, old=reconciled.canonical)
        file_result.write_intent = decision.write

        if decision.outcome is Outcome.CONFLICT:
            file_result.message = (
                f"extended attribute and ledger disagree; using the {self.config.prefer.value} record"
            )
        elif decision.outcome is Outcome.NOT_WRITTEN:
            match = find_by_content(result.record, ledger_records)
            if match is not None:
                file_result.message = f"same content recorded for {match.path}"
                file_result.renamed_from = match.path
        return file_result

    def _orphans(self, seen: set) -> List[FileResult]:
        orphans = []
        for record in self.ledger.records():
            if record.path in seen or os.path.exists(record.path):
                continue
            orphans.append(FileResult(record.path, Outcome.ORPHANED, old=record,
                                      message="file no longer present on disk"))
        return orphans

    # ------------------------------------------------------------------
    # write-back
    # ------------------------------------------------------------------
    def _write_back(self, report: RunReport, intents: List[Tuple[FileResult, WriteIntent]],
                    targets: List[str]) -> None:
        """Stage ledger changes, commit once, then write xattrs per file."""
        for file_result, intent in intents:
            if intent.to_ledger:
                self.ledger.write(file_result.path, intent.record)
            renamed_from = file_result.renamed_from
            if renamed_from and not os.path.exists(renamed_from):
                self.ledger.remove(renamed_from)
                file_result.message = f"renamed from {renamed_from}; old entry replaced"

        if self.config.prune:
            report.pruned = self.ledger.prune(keep=targets)
            for path in report.pruned:
                logger.info("Pruned ledger entry for missing file: %s", path)

        if self.config.dry_run:
            logger.debug("Dry run: skipping ledger commit and xattr writes")
            return

        # WriteError here is fatal and leaves every backend untouched
        report.ledger_written = self.ledger.commit()
        for file_result, intent in intents:
            file_result.written = intent.to_ledger

        if not self.config.write_xattr:
            return
        for file_result, intent in intents:
            if not intent.to_xattr or not self.xattr.available:
                continue
            try:
                self.xattr.write(file_result.path, intent.record)
            except UnsupportedFilesystemError as e:
                self.xattr.warn_unavailable(e)
            except WriteError as e:
                logger.error("%s", e)
                file_result.write_failed = True

    # ------------------------------------------------------------------
    # read-only modes
    # ------------------------------------------------------------------
    def collect(self) -> List[Reconciled]:
        """Reconciled records for PRINT, DUMP and DUPLICATES, in ledger order.

        Explicit paths restrict the set; without them every ledger path is
        used. Untracked paths are logged and left out.
        """
        self.ledger.load()
        found: List[Reconciled] = []
        for path in self.targets():
            reconciled = self.lookup(path)
            if reconciled.tracked:
                found.append(reconciled)
            else:
                logger.warning("No recorded checksum for %s", path)
        return found

    def dump_records(self) -> List[Record]:
        """Ledger records plus xattr-only records of the given paths."""
        self.ledger.load()
        records: Dict[str, Record] = {}
        for path in self.ledger.paths():
            records[path] = self.lookup(path).canonical
        for path in self.config.paths:
            if path not in records:
                reconciled = self.lookup(path)
                if reconciled.tracked:
                    records[path] = reconciled.canonical
        return list(records.values())

    def duplicates(self) -> List[List[Record]]:
        """Groups of two or more paths whose recorded content is identical."""
        groups: Dict[Record, List[Record]] = defaultdict(list)
        for reconciled in self.collect():
            groups[reconciled.canonical].append(reconciled.canonical)
        return [group for group in groups.values() if len(group) > 1]
