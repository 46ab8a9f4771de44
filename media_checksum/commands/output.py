#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Human readable output helpers for the media stream checksum commands.
"""

from typing import List, Optional

from ..models.outcome import FileResult, Outcome, RunReport
from ..models.record import Record


def format_record(record: Record, path: Optional[str] = None) -> List[str]:
    """One ``<algo>=<hex> : <path> [#index kind]`` line per stream digest."""
    path = record.path if path is None else path
    return [
        f"{s.algorithm}={s.hex} : {path} [#{s.stream_index} {s.stream_kind.value}]"
        for s in record.streams
    ]


def format_result(result: FileResult) -> str:
    line = f"{result.path}: {result.outcome.value}"
    if result.message:
        line += f" ({result.message})"
    if result.write_failed:
        line += " [xattr write failed]"
    return line


def print_results(report: RunReport, silent: bool = False) -> None:
    """Print one line per file; ``silent`` hides files that are OK."""
    for result in report.results:
        if silent and result.outcome is Outcome.OK and not result.write_failed:
            continue
        print(format_result(result))
    for path in report.pruned:
        print(f"{path}: pruned from ledger")


def print_summary(report: RunReport) -> None:
    counts = report.counts()
    if not counts:
        print("No files processed.")
        return
    parts = [f"{name}={count}" for name, count in counts.items()]
    if report.write_failures:
        parts.append(f"WRITE_FAILED={report.write_failures}")
    print(f"{report.mode.upper()} summary: " + ", ".join(parts))
    if report.mode != "write" and report.is_clean():
        print("All files verified OK.")
