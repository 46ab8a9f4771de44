#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Hashing command implementations (write, test, compare) for the media
stream checksum tool.
"""

from ..config import EXIT_CLEAN, EXIT_DISORDER
from ..engine.verifier import VerificationEngine
from ..jsonio import success
from .output import print_results, print_summary


def cmd_verify(engine: VerificationEngine, silent: bool = False, as_json: bool = False) -> int:
    """Run a hashing mode and report every file.

    Returns:
        EXIT_CLEAN when the run is clean, EXIT_DISORDER otherwise
    """
    mode = engine.config.mode.value
    report = engine.run()
    code = EXIT_CLEAN if report.is_clean() else EXIT_DISORDER

    if as_json:
        meta = {"ledger": str(engine.ledger.ledger_path), "dry_run": engine.config.dry_run}
        return success(mode, report.to_dict(), meta=meta, code=code)

    print_results(report, silent=silent)
    if not silent:
        print_summary(report)
    if engine.config.dry_run:
        print("Dry run: no records were written.")
    return code
