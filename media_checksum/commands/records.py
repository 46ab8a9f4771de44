#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Read-only command implementations (print, dump, duplicates) for the media
stream checksum tool. None of these hash file content.
"""

import logging
import sys

from ..config import EXIT_CLEAN, EXIT_DISORDER
from ..engine.verifier import VerificationEngine
from ..jsonio import success
from ..storage.ledger import LedgerStore
from ..utils import ensure_dir, format_mtime, utc_now_str
from .output import format_record

logger = logging.getLogger(__name__)


def cmd_print(engine: VerificationEngine, as_json: bool = False) -> int:
    """Print the canonical record of each requested file."""
    found = engine.collect()
    code = EXIT_CLEAN if found else EXIT_DISORDER

    if as_json:
        data = []
        for reconciled in found:
            entry = reconciled.canonical.to_dict()
            entry["state"] = reconciled.state.value
            entry["modified"] = format_mtime(reconciled.canonical.modify_time)
            data.append(entry)
        return success("print", data, code=code)

    if not found:
        logger.warning("No recorded checksums to print")
    for reconciled in found:
        for line in format_record(reconciled.canonical):
            print(line)
        if reconciled.conflict:
            print(f"{reconciled.canonical.path}: CONFLICT (extended attribute and ledger disagree)")
    return code


def cmd_dump(engine: VerificationEngine, as_json: bool = False) -> int:
    """Dump the ledger, or write a reconciled copy with ``--output``."""
    output = engine.config.output_file
    if output is not None:
        records = engine.dump_records()
        ensure_dir(output.parent)
        LedgerStore.write_document(output, engine.ledger.render(records), overwrite=False)
        logger.info("Wrote %d records to %s", len(records), output)
        if as_json:
            return success("dump", {"output": str(output), "records": len(records)},
                           code=EXIT_CLEAN if records else EXIT_DISORDER)
        return EXIT_CLEAN if records else EXIT_DISORDER

    engine.ledger.load()
    if as_json:
        data = [record.to_dict() for record in engine.ledger.records()]
        return success("dump", data, meta={"ledger": str(engine.ledger.ledger_path), "generated": utc_now_str()},
                       code=EXIT_CLEAN if data else EXIT_DISORDER)

    text = engine.ledger.raw_text
    if not text:
        logger.warning("Ledger %s is empty or missing", engine.ledger.ledger_path)
        return EXIT_DISORDER
    sys.stdout.write(text)
    if not text.endswith("\n"):
        sys.stdout.write("\n")
    return EXIT_CLEAN


def cmd_duplicates(engine: VerificationEngine, as_json: bool = False) -> int:
    """List groups of files whose recorded content is identical."""
    groups = engine.duplicates()

    if as_json:
        data = [{"paths": [r.path for r in group],
                 "streams": [s.to_dict() for s in group[0].streams]} for group in groups]
        return success("duplicates", data)

    if not groups:
        print("No duplicates found.")
    for number, group in enumerate(groups, start=1):
        print(f"Duplicate group {number}:")
        for record in group:
            print(f"  {record.path}")
    return EXIT_CLEAN
