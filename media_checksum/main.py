#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Main CLI entry point for the media stream checksum tool.
"""

import argparse
import logging
import os
import sys
from pathlib import Path

from .config import (
    DEFAULT_FFMPEG_TIMEOUT, DEFAULT_HASH_ALGOS, DEFAULT_LEDGER_NAME,
    ENV_FFMPEG_TIMEOUT, ENV_NO_XATTR, EXIT_ERROR, EXIT_INTERRUPTED,
)
from .commands import cmd_dump, cmd_duplicates, cmd_print, cmd_verify
from .engine import Mode, RunConfig, VerificationEngine
from .errors import MediaChecksumError
from .jsonio import enable_json_logging, error
from .models.record import StreamSelection
from .scanning import (
    FFmpegStreamSource, FileDiscovery, FlacImporter, HashEngine, HashScheduler,
    available_algorithms, normalize_algorithms, read_paths_from_stream,
)
from .storage import Backend, LedgerStore, XattrStore

_TRUTHY = {"1", "true", "yes", "on"}


def setup_logging(verbose: bool, silent: bool = False):
    """Configure logging for the CLI tool. Logs go to stderr, results to stdout."""
    if verbose:
        level = logging.DEBUG
    elif silent:
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)]
    )
    logging.debug("Verbose logging enabled (DEBUG level).")


def _common_parser():
    """Options shared by every subcommand."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("paths", nargs="*",
                        help="Files or directories; read from stdin when omitted and stdin is piped")
    common.add_argument("--ledger", default=DEFAULT_LEDGER_NAME,
                        help=f"Ledger file path (default: {DEFAULT_LEDGER_NAME})")
    common.add_argument("--prefer", choices=[b.value for b in Backend], default=Backend.LEDGER.value,
                        help="Backend whose record wins when the two disagree (default: ledger)")
    common.add_argument("--disable-filter", action="store_true",
                        help="Include files whose extension is not a known media type")
    common.add_argument("--canonical-paths", action="store_true",
                        help="Resolve paths to absolute canonical paths before use")
    common.add_argument("--silent", "-s", action="store_true",
                        help="Only report problems")
    common.add_argument("--verbose", "-v", action="store_true",
                        help="Enable verbose (DEBUG) output")
    common.add_argument("--json", action="store_true",
                        help="Output results as JSON instead of human-readable text")
    return common


def _hashing_parser():
    """Options for subcommands that hash file content."""
    hashing = argparse.ArgumentParser(add_help=False)
    hashing.add_argument("--algo", action="append", metavar="NAME",
                         help="Digest algorithm, repeatable (default: %s; available: %s)"
                              % (", ".join(DEFAULT_HASH_ALGOS), ", ".join(available_algorithms())))
    hashing.add_argument("--only", choices=[StreamSelection.AUDIO.value, StreamSelection.VIDEO.value],
                         help="Hash only audio or only video streams")
    hashing.add_argument("--decode", action="store_true",
                         help="Hash decoded samples/frames instead of compressed packets")
    hashing.add_argument("--threads", "-j", type=int,
                         help="Number of worker threads (default: number of CPUs)")
    hashing.add_argument("--no-xattr", action="store_true",
                         help=f"Do not write extended attributes (also: {ENV_NO_XATTR}=1)")
    return hashing


def create_parser():
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        description="media-checksum - stable checksums of the streams inside media containers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Examples:
  # Record checksums for a directory tree
  %(prog)s write ~/Music

  # Verify everything in the ledger
  %(prog)s test

  # Verify and report files that disappeared
  %(prog)s compare ~/Music --json

  # Find files with identical content
  find ~/Videos -name '*.mkv' | %(prog)s duplicates
        """
    )
    subparsers = parser.add_subparsers(dest="command", required=True, help="Available commands")
    common = _common_parser()
    hashing = _hashing_parser()

    write_parser = subparsers.add_parser("write", parents=[common, hashing],
                                         help="Hash files and record the checksums")
    write_parser.add_argument("--dry-run", action="store_true",
                              help="Report what would be written without writing")
    write_parser.add_argument("--prune", action="store_true",
                              help="Drop ledger entries whose files no longer exist")
    write_group = write_parser.add_mutually_exclusive_group()
    write_group.add_argument("--rewrite", action="store_true",
                             help="Store recorded checksums again in the current format without hashing "
                                  "(all ledger entries when no paths are given)")
    write_group.add_argument("--import-flac", action="store_true",
                             help="Record the MD5 signature embedded in FLAC files instead of hashing them")

    subparsers.add_parser("test", parents=[common, hashing],
                          help="Re-hash files and check them against recorded checksums")
    subparsers.add_parser("compare", parents=[common, hashing],
                          help="Like test, and also report recorded files missing from disk")
    subparsers.add_parser("print", parents=[common],
                          help="Print recorded checksums without hashing")

    dump_parser = subparsers.add_parser("dump", parents=[common],
                                        help="Print the ledger, or export a reconciled copy")
    dump_parser.add_argument("--output", "-o",
                             help="Write a reconciled ledger to this new file")

    subparsers.add_parser("duplicates", parents=[common],
                          help="List files whose recorded content is identical")
    return parser


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in _TRUTHY


def _env_timeout() -> float:
    raw = os.environ.get(ENV_FFMPEG_TIMEOUT)
    if not raw:
        return DEFAULT_FFMPEG_TIMEOUT
    try:
        return float(raw)
    except ValueError:
        logging.warning("Ignoring invalid %s=%r", ENV_FFMPEG_TIMEOUT, raw)
        return DEFAULT_FFMPEG_TIMEOUT


def resolve_paths(args, ledger_path: Path):
    """Path arguments (or stdin) expanded into media files.

    Returns None when paths were requested but none survived discovery.
    """
    raw_paths = list(args.paths)
    if not raw_paths and not sys.stdin.isatty():
        raw_paths = read_paths_from_stream(sys.stdin)
        logging.debug("Read %d paths from stdin", len(raw_paths))
    if not raw_paths:
        return []

    discovery = FileDiscovery(
        disable_filter=args.disable_filter,
        canonical_paths=args.canonical_paths,
        exclude=[ledger_path],
    )
    files = discovery.discover_files(raw_paths)
    return files or None


def build_config(args, mode: Mode, paths) -> RunConfig:
    """Per-run settings from parsed arguments and the environment."""
    config = RunConfig(
        mode=mode,
        ledger_path=Path(args.ledger),
        paths=paths,
        prefer=Backend(args.prefer),
    )
    if mode.hashes:
        config.algorithms = tuple(normalize_algorithms(args.algo or DEFAULT_HASH_ALGOS))
        config.selection = StreamSelection(args.only) if args.only else StreamSelection.ALL
        config.decode = args.decode
        config.workers = args.threads
        config.write_xattr = not (args.no_xattr or _env_flag(ENV_NO_XATTR))
    if mode is Mode.WRITE:
        config.dry_run = args.dry_run
        config.prune = args.prune
        config.rewrite = args.rewrite
        config.import_flac = args.import_flac
    if mode is Mode.DUMP and args.output:
        config.output_file = Path(args.output)
    return config


def build_engine(config: RunConfig, show_progress: bool) -> VerificationEngine:
    ledger = LedgerStore(config.ledger_path)
    xattr = XattrStore()
    scheduler = None
    if config.import_flac:
        FlacImporter.check_tools()
        scheduler = HashScheduler(FlacImporter(timeout=_env_timeout()), workers=config.workers,
                                  show_progress=show_progress)
    elif config.mode.hashes and not config.rewrite:
        FFmpegStreamSource.check_tools()
        source = FFmpegStreamSource(timeout=_env_timeout())
        scheduler = HashScheduler(HashEngine(source), workers=config.workers,
                                  show_progress=show_progress)
    return VerificationEngine(config, ledger, xattr, scheduler)


def main():
    """Main CLI entry point. Returns the process exit code."""
    parser = create_parser()
    args = parser.parse_args()
    as_json = getattr(args, 'json', False)

    if as_json:
        # For JSON output, send logs to stderr and suppress info noise
        enable_json_logging()
    else:
        setup_logging(args.verbose, args.silent)

    logging.debug("Parsed arguments: %s", args)
    mode = Mode(args.command)

    try:
        ledger_path = Path(args.ledger)
        paths = resolve_paths(args, ledger_path)
        rewrite_all = mode is Mode.WRITE and args.rewrite
        if paths is None or (mode is Mode.WRITE and not paths and not rewrite_all):
            message = "No valid paths given"
            if as_json:
                return error(args.command, message, code=EXIT_ERROR)
            logging.error(message)
            return EXIT_ERROR

        config = build_config(args, mode, paths)
        logging.info("Using ledger: %s", config.ledger_path)
        show_progress = not (as_json or args.silent) and sys.stderr.isatty()
        engine = build_engine(config, show_progress)

        if mode.hashes:
            return cmd_verify(engine, silent=args.silent, as_json=as_json)
        if mode is Mode.PRINT:
            return cmd_print(engine, as_json=as_json)
        if mode is Mode.DUMP:
            return cmd_dump(engine, as_json=as_json)
        return cmd_duplicates(engine, as_json=as_json)

    except KeyboardInterrupt:
        if as_json:
            return error(args.command, "Operation interrupted by user", code=EXIT_INTERRUPTED)
        logging.warning("Operation interrupted by user.")
        return EXIT_INTERRUPTED
    except (MediaChecksumError, OSError, ValueError) as e:
        if as_json:
            debug_info = {"exception_type": type(e).__name__} if args.verbose else None
            return error(args.command, str(e), debug=debug_info, code=EXIT_ERROR)
        logging.error("Error occurred: %s", e, exc_info=args.verbose)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
