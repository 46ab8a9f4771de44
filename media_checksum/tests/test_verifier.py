#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
End-to-end tests for the verification engine with a fake stream source and
an in-memory extended attribute store.
"""

import hashlib
import os
import subprocess
from unittest.mock import patch

import pytest

from media_checksum.engine.modes import Mode
from media_checksum.engine.verifier import RunConfig, VerificationEngine
from media_checksum.errors import WriteError
from media_checksum.models.outcome import Outcome
from media_checksum.models.record import StreamSelection
from media_checksum.scanning.flac import FlacImporter
from media_checksum.scanning.hasher import HashEngine
from media_checksum.scanning.scheduler import HashScheduler
from media_checksum.storage.base import Backend
from media_checksum.storage.ledger import LedgerStore
from media_checksum.tests.fixtures.media import (
    FakeStreamSource, MemoryXattrStore, make_record, write_broken_media, write_media,
)


class Workspace:
    """A ledger, an xattr store and a stream source shared across runs."""

    def __init__(self, root):
        self.root = root
        self.ledger_path = root / "ledger.jsonl"
        self.xattr = MemoryXattrStore()
        self.source = FakeStreamSource()

    def engine(self, mode, paths=(), workers=2, **kwargs):
        kwargs.setdefault("algorithms", ("md5",))
        config = RunConfig(mode=mode, ledger_path=self.ledger_path,
                           paths=[str(p) for p in paths], **kwargs)
        scheduler = HashScheduler(HashEngine(self.source), workers=workers)
        return VerificationEngine(config, LedgerStore(self.ledger_path), self.xattr, scheduler)

    def run(self, mode, paths=(), **kwargs):
        return self.engine(mode, paths, **kwargs).run()

    def ledger(self):
        return LedgerStore(self.ledger_path).load()


def outcomes(report):
    return {os.path.basename(r.path): r.outcome for r in report.results}


@pytest.fixture
def ws(tmp_path):
    return Workspace(tmp_path)


@pytest.fixture
def media(tmp_path):
    return [
        write_media(tmp_path / "a.mkv", ("video", "frames-a"), ("audio", "samples-a")),
        write_media(tmp_path / "b.flac", ("audio", "samples-b")),
    ]


class TestWriteThenTest:
    def test_fresh_write_reports_not_written(self, ws, media):
        report = ws.run(Mode.WRITE, media)
        assert outcomes(report) == {"a.mkv": Outcome.NOT_WRITTEN, "b.flac": Outcome.NOT_WRITTEN}
        assert report.is_clean()
        assert report.ledger_written
        assert all(r.written for r in report.results)
        assert ws.ledger().paths() == [str(p) for p in media]
        assert ws.xattr.record_for(str(media[0])) == ws.ledger().read(str(media[0]))

    def test_test_after_write_is_clean(self, ws, media):
        ws.run(Mode.WRITE, media)
        report = ws.run(Mode.TEST, media)
        assert set(outcomes(report).values()) == {Outcome.OK}
        assert report.is_clean()

    def test_test_without_paths_uses_ledger(self, ws, media):
        ws.run(Mode.WRITE, media)
        report = ws.run(Mode.TEST)
        assert [r.path for r in report.results] == [str(p) for p in media]

    def test_write_is_idempotent(self, ws, media):
        ws.run(Mode.WRITE, media)
        first = ws.ledger_path.read_bytes()
        report = ws.run(Mode.WRITE, media)
        assert set(outcomes(report).values()) == {Outcome.OK}
        assert ws.ledger_path.read_bytes() == first

    def test_untracked_file(self, ws, media):
        report = ws.run(Mode.TEST, media[:1])
        assert outcomes(report) == {"a.mkv": Outcome.NOT_WRITTEN}
        assert not report.is_clean()
        assert not ws.ledger_path.exists()

    def test_changed_content(self, ws, media):
        ws.run(Mode.WRITE, media)
        write_media(media[1], ("audio", "bit-rot"))
        report = ws.run(Mode.TEST, media)
        assert outcomes(report) == {"a.mkv": Outcome.OK, "b.flac": Outcome.CHANGED}

    def test_verifies_with_recorded_settings(self, ws, media):
        ws.run(Mode.WRITE, media, decode=True, algorithms=("sha256", "crc32"))
        ws.source.decode_flags.clear()
        report = ws.run(Mode.TEST, media)
        assert report.is_clean()
        assert ws.source.decode_flags == [True, True]
        assert report.results[0].new.algorithms == ["sha256", "crc32"]


class TestRenames:
    def test_xattr_follows_rename(self, ws, media):
        ws.run(Mode.WRITE, media)
        moved = media[0].with_name("moved.mkv")
        os.rename(media[0], moved)
        report = ws.run(Mode.TEST, [moved])
        assert outcomes(report) == {"moved.mkv": Outcome.OK}

    def test_rename_without_xattr_is_noted_and_rewritten(self, ws, media):
        ws.run(Mode.WRITE, media, write_xattr=False)
        moved = media[0].with_name("moved.mkv")
        os.rename(media[0], moved)

        report = ws.run(Mode.TEST, [moved])
        assert report.results[0].outcome is Outcome.NOT_WRITTEN
        assert str(media[0]) in report.results[0].message

        ws.run(Mode.WRITE, [moved])
        assert ws.ledger().paths() == [str(media[1]), str(moved)]


class TestConflicts:
    def _tamper_ledger(self, ws, path):
        ledger = ws.ledger()
        ledger.write(str(path), make_record(str(path), (0, "audio", "md5", b"\x00" * 16)))
        ledger.commit()

    def test_disagreeing_backends(self, ws, media):
        ws.run(Mode.WRITE, media)
        self._tamper_ledger(ws, media[1])
        report = ws.run(Mode.TEST, media)
        assert outcomes(report)["b.flac"] is Outcome.CONFLICT
        assert not report.is_clean()

    def test_write_resolves_conflict(self, ws, media):
        ws.run(Mode.WRITE, media)
        self._tamper_ledger(ws, media[1])
        report = ws.run(Mode.WRITE, media)
        assert outcomes(report)["b.flac"] is Outcome.CONFLICT
        assert ws.run(Mode.TEST, media).is_clean()

    def test_prefer_xattr_for_print(self, ws, media):
        ws.run(Mode.WRITE, media)
        self._tamper_ledger(ws, media[1])
        engine = ws.engine(Mode.PRINT, [media[1]], prefer=Backend.XATTR)
        (found,) = engine.collect()
        assert found.conflict
        assert found.canonical == ws.xattr.record_for(str(media[1]))


class TestCompare:
    def test_missing_files_are_orphaned(self, ws, media):
        ws.run(Mode.WRITE, media)
        media[1].unlink()
        report = ws.run(Mode.COMPARE)
        assert outcomes(report) == {"a.mkv": Outcome.OK, "b.flac": Outcome.ORPHANED}

    def test_orphans_reported_with_explicit_paths(self, ws, media):
        ws.run(Mode.WRITE, media)
        media[1].unlink()
        report = ws.run(Mode.COMPARE, media[:1])
        assert [r.outcome for r in report.results] == [Outcome.OK, Outcome.ORPHANED]

    def test_test_mode_treats_missing_file_as_decode_error(self, ws, media):
        ws.run(Mode.WRITE, media)
        media[1].unlink()
        report = ws.run(Mode.TEST)
        assert outcomes(report)["b.flac"] is Outcome.DECODE_ERROR


class TestWriteFailures:
    def test_unwritable_ledger_aborts_before_hashing(self, ws, media, tmp_path):
        ws.ledger_path = tmp_path / "missing-dir" / "ledger.jsonl"
        with pytest.raises(WriteError):
            ws.run(Mode.WRITE, media)
        assert not ws.source.calls

    def test_failed_commit_leaves_xattrs_untouched(self, ws, media):
        with patch.object(LedgerStore, "write_document", side_effect=WriteError("disk full")):
            with pytest.raises(WriteError):
                ws.run(Mode.WRITE, media)
        assert ws.xattr.data == {}

    def test_unsupported_xattrs_degrade_to_ledger(self, ws, media):
        ws.xattr.unsupported = True
        report = ws.run(Mode.WRITE, media)
        assert report.is_clean()
        assert report.xattr_available is False
        assert len(ws.ledger()) == 2
        assert ws.run(Mode.TEST, media).is_clean()

    def test_single_xattr_failure(self, ws, media):
        ws.xattr.failing = {str(media[0])}
        report = ws.run(Mode.WRITE, media)
        assert report.results[0].write_failed
        assert not report.results[1].write_failed
        assert not report.is_clean()
        assert len(ws.ledger()) == 2

    def test_decode_failure_is_isolated(self, ws, media, tmp_path):
        broken = write_broken_media(tmp_path / "broken.mkv")
        report = ws.run(Mode.WRITE, [media[0], broken, media[1]])
        assert outcomes(report)["broken.mkv"] is Outcome.DECODE_ERROR
        assert not report.is_clean()
        assert ws.ledger().paths() == [str(media[0]), str(media[1])]

    def test_unsupported_stream(self, ws, media):
        report = ws.run(Mode.WRITE, media[1:], selection=StreamSelection.VIDEO)
        assert outcomes(report) == {"b.flac": Outcome.UNSUPPORTED_STREAM}

    def test_unknown_recorded_algorithm_is_isolated(self, ws, media):
        ws.run(Mode.WRITE, media[1:])
        ledger = ws.ledger()
        ledger.write(str(media[0]), make_record(str(media[0]), (0, "video", "blake3", b"\x01" * 32)))
        ledger.commit()

        report = ws.run(Mode.TEST, media)
        assert outcomes(report) == {"a.mkv": Outcome.UNSUPPORTED_STREAM, "b.flac": Outcome.OK}
        assert "blake3" in report.results[0].message
        assert not report.is_clean()

    def test_unreadable_file_is_a_decode_error(self, ws, media):
        ws.run(Mode.WRITE, media)
        with patch.object(ws.source, "get_streams", side_effect=PermissionError(13, "Permission denied")):
            report = ws.run(Mode.TEST, media[:1])
        assert outcomes(report) == {"a.mkv": Outcome.DECODE_ERROR}
        assert "Permission denied" in report.results[0].message


class TestWriteOptions:
    def test_dry_run_writes_nothing(self, ws, media):
        report = ws.run(Mode.WRITE, media, dry_run=True)
        assert len(report.results) == 2
        assert not report.ledger_written
        assert not ws.ledger_path.exists()
        assert ws.xattr.data == {}

    def test_prune(self, ws, media):
        ws.run(Mode.WRITE, media)
        media[1].unlink()
        report = ws.run(Mode.WRITE, media[:1], prune=True)
        assert report.pruned == [str(media[1])]
        assert ws.ledger().paths() == [str(media[0])]

    def test_ledger_identical_for_any_worker_count(self, tmp_path):
        files = [write_media(tmp_path / "m" / f"{i:02d}.mkv", ("audio", str(i)), ("video", str(i * 7)))
                 for i in range(16)]
        one = Workspace(tmp_path)
        one.ledger_path = tmp_path / "one.jsonl"
        one.run(Mode.WRITE, files, workers=1)
        many = Workspace(tmp_path)
        many.ledger_path = tmp_path / "many.jsonl"
        many.run(Mode.WRITE, files, workers=8)
        assert one.ledger_path.read_bytes() == many.ledger_path.read_bytes()


class TestReadOnlyModes:
    def test_duplicates(self, ws, media, tmp_path):
        copy = write_media(tmp_path / "copy.mkv", ("video", "frames-a"), ("audio", "samples-a"))
        ws.run(Mode.WRITE, media + [copy])
        groups = ws.engine(Mode.DUPLICATES).duplicates()
        assert [[r.path for r in g] for g in groups] == [[str(media[0]), str(copy)]]

    def test_dump_records_include_xattr_only_files(self, ws, media):
        ws.run(Mode.WRITE, media[:1])
        ws.run(Mode.WRITE, media[1:])
        ledger = ws.ledger()
        ledger.remove(str(media[1]))
        ledger.commit()
        records = ws.engine(Mode.DUMP, [media[1]]).dump_records()
        assert [r.path for r in records] == [str(media[0]), str(media[1])]

    def test_print_skips_untracked(self, ws, media, caplog):
        assert ws.engine(Mode.PRINT, media).collect() == []
        assert "No recorded checksum" in caplog.text


class TestRewrite:
    def test_rewrite_restores_both_backends_without_hashing(self, ws, media):
        ws.run(Mode.WRITE, media)
        recorded = ws.ledger().read(str(media[0]))
        ws.xattr.remove(str(media[0]))
        write_media(media[0], ("video", "changed"), ("audio", "changed"))
        ws.source.calls.clear()

        report = ws.run(Mode.WRITE, rewrite=True)
        assert [r.path for r in report.results] == [str(p) for p in media]
        assert set(outcomes(report).values()) == {Outcome.OK}
        assert report.ledger_written
        assert sum(ws.source.calls.values()) == 0
        # The stored checksum is carried over, never recomputed
        assert ws.xattr.record_for(str(media[0])) == recorded
        assert ws.ledger().read(str(media[0])) == recorded

    def test_rewrite_without_paths_skips_missing_files(self, ws, media, caplog):
        ws.run(Mode.WRITE, media)
        media[1].unlink()
        report = ws.run(Mode.WRITE, rewrite=True)
        assert [r.path for r in report.results] == [str(media[0])]
        assert "Not rewriting" in caplog.text
        assert ws.ledger().paths() == [str(p) for p in media]

    def test_rewrite_drops_superseded_ledger_lines(self, ws, media):
        ws.run(Mode.WRITE, media)
        line = ws.ledger().read(str(media[0])).to_json()
        with ws.ledger_path.open("a", encoding="utf-8") as f:
            f.write(line + "\n")
        ws.run(Mode.WRITE, rewrite=True)
        assert ws.ledger_path.read_text(encoding="utf-8").count(str(media[0])) == 1

    def test_rewrite_of_untracked_path(self, ws, media, caplog):
        report = ws.run(Mode.WRITE, media[:1], rewrite=True)
        assert report.results == []
        assert "No recorded checksum" in caplog.text


class TestFlacImport:
    @staticmethod
    def _metaflac(md5_hex, bits="16"):
        def run(cmd, **kwargs):
            out = md5_hex if cmd[1] == "--show-md5sum" else bits
            return subprocess.CompletedProcess(cmd, 0, stdout=(out + "\n").encode(), stderr=b"")
        return run

    def _import(self, ws, paths, md5_hex):
        config = RunConfig(mode=Mode.WRITE, ledger_path=ws.ledger_path,
                           paths=[str(p) for p in paths], import_flac=True)
        scheduler = HashScheduler(FlacImporter(), workers=2)
        engine = VerificationEngine(config, LedgerStore(ws.ledger_path), ws.xattr, scheduler)
        with patch("media_checksum.scanning.flac.subprocess.run", side_effect=self._metaflac(md5_hex)):
            return engine.run()

    def test_imported_signature_verifies_against_decoded_audio(self, ws, media):
        md5_hex = hashlib.md5(b"decoded:samples-b").hexdigest()
        report = self._import(ws, media[1:], md5_hex)
        assert outcomes(report) == {"b.flac": Outcome.NOT_WRITTEN}
        imported = ws.ledger().read(str(media[1]))
        assert imported.decoded and imported.sample_bits == 16
        assert imported.selection is StreamSelection.AUDIO

        report = ws.run(Mode.TEST, media[1:])
        assert outcomes(report) == {"b.flac": Outcome.OK}
        assert ws.source.decode_flags == [True]
        assert ws.source.sample_bits == [16]

    def test_non_flac_files_are_unsupported(self, ws, media):
        report = self._import(ws, media, hashlib.md5(b"decoded:samples-b").hexdigest())
        assert outcomes(report) == {"a.mkv": Outcome.UNSUPPORTED_STREAM, "b.flac": Outcome.NOT_WRITTEN}
        assert ws.ledger().paths() == [str(media[1])]
