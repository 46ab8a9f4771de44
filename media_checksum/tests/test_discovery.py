#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Tests for media file discovery and stdin path parsing.
"""

import io

from media_checksum.scanning.discovery import FileDiscovery, read_paths_from_stream


def _touch(path):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("x")
    return path


def test_directories_walked_in_sorted_order(tmp_path):
    for name in ["b/2.mkv", "b/1.flac", "a.mp4", "c/notes.txt", ".hidden.mkv"]:
        _touch(tmp_path / name)
    found = FileDiscovery().discover_files([str(tmp_path)])
    assert found == [str(tmp_path / "a.mp4"), str(tmp_path / "b" / "1.flac"), str(tmp_path / "b" / "2.mkv")]


def test_argument_order_kept_and_duplicates_dropped(tmp_path):
    a = _touch(tmp_path / "a.mkv")
    b = _touch(tmp_path / "b.mkv")
    found = FileDiscovery().discover_files([str(b), str(a), str(b)])
    assert found == [str(b), str(a)]


def test_disable_filter_includes_unknown_extensions(tmp_path, caplog):
    _touch(tmp_path / "notes.txt")
    assert FileDiscovery().discover_files([str(tmp_path)]) == []
    assert ".txt" in caplog.text
    assert FileDiscovery(disable_filter=True).discover_files([str(tmp_path)]) == [str(tmp_path / "notes.txt")]


def test_ledger_is_excluded(tmp_path):
    ledger = _touch(tmp_path / "ledger.jsonl")
    found = FileDiscovery(disable_filter=True, exclude=[ledger]).discover_files([str(tmp_path)])
    assert found == []


def test_missing_paths_are_counted(tmp_path):
    discovery = FileDiscovery()
    assert discovery.discover_files([str(tmp_path / "gone.mkv")]) == []
    assert discovery.stats['missing'] == 1


def test_canonical_paths(tmp_path, monkeypatch):
    _touch(tmp_path / "a.mkv")
    monkeypatch.chdir(tmp_path)
    assert FileDiscovery(canonical_paths=True).discover_files(["a.mkv"]) == [str((tmp_path / "a.mkv").resolve())]


def test_read_paths_from_stream():
    assert read_paths_from_stream(io.StringIO("a.mkv\nb c.mkv\n\n")) == ["a.mkv", "b c.mkv"]
    assert read_paths_from_stream(io.StringIO("a\nb.mkv\0c.mkv\0")) == ["a\nb.mkv", "c.mkv"]
