"""Tests for vidaudio.io module."""

from __future__ import annotations

from pathlib import Path

import pytest

from vidaudio.io import read_bytes, write_bytes


class TestReadBytes:
    def test_reads_file(self, tmp_path: Path) -> None:
        path = tmp_path / "clip.mp4"
        path.write_bytes(b"\x00\x01video")
        assert read_bytes(path) == b"\x00\x01video"

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            read_bytes(tmp_path / "missing.mp4")


class TestWriteBytes:
    def test_writes_file(self, tmp_path: Path) -> None:
        path = tmp_path / "output.mp3"
        write_bytes(path, b"ID3audio")
        assert path.read_bytes() == b"ID3audio"

    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "dir" / "output_000.mp3"
        write_bytes(path, b"x")
        assert path.exists()

    def test_overwrites_existing_file(self, tmp_path: Path) -> None:
        path = tmp_path / "output.mp3"
        path.write_bytes(b"old content that is longer")
        write_bytes(path, b"new")
        assert path.read_bytes() == b"new"

    def test_leaves_no_temp_files(self, tmp_path: Path) -> None:
        write_bytes(tmp_path / "a.mp3", b"a")
        assert [p.name for p in tmp_path.iterdir()] == ["a.mp3"]
