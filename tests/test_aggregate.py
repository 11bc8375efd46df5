"""Tests for the line aggregator."""

import os

import pytest

from tarsnap.aggregate import aggregate_lines, read_lines
from tarsnap.exceptions import StorageError


class TestReadLines:
    """Tests for read_lines."""

    def test_strips_terminators(self, tmp_path):
        """Test trailing newlines are removed."""
        path = tmp_path / "h.txt"
        path.write_text("one\ntwo\n")
        assert read_lines(path) == ["one", "two"]

    def test_no_trailing_newline(self, tmp_path):
        """Test the last line without newline is kept."""
        path = tmp_path / "h.txt"
        path.write_text("one\ntwo")
        assert read_lines(path) == ["one", "two"]

    def test_crlf(self, tmp_path):
        """Test Windows line endings are normalized."""
        path = tmp_path / "h.txt"
        path.write_bytes(b"one\r\ntwo\r\n")
        assert read_lines(path) == ["one", "two"]

    def test_empty_lines_kept(self, tmp_path):
        """Test blank lines count as lines."""
        path = tmp_path / "h.txt"
        path.write_text("one\n\ntwo\n")
        assert read_lines(path) == ["one", "", "two"]

    def test_invalid_utf8_preserved(self, tmp_path):
        """Test undecodable bytes survive as surrogate escapes."""
        path = tmp_path / "h.txt"
        path.write_bytes(b"echo \xff\n")
        [line] = read_lines(path)
        assert line.encode("utf-8", "surrogateescape") == b"echo \xff"


class TestAggregateLines:
    """Tests for aggregate_lines."""

    def test_two_files(self, history_dir):
        """Test per-file counts and the combined sequence."""
        aggregate = aggregate_lines(history_dir)

        assert aggregate.line_counts == {history_dir / "a.txt": 3, history_dir / "b.txt": 2}
        assert aggregate.lines == ["ls -la", "cd /tmp", "ls -la", "cd /tmp", "echo hello world"]
        assert aggregate.total_lines == 5
        assert aggregate.files == [history_dir / "a.txt", history_dir / "b.txt"]

    def test_descends_into_subdirectories(self, history_dir):
        """Test nested files are read and directories themselves are skipped."""
        nested = history_dir / "old"
        nested.mkdir()
        (nested / "c.txt").write_text("git status --short\n")

        aggregate = aggregate_lines(history_dir)

        assert aggregate.line_counts[nested / "c.txt"] == 1
        assert nested not in aggregate.line_counts
        assert "git status --short" in aggregate.lines

    def test_exclude(self, history_dir):
        """Test excluded file names are not read."""
        (history_dir / "summary.txt").write_text("echo hello world\n")

        aggregate = aggregate_lines(history_dir, exclude=["summary.txt"])

        assert history_dir / "summary.txt" not in aggregate.line_counts
        assert aggregate.total_lines == 5

    def test_empty_directory(self, tmp_path):
        """Test an empty directory yields nothing."""
        aggregate = aggregate_lines(tmp_path)
        assert aggregate.lines == []
        assert aggregate.line_counts == {}

    def test_missing_directory(self, tmp_path):
        """Test a missing directory is fatal."""
        with pytest.raises(StorageError, match="Not a directory"):
            aggregate_lines(tmp_path / "missing")

    @pytest.mark.skipif(os.geteuid() == 0, reason="root can read any file")
    def test_unreadable_file(self, history_dir):
        """Test one unreadable file aborts the whole walk."""
        blocked = history_dir / "b.txt"
        blocked.chmod(0)
        try:
            with pytest.raises(StorageError, match="Failed to read"):
                aggregate_lines(history_dir)
        finally:
            blocked.chmod(0o644)

    def test_read_error_aborts(self, history_dir, monkeypatch):
        """Test a file that cannot be read becomes a StorageError."""

        def refuse(path):
            raise PermissionError(13, "Permission denied", str(path))

        monkeypatch.setattr("tarsnap.aggregate.read_lines", refuse)

        with pytest.raises(StorageError, match="Failed to read"):
            aggregate_lines(history_dir)

    def test_unlistable_subdirectory(self, history_dir, monkeypatch):
        """Test a subdirectory that cannot be listed aborts the walk."""
        nested = history_dir / "nested"
        nested.mkdir()
        (nested / "c.txt").write_text("whoami\n")
        real_scandir = os.scandir

        def scandir(path="."):
            if os.fspath(path) == str(nested):
                raise PermissionError(13, "Permission denied", os.fspath(path))
            return real_scandir(path)

        monkeypatch.setattr(os, "scandir", scandir)

        with pytest.raises(StorageError, match="Failed to walk") as exc_info:
            aggregate_lines(history_dir)
        assert exc_info.value.context["path"] == str(nested)
