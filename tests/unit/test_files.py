"""
Unit tests for file snapshots, sidecars and writes.
"""

from pathlib import Path

from filestreamer.core.files import (
    FileMeta,
    publish_file,
    read_locked,
    read_sidecar,
    remove_file,
    sidecar_path,
    source_mtime,
    write_file,
    write_sidecar,
)

from conftest import FIXED_LAST_MODIFIED, FIXED_MTIME


class TestFileMeta:
    """Tests for FileMeta.snapshot()."""

    def test_snapshot(self, make_file):
        """Test size and mtime come from the open descriptor."""
        path = make_file("a.txt", b"hello")

        with open(path, "rb") as fp:
            meta = FileMeta.snapshot(fp, "txt")

        assert meta == FileMeta(size=5, mtime=FIXED_MTIME, extension="txt")
        assert meta.last_modified == FIXED_LAST_MODIFIED


class TestSidecar:
    """Tests for sidecar read/write."""

    def test_path(self):
        """Test the sidecar sits next to the original."""
        assert sidecar_path(Path("/www/site.css")) == Path("/www/site.css.json")

    def test_roundtrip_is_compact(self, make_file, no_wait_lock):
        """Test the sidecar JSON has no spaces."""
        path = make_file("site.css", b"body{}")
        write_sidecar(path, FIXED_MTIME, no_wait_lock)

        assert sidecar_path(path).read_bytes() == b'{"filemtime":1718445600}'
        assert read_sidecar(path, no_wait_lock) == {"filemtime": FIXED_MTIME}

    def test_missing(self, make_file, no_wait_lock):
        """Test a missing sidecar reads as None."""
        assert read_sidecar(make_file("site.css"), no_wait_lock) is None

    def test_garbage(self, make_file, no_wait_lock):
        """Test an unparseable sidecar reads as None."""
        path = make_file("site.css")
        make_file("site.css.json", b"not json")
        assert read_sidecar(path, no_wait_lock) is None

    def test_non_object(self, make_file, no_wait_lock):
        """Test a JSON value that is not an object reads as None."""
        path = make_file("site.css")
        make_file("site.css.json", b"[1, 2]")
        assert read_sidecar(path, no_wait_lock) is None

    def test_source_mtime(self, make_file):
        assert source_mtime(make_file("a.txt")) == FIXED_MTIME


class TestWrites:
    """Tests for write_file(), publish_file() and remove_file()."""

    def test_write_file_truncates(self, make_file, no_wait_lock):
        """Test shorter content fully replaces longer content."""
        path = make_file("a.json", b"0123456789")
        write_file(path, b"ab", no_wait_lock)
        assert path.read_bytes() == b"ab"

    def test_write_file_creates(self, tmp_path, no_wait_lock):
        path = tmp_path / "new.json"
        write_file(path, b"{}", no_wait_lock)
        assert path.read_bytes() == b"{}"

    def test_publish_file(self, make_file):
        """Test publish replaces content and leaves no temp files."""
        path = make_file("a.txt.gz", b"old")
        publish_file(path, b"new")

        assert path.read_bytes() == b"new"
        assert sorted(p.name for p in path.parent.iterdir()) == ["a.txt.gz"]

    def test_read_locked(self, make_file, no_wait_lock):
        assert read_locked(make_file("a.txt", b"data"), no_wait_lock) == b"data"

    def test_remove_file(self, make_file, tmp_path):
        """Test removal reports whether something was deleted."""
        path = make_file("a.txt")
        assert remove_file(path) is True
        assert remove_file(path) is False
        assert remove_file(tmp_path / "never.txt") is False
