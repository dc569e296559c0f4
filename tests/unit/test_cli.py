"""
Unit tests for the command-line entry point.
"""

import pytest

from filestreamer.__main__ import build_context, build_parser, main

from conftest import FIXED_LAST_MODIFIED


class TestBuildContext:
    """Tests for translating arguments to a RequestContext."""

    def test_headers(self):
        args = build_parser().parse_args([
            "a.mp4", "--range", "bytes=0-9", "--accept", "*/*",
            "--accept-encoding", "br", "--if-modified-since", FIXED_LAST_MODIFIED, "--head",
        ])
        ctx = build_context(args)

        assert ctx.range == "bytes=0-9"
        assert ctx.accept == "*/*"
        assert ctx.accept_encoding == "br"
        assert ctx.if_modified_since == FIXED_LAST_MODIFIED
        assert ctx.method == "HEAD"

    def test_url_defaults_to_path_under_root(self):
        """Test the URL path doubles as request URL with --root."""
        ctx = build_context(build_parser().parse_args(["/img/a.webp", "--root", "."]))
        assert ctx.url == "/img/a.webp"


class TestMain:
    """Tests for main()."""

    def test_writes_range_to_file(self, make_file, tmp_path):
        """Test the body window lands in --output."""
        source = make_file("data.txt", b"0123456789")
        out = tmp_path / "out.bin"

        assert main([str(source), "--range", "bytes=2-5", "-o", str(out), "--log-level", "WARNING"]) == 0
        assert out.read_bytes() == b"2345"

    def test_include_head(self, make_file, tmp_path):
        """Test -i writes the raw HTTP head before the body."""
        source = make_file("data.txt", b"abc")
        out = tmp_path / "out.bin"

        main([str(source), "-i", "-o", str(out), "--log-level", "WARNING"])

        raw = out.read_bytes()
        assert raw.startswith(b"HTTP/1.1 200 OK\r\n")
        assert raw.endswith(b"\r\n\r\nabc")

    def test_head_goes_to_stderr(self, make_file, tmp_path, capsys):
        source = make_file("data.txt", b"abc")
        main([str(source), "-o", str(tmp_path / "out.bin"), "--log-level", "WARNING"])

        assert "200 OK" in capsys.readouterr().err

    def test_root_mode(self, make_file, tmp_path):
        """Test --root resolves PATH like a URL."""
        make_file("public/a.txt", b"root file")
        out = tmp_path / "out.bin"

        assert main(["/a.txt", "--root", str(tmp_path / "public"), "-o", str(out), "--log-level", "WARNING"]) == 0
        assert out.read_bytes() == b"root file"

    def test_missing_file(self, tmp_path, capsys):
        """Test errors are printed and exit status is 1."""
        code = main([str(tmp_path / "missing.txt"), "-o", str(tmp_path / "out.bin"), "--log-level", "WARNING"])

        assert code == 1
        assert capsys.readouterr().err.startswith("Error: File not found")

    def test_php_source_refused_without_root(self, make_file, tmp_path, capsys):
        """Test a local .php file is not dumped when no --root is given."""
        source = make_file("config.php", b"<?php $db_password = 'secret';")
        out = tmp_path / "out.bin"

        assert main([str(source), "-o", str(out), "--log-level", "WARNING"]) == 1
        assert capsys.readouterr().err.startswith("Error: File not found")
        assert not out.exists() or out.read_bytes() == b""

    def test_invalid_chunk_size(self, make_file, capsys):
        assert main([str(make_file("a.txt", b"x")), "--chunk-size", "0"]) == 1
        assert "chunk_size" in capsys.readouterr().err

    def test_version(self, capsys):
        with pytest.raises(SystemExit):
            main(["--version"])
        assert "filestreamer" in capsys.readouterr().out
