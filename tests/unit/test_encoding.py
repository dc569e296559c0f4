"""
Unit tests for compressed-variant negotiation.
"""

import gzip
import zlib

import pytest

from filestreamer.negotiation.encoding import CompressedVariantCache, parse_accept_encoding
from filestreamer.transcoding import DeflateCompressor, GzipCompressor, Transcoder

from conftest import FIXED_MTIME, FakeBrotli, set_mtime


CSS = b"body { color: red; }\n" * 400


@pytest.fixture
def css(make_file):
    return make_file("site.css", CSS)


@pytest.fixture
def cache(transcoder, no_wait_lock, observer):
    return CompressedVariantCache(transcoder, no_wait_lock, observer)


class TestParseAcceptEncoding:
    """Tests for parse_accept_encoding()."""

    def test_tokens(self):
        """Test tokens are split, trimmed and lowercased."""
        assert parse_accept_encoding("gzip, Deflate ,BR") == {"gzip", "deflate", "br"}

    def test_parameters_stripped(self):
        """Test q-values other than 0 keep the coding."""
        assert parse_accept_encoding("br;q=0.5, gzip;q=1") == {"br", "gzip"}

    def test_q_zero_refuses(self):
        """Test q=0 removes a coding."""
        assert parse_accept_encoding("br;q=0, gzip") == {"gzip"}

    def test_wildcard(self):
        """Test * offers every coding not refused."""
        assert parse_accept_encoding("*, br;q=0") >= {"deflate", "gzip"}
        assert "br" not in parse_accept_encoding("*, br;q=0")


class TestCompressedVariantCache:
    """Tests for CompressedVariantCache.pick()."""

    def test_empty_header_serves_original(self, cache, css):
        """Test no Accept-Encoding means no negotiation and no sidecar."""
        variant = cache.pick(css, "")

        assert variant.path == css
        assert variant.encoding is None
        assert not css.with_name("site.css.json").exists()

    def test_brotli_preferred(self, cache, css, fake_brotli):
        """Test br wins regardless of client order."""
        variant = cache.pick(css, "gzip, deflate, br")

        assert variant.encoding == "br"
        assert variant.path.name == "site.css.br"
        assert variant.path.read_bytes() == b"BR:" + CSS[:16]
        assert fake_brotli.calls == 1

    def test_existing_variant_reused(self, cache, css, fake_brotli):
        """Test a second request uses the variant already on disk."""
        cache.pick(css, "br")
        cache.pick(css, "br")
        assert fake_brotli.calls == 1

    def test_deflate_when_brotli_unavailable(self, no_wait_lock, observer, css):
        """Test an unavailable compressor is skipped silently."""
        transcoder = Transcoder([FakeBrotli(available=False), DeflateCompressor(), GzipCompressor()], [])
        variant = CompressedVariantCache(transcoder, no_wait_lock, observer).pick(css, "gzip, deflate, br")

        assert variant.encoding == "deflate"
        assert variant.path.name == "site.css.zz"
        assert zlib.decompress(variant.path.read_bytes()) == CSS
        assert observer.fallbacks == []

    def test_gzip(self, cache, css):
        """Test gzip variants decompress to the original."""
        variant = cache.pick(css, "gzip")

        assert variant.encoding == "gzip"
        assert gzip.decompress(variant.path.read_bytes()) == CSS

    def test_failure_falls_through(self, no_wait_lock, observer, css):
        """Test a failing compressor is reported and the next one used."""
        transcoder = Transcoder([FakeBrotli(fail=True), DeflateCompressor(), GzipCompressor()], [])
        variant = CompressedVariantCache(transcoder, no_wait_lock, observer).pick(css, "br, gzip")

        assert variant.encoding == "gzip"
        assert not css.with_name("site.css.br").exists()
        assert len(observer.fallbacks) == 1
        assert "br compression failed" in observer.fallbacks[0][1]

    def test_unknown_codings_serve_original(self, cache, css):
        """Test a header with nothing we produce leaves the original."""
        variant = cache.pick(css, "identity, zstd")
        assert variant.encoding is None

    def test_sidecar_written(self, cache, css):
        """Test the sidecar records the source mtime."""
        cache.pick(css, "gzip")
        assert css.with_name("site.css.json").read_bytes() == b'{"filemtime":%d}' % FIXED_MTIME

    def test_stale_variants_invalidated(self, cache, css, fake_brotli):
        """Test a changed source mtime deletes and rebuilds variants."""
        cache.pick(css, "br")
        cache.pick(css, "gzip")
        assert css.with_name("site.css.gz").exists()

        css.write_bytes(b"p { margin: 0; }\n" * 400)
        set_mtime(css, FIXED_MTIME + 60)

        variant = cache.pick(css, "br")

        assert fake_brotli.calls == 2
        assert variant.path.read_bytes() == b"BR:p { margin: 0; }"
        assert not css.with_name("site.css.gz").exists()
        assert css.with_name("site.css.json").read_bytes() == b'{"filemtime":%d}' % (FIXED_MTIME + 60)

    def test_corrupt_sidecar_invalidates(self, cache, css, make_file):
        """Test an unparseable sidecar counts as stale."""
        make_file("site.css.gz", b"stale")
        make_file("site.css.json", b"{broken")

        variant = cache.pick(css, "gzip")

        assert gzip.decompress(variant.path.read_bytes()) == CSS

    def test_refresh_reports_invalidation(self, cache, css):
        """Test refresh() is a no-op while the sidecar matches."""
        assert cache.refresh(css) is True
        assert cache.refresh(css) is False
