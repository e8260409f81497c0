"""
Photo Cache Tests

A cached photo is never fetched twice, and nothing the cache does can
abort a sync.
"""

import httpx
import pytest

from signage.contracts import Speaker
from signage.photo_cache import BROWSER_USER_AGENT, PhotoCache

from .fixtures import FakeCfp, PHOTO_BYTES


PHOTO_URL = "http://images.example.org/avatars/ada.png"


@pytest.fixture
def cfp():
    return FakeCfp().route(PHOTO_URL, PHOTO_BYTES)


@pytest.fixture
def cache(tmp_path, cfp):
    return PhotoCache(tmp_path / "photos", timeout=2.0, client=cfp.client())


class TestEnsureCached:

    def test_miss_downloads_into_cache_dir(self, cache, tmp_path):
        path = cache.ensure_cached("abc123", PHOTO_URL)

        assert path == tmp_path / "photos" / "abc123.dat"
        assert path.read_bytes() == PHOTO_BYTES
        assert cache.is_cached("abc123")

    def test_second_call_does_not_fetch(self, cache, cfp):
        cache.ensure_cached("abc123", PHOTO_URL)
        cache.ensure_cached("abc123", PHOTO_URL)

        assert cfp.requested(PHOTO_URL) == 1

    def test_hit_ignores_url(self, cache, cfp):
        cache.cache_dir.mkdir(parents=True)
        cache.path_for("abc123").write_bytes(b"already here")

        path = cache.ensure_cached("abc123", "http://images.example.org/other.png")

        assert path.read_bytes() == b"already here"
        assert cfp.requests == []

    @pytest.mark.parametrize("url", [None, "", "   "])
    def test_blank_url_is_a_no_op(self, cache, cfp, url):
        assert cache.ensure_cached("abc123", url) is None
        assert cfp.requests == []
        assert not cache.is_cached("abc123")

    def test_backslashes_are_fixed(self, cache, cfp, caplog):
        bad = PHOTO_URL.replace("/avatars/", "\\avatars\\")

        with caplog.at_level("WARNING", logger="signage.photo_cache"):
            path = cache.ensure_cached("abc123", bad)

        assert path is not None
        assert cfp.requested(PHOTO_URL) == 1
        assert "badly formed" in caplog.text

    def test_uses_browser_user_agent(self, cache, cfp):
        cache.ensure_cached("abc123", PHOTO_URL)
        assert cfp.requests[0].headers["User-Agent"] == BROWSER_USER_AGENT

    def test_creates_missing_cache_dir(self, cache):
        assert not cache.cache_dir.exists()
        cache.ensure_cached("abc123", PHOTO_URL)
        assert cache.cache_dir.is_dir()


class TestUnsafeIds:
    """Speaker ids come from the feed and must not escape the cache directory."""

    @pytest.mark.parametrize("speaker_id", ["../evil", "a/b", "..\\evil", "..", ""])
    def test_not_cached(self, cache, cfp, tmp_path, speaker_id):
        assert cache.ensure_cached(speaker_id, PHOTO_URL) is None
        assert cfp.requests == []
        assert not cache.is_cached(speaker_id)
        assert not (tmp_path / "evil.dat").exists()

    def test_path_for_rejects(self, cache):
        with pytest.raises(ValueError):
            cache.path_for("../evil")

    def test_speaker_has_no_photo_path(self, tmp_path):
        assert Speaker("../evil", "Eve", cache_dir=tmp_path).photo_path is None
        assert Speaker("abc123", "Ada", cache_dir=tmp_path).photo_path == tmp_path / "abc123.dat"


class TestFailuresAreSwallowed:

    def test_http_error(self, cache, cfp):
        cfp.route(PHOTO_URL, 404)

        assert cache.ensure_cached("abc123", PHOTO_URL) is None
        assert not cache.is_cached("abc123")

    def test_network_error(self, cache, cfp):
        cfp.route(PHOTO_URL, httpx.ConnectError("unreachable"))
        assert cache.ensure_cached("abc123", PHOTO_URL) is None

    def test_invalid_url(self, cache):
        assert cache.ensure_cached("abc123", "not a url at all") is None

    def test_no_partial_file_left(self, cache, cfp):
        cfp.route(PHOTO_URL, 500)
        cache.ensure_cached("abc123", PHOTO_URL)

        assert list(cache.cache_dir.iterdir()) == []

    def test_failed_photo_is_retried_next_time(self, cache, cfp):
        cfp.route(PHOTO_URL, 500)
        cache.ensure_cached("abc123", PHOTO_URL)
        cfp.route(PHOTO_URL, PHOTO_BYTES)

        assert cache.ensure_cached("abc123", PHOTO_URL) is not None
        assert cfp.requested(PHOTO_URL) == 2


class TestPurge:

    def test_removes_every_photo(self, cache):
        cache.cache_dir.mkdir(parents=True)
        for uuid in ("a", "b", "c"):
            cache.path_for(uuid).write_bytes(b"x")

        assert cache.purge() == 3
        assert list(cache.cache_dir.iterdir()) == []

    def test_missing_dir(self, cache):
        assert cache.purge() == 0

    def test_photo_is_fetched_again_after_purge(self, cache, cfp):
        cache.ensure_cached("abc123", PHOTO_URL)
        cache.purge()
        cache.ensure_cached("abc123", PHOTO_URL)

        assert cfp.requested(PHOTO_URL) == 2
