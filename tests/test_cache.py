"""
Tests for capupdate.state.cache module.

Tests the response cache including:
- Loading missing, valid, corrupted and undecodable cache files
- Saving with metadata and stable formatting
- Time-to-live expiry using an injected clock
- Caching of "no information" results
- cached_lookup() hit/miss behavior, malformed entries and error propagation
"""

from __future__ import annotations

import json

import pytest

from capupdate.exceptions import CacheError, NetworkError
from capupdate.sources.base import LatestVersion
from capupdate.state import (
    NullCache,
    ResponseCache,
    cache_key,
    cached_lookup,
    create_default_cache,
)


@pytest.fixture
def cache_file(tmp_test_dir):
    return tmp_test_dir / ".version-cache" / "versions.json"


@pytest.fixture
def cache(cache_file, clock):
    return ResponseCache(cache_file, ttl_seconds=3600, clock=clock)


class TestLoadSave:
    """Tests for ResponseCache.load() and save()."""

    def test_missing_file_is_empty(self, cache):
        """Test loading a non-existent file yields a default cache."""
        state = cache.load()

        assert state["entries"] == {}
        assert state["metadata"]["schema_version"] == "1"

    def test_save_creates_directory(self, cache, cache_file):
        """Test save() creates the parent directory."""
        cache.put("dockerhub:library/nginx", None)
        cache.save()

        assert cache_file.exists()

    def test_save_format(self, cache, cache_file, clock):
        """Test JSON is indented, key-sorted and newline-terminated."""
        cache.put("dockerhub:library/nginx", {"version": "1.27.0"})
        cache.save()

        text = cache_file.read_text(encoding="utf-8")
        data = json.loads(text)

        assert text.endswith("\n")
        assert '\n  "entries"' in text
        assert list(data) == sorted(data)
        assert data["metadata"]["last_updated"] == clock().isoformat()
        assert "capupdate_version" in data["metadata"]

    def test_round_trip(self, cache, cache_file, clock):
        """Test entries survive a save and reload."""
        cache.put("github:TryGhost/Ghost", {"version": "5.2.3", "source": "github"})
        cache.save()

        reloaded = ResponseCache(cache_file, clock=clock)
        reloaded.load()

        assert reloaded.get("github:TryGhost/Ghost")["value"]["version"] == "5.2.3"

    def test_corrupted_file_backed_up(self, cache, cache_file):
        """Test invalid JSON is backed up and replaced before raising."""
        cache_file.parent.mkdir(parents=True)
        cache_file.write_text("{not json", encoding="utf-8")

        with pytest.raises(CacheError, match="backed up"):
            cache.load()

        backup = cache_file.with_suffix(".json.backup")
        assert backup.read_text(encoding="utf-8") == "{not json"
        assert json.loads(cache_file.read_text(encoding="utf-8"))["entries"] == {}

    def test_non_object_file_backed_up(self, cache, cache_file):
        """Test a JSON list at top level is treated as corrupted."""
        cache_file.parent.mkdir(parents=True)
        cache_file.write_text("[1, 2]", encoding="utf-8")

        with pytest.raises(CacheError):
            cache.load()

        assert cache_file.with_suffix(".json.backup").exists()

    def test_non_utf8_file_backed_up(self, cache, cache_file):
        """Test undecodable bytes are treated as corrupted."""
        cache_file.parent.mkdir(parents=True)
        cache_file.write_bytes(b"\xff\xfe{}")

        with pytest.raises(CacheError, match="backed up"):
            cache.load()

        backup = cache_file.with_suffix(".json.backup")
        assert backup.read_bytes() == b"\xff\xfe{}"
        assert json.loads(cache_file.read_text(encoding="utf-8"))["entries"] == {}

    def test_non_object_entries_backed_up(self, cache, cache_file):
        """Test an entries value that is not a mapping is treated as corrupted."""
        cache_file.parent.mkdir(parents=True)
        cache_file.write_text('{"entries": []}', encoding="utf-8")

        with pytest.raises(CacheError):
            cache.load()

        assert cache_file.with_suffix(".json.backup").exists()
        assert cache.get("dockerhub:library/ghost") is None


class TestExpiry:
    """Tests for ResponseCache.get() freshness rules."""

    def test_fresh_entry(self, cache, clock):
        """Test an entry is returned within its TTL."""
        cache.put("k", {"version": "1.0"})
        clock.advance(3599)

        assert cache.get("k")["value"] == {"version": "1.0"}

    def test_expired_entry(self, cache, clock):
        """Test an entry is dropped once the TTL has elapsed."""
        cache.put("k", {"version": "1.0"})
        clock.advance(3600)

        assert cache.get("k") is None

    def test_future_entry_ignored(self, cache, clock):
        """Test an entry captured in the future is not trusted."""
        cache.put("k", {"version": "1.0"})
        clock.advance(-10)

        assert cache.get("k") is None

    def test_missing_key(self, cache):
        """Test unknown keys return None."""
        assert cache.get("nope") is None

    def test_non_object_entries_in_memory(self, cache):
        """Test get() tolerates an entries value that is not a mapping."""
        cache.state["entries"] = ["dockerhub:library/ghost"]

        assert cache.get("dockerhub:library/ghost") is None

    def test_malformed_timestamp(self, cache):
        """Test an unreadable captured_at is treated as a miss."""
        cache.state["entries"]["k"] = {"value": None, "captured_at": "yesterday"}

        assert cache.get("k") is None

    def test_cached_no_information(self, cache):
        """Test a stored None is a hit, distinct from a miss."""
        cache.put("k", None)

        entry = cache.get("k")
        assert entry is not None
        assert entry["value"] is None

    def test_clear(self, cache):
        """Test clear() drops all entries."""
        cache.put("k", None)
        cache.clear()

        assert cache.get("k") is None


class TestCachedLookup:
    """Tests for cached_lookup()."""

    def test_miss_fetches_and_stores(self, cache):
        """Test a miss calls fetch and stores the result."""
        calls = []

        def fetch():
            calls.append(1)
            return LatestVersion(version="1.27.0", source="dockerhub")

        first = cached_lookup(cache, "dockerhub:library/nginx", fetch)
        second = cached_lookup(cache, "dockerhub:library/nginx", fetch)

        assert first == second
        assert first.version == "1.27.0"
        assert len(calls) == 1

    def test_none_result_cached(self, cache):
        """Test "no information" is cached and not re-fetched."""
        calls = []

        def fetch():
            calls.append(1)

        assert cached_lookup(cache, "github:nobody/nothing", fetch) is None
        assert cached_lookup(cache, "github:nobody/nothing", fetch) is None
        assert len(calls) == 1

    def test_refetch_after_expiry(self, cache, clock):
        """Test an expired entry triggers a new fetch."""
        versions = iter(["1.0.0", "1.0.1"])

        def fetch():
            return LatestVersion(version=next(versions), source="dockerhub")

        assert cached_lookup(cache, "k", fetch).version == "1.0.0"
        clock.advance(3600)
        assert cached_lookup(cache, "k", fetch).version == "1.0.1"

    def test_malformed_value_refetched(self, cache):
        """Test a stored value missing required fields is fetched again."""
        cache.put("dockerhub:library/ghost", {"version": "5.2.3"})

        def fetch():
            return LatestVersion(version="5.2.3", source="dockerhub")

        result = cached_lookup(cache, "dockerhub:library/ghost", fetch)

        assert result.source == "dockerhub"
        stored = cache.get("dockerhub:library/ghost")["value"]
        assert stored["source"] == "dockerhub"

    def test_non_mapping_value_refetched(self, cache):
        """Test a stored value of the wrong type is fetched again."""
        cache.put("k", "5.2.3")

        def fetch():
            return LatestVersion(version="5.2.4", source="dockerhub")

        assert cached_lookup(cache, "k", fetch).version == "5.2.4"

    def test_errors_propagate_and_are_not_cached(self, cache):
        """Test fetch errors propagate and leave no entry."""

        def fetch():
            raise NetworkError("boom")

        with pytest.raises(NetworkError):
            cached_lookup(cache, "k", fetch)

        assert cache.get("k") is None

    def test_null_cache_always_fetches(self):
        """Test NullCache never stores anything."""
        calls = []

        def fetch():
            calls.append(1)
            return LatestVersion(version="1.0", source="dockerhub")

        null = NullCache()
        cached_lookup(null, "k", fetch)
        cached_lookup(null, "k", fetch)

        assert len(calls) == 2


def test_cache_key():
    """Test cache key format."""
    assert cache_key("dockerhub", "library/nginx") == "dockerhub:library/nginx"


def test_default_cache_structure():
    """Test the empty cache document."""
    state = create_default_cache()

    assert state["entries"] == {}
    assert state["metadata"]["schema_version"] == "1"
