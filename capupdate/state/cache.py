# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Response cache implementation for capupdate.

Lookup results are cached between runs so that repeated scans of a large
catalog do not burn through the Docker Hub and GitHub rate limits.

Cache file layout (``.version-cache/versions.json``):
    ```json
    {
      "entries": {
        "dockerhub:library/ghost": {
          "captured_at": "2025-01-01T12:00:00+00:00",
          "value": {"version": "5.2.3", "source": "dockerhub", ...}
        },
        "github:TryGhost/Ghost": {
          "captured_at": "2025-01-01T12:00:01+00:00",
          "value": null
        }
      },
      "metadata": {"capupdate_version": "0.1.0", "schema_version": "1", ...}
    }
    ```

Key Features:

- JSON-based storage (one file, sorted keys for stable diffs)
- Entries expire ``ttl_seconds`` after capture (default one hour)
- "No information" results are cached too, so a missing repository is not
  re-queried on every run
- Injectable clock so expiry is testable without waiting
- Corrupted files are backed up and replaced

Example:
    ```python
    from pathlib import Path
    from capupdate.state import ResponseCache, cached_lookup

    cache = ResponseCache(Path(".version-cache/versions.json"))
    cache.load()
    latest = cached_lookup(cache, "dockerhub:library/ghost",
                           lambda: source.latest_version(image))
    cache.save()
    ```

"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
import json
from pathlib import Path
from typing import Any

from capupdate import __version__
from capupdate.exceptions import CacheError
from capupdate.logging import get_global_logger
from capupdate.sources.base import LatestVersion

DEFAULT_TTL_SECONDS = 3600
SCHEMA_VERSION = "1"


def _utcnow() -> datetime:
    return datetime.now(UTC)


def cache_key(source: str, name: str) -> str:
    """Build a cache key such as "dockerhub:library/nginx"."""
    return f"{source}:{name}"


class ResponseCache:
    """Time-limited, file-backed cache of lookup results.

    Attributes:
        cache_file: Path to the JSON cache file.
        ttl_seconds: Freshness window of an entry.
        state: In-memory cache document.

    """

    def __init__(
        self,
        cache_file: Path,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], datetime] | None = None,
    ):
        self.cache_file = cache_file
        self.ttl_seconds = ttl_seconds
        self._clock = clock or _utcnow
        self.state: dict[str, Any] = create_default_cache()

    def load(self) -> dict[str, Any]:
        """Load the cache from disk.

        A missing file yields an empty cache.

        Raises:
            CacheError: If the file is corrupted or undecodable. It is backed up to
                ``<name>.json.backup`` and replaced with an empty cache first.

        """
        try:
            with open(self.cache_file, encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise json.JSONDecodeError("top level is not an object", "", 0)
            if not isinstance(data.setdefault("entries", {}), dict):
                raise json.JSONDecodeError("entries is not an object", "", 0)
        except FileNotFoundError:
            self.state = create_default_cache()
            return self.state
        except (json.JSONDecodeError, UnicodeDecodeError) as err:
            backup = self.cache_file.with_suffix(".json.backup")
            self.cache_file.replace(backup)
            self.state = create_default_cache()
            self.save()
            raise CacheError(
                f"Corrupted cache file backed up to {backup}. "
                f"Created fresh cache file."
            ) from err

        self.state = data
        get_global_logger().debug(
            "CACHE",
            f"Loaded {len(self.state['entries'])} entries from {self.cache_file}",
        )
        return self.state

    def save(self) -> None:
        """Write the cache to disk (2-space indent, sorted keys)."""
        self.state.setdefault("metadata", {})
        self.state["metadata"]["last_updated"] = self._clock().isoformat()
        self.state["metadata"]["capupdate_version"] = __version__
        self.cache_file.parent.mkdir(parents=True, exist_ok=True)

        with open(self.cache_file, "w", encoding="utf-8") as f:
            json.dump(self.state, f, indent=2, sort_keys=True)
            f.write("\n")

    def get(self, key: str) -> dict[str, Any] | None:
        """Return the fresh entry for a key, or None if missing or expired.

        The entry is ``{"value": ..., "captured_at": ...}``; ``value`` may be
        None for a cached "no information" result.
        """
        entries = self.state.get("entries")
        if not isinstance(entries, dict):
            return None
        entry = entries.get(key)
        if not isinstance(entry, dict) or "value" not in entry:
            return None

        try:
            captured = datetime.fromisoformat(str(entry.get("captured_at")))
        except ValueError:
            return None
        if captured.tzinfo is None:
            captured = captured.replace(tzinfo=UTC)

        age = (self._clock() - captured).total_seconds()
        if age < 0 or age >= self.ttl_seconds:
            get_global_logger().debug("CACHE", f"Expired: {key}")
            return None
        return entry

    def put(self, key: str, value: dict[str, Any] | None) -> None:
        """Store a value captured now."""
        self.state.setdefault("entries", {})[key] = {
            "value": value,
            "captured_at": self._clock().isoformat(),
        }

    def clear(self) -> None:
        """Drop every entry (the file is rewritten on the next save())."""
        self.state["entries"] = {}


class NullCache:
    """Cache that stores nothing (used with --no-cache)."""

    def load(self) -> dict[str, Any]:
        return {}

    def save(self) -> None:
        pass

    def get(self, key: str) -> dict[str, Any] | None:
        return None

    def put(self, key: str, value: dict[str, Any] | None) -> None:
        pass

    def clear(self) -> None:
        pass


def create_default_cache() -> dict[str, Any]:
    """Create an empty cache document."""
    return {
        "metadata": {
            "capupdate_version": __version__,
            "schema_version": SCHEMA_VERSION,
        },
        "entries": {},
    }


def cached_lookup(
    cache: ResponseCache | NullCache,
    key: str,
    fetch: Callable[[], LatestVersion | None],
) -> LatestVersion | None:
    """Return a cached lookup result or fetch and store a fresh one.

    Exceptions raised by ``fetch`` propagate and nothing is stored.

    Args:
        cache: Cache to consult.
        key: Cache key (see cache_key()).
        fetch: Zero-argument callable performing the actual lookup.

    Returns:
        The cached or freshly fetched result (None means "no information").

    """
    logger = get_global_logger()
    entry = cache.get(key)
    if entry is not None:
        value = entry["value"]
        try:
            cached = LatestVersion.from_dict(value) if value else None
        except (KeyError, TypeError, AttributeError) as err:
            logger.debug("CACHE", f"Malformed entry for {key}: {err!r}")
        else:
            logger.debug("CACHE", f"Hit: {key}")
            return cached

    logger.debug("CACHE", f"Miss: {key}")
    result = fetch()
    cache.put(key, result.to_dict() if result else None)
    return result
