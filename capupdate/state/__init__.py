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

"""Response caching for capupdate.

Lookup results are kept in a JSON file for a configurable time (one hour by
default) so repeated scans stay within the public API rate limits.

Caching is enabled by default and can be disabled with --no-cache.

Public API:

- ResponseCache: File-backed cache with a time-to-live and injectable clock
- NullCache: Drop-in replacement that stores nothing
- cached_lookup: Consult the cache, fetch on a miss, store the result
- create_default_cache: Build an empty cache document
- cache_key: Build "<source>:<name>" keys

Example:
    Basic usage:

        from pathlib import Path
        from capupdate.state import ResponseCache, cache_key, cached_lookup

        cache = ResponseCache(Path(".version-cache/versions.json"))
        cache.load()
        key = cache_key("dockerhub", image.full_name)
        latest = cached_lookup(cache, key, lambda: source.latest_version(image))
        cache.save()

"""

from .cache import (
    NullCache,
    ResponseCache,
    cache_key,
    cached_lookup,
    create_default_cache,
)

__all__ = [
    "NullCache",
    "ResponseCache",
    "cache_key",
    "cached_lookup",
    "create_default_cache",
]
