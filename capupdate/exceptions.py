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

"""Exception hierarchy for capupdate.

This module defines the errors raised by the collaborators around the
version engine so callers can tell the failure domains apart:

- ConfigError: Configuration and template errors (YAML parse, unknown source)
- NetworkError: Registry and release API failures (HTTP errors, timeouts)
- CacheError: Response cache problems (corrupted cache file)
- ApplyError: Failures while rewriting template files in place

All exceptions inherit from CapUpdateError, allowing callers to catch every
capupdate error with a single except clause.

Note:
    The version engine itself (parser, comparator, resolver, detector) never
    raises these for well-formed input. "Cannot determine" is returned as a
    value (usually None), not as an exception.

Example:
    Catching specific error types:
        ```python
        from capupdate.exceptions import ConfigError, NetworkError

        try:
            latest = source.latest_version(image)
        except NetworkError as e:
            print(f"Lookup failed: {e}")
        ```
"""

from __future__ import annotations

__all__ = [
    "CapUpdateError",
    "ConfigError",
    "NetworkError",
    "CacheError",
    "ApplyError",
]


class CapUpdateError(Exception):
    """Base exception for all capupdate errors."""

    pass


class ConfigError(CapUpdateError):
    """Raised for configuration-related errors.

    This exception is raised when there are problems with:

    - YAML parsing of a template or of the capupdate config file
    - A template whose top level is not a mapping
    - Unknown lookup source names
    - Invalid configuration values (e.g. a malformed repo mapping)
    """

    pass


class NetworkError(CapUpdateError):
    """Raised for registry/API request failures.

    This exception is raised when there are problems with:

    - Docker Hub tag listing (HTTP errors other than 404)
    - GitHub releases API (rate limiting, HTTP errors)
    - Connection failures and timeouts

    The check pipeline catches these per service and treats the lookup as
    "no candidate available".
    """

    pass


class CacheError(CapUpdateError):
    """Raised when the response cache file cannot be used.

    A corrupted cache file is moved aside to a ``.json.backup`` file and a
    fresh cache is started before this is raised.
    """

    pass


class ApplyError(CapUpdateError):
    """Raised when template files cannot be rewritten.

    Example:
        Catching apply errors:
            ```python
            from capupdate.exceptions import ApplyError

            try:
                result = apply_updates(report, apps_dir, update_types=("patch",))
            except ApplyError as e:
                print(f"Apply error: {e}")
            ```
    """

    pass
