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

"""Lookup source base protocol and registry for capupdate.

This module defines the foundational components for the lookup system:

- VersionSource protocol: Interface that all lookup clients implement
- LatestVersion / RateLimit: Result types returned by lookup clients
- Source registry: Global dict mapping source names to implementations
- Registration and lookup functions: register_source() and get_source()

Available sources:

- dockerhub: Tags of a Docker Hub repository
- github: Releases of the GitHub repository an image is built from

Design Philosophy:
    - Sources are Protocol classes (structural subtyping, not inheritance)
    - Registration happens at module import time (sources self-register)
    - A source returns None when it has no information; it never guesses
    - Sources filter non-stable tags before handing back a version

Example:
    Implementing a custom source:
        ```python
        from capupdate.sources.base import LatestVersion, register_source

        class StaticSource:
            name = "static"

            def __init__(self, version="1.0.0"):
                self.version = version

            def lookup_key(self, image):
                return image.full_name

            def latest_version(self, image):
                return LatestVersion(version=self.version, source=self.name)

        register_source("static", StaticSource)
        ```

"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from capupdate.exceptions import ConfigError
from capupdate.images import ImageReference

# Number of recent stable versions kept alongside the latest one
MAX_RECENT_VERSIONS = 10


@dataclass(frozen=True)
class LatestVersion:
    """Latest stable version reported by a lookup source.

    Attributes:
        version: Latest stable version string (leading "v" already removed
            for GitHub releases).
        source: Source name ("dockerhub" or "github").
        versions: Recent stable versions, newest first.
        release_url: Link to the release page, if the source has one.
        published_at: Publication timestamp as reported by the source.

    """

    version: str
    source: str
    versions: list[str] = field(default_factory=list)
    release_url: str | None = None
    published_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "source": self.source,
            "versions": list(self.versions),
            "release_url": self.release_url,
            "published_at": self.published_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LatestVersion:
        return cls(
            version=str(data["version"]),
            source=str(data["source"]),
            versions=[str(v) for v in data.get("versions") or []],
            release_url=data.get("release_url"),
            published_at=data.get("published_at"),
        )


@dataclass(frozen=True)
class RateLimit:
    """GitHub core API rate limit status.

    Attributes:
        limit: Requests allowed per hour.
        remaining: Requests left in the current window.
        reset: Unix timestamp at which the window resets.
        authenticated: True if the limit indicates an authenticated client.

    """

    limit: int
    remaining: int
    reset: int
    authenticated: bool


class VersionSource(Protocol):
    """Protocol for latest-version lookup clients.

    Each source must expose a ``name`` and implement lookup_key() and
    latest_version().
    """

    name: str

    def lookup_key(self, image: ImageReference) -> str | None:
        """Return the name this source looks the image up under.

        Used to build cache keys ("<source>:<lookup_key>"). None means the
        source cannot look this image up at all.
        """
        ...

    def latest_version(self, image: ImageReference) -> LatestVersion | None:
        """Return the latest stable version for an image.

        Args:
            image: Parsed image reference.

        Returns:
            The latest stable version, or None if the source has no
            information for this image.

        Raises:
            NetworkError: On API failures the caller should log and skip.

        """
        ...


# -------------------------------
# Source Registry
# -------------------------------

_SOURCE_REGISTRY: dict[str, type[VersionSource]] = {}


def register_source(name: str, source_class: type[VersionSource]) -> None:
    """Register a lookup source by name in the global registry.

    Registering the same name twice overwrites the previous registration
    (allows monkey-patching for tests).

    Args:
        name: Source name (e.g., "dockerhub").
        source_class: Class implementing the VersionSource protocol.

    """
    _SOURCE_REGISTRY[name] = source_class


def get_source(name: str, **kwargs: Any) -> VersionSource:
    """Instantiate a registered lookup source.

    Args:
        name: Source name. Must match a name passed to register_source().
        **kwargs: Constructor arguments for the source (session, throttle,
            token, ...).

    Returns:
        A new instance of the requested source.

    Raises:
        ConfigError: If the source name is not registered. The error message
            includes a list of available sources.

    """
    if name not in _SOURCE_REGISTRY:
        available = ", ".join(_SOURCE_REGISTRY.keys())
        raise ConfigError(
            f"Unknown lookup source: {name!r}. Available: {available or '(none)'}"
        )
    return _SOURCE_REGISTRY[name](**kwargs)
