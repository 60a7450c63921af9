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

"""Docker Hub lookup source for capupdate.

Queries the Docker Hub tags API for the repository an image reference points
at and returns the newest stable tag.

API:
    GET https://hub.docker.com/v2/repositories/<namespace>/<repository>/tags
        ?page_size=100&ordering=last_updated

Official images use the ``library`` namespace, so ``nginx:1.21`` is looked
up under ``library/nginx``.

Stable Tag Filtering:

Docker Hub returns every tag, including moving and pre-release ones. Tags
are dropped when the name is exactly one of ``latest``, ``edge``, ``dev``,
``nightly``, ``canary``, ``alpha``, ``beta``, ``rc``, ``stable``, ``main``,
``master``, or contains one of ``snapshot``, ``nightly``, ``alpha``,
``beta``, ``-rc``, ``.rc``, ``dev``, ``preview``, ``canary``, ``edge``
(case-insensitive). The first remaining tag in API order is the latest
stable one.

Error Handling:

- 404 (repository unknown to Docker Hub): returns None
- Other HTTP errors and transport failures: NetworkError (chained)
- Images hosted on another registry (ghcr.io, quay.io, ...): returns None

Example:
    ```python
    from capupdate.images import parse_image_reference
    from capupdate.sources.docker_hub import DockerHubSource

    source = DockerHubSource()
    latest = source.latest_version(parse_image_reference("ghost:5.2.2"))
    if latest:
        print(latest.version, latest.versions[:3])
    ```

"""

from __future__ import annotations

from typing import Any

import requests

from capupdate.exceptions import NetworkError
from capupdate.images import DEFAULT_REGISTRY, ImageReference
from capupdate.io.http import Throttle, make_session
from capupdate.logging import get_global_logger

from .base import MAX_RECENT_VERSIONS, LatestVersion, register_source

DOCKER_HUB_API = "https://hub.docker.com/v2/repositories"
DOCKER_HUB_WEB = "https://hub.docker.com"

# Moving or pre-release tags rejected by exact name
UNSTABLE_TAG_NAMES = frozenset(
    {
        "latest",
        "edge",
        "dev",
        "nightly",
        "canary",
        "alpha",
        "beta",
        "rc",
        "stable",
        "main",
        "master",
    }
)

# Pre-release markers rejected anywhere in the tag
UNSTABLE_TAG_MARKERS = (
    "snapshot",
    "nightly",
    "alpha",
    "beta",
    "-rc",
    ".rc",
    "dev",
    "preview",
    "canary",
    "edge",
)


def is_stable_tag(name: str) -> bool:
    """True if a Docker Hub tag name looks like a stable release."""
    lowered = name.lower()
    if not lowered or lowered in UNSTABLE_TAG_NAMES:
        return False
    return not any(marker in lowered for marker in UNSTABLE_TAG_MARKERS)


def tags_url(image: ImageReference) -> str:
    """Docker Hub tags API URL for an image."""
    return f"{DOCKER_HUB_API}/{image.namespace}/{image.repository}/tags"


def tag_page_url(image: ImageReference, tag: str | None = None) -> str:
    """Human-facing Docker Hub page for an image (and optionally a tag)."""
    if image.is_official:
        base = f"{DOCKER_HUB_WEB}/_/{image.repository}"
    else:
        base = f"{DOCKER_HUB_WEB}/r/{image.namespace}/{image.repository}"
    if tag:
        return f"{base}/tags?name={tag}"
    return base


class DockerHubSource:
    """Lookup source for Docker Hub repository tags.

    Attributes:
        name: Source name used in reports ("dockerhub").
        session: HTTP session (retrying by default).
        throttle: Spacing between consecutive Docker Hub requests.
        timeout: Per-request timeout in seconds.
        page_size: Number of tags requested per lookup.

    """

    name = "dockerhub"

    def __init__(
        self,
        session: requests.Session | None = None,
        throttle: Throttle | None = None,
        timeout: float = 30,
        page_size: int = 100,
    ):
        self.session = session or make_session()
        self.throttle = throttle or Throttle(delay=1.0, name="DOCKERHUB")
        self.timeout = timeout
        self.page_size = page_size

    def fetch_tags(self, image: ImageReference) -> list[dict[str, Any]] | None:
        """Fetch the raw tag records for an image.

        Returns:
            Tag records in API order, or None if Docker Hub does not know
            the repository.

        Raises:
            NetworkError: On HTTP or transport failures.

        """
        logger = get_global_logger()
        url = tags_url(image)
        params = {"page_size": self.page_size, "ordering": "last_updated"}

        self.throttle.wait()
        logger.verbose("DOCKERHUB", f"Fetching tags: {url}")

        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as err:
            raise NetworkError(
                f"Failed to fetch Docker Hub tags for {image.full_name}: {err}"
            ) from err

        if response.status_code == 404:
            logger.verbose("DOCKERHUB", f"{image.full_name} not found on Docker Hub")
            return None

        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as err:
            raise NetworkError(
                f"Docker Hub API request failed for {image.full_name}: "
                f"{response.status_code} {response.reason}"
            ) from err

        try:
            data = response.json()
        except ValueError as err:
            raise NetworkError(
                f"Docker Hub returned invalid JSON for {image.full_name}"
            ) from err

        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            return None
        return [r for r in results if isinstance(r, dict)]

    def lookup_key(self, image: ImageReference) -> str | None:
        """Docker Hub repository path ("namespace/repository") or None."""
        if image.registry != DEFAULT_REGISTRY:
            return None
        return image.full_name

    def latest_version(self, image: ImageReference) -> LatestVersion | None:
        """Return the newest stable tag of an image, or None."""
        logger = get_global_logger()

        if self.lookup_key(image) is None:
            logger.debug(
                "DOCKERHUB", f"Skipping {image.reference}: hosted on {image.registry}"
            )
            return None

        records = self.fetch_tags(image)
        if not records:
            return None

        names = [str(r["name"]) for r in records if r.get("name")]
        stable = [n for n in names if is_stable_tag(n)]
        logger.debug(
            "DOCKERHUB",
            f"{image.full_name}: {len(stable)} stable of {len(records)} tag(s)",
        )
        if not stable:
            return None

        latest = stable[0]
        published_at = next(
            (r.get("last_updated") for r in records if r.get("name") == latest),
            None,
        )
        logger.verbose("DOCKERHUB", f"{image.full_name}: latest stable {latest}")

        return LatestVersion(
            version=latest,
            source=self.name,
            versions=stable[:MAX_RECENT_VERSIONS],
            release_url=tag_page_url(image, latest),
            published_at=published_at,
        )


# Register this source when the module is imported
register_source("dockerhub", DockerHubSource)
