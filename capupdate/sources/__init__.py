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

"""Latest-version lookup sources for capupdate.

Each source answers one question: given a parsed image reference, what is
the newest stable version it knows of? Sources return None when they have
no information, so "cannot evaluate" never turns into a made-up verdict.

Available Sources:
    dockerhub : DockerHubSource
        Newest stable tag from the Docker Hub tags API. Non-stable tags
        (latest, nightly, -rc, ...) are filtered out.
    github : GitHubReleaseSource
        Newest stable release of the GitHub repository an image is built
        from. Pre-releases and drafts are filtered out.

Example:
    Look up an image with every source:

        from capupdate.images import parse_image_reference
        from capupdate.sources import get_source

        image = parse_image_reference("ghost:5.2.2")
        for name in ("dockerhub", "github"):
            latest = get_source(name).latest_version(image)
            print(name, latest.version if latest else "unknown")

"""

# Import source modules to trigger self-registration
from . import (
    docker_hub,  # noqa: F401
    github_releases,  # noqa: F401
)
from .base import (
    LatestVersion,
    RateLimit,
    VersionSource,
    get_source,
    register_source,
)
from .docker_hub import DockerHubSource
from .github_releases import DOCKER_TO_GITHUB_MAP, GitHubReleaseSource

__all__ = [
    "DOCKER_TO_GITHUB_MAP",
    "DockerHubSource",
    "GitHubReleaseSource",
    "LatestVersion",
    "RateLimit",
    "VersionSource",
    "get_source",
    "register_source",
]
