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

"""GitHub releases lookup source for capupdate.

Many images are built from a GitHub repository whose release tags track the
image tags. A new GitHub release often shows up before the matching image is
pushed, so this source is used as a second opinion next to Docker Hub.

Image to Repository Mapping:

1. Built-in DOCKER_TO_GITHUB_MAP plus the ``github.repo_map`` config section
   (config entries win)
2. ``ghcr.io/<owner>/<repo>`` images map to ``<owner>/<repo>``
3. Other ``<namespace>/<repository>`` Docker Hub images are tried as-is
4. Official images without a mapping: no lookup (returns None)

API:
    GET https://api.github.com/repos/<owner>/<repo>/releases
    GET https://api.github.com/rate_limit

Release Filtering:

- Drafts and pre-releases are dropped (GitHub's own flags)
- The first remaining release is the latest stable one
- One leading "v" is stripped from tag names: v1.2.3 -> 1.2.3

Rate Limits:

- Unauthenticated: 60 requests/hour per IP
- Authenticated: 5000 requests/hour per token
- Tip: set GITHUB_TOKEN (environment or .env) for catalog-wide scans

Error Handling:

- 404 (unknown repository or no access): returns None
- 403 (rate limit): NetworkError with the reset time
- Other HTTP errors and transport failures: NetworkError (chained)

"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import requests

from capupdate.exceptions import NetworkError
from capupdate.images import ImageReference
from capupdate.io.http import Throttle, make_session
from capupdate.logging import get_global_logger

from .base import MAX_RECENT_VERSIONS, LatestVersion, RateLimit, register_source

GITHUB_API = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"
UNAUTHENTICATED_LIMIT = 60

# Docker image name (as written, without tag) -> GitHub "owner/repo"
DOCKER_TO_GITHUB_MAP: dict[str, str] = {
    "gitea/gitea": "go-gitea/gitea",
    "nextcloud": "nextcloud/server",
    "ghost": "TryGhost/Ghost",
    "grafana/grafana": "grafana/grafana",
    "n8nio/n8n": "n8n-io/n8n",
    "plausible/analytics": "plausible/analytics",
    "photoprism/photoprism": "photoprism/photoprism",
    "louislam/uptime-kuma": "louislam/uptime-kuma",
    "vaultwarden/server": "dani-garcia/vaultwarden",
    "jlesage/handbrake": "jlesage/docker-handbrake",
    "linuxserver/plex": "linuxserver/docker-plex",
    "calibre-web/calibre-web": "janeczku/calibre-web",
    "directus/directus": "directus/directus",
    "appwrite/appwrite": "appwrite/appwrite",
    "supabase/postgres": "supabase/postgres",
    "nocodb/nocodb": "nocodb/nocodb",
    "standardnotes/web": "standardnotes/app",
    "baserow/baserow": "bram2w/baserow",
    "docusealco/docuseal": "docusealco/docuseal",
    "getmeili/meilisearch": "meilisearch/meilisearch",
    "typesense/typesense": "typesense/typesense",
    "activepieces/activepieces": "activepieces/activepieces",
    "budibase/budibase": "Budibase/budibase",
    "owncloud/server": "owncloud/core",
    "seafile/seafile-mc": "haiwen/seafile",
    "joplin/server": "laurent22/joplin",
    "vikunja/vikunja": "go-vikunja/vikunja",
    "bookstackapp/bookstack": "BookStackApp/BookStack",
    "wikijs/wiki": "Requarks/wiki",
    "glpi/glpi": "glpi-project/glpi",
    "matomo/matomo": "matomo-org/matomo",
    "chatwoot/chatwoot": "chatwoot/chatwoot",
    "discourse/discourse": "discourse/discourse",
    "mattermost/mattermost-team-edition": "mattermost/mattermost-server",
    "rocketchat/rocket.chat": "RocketChat/Rocket.Chat",
    "ethibox/adminer": "vrana/adminer",
    "jellyfin/jellyfin": "jellyfin/jellyfin",
    "filebrowser/filebrowser": "filebrowser/filebrowser",
    "netbox/netbox": "netbox-community/netbox",
    "outline/outline": "outline/outline",
    "hedgedoc/hedgedoc": "hedgedoc/hedgedoc",
    "code-server/code-server": "coder/code-server",
}


def strip_v(tag: str) -> str:
    """Remove one leading "v" from a release tag."""
    return tag[1:] if tag.startswith("v") else tag


def _is_repo_path(value: str) -> bool:
    owner, sep, repo = value.partition("/")
    return bool(sep and owner and repo and "/" not in repo)


class GitHubReleaseSource:
    """Lookup source for GitHub releases.

    Attributes:
        name: Source name used in reports ("github").
        session: HTTP session (retrying by default).
        throttle: Spacing between consecutive GitHub requests.
        token: Personal access token, or None for anonymous access.
        repo_map: Image name -> "owner/repo" mapping.
        timeout: Per-request timeout in seconds.

    """

    name = "github"

    def __init__(
        self,
        session: requests.Session | None = None,
        throttle: Throttle | None = None,
        token: str | None = None,
        repo_map: dict[str, str] | None = None,
        timeout: float = 30,
    ):
        self.session = session or make_session()
        self.throttle = throttle or Throttle(delay=1.0, name="GITHUB")
        # An unexpanded "${VAR}" means the variable was not set
        if token and token.startswith("${") and token.endswith("}"):
            get_global_logger().verbose(
                "GITHUB", f"Warning: Environment variable {token[2:-1]} not set"
            )
            token = None
        self.token = token or None
        self.repo_map = {**DOCKER_TO_GITHUB_MAP, **(repo_map or {})}
        self.timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }
        if self.token:
            headers["Authorization"] = f"token {self.token}"
        return headers

    def _get(self, url: str, what: str) -> Any | None:
        """GET a GitHub API URL and decode it; None on 404."""
        logger = get_global_logger()
        self.throttle.wait()
        logger.verbose("GITHUB", f"Fetching: {url}")

        try:
            response = self.session.get(
                url, headers=self._headers(), timeout=self.timeout
            )
        except requests.exceptions.RequestException as err:
            raise NetworkError(f"Failed to fetch {what}: {err}") from err

        if response.status_code == 404:
            logger.verbose("GITHUB", f"{what}: not found")
            return None

        if response.status_code == 403:
            reset = response.headers.get("X-RateLimit-Reset")
            when = "unknown"
            if reset and reset.isdigit():
                when = datetime.fromtimestamp(int(reset), UTC).isoformat()
            raise NetworkError(
                f"GitHub API rate limit exceeded. Resets at {when}. "
                f"Consider setting GITHUB_TOKEN."
            )

        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as err:
            raise NetworkError(
                f"GitHub API request failed: {response.status_code} "
                f"{response.reason}"
            ) from err

        try:
            return response.json()
        except ValueError as err:
            raise NetworkError(f"GitHub returned invalid JSON for {what}") from err

    def repo_for_image(self, image: ImageReference) -> str | None:
        """Map an image reference to a GitHub "owner/repo", or None."""
        if image.registry == "ghcr.io":
            candidate = f"{image.namespace}/{image.repository}"
            return candidate if _is_repo_path(candidate) else None

        keys = [image.full_name]
        if image.is_official:
            keys.insert(0, image.repository)
        for key in keys:
            if key in self.repo_map:
                return self.repo_map[key]

        if image.is_official or image.registry != "docker.io":
            return None
        return image.full_name if _is_repo_path(image.full_name) else None

    def lookup_key(self, image: ImageReference) -> str | None:
        return self.repo_for_image(image)

    def latest_release(self, repo: str) -> LatestVersion | None:
        """Return the latest stable release of a repository, or None.

        Args:
            repo: Repository in "owner/repo" format.

        Raises:
            NetworkError: On rate limiting or API failures.

        """
        logger = get_global_logger()
        releases = self._get(
            f"{GITHUB_API}/repos/{repo}/releases", f"releases of {repo}"
        )
        if not isinstance(releases, list) or not releases:
            return None

        stable = [
            r
            for r in releases
            if isinstance(r, dict)
            and r.get("tag_name")
            and not r.get("prerelease")
            and not r.get("draft")
        ]
        logger.debug(
            "GITHUB", f"{repo}: {len(stable)} stable of {len(releases)} release(s)"
        )
        if not stable:
            return None

        latest = stable[0]
        version = strip_v(str(latest["tag_name"]))
        logger.verbose("GITHUB", f"{repo}: latest release {version}")

        return LatestVersion(
            version=version,
            source=self.name,
            versions=[
                strip_v(str(r["tag_name"])) for r in stable[:MAX_RECENT_VERSIONS]
            ],
            release_url=latest.get("html_url"),
            published_at=latest.get("published_at"),
        )

    def latest_version(self, image: ImageReference) -> LatestVersion | None:
        """Return the latest stable release for the repository behind an image."""
        repo = self.repo_for_image(image)
        if not repo:
            get_global_logger().debug(
                "GITHUB", f"No GitHub repository known for {image.full_name}"
            )
            return None
        return self.latest_release(repo)

    def rate_limit(self) -> RateLimit | None:
        """Query the core API rate limit for the configured credentials."""
        data = self._get(f"{GITHUB_API}/rate_limit", "rate limit")
        if not isinstance(data, dict):
            return None
        core = (data.get("resources") or {}).get("core") or data.get("rate") or {}
        if not core:
            return None
        limit = int(core.get("limit", 0))
        return RateLimit(
            limit=limit,
            remaining=int(core.get("remaining", 0)),
            reset=int(core.get("reset", 0)),
            authenticated=limit > UNAUTHENTICATED_LIMIT,
        )


# Register this source when the module is imported
register_source("github", GitHubReleaseSource)
