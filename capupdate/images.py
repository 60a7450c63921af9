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

"""Container image reference parsing for capupdate.

Splits a reference such as ``bitnami/ghost:5.2.2`` into registry, namespace,
repository and tag. The parser is strict: a reference must carry exactly one
colon-delimited tag and must not contain template placeholders. Anything
else is rejected (returns None) rather than guessed at.

Supported shapes:

- ``nginx:1.21`` -> docker.io / library / nginx / 1.21
- ``bitnami/ghost:5.2.2`` -> docker.io / bitnami / ghost / 5.2.2
- ``ghcr.io/owner/repo:1.0`` -> ghcr.io / owner / repo / 1.0
- ``quay.io/org/team/app:2`` -> quay.io / org / team/app / 2

Note:
    A registry with a port (``localhost:5000/app:1``) has two colons and is
    therefore rejected, like every other ambiguous reference.
"""

from __future__ import annotations

from dataclasses import dataclass

__all__ = [
    "DEFAULT_REGISTRY",
    "OFFICIAL_NAMESPACE",
    "PLACEHOLDER_MARKER",
    "ImageReference",
    "parse_image_reference",
]

DEFAULT_REGISTRY = "docker.io"
OFFICIAL_NAMESPACE = "library"

# Prefix of every CapRover template variable ($$cap_appname, $$cap_version, ...)
PLACEHOLDER_MARKER = "$$"


@dataclass(frozen=True)
class ImageReference:
    """Parsed identity of a container image.

    Attributes:
        registry: Registry host (e.g., "docker.io", "ghcr.io").
        namespace: Namespace/owner; "library" for official images.
        repository: Repository name, may contain "/" for nested paths.
        tag: Version tag exactly as written.
        reference: The raw reference string that was parsed.

    """

    registry: str
    namespace: str
    repository: str
    tag: str
    reference: str

    @property
    def is_official(self) -> bool:
        """True for Docker Hub official images (no namespace segment)."""
        return self.namespace == OFFICIAL_NAMESPACE

    @property
    def full_name(self) -> str:
        """Namespace-qualified name, e.g. "library/nginx"."""
        return f"{self.namespace}/{self.repository}"


def parse_image_reference(raw: str) -> ImageReference | None:
    """Parse an image reference string.

    Args:
        raw: Reference of the form ``[registry/][namespace/]repository:tag``.

    Returns:
        A fully populated ImageReference, or None when the input is invalid:
        not a string, contains a template placeholder, has no tag, has more
        than one colon, or has an empty name or tag.

    Example:
        Parse a namespaced image:
            ```python
            ref = parse_image_reference("bitnami/ghost:5.2.2")
            # ref.namespace == "bitnami", ref.repository == "ghost"
            ```

    """
    if not isinstance(raw, str) or not raw:
        return None

    # Templated references must be resolved by the caller first
    if PLACEHOLDER_MARKER in raw:
        return None

    parts = raw.split(":")
    if len(parts) != 2:
        return None

    name, tag = parts
    if not name or not tag:
        return None

    segments = name.split("/")
    registry = DEFAULT_REGISTRY
    namespace = OFFICIAL_NAMESPACE

    if len(segments) == 1:
        repository = segments[0]
    elif len(segments) == 2:
        namespace, repository = segments
    else:
        registry = segments[0]
        namespace = segments[1]
        repository = "/".join(segments[2:])

    if not repository:
        return None

    return ImageReference(
        registry=registry,
        namespace=namespace,
        repository=repository,
        tag=tag,
        reference=raw,
    )
