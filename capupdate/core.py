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

"""Core orchestration for capupdate.

This module ties the pure version engine to its collaborators: templates are
loaded, each main service is looked up in every active source (through the
response cache), a candidate is recommended, and an update verdict is
computed.

Source Recommendation:

When both Docker Hub and GitHub know a version, the recommendation is:

- Same version: "both"
- Docker Hub newer: "dockerhub"
- GitHub newer: "github", flagged with a warning because the image for that
    release may not be pushed yet

With a single source, that source is recommended (GitHub alone is still
flagged). With none, there is no candidate and no verdict.

Design Principles:

- A lookup failure for one service is logged and becomes "no candidate"; it
  never aborts the scan
- Template parse failures are logged and counted as skipped templates
- Functions return frozen dataclasses from capupdate.results

Example:
    Programmatic usage:
        ```python
        from pathlib import Path
        from capupdate.core import check_catalog
        from capupdate.sources import get_source
        from capupdate.state import NullCache

        report = check_catalog(
            Path("public/v4/apps"),
            sources=[get_source("dockerhub")],
            cache=NullCache(),
            apps=["wordpress.yml"],
        )
        for check in report.updates:
            print(check.file, check.current_version, "->",
                  check.verdict.candidate_version)
        ```

"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path

import requests

from capupdate.exceptions import ConfigError, NetworkError
from capupdate.logging import get_global_logger
from capupdate.results import Recommendation, ScanReport, ServiceCheck
from capupdate.sources.base import LatestVersion, VersionSource
from capupdate.state.cache import NullCache, ResponseCache, cache_key, cached_lookup
from capupdate.templates.loader import (
    ResolvedService,
    TemplateDocument,
    discover_templates,
    load_template,
)
from capupdate.versioning import compare_versions, detect_update


def recommend(
    dockerhub: LatestVersion | None, github: LatestVersion | None
) -> Recommendation | None:
    """Pick the candidate version to compare against.

    Args:
        dockerhub: Docker Hub lookup result, if any.
        github: GitHub release lookup result, if any.

    Returns:
        The recommendation, or None when neither source has a version.

    Example:
        ```python
        rec = recommend(LatestVersion("1.2.0", "dockerhub"),
                        LatestVersion("1.3.0", "github"))
        # rec.source == "github", rec.warning is True
        ```

    """
    if dockerhub and github:
        order = compare_versions(dockerhub.version, github.version)
        if order == 0:
            return Recommendation(
                source="both",
                version=dockerhub.version,
                note="Docker Hub and GitHub agree",
            )
        if order > 0:
            return Recommendation(
                source="dockerhub",
                version=dockerhub.version,
                note=f"Docker Hub is ahead of GitHub ({github.version})",
            )
        return Recommendation(
            source="github",
            version=github.version,
            note=(
                f"GitHub release is newer than Docker Hub ({dockerhub.version}); "
                f"Docker image may not be built yet"
            ),
            warning=True,
        )

    if dockerhub:
        return Recommendation(
            source="dockerhub", version=dockerhub.version, note="Docker Hub only"
        )

    if github:
        return Recommendation(
            source="github",
            version=github.version,
            note="GitHub only; Docker image may not be built yet",
            warning=True,
        )

    return None


def _lookup(
    source: VersionSource,
    service: ResolvedService,
    cache: ResponseCache | NullCache,
) -> LatestVersion | None:
    """Look up one service in one source; failures become None."""
    logger = get_global_logger()
    image = service.parsed
    if image is None:
        return None

    name = source.lookup_key(image)
    if not name:
        return None

    try:
        return cached_lookup(
            cache,
            cache_key(source.name, name),
            lambda: source.latest_version(image),
        )
    except (NetworkError, requests.exceptions.RequestException) as err:
        logger.warning("CHECK", f"{source.name} lookup failed for {name}: {err}")
        return None


def check_service(
    service: ResolvedService,
    doc: TemplateDocument,
    sources: Sequence[VersionSource],
    cache: ResponseCache | NullCache,
) -> ServiceCheck:
    """Check one resolved main service against every source.

    Args:
        service: Service with a parsed image reference.
        doc: Template the service belongs to.
        sources: Active lookup sources.
        cache: Response cache (NullCache to disable caching).

    Returns:
        The per-service result. verdict is None when no source had a
        candidate version.

    """
    logger = get_global_logger()
    image = service.parsed
    if image is None:
        raise ValueError(f"Service {service.service_name} has no parsed image")

    found: dict[str, LatestVersion | None] = {}
    for source in sources:
        found[source.name] = _lookup(source, service, cache)

    dockerhub = found.get("dockerhub")
    github = found.get("github")
    recommendation = recommend(dockerhub, github)
    verdict = detect_update(
        image.tag, recommendation.version if recommendation else None
    )

    if verdict is None:
        logger.verbose("CHECK", f"{doc.file_name}: no version information")
    elif verdict.has_update:
        logger.verbose(
            "CHECK",
            f"{doc.file_name}: {verdict.current_version} -> "
            f"{verdict.candidate_version} ({verdict.update_type})",
        )
    else:
        logger.verbose("CHECK", f"{doc.file_name}: up to date ({image.tag})")

    return ServiceCheck(
        file=doc.file_name,
        display_name=doc.display_name,
        service_name=service.service_name,
        image=image.full_name,
        image_reference=service.original_image,
        has_variables=service.has_variables,
        current_version=image.tag,
        recommendation=recommendation,
        verdict=verdict,
        dockerhub=dockerhub,
        github=github,
    )


def check_catalog(
    apps_dir: Path,
    *,
    sources: Sequence[VersionSource],
    cache: ResponseCache | NullCache,
    apps: list[str] | None = None,
    limit: int | None = None,
    now: datetime | None = None,
) -> ScanReport:
    """Scan a template catalog for available updates.

    Args:
        apps_dir: Directory of ``*.yml`` templates.
        sources: Active lookup sources.
        cache: Response cache (NullCache to disable caching).
        apps: Optional template file names to restrict the scan to.
        limit: Optional maximum number of templates.
        now: Scan timestamp (defaults to the current UTC time).

    Returns:
        ScanReport with one ServiceCheck per checkable main service.

    Raises:
        ConfigError: If apps_dir does not exist.

    """
    logger = get_global_logger()
    timestamp = (now or datetime.now(UTC)).isoformat()
    mode = (
        "enhanced" if any(s.name == "github" for s in sources) else "dockerhub-only"
    )

    files = discover_templates(apps_dir, apps=apps, limit=limit)
    logger.verbose("CHECK", f"Found {len(files)} template(s) in {apps_dir}")

    checks: list[ServiceCheck] = []
    checked = 0
    skipped = 0

    for index, path in enumerate(files, start=1):
        logger.step(index, len(files), f"Checking {path.name}...")
        try:
            doc = load_template(path)
        except (ConfigError, OSError) as err:
            logger.warning("TEMPLATE", f"Skipping {path.name}: {err}")
            skipped += 1
            continue

        for reason in doc.skipped:
            logger.debug("TEMPLATE", f"{doc.file_name}: skipped {reason}")

        if not doc.services:
            logger.verbose("CHECK", f"{doc.file_name}: no checkable main service")
            skipped += 1
            continue

        checked += 1
        for service in doc.services:
            checks.append(check_service(service, doc, sources, cache))

    return ScanReport(
        timestamp=timestamp,
        mode=mode,
        total_files=len(files),
        apps_checked=checked,
        apps_skipped=skipped,
        checks=checks,
    )
