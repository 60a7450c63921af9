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

"""Public API return types for capupdate.

This module defines dataclasses for return values from public API functions:
catalog scans, per-service checks, apply runs and template validation.

All dataclasses are frozen (immutable) to prevent accidental mutation of
return values.

Example:
    Using result types:
        ```python
        from pathlib import Path
        from capupdate.core import check_catalog

        report = check_catalog(Path("public/v4/apps"), sources=[...], cache=cache)
        for check in report.updates:
            print(check.file, check.current_version, check.verdict.update_type)
        ```

Note:
    Only public API return types belong in this module. Domain types
    (like ImageReference or UpdateVerdict) remain co-located with their
    related logic.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from capupdate.sources.base import LatestVersion
from capupdate.versioning import UPDATE_TYPES, UpdateVerdict

RECOMMENDATION_SOURCES = ("dockerhub", "github", "both")


@dataclass(frozen=True)
class Recommendation:
    """Which source's version to trust for one service.

    Attributes:
        source: "dockerhub", "github" or "both".
        version: Recommended candidate version.
        note: Short explanation shown in reports.
        warning: True when the version may not be published as an image yet.
    """

    source: str
    version: str
    note: str = ""
    warning: bool = False


@dataclass(frozen=True)
class ServiceCheck:
    """Outcome of checking one main service of a template.

    Attributes:
        file: Template file name (e.g. "wordpress.yml").
        display_name: Application display name.
        service_name: Service key in the template.
        image: Image full name (e.g. "library/wordpress").
        image_reference: Image as written, may contain placeholders.
        has_variables: True if the image was resolved from variables.
        current_version: Tag currently pinned.
        recommendation: Chosen candidate, None when no source had one.
        verdict: Update verdict, None when it cannot be determined.
        dockerhub: Docker Hub lookup result, if any.
        github: GitHub lookup result, if any.
    """

    file: str
    display_name: str
    service_name: str
    image: str
    image_reference: str
    has_variables: bool
    current_version: str
    recommendation: Recommendation | None = None
    verdict: UpdateVerdict | None = None
    dockerhub: LatestVersion | None = None
    github: LatestVersion | None = None

    @property
    def status(self) -> str:
        """One of "update", "current" or "unknown"."""
        if self.verdict is None:
            return "unknown"
        return "update" if self.verdict.has_update else "current"

    def to_dict(self) -> dict[str, Any]:
        sources: dict[str, Any] = {}
        if self.dockerhub:
            sources["dockerhub"] = {
                "version": self.dockerhub.version,
                "versions": list(self.dockerhub.versions),
            }
        if self.github:
            sources["github"] = {
                "version": self.github.version,
                "versions": list(self.github.versions),
                "releaseUrl": self.github.release_url,
                "publishedAt": self.github.published_at,
            }

        verdict = self.verdict
        rec = self.recommendation
        return {
            "file": self.file,
            "appName": self.display_name,
            "serviceName": self.service_name,
            "image": self.image,
            "imageReference": self.image_reference,
            "hasVariables": self.has_variables,
            "currentVersion": self.current_version,
            "latestVersion": verdict.candidate_version if verdict else None,
            "hasUpdate": bool(verdict and verdict.has_update),
            "updateType": verdict.update_type if verdict else None,
            "recommendedSource": rec.source if rec else None,
            "note": rec.note if rec else None,
            "warning": bool(rec and rec.warning),
            "sources": sources,
        }


@dataclass(frozen=True)
class ScanReport:
    """Result of scanning a template catalog.

    Attributes:
        timestamp: ISO-8601 UTC time the scan started.
        mode: "enhanced" (Docker Hub + GitHub) or "dockerhub-only".
        total_files: Number of templates considered.
        apps_checked: Templates with at least one checkable service.
        apps_skipped: Templates skipped (no main image, unresolved, invalid).
        checks: Per-service results.
    """

    timestamp: str
    mode: str
    total_files: int
    apps_checked: int
    apps_skipped: int
    checks: list[ServiceCheck] = field(default_factory=list)

    @property
    def updates(self) -> list[ServiceCheck]:
        return [c for c in self.checks if c.status == "update"]

    @property
    def summary(self) -> dict[str, int]:
        counts = Counter(c.verdict.update_type for c in self.updates if c.verdict)
        return {t: counts.get(t, 0) for t in UPDATE_TYPES}

    @property
    def sources(self) -> dict[str, int]:
        counts = Counter(
            c.recommendation.source for c in self.updates if c.recommendation
        )
        return {s: counts.get(s, 0) for s in RECOMMENDATION_SOURCES}

    @property
    def by_app(self) -> dict[str, list[ServiceCheck]]:
        grouped: dict[str, list[ServiceCheck]] = {}
        for check in self.updates:
            grouped.setdefault(check.file, []).append(check)
        return grouped

    def to_dict(self) -> dict[str, Any]:
        updates = [c.to_dict() for c in self.updates]
        by_app: dict[str, list[dict[str, Any]]] = {}
        for entry in updates:
            by_app.setdefault(entry["file"], []).append(entry)
        return {
            "timestamp": self.timestamp,
            "mode": self.mode,
            "totalFiles": self.total_files,
            "appsChecked": self.apps_checked,
            "appsSkipped": self.apps_skipped,
            "totalUpdatesAvailable": len(updates),
            "updates": updates,
            "summary": self.summary,
            "sources": self.sources,
            "byApp": by_app,
        }


@dataclass(frozen=True)
class AppliedChange:
    """One template rewrite attempted by the apply layer.

    Attributes:
        file: Template file name.
        old_version: Version replaced.
        new_version: Version written.
        update_type: Classification of the update.
        status: "applied", "dry-run", "unchanged" or "failed".
        message: Error text for failed changes.
    """

    file: str
    old_version: str
    new_version: str
    update_type: str | None
    status: str
    message: str = ""


@dataclass(frozen=True)
class ApplyResult:
    """Result of applying updates to template files.

    Attributes:
        dry_run: True if no file was written.
        update_types: Update types that were eligible.
        changes: Per-update outcome.
    """

    dry_run: bool
    update_types: tuple[str, ...]
    changes: list[AppliedChange] = field(default_factory=list)

    def count(self, status: str) -> int:
        return sum(1 for c in self.changes if c.status == status)


@dataclass(frozen=True)
class ValidationResult:
    """Result from validating a template.

    Attributes:
        status: Validation status ("valid" or "invalid").
        errors: List of error messages (empty if valid).
        warnings: List of warning messages.
        service_count: Number of services declared in the template.
        template_path: String path to the validated template file.
    """

    status: str
    errors: list[str]
    warnings: list[str]
    service_count: int
    template_path: str
