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

"""Update report rendering for capupdate.

A scan produces two files in the output directory:

- ``update-report-<timestamp>.json``: machine-readable record (camelCase
  keys, suitable for CI consumption)
- ``update-report-<timestamp>.md``: human-readable summary with one table
  per update type and a detailed section per update

Example:
    ```python
    from pathlib import Path
    from capupdate.report import write_reports

    json_path, md_path = write_reports(report, Path("update-reports"))
    ```

"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from capupdate.logging import get_global_logger
from capupdate.results import ScanReport, ServiceCheck
from capupdate.versioning import UPDATE_TYPES

REPORT_PREFIX = "update-report"
SOURCE_LABELS = {"dockerhub": "Docker Hub", "github": "GitHub", "both": "Both"}


def build_report_dict(report: ScanReport) -> dict[str, Any]:
    """Machine-readable record of a scan."""
    return report.to_dict()


def _docker_hub_base(image: str) -> str:
    namespace, _, repository = image.partition("/")
    if namespace == "library":
        return f"https://hub.docker.com/_/{repository}"
    return f"https://hub.docker.com/r/{image}"


def _anchor(check: ServiceCheck) -> str:
    stem = check.file.removesuffix(".yml")
    return f"{check.image.replace('/', '')}-{stem}"


def _recommended_link(check: ServiceCheck) -> str:
    version = check.verdict.candidate_version if check.verdict else ""
    rec = check.recommendation
    if rec and rec.source == "github" and check.github and check.github.release_url:
        return f"[{version}]({check.github.release_url})"
    return f"[{version}]({_docker_hub_base(check.image)}/tags)"


def render_markdown(report: ScanReport) -> str:
    """Human-readable Markdown rendering of a scan."""
    updates = report.updates
    summary = report.summary
    lines = [
        "# CapRover One-Click Apps - Update Report",
        "",
        f"**Generated:** {report.timestamp}",
        f"**Mode:** {report.mode}",
        "",
        "## Summary",
        "",
        f"- **Templates Scanned:** {report.total_files}",
        f"- **Apps Checked:** {report.apps_checked}",
        f"- **Apps Skipped:** {report.apps_skipped}",
        f"- **Updates Available:** {len(updates)}",
    ]
    lines += [f"  - {t.capitalize()} updates: {summary[t]}" for t in UPDATE_TYPES]
    lines.append("")

    if report.mode == "enhanced":
        sources = report.sources
        lines += [
            "### Version Sources",
            "",
            f"- **Docker Hub:** {sources['dockerhub']} updates",
            f"- **GitHub Releases:** {sources['github']} updates",
            f"- **Both in sync:** {sources['both']} updates",
            "",
        ]

    if not updates:
        lines += ["All apps are up to date!", ""]
        return "\n".join(lines)

    lines += ["## Available Updates", ""]
    for update_type in UPDATE_TYPES:
        group = [
            c for c in updates if c.verdict and c.verdict.update_type == update_type
        ]
        if not group:
            continue
        lines += [
            f"### {update_type.capitalize()} Updates ({len(group)})",
            "",
            "| App | Image | Current | Recommended | Source | Notes |",
            "|-----|-------|---------|-------------|--------|-------|",
        ]
        for check in group:
            rec = check.recommendation
            source = SOURCE_LABELS.get(rec.source, rec.source) if rec else ""
            note = (rec.note if rec else "").replace("|", "\\|")
            current = (
                f"[{check.current_version}]({_docker_hub_base(check.image)}/tags)"
            )
            lines.append(
                f"| [{check.file}](#{_anchor(check)}) | {check.image} | {current} "
                f"| {_recommended_link(check)} | {source} | {note} |"
            )
        lines.append("")

    lines += ["## Detailed Version Information", ""]
    for check in updates:
        tags_url = f"{_docker_hub_base(check.image)}/tags"
        lines += [
            f'### <a id="{_anchor(check)}"></a>{check.image} ({check.file})',
            "",
            f"- **Current:** [{check.current_version}]({tags_url})",
            f"- **Recommended:** {_recommended_link(check)}",
            f"- **Update Type:** {check.verdict.update_type if check.verdict else ''}",
        ]
        if check.has_variables:
            lines.append(f"- **Template Image:** `{check.image_reference}`")
        lines.append("")

        if check.dockerhub:
            lines.append(f"**Docker Hub versions:** ([view all tags]({tags_url}))")
            lines += [f"{i}. {v}" for i, v in enumerate(check.dockerhub.versions, 1)]
            lines.append("")

        if check.github:
            releases_url = (check.github.release_url or "").rsplit("/", 1)[0]
            lines.append(
                f"**GitHub releases:** ([view all releases]({releases_url}))"
            )
            lines += [f"{i}. {v}" for i, v in enumerate(check.github.versions, 1)]
            lines.append("")

        lines += ["[Back to Available Updates](#available-updates)", "", "---", ""]

    return "\n".join(lines)


def report_stem(report: ScanReport) -> str:
    """File name stem, e.g. "update-report-2025-01-01T12-00-00-000000+00-00"."""
    stamp = report.timestamp.replace(":", "-").replace(".", "-")
    return f"{REPORT_PREFIX}-{stamp}"


def write_reports(report: ScanReport, output_dir: Path) -> tuple[Path, Path]:
    """Write the JSON and Markdown reports.

    Args:
        report: Scan result.
        output_dir: Directory to write into (created if missing).

    Returns:
        Paths of the JSON and Markdown files.

    Raises:
        OSError: If the files cannot be written.

    """
    logger = get_global_logger()
    output_dir.mkdir(parents=True, exist_ok=True)
    stem = report_stem(report)

    json_path = output_dir / f"{stem}.json"
    with open(json_path, "w", encoding="utf-8") as f:
        json.dump(build_report_dict(report), f, indent=2)
        f.write("\n")

    md_path = output_dir / f"{stem}.md"
    md_path.write_text(render_markdown(report), encoding="utf-8")

    logger.verbose("REPORT", f"JSON report: {json_path}")
    logger.verbose("REPORT", f"Markdown report: {md_path}")
    return json_path, md_path
