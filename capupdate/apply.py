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

"""In-place template rewriting for capupdate.

Applies the updates found by a scan to the template files. Editing is done
on the raw text so comments, quoting and key order survive untouched:

- ``defaultValue: '<old>'`` becomes ``defaultValue: '<new>'`` (quotes kept)
- ``image: name:<old>`` becomes ``image: name:<new>``, only for services
  whose image is not built from template variables

Warning:
    This is text substitution, not structured editing. Every
    ``defaultValue`` equal to the old version is rewritten, including ones
    that belong to unrelated variables (e.g. a database pinned to the same
    version string). Review the diff before committing.

Example:
    ```python
    from capupdate.apply import apply_updates, select_update_types

    result = apply_updates(
        report,
        Path("public/v4/apps"),
        update_types=select_update_types(patch_only=True),
        dry_run=True,
    )
    print(result.count("dry-run"), "file(s) would change")
    ```

"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
import re

from capupdate.logging import get_global_logger
from capupdate.results import AppliedChange, ApplyResult, ScanReport
from capupdate.versioning import UPDATE_TYPES

# Old version must not continue into a longer tag (1.2 vs 1.2.3 or 1.2-alpine)
_VERSION_END = r"(?![\w.-])"


def select_update_types(
    patch_only: bool = False, minor_and_patch: bool = False
) -> tuple[str, ...]:
    """Update types eligible for automatic application."""
    if patch_only:
        return ("patch",)
    if minor_and_patch:
        return ("minor", "patch")
    return UPDATE_TYPES


def rewrite_versions(content: str, old: str, new: str, *, image: bool = True) -> str:
    """Replace a version in defaultValue (and optionally image) declarations.

    Args:
        content: Template text.
        old: Version currently pinned.
        new: Version to write.
        image: Also rewrite ``image: <name>:<old>`` lines.

    Returns:
        The rewritten text (identical to content when nothing matched).

    Example:
        ```python
        rewrite_versions("defaultValue: '6.7.0'", "6.7.0", "6.7.1")
        # "defaultValue: '6.7.1'"
        ```

    """
    escaped = re.escape(old)
    default_pattern = re.compile(
        rf"(defaultValue:\s*['\"]?){escaped}{_VERSION_END}(['\"]?)"
    )
    content = default_pattern.sub(lambda m: f"{m.group(1)}{new}{m.group(2)}", content)

    if image:
        image_pattern = re.compile(rf"(image:\s*[^:\s]+):{escaped}{_VERSION_END}")
        content = image_pattern.sub(lambda m: f"{m.group(1)}:{new}", content)

    return content


def apply_updates(
    report: ScanReport,
    apps_dir: Path,
    *,
    update_types: Iterable[str],
    dry_run: bool = False,
) -> ApplyResult:
    """Rewrite template files for the eligible updates of a scan.

    Args:
        report: Scan result.
        apps_dir: Directory holding the templates named in the report.
        update_types: Update types to apply (see select_update_types()).
        dry_run: Report what would change without writing.

    Returns:
        ApplyResult with one AppliedChange per eligible update. File errors
        are recorded as "failed" and do not stop the run.

    """
    logger = get_global_logger()
    allowed = tuple(update_types)
    changes: list[AppliedChange] = []

    eligible = [
        c for c in report.updates if c.verdict and c.verdict.update_type in allowed
    ]
    logger.verbose(
        "APPLY",
        f"{len(eligible)} eligible update(s) of types {', '.join(allowed)}"
        f"{' (dry run)' if dry_run else ''}",
    )

    for check in eligible:
        verdict = check.verdict
        old, new = verdict.current_version, verdict.candidate_version
        path = apps_dir / check.file

        try:
            content = path.read_text(encoding="utf-8")
            updated = rewrite_versions(
                content, old, new, image=not check.has_variables
            )
            if updated == content:
                status = "unchanged"
                logger.warning(
                    "APPLY", f"{check.file}: no occurrence of {old} to rewrite"
                )
            elif dry_run:
                status = "dry-run"
                logger.verbose("APPLY", f"{check.file}: would update {old} -> {new}")
            else:
                path.write_text(updated, encoding="utf-8")
                status = "applied"
                logger.verbose("APPLY", f"{check.file}: updated {old} -> {new}")
        except OSError as err:
            logger.warning("APPLY", f"{check.file}: {err}")
            changes.append(
                AppliedChange(
                    file=check.file,
                    old_version=old,
                    new_version=new,
                    update_type=verdict.update_type,
                    status="failed",
                    message=str(err),
                )
            )
            continue

        changes.append(
            AppliedChange(
                file=check.file,
                old_version=old,
                new_version=new,
                update_type=verdict.update_type,
                status=status,
            )
        )

    return ApplyResult(dry_run=dry_run, update_types=allowed, changes=changes)
