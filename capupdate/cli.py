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

"""Command-line interface for capupdate.

This module provides the main CLI entry point for the capupdate tool, offering
commands for checking a one-click-app catalog for image updates, querying
GitHub releases, and validating templates.

Commands:

    check: Scan templates, write reports, optionally apply updates
    github: Check GitHub API rate limit or look up a single repo/image
    validate: Validate a template without network access

Example:
    Check the whole catalog (Docker Hub + GitHub):
        ```bash
        $ capupdate check
        ```

    Check two apps against Docker Hub only, bypassing the cache:
        ```bash
        $ capupdate check --apps wordpress.yml,ghost.yml --no-github --no-cache
        ```

    Preview patch updates, then apply them:
        ```bash
        $ capupdate check --patch-only --dry-run
        $ capupdate check --patch-only --apply
        ```

    GitHub helpers:
        ```bash
        $ capupdate github --test
        $ capupdate github --repo TryGhost/Ghost
        $ capupdate github --image ghost:5.2.2
        ```

Exit Codes:

- 0: Success
- 1: Error (configuration, network, cache, apply, or validation failure)

Note:
    The CLI uses argparse for command parsing.
    Each command has its own handler function (cmd_<command>).
    Verbose mode shows full tracebacks on errors for debugging.
    Debug mode implies verbose mode.

"""

from __future__ import annotations

import argparse
from datetime import UTC, datetime
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
import sys
from typing import Any

from capupdate import __version__
from capupdate.apply import apply_updates, select_update_types
from capupdate.config import load_config
from capupdate.core import check_catalog
from capupdate.exceptions import ApplyError, CacheError, CapUpdateError
from capupdate.images import parse_image_reference
from capupdate.io import Throttle, make_session
from capupdate.logging import get_logger, set_global_logger
from capupdate.report import write_reports
from capupdate.results import ScanReport
from capupdate.sources import GitHubReleaseSource, LatestVersion, get_source
from capupdate.sources.base import VersionSource
from capupdate.state import NullCache, ResponseCache
from capupdate.validation import validate_template


def _package_version() -> str:
    try:
        return version("capupdate")
    except PackageNotFoundError:
        return __version__


def _print_error(err: Exception, args: argparse.Namespace) -> None:
    print(f"Error: {err}")
    if getattr(args, "verbose", False) or getattr(args, "debug", False):
        import traceback

        traceback.print_exc()


def _split_apps(raw: str | None) -> list[str] | None:
    """Parse --apps "a.yml,b" into ["a.yml", "b.yml"]."""
    if not raw:
        return None
    names = [n.strip() for n in raw.split(",") if n.strip()]
    return [n if n.endswith(".yml") else f"{n}.yml" for n in names] or None


def build_sources(
    config: dict[str, Any], *, session: Any | None = None
) -> list[VersionSource]:
    """Instantiate the lookup sources enabled in the configuration."""
    session = session or make_session()
    timeout = config["http"]["timeout"]
    dockerhub_cfg = config["dockerhub"]
    sources: list[VersionSource] = [
        get_source(
            "dockerhub",
            session=session,
            throttle=Throttle(dockerhub_cfg["delay"], name="DOCKERHUB"),
            timeout=timeout,
            page_size=dockerhub_cfg["page_size"],
        )
    ]

    github_cfg = config["github"]
    if github_cfg.get("enabled", True):
        sources.append(_github_source(config, session=session))
    return sources


def _github_source(
    config: dict[str, Any], *, session: Any | None = None
) -> GitHubReleaseSource:
    github_cfg = config["github"]
    return GitHubReleaseSource(
        session=session or make_session(),
        throttle=Throttle(github_cfg["delay"], name="GITHUB"),
        token=github_cfg.get("token"),
        repo_map=github_cfg.get("repo_map") or {},
        timeout=config["http"]["timeout"],
    )


def _print_scan(report: ScanReport) -> None:
    print("=" * 70)
    print("UPDATE CHECK RESULTS")
    print("=" * 70)
    print(f"Mode:              {report.mode}")
    print(f"Templates:         {report.total_files}")
    print(f"Apps Checked:      {report.apps_checked}")
    print(f"Apps Skipped:      {report.apps_skipped}")
    print(f"Updates Available: {len(report.updates)}")
    for update_type, count in report.summary.items():
        print(f"  {update_type.capitalize():<8} {count}")
    if report.mode == "enhanced":
        sources = report.sources
        print(
            f"Sources:           Docker Hub {sources['dockerhub']}, "
            f"GitHub {sources['github']}, Both {sources['both']}"
        )
    print()

    for check in report.updates:
        verdict = check.verdict
        rec = check.recommendation
        marker = " [!]" if rec and rec.warning else ""
        print(
            f"  {check.file}: {check.image} {verdict.current_version} -> "
            f"{verdict.candidate_version} ({verdict.update_type}){marker}"
        )
    if report.updates:
        print()


def cmd_check(args: argparse.Namespace) -> int:
    """Handler for 'capupdate check' command.

    Scans the template catalog, looks every main image up in Docker Hub (and
    GitHub unless disabled), writes JSON and Markdown reports, and applies
    the selected updates when --apply or --dry-run is given.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code (0 for success, 1 for failure).

    """
    logger = get_logger(verbose=args.verbose, debug=args.debug)
    set_global_logger(logger)

    overrides: dict[str, Any] = {}
    if args.apps_dir:
        overrides["apps_dir"] = str(Path(args.apps_dir).resolve())
    if args.output_dir:
        overrides["output_dir"] = str(Path(args.output_dir).resolve())
    if args.no_github:
        overrides["github"] = {"enabled": False}
    if args.no_cache:
        overrides["cache"] = {"enabled": False}

    try:
        config = load_config(
            Path(args.config) if args.config else None, overrides=overrides
        )
        apps_dir = Path(config["apps_dir"])
        output_dir = Path(config["output_dir"])

        cache_cfg = config["cache"]
        if cache_cfg.get("enabled", True):
            cache: ResponseCache | NullCache = ResponseCache(
                Path(cache_cfg["file"]), ttl_seconds=int(cache_cfg["ttl_seconds"])
            )
            try:
                cache.load()
            except CacheError as err:
                logger.warning("CACHE", str(err))
        else:
            cache = NullCache()

        print(f"Checking templates in: {apps_dir}")
        print()

        report = check_catalog(
            apps_dir,
            sources=build_sources(config),
            cache=cache,
            apps=_split_apps(args.apps),
            limit=args.limit,
            now=datetime.now(UTC),
        )
        cache.save()

        json_path, md_path = write_reports(report, output_dir)

        _print_scan(report)
        print(f"JSON report:     {json_path}")
        print(f"Markdown report: {md_path}")
        print("=" * 70)

        if args.apply or args.dry_run:
            update_types = select_update_types(
                patch_only=args.patch_only, minor_and_patch=args.minor_and_patch
            )
            result = apply_updates(
                report, apps_dir, update_types=update_types, dry_run=args.dry_run
            )

            print()
            print("APPLY RESULTS" + (" (DRY RUN)" if result.dry_run else ""))
            print("=" * 70)
            print(f"Update types: {', '.join(result.update_types)}")
            for change in result.changes:
                print(
                    f"  [{change.status.upper()}] {change.file}: "
                    f"{change.old_version} -> {change.new_version}"
                    + (f" ({change.message})" if change.message else "")
                )
            print("=" * 70)

            failed = result.count("failed")
            if failed:
                raise ApplyError(f"{failed} template(s) could not be updated")

    except (CapUpdateError, FileNotFoundError, OSError) as err:
        _print_error(err, args)
        return 1

    print()
    print("[SUCCESS] Update check complete!")
    return 0


def _print_latest(latest: LatestVersion | None, subject: str) -> None:
    if latest is None:
        print(f"No stable GitHub release found for {subject}")
        return
    print(f"Latest Version:  {latest.version}")
    print(f"Release URL:     {latest.release_url or '-'}")
    print(f"Published At:    {latest.published_at or '-'}")
    if latest.versions:
        print(f"Recent Releases: {', '.join(latest.versions)}")


def cmd_github(args: argparse.Namespace) -> int:
    """Handler for 'capupdate github' command.

    Args:
        args: Parsed command-line arguments (--test, --repo or --image).

    Returns:
        Exit code (0 for success, 1 for failure).

    """
    logger = get_logger(verbose=args.verbose, debug=args.debug)
    set_global_logger(logger)

    try:
        config = load_config(Path(args.config) if args.config else None)
        source = _github_source(config)

        print("=" * 70)
        if args.test:
            print("GITHUB API STATUS")
            print("=" * 70)
            limit = source.rate_limit()
            if limit is None:
                print("Rate limit information unavailable")
            else:
                reset = datetime.fromtimestamp(limit.reset, UTC).isoformat()
                auth = "yes" if limit.authenticated else "no (set GITHUB_TOKEN)"
                print(f"Authenticated:   {auth}")
                print(f"Rate Limit:      {limit.limit}/hour")
                print(f"Remaining:       {limit.remaining}")
                print(f"Resets At:       {reset}")

        elif args.repo:
            print(f"GITHUB RELEASES: {args.repo}")
            print("=" * 70)
            _print_latest(source.latest_release(args.repo), args.repo)

        else:
            image = parse_image_reference(args.image)
            if image is None:
                print(f"Error: Invalid image reference: {args.image!r}")
                return 1
            repo = source.repo_for_image(image)
            print(f"GITHUB RELEASES: {image.full_name}")
            print("=" * 70)
            print(f"Repository:      {repo or '(no mapping)'}")
            print(f"Current Tag:     {image.tag}")
            if repo:
                _print_latest(source.latest_version(image), repo)
        print("=" * 70)

    except (CapUpdateError, FileNotFoundError) as err:
        _print_error(err, args)
        return 1

    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    """Handler for 'capupdate validate' command.

    Validates a template without network calls.

    Args:
        args: Parsed command-line arguments containing
            template path and verbose flag.

    Returns:
        Exit code (0 for valid template, 1 for invalid).

    """
    logger = get_logger(verbose=args.verbose, debug=False)
    set_global_logger(logger)

    template_path = Path(args.template).resolve()

    print(f"Validating template: {template_path}")
    print()

    result = validate_template(template_path)

    print("=" * 70)
    print("VALIDATION RESULTS")
    print("=" * 70)
    print(f"Template:      {result.template_path}")
    print(f"Status:        {result.status.upper()}")
    print(f"Services:      {result.service_count}")
    print()

    if result.warnings:
        print(f"Warnings ({len(result.warnings)}):")
        for warning in result.warnings:
            print(f"  [WARNING] {warning}")
        print()

    if result.errors:
        print(f"Errors ({len(result.errors)}):")
        for error in result.errors:
            print(f"  [X] {error}")
        print()

    print("=" * 70)

    if result.status == "valid":
        print()
        print("[SUCCESS] Template is valid!")
        return 0
    else:
        print()
        print(
            f"[FAILED] Template validation failed with {len(result.errors)} error(s)."
        )
        return 1


def _add_output_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show progress and high-level status updates",
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Show detailed debugging output (implies --verbose)",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the capupdate CLI."""
    parser = argparse.ArgumentParser(
        prog="capupdate",
        description="capupdate - update checker for CapRover one-click-app templates",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"capupdate {_package_version()}",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands",
        required=True,
    )

    # 'check' command
    parser_check = subparsers.add_parser(
        "check",
        help="Check templates for image updates",
        description="Scan templates, look up the latest stable versions, and "
        "write JSON/Markdown update reports.",
    )
    parser_check.add_argument(
        "--config",
        default=None,
        help="Path to capupdate.yaml (default: ./capupdate.yaml if present)",
    )
    parser_check.add_argument(
        "--apps-dir",
        default=None,
        help="Template directory (default: from config or public/v4/apps)",
    )
    parser_check.add_argument(
        "--apps",
        default=None,
        help="Comma-separated template names to check (e.g. wordpress.yml,ghost)",
    )
    parser_check.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Check at most N templates",
    )
    parser_check.add_argument(
        "--no-github",
        action="store_true",
        help="Use Docker Hub only (skip GitHub releases)",
    )
    parser_check.add_argument(
        "--no-cache",
        action="store_true",
        help="Ignore and do not write the response cache",
    )
    parser_check.add_argument(
        "--output-dir",
        default=None,
        help="Report directory (default: from config or update-reports)",
    )
    apply_group = parser_check.add_mutually_exclusive_group()
    apply_group.add_argument(
        "--apply",
        action="store_true",
        help="Rewrite templates with the selected updates",
    )
    apply_group.add_argument(
        "--dry-run",
        action="store_true",
        help="Show which templates would be rewritten without writing",
    )
    types_group = parser_check.add_mutually_exclusive_group()
    types_group.add_argument(
        "--patch-only",
        action="store_true",
        help="Only apply patch updates",
    )
    types_group.add_argument(
        "--minor-and-patch",
        action="store_true",
        help="Only apply minor and patch updates",
    )
    _add_output_flags(parser_check)
    parser_check.set_defaults(func=cmd_check)

    # 'github' command
    parser_github = subparsers.add_parser(
        "github",
        help="Query GitHub releases",
        description="Check the GitHub API rate limit or look up the latest "
        "release of a repository or image.",
    )
    parser_github.add_argument(
        "--config",
        default=None,
        help="Path to capupdate.yaml (default: ./capupdate.yaml if present)",
    )
    github_group = parser_github.add_mutually_exclusive_group(required=True)
    github_group.add_argument(
        "--test",
        action="store_true",
        help="Show rate limit status and whether a token is in use",
    )
    github_group.add_argument(
        "--repo",
        default=None,
        help="Latest release of a repository (owner/repo)",
    )
    github_group.add_argument(
        "--image",
        default=None,
        help="Latest release for an image reference (e.g. ghost:5.2.2)",
    )
    _add_output_flags(parser_github)
    parser_github.set_defaults(func=cmd_github)

    # 'validate' command
    parser_validate = subparsers.add_parser(
        "validate",
        help="Validate a template without network access",
        description="Check that a template can be version-checked.",
    )
    parser_validate.add_argument(
        "template",
        help="Path to the template YAML file",
    )
    parser_validate.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show validation progress",
    )
    parser_validate.set_defaults(func=cmd_validate)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the capupdate CLI.

    This function is registered as the 'capupdate' console script in
    pyproject.toml.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    exit_code = args.func(args)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
