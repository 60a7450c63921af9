"""
capupdate - CapRover one-click-app update checker

A Python CLI tool that scans a catalog of CapRover one-click-app templates,
finds the container image each app deploys, and checks Docker Hub and GitHub
releases for newer stable versions.

capupdate provides:
  - Strict image reference parsing and template variable resolution
  - Tag-oriented version comparison and major/minor/patch classification
  - Docker Hub and GitHub release lookups with retries and throttling
  - A time-limited response cache to stay within API rate limits
  - JSON and Markdown update reports
  - Optional in-place template rewriting (patch-only, minor-and-patch, all)

Quick Start
-----------
Validate a template:

    $ capupdate validate public/v4/apps/wordpress.yml

Check the catalog for updates:

    $ capupdate check

For full CLI documentation:

    $ capupdate --help

Package Structure
-----------------
cli : module
    Command-line interface with argparse.
core : module
    Scan orchestration and source recommendation.
images : module
    Container image reference parsing.
versioning : package
    Version comparison, update classification and detection.
templates : package
    Template loading and variable resolution.
sources : package
    Docker Hub and GitHub release lookup clients.
state : package
    Response cache.
report : module
    JSON and Markdown report rendering.
apply : module
    In-place template rewriting.

Public API
----------
The primary interface is the CLI, but key functions are exported for
programmatic use:

    from capupdate.core import check_catalog
    from capupdate.images import parse_image_reference
    from capupdate.versioning import compare_versions, detect_update
    from capupdate.templates import load_template, resolve_image

For more details, see the individual module docstrings.

Project Information
-------------------
License: Apache-2.0
"""

__version__ = "0.1.0"
__license__ = "Apache-2.0"
__description__ = "Update checker for CapRover one-click-app templates"

# Re-export commonly used functions for convenience
from capupdate.core import check_catalog
from capupdate.images import ImageReference, parse_image_reference
from capupdate.templates import load_template, resolve_image
from capupdate.validation import validate_template
from capupdate.versioning import (
    UpdateVerdict,
    classify_update,
    compare_versions,
    detect_update,
)

__all__ = [
    "__version__",
    "__license__",
    "__description__",
    "ImageReference",
    "UpdateVerdict",
    "check_catalog",
    "classify_update",
    "compare_versions",
    "detect_update",
    "load_template",
    "parse_image_reference",
    "resolve_image",
    "validate_template",
]
