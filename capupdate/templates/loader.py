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

"""One-click-app template loading for capupdate.

Reads a CapRover template (``public/v4/apps/<app>.yml``), collects the
declared variables and returns the checkable main service(s) with their
image resolved and parsed.

Template layout consumed here:
    ```yaml
    captainVersion: 4
    services:
        $$cap_appname:
            image: wordpress:$$cap_wp_version
        $$cap_appname-db:
            image: mysql:8.0           # auxiliary, not checked
    caproverOneClickApp:
        displayName: WordPress
        variables:
            - id: $$cap_wp_version
              defaultValue: '6.7.0'
    ```

Skip rules:

- Services without an ``image`` key (e.g. dockerfileLines builds): ignored
- Auxiliary services (not ``$$cap_appname[-<app>]``): recorded as skipped
- Images with unresolved placeholders: recorded as skipped
- Images the parser rejects: recorded as skipped
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from capupdate.exceptions import ConfigError
from capupdate.images import ImageReference, parse_image_reference
from capupdate.logging import get_global_logger

from .resolver import (
    VariableBinding,
    bindings_to_mapping,
    is_main_service,
    resolve_image,
)

TEMPLATE_SUFFIX = ".yml"


@dataclass(frozen=True)
class ResolvedService:
    """One deployable unit of a template after variable expansion.

    Attributes:
        service_name: Key under ``services`` (e.g. "$$cap_appname").
        original_image: Image as written, may contain placeholders.
        resolved_image: Image after substitution.
        has_variables: True if original_image contained placeholders.
        parsed: Parsed reference; None if resolution was incomplete or the
            reference is invalid.

    """

    service_name: str
    original_image: str
    resolved_image: str
    has_variables: bool
    parsed: ImageReference | None = None


@dataclass(frozen=True)
class TemplateDocument:
    """A loaded template with its checkable services.

    Attributes:
        file_name: Template file name (e.g. "wordpress.yml").
        path: Absolute path to the template.
        display_name: caproverOneClickApp.displayName or the file stem.
        variables: Variable id -> default value (non-empty defaults only).
        services: Main services whose image parsed successfully.
        skipped: Human-readable reasons for services that were not kept.

    """

    file_name: str
    path: Path
    display_name: str
    variables: dict[str, str]
    services: list[ResolvedService] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def _load_yaml_file(p: Path) -> Any:
    """Load a YAML file, raising ConfigError on parse or decode errors."""
    if not p.exists():
        raise FileNotFoundError(f"file not found: {p}")
    try:
        with p.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as err:
        raise ConfigError(f"Error parsing YAML: {p}: {err}") from err
    except UnicodeDecodeError as err:
        raise ConfigError(f"File is not valid UTF-8: {p}: {err}") from err


def extract_variables(data: dict[str, Any]) -> list[VariableBinding]:
    """Collect variable declarations from caproverOneClickApp.variables."""
    app_meta = data.get("caproverOneClickApp") or {}
    if not isinstance(app_meta, dict):
        return []

    bindings: list[VariableBinding] = []
    seen: set[str] = set()
    for variable in app_meta.get("variables") or []:
        if not isinstance(variable, dict):
            continue
        var_id = variable.get("id")
        if not isinstance(var_id, str) or not var_id:
            continue
        if var_id in seen:
            get_global_logger().debug(
                "TEMPLATE", f"Duplicate variable {var_id!r}, keeping first"
            )
            continue
        seen.add(var_id)
        default = variable.get("defaultValue")
        # YAML turns unquoted 8.0 or 15 into numbers
        bindings.append(
            VariableBinding(
                id=var_id,
                default_value=None if default is None else str(default),
            )
        )
    return bindings


def load_template(path: Path) -> TemplateDocument:
    """Load a template and resolve its main service images.

    Args:
        path: Path to a ``.yml`` one-click-app template.

    Returns:
        TemplateDocument with parsed main services.

    Raises:
        FileNotFoundError: If the template does not exist.
        ConfigError: If the YAML is invalid or its top level is not a mapping.

    """
    logger = get_global_logger()
    path = path.resolve()
    data = _load_yaml_file(path)
    if not isinstance(data, dict):
        raise ConfigError(f"Template top level must be a mapping: {path}")

    base_name = path.stem
    bindings = extract_variables(data)
    variables = bindings_to_mapping(bindings)

    app_meta = data.get("caproverOneClickApp") or {}
    display_name = base_name
    if isinstance(app_meta, dict) and app_meta.get("displayName"):
        display_name = str(app_meta["displayName"])

    services: list[ResolvedService] = []
    skipped: list[str] = []

    raw_services = data.get("services") or {}
    if not isinstance(raw_services, dict):
        raw_services = {}

    for service_name, service in raw_services.items():
        if not isinstance(service, dict) or not service.get("image"):
            continue
        if not is_main_service(str(service_name), base_name):
            skipped.append(f"{service_name}: auxiliary service")
            continue

        original = str(service["image"])
        resolved = resolve_image(original, variables)
        if not resolved.complete:
            skipped.append(f"{service_name}: unresolved variables in {original}")
            logger.verbose(
                "TEMPLATE", f"{path.name}: unresolved variables in {original!r}"
            )
            continue

        parsed = parse_image_reference(resolved.resolved_image)
        if parsed is None:
            skipped.append(
                f"{service_name}: unparseable image {resolved.resolved_image}"
            )
            logger.verbose(
                "TEMPLATE",
                f"{path.name}: cannot parse {resolved.resolved_image!r}",
            )
            continue

        services.append(
            ResolvedService(
                service_name=str(service_name),
                original_image=original,
                resolved_image=resolved.resolved_image,
                has_variables=resolved.has_variables,
                parsed=parsed,
            )
        )

    return TemplateDocument(
        file_name=path.name,
        path=path,
        display_name=display_name,
        variables=variables,
        services=services,
        skipped=skipped,
    )


def discover_templates(
    apps_dir: Path,
    apps: list[str] | None = None,
    limit: int | None = None,
) -> list[Path]:
    """List template files in a catalog directory.

    Args:
        apps_dir: Directory containing ``*.yml`` templates.
        apps: Optional file names to restrict to (e.g. ["wordpress.yml"]).
        limit: Optional maximum number of templates (after filtering).

    Returns:
        Sorted template paths.

    Raises:
        ConfigError: If apps_dir does not exist.

    """
    if not apps_dir.is_dir():
        raise ConfigError(f"Apps directory not found: {apps_dir}")

    files = sorted(
        p for p in apps_dir.iterdir() if p.is_file() and p.suffix == TEMPLATE_SUFFIX
    )
    if apps:
        wanted = set(apps)
        files = [p for p in files if p.name in wanted]
    if limit is not None:
        files = files[:limit]
    return files
