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

"""Template validation module.

This module checks whether a one-click-app template can be version-checked,
without making network calls. Useful for quick feedback while editing a
template and in CI.

Validation Checks:

- YAML syntax is valid and the top level is a mapping
- Required top-level sections present (services, caproverOneClickApp)
- Variables declare an id (duplicates are reported)
- A main service exists and has an image
- The main image resolves completely and parses as a reference

Errors make a template invalid; warnings only explain why the checker will
skip it.

Example:
    Validate a template and handle results:
        ```python
        from pathlib import Path
        from capupdate.validation import validate_template

        result = validate_template(Path("public/v4/apps/wordpress.yml"))
        if result.status == "valid":
            print(f"Template is valid with {result.service_count} service(s)")
        else:
            for error in result.errors:
                print(f"Error: {error}")
        ```

"""

from __future__ import annotations

from pathlib import Path

import yaml

from capupdate.images import parse_image_reference
from capupdate.logging import get_global_logger
from capupdate.results import ValidationResult
from capupdate.templates.loader import extract_variables
from capupdate.templates.resolver import (
    bindings_to_mapping,
    is_main_service,
    resolve_image,
)

__all__ = ["validate_template"]


def _result(
    template_path: Path,
    errors: list[str],
    warnings: list[str],
    service_count: int = 0,
) -> ValidationResult:
    return ValidationResult(
        status="invalid" if errors else "valid",
        errors=errors,
        warnings=warnings,
        service_count=service_count,
        template_path=str(template_path),
    )


def validate_template(template_path: Path) -> ValidationResult:
    """Validate a template file without any network access.

    This function checks:

    1. YAML file can be parsed
    2. Required top-level sections are present
    3. Variable declarations are well-formed
    4. The main service image can be resolved and parsed

    Args:
        template_path: Path to the template YAML file to validate.

    Returns:
        ValidationResult with status "valid" or "invalid".

    """
    logger = get_global_logger()
    errors: list[str] = []
    warnings: list[str] = []

    logger.verbose("TEMPLATE", f"Validating template: {template_path}")

    if not template_path.exists():
        errors.append(f"Template file not found: {template_path}")
        return _result(template_path, errors, warnings)

    try:
        with open(template_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as err:
        errors.append(f"Invalid YAML syntax: {err}")
        return _result(template_path, errors, warnings)
    except UnicodeDecodeError as err:
        errors.append(f"Template is not valid UTF-8: {err}")
        return _result(template_path, errors, warnings)
    except OSError as err:
        errors.append(f"Failed to read template file: {err}")
        return _result(template_path, errors, warnings)

    logger.verbose("TEMPLATE", "  [OK] YAML syntax is valid")

    if not isinstance(data, dict):
        errors.append("Template must be a YAML dictionary/mapping")
        return _result(template_path, errors, warnings)

    if "captainVersion" not in data:
        warnings.append("Missing field: captainVersion")

    services = data.get("services")
    if services is None:
        errors.append("Missing required field: services")
    elif not isinstance(services, dict) or not services:
        errors.append("Field 'services' must be a non-empty mapping")
        services = None

    app_meta = data.get("caproverOneClickApp")
    if app_meta is None:
        errors.append("Missing required field: caproverOneClickApp")
    elif not isinstance(app_meta, dict):
        errors.append("Field 'caproverOneClickApp' must be a mapping")
    else:
        seen: set[str] = set()
        for i, variable in enumerate(app_meta.get("variables") or []):
            var_id = variable.get("id") if isinstance(variable, dict) else None
            if not isinstance(var_id, str) or not var_id:
                warnings.append(f"Variable #{i} has no id")
            elif var_id in seen:
                warnings.append(f"Duplicate variable id: {var_id}")
            else:
                seen.add(var_id)

    if services is None:
        return _result(template_path, errors, warnings)

    logger.verbose("TEMPLATE", f"  [OK] {len(services)} service(s) declared")

    variables = bindings_to_mapping(extract_variables(data))
    base_name = template_path.stem
    main = [name for name in services if is_main_service(str(name), base_name)]
    if not main:
        warnings.append(
            "No main service ($$cap_appname or $$cap_appname-"
            f"{base_name}); template will be skipped"
        )

    for name in main:
        service = services[name]
        image = service.get("image") if isinstance(service, dict) else None
        if not image:
            warnings.append(
                f"Main service {name} has no image (built from source?)"
            )
            continue

        resolved = resolve_image(str(image), variables)
        if not resolved.complete:
            warnings.append(
                f"Main service {name}: unresolved variables in {image} "
                f"(resolved to {resolved.resolved_image})"
            )
            continue

        parsed = parse_image_reference(resolved.resolved_image)
        if parsed is None:
            warnings.append(
                f"Main service {name}: cannot parse image reference "
                f"{resolved.resolved_image} (expected name:tag)"
            )
            continue

        logger.verbose(
            "TEMPLATE",
            f"  [OK] {name}: {parsed.full_name} at {parsed.tag}"
            f" ({parsed.registry})",
        )

    return _result(template_path, errors, warnings, service_count=len(services))
