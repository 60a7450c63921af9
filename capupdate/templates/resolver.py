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

"""Template variable resolution for capupdate.

One-click-app templates pin their main image through variables, e.g.::

    services:
        $$cap_appname:
            image: wordpress:$$cap_wp_version
    caproverOneClickApp:
        variables:
            - id: $$cap_wp_version
              defaultValue: '6.7.0'

resolve_image() substitutes each declared variable's default value into the
image string. Substitution is a single global pass per variable in
declaration order; text produced by one substitution is never expanded
again. If any placeholder survives, the result is marked incomplete and the
service must not be version-checked.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from capupdate.images import PLACEHOLDER_MARKER

APP_NAME_PLACEHOLDER = "$$cap_appname"


@dataclass(frozen=True)
class VariableBinding:
    """A declared template variable and its default value.

    Attributes:
        id: Placeholder token, e.g. "$$cap_wp_version".
        default_value: Default value, None when the template declares none.

    """

    id: str
    default_value: str | None = None


@dataclass(frozen=True)
class ResolvedImage:
    """Outcome of resolving an image reference.

    Attributes:
        resolved_image: Image string after substitution.
        has_variables: True if the raw image contained a placeholder.
        complete: False if a placeholder is still present after substitution.

    """

    resolved_image: str
    has_variables: bool
    complete: bool


def bindings_to_mapping(bindings: list[VariableBinding]) -> dict[str, str]:
    """Collapse bindings to an id -> default mapping, dropping empty defaults.

    The first declaration of an id wins.
    """
    mapping: dict[str, str] = {}
    for binding in bindings:
        if binding.default_value in (None, ""):
            continue
        mapping.setdefault(binding.id, binding.default_value)
    return mapping


def resolve_image(
    raw_image: str, bindings: Mapping[str, str | None]
) -> ResolvedImage:
    """Substitute variable defaults into an image reference.

    Args:
        raw_image: Image as written in the template.
        bindings: Variable id -> default value, in declaration order.
            Entries whose default is None are ignored.

    Returns:
        The resolved image with has_variables and complete flags.

    Example:
        ```python
        r = resolve_image("wordpress:$$cap_wp_version",
                          {"$$cap_wp_version": "6.7.0"})
        # r.resolved_image == "wordpress:6.7.0", r.complete is True
        ```
    """
    has_variables = PLACEHOLDER_MARKER in raw_image
    if not has_variables:
        return ResolvedImage(raw_image, has_variables=False, complete=True)

    # (text, substitutable) pieces; substituted values are never rescanned
    segments: list[tuple[str, bool]] = [(raw_image, True)]
    for var_id, value in bindings.items():
        if value is None or not var_id:
            continue
        expanded: list[tuple[str, bool]] = []
        for text, literal in segments:
            if not literal or var_id not in text:
                expanded.append((text, literal))
                continue
            pieces = text.split(var_id)
            for i, piece in enumerate(pieces):
                if i:
                    expanded.append((str(value), False))
                if piece:
                    expanded.append((piece, True))
        segments = expanded

    resolved = "".join(text for text, _ in segments)
    return ResolvedImage(
        resolved_image=resolved,
        has_variables=True,
        complete=PLACEHOLDER_MARKER not in resolved,
    )


def is_main_service(service_name: str, template_base_name: str) -> bool:
    """True if the service is the template's primary deployable unit.

    Main services are named "$$cap_appname" or
    "$$cap_appname-<template base name>". Databases, caches and sidecars use
    other suffixes and are not checked.
    """
    return service_name in (
        APP_NAME_PLACEHOLDER,
        f"{APP_NAME_PLACEHOLDER}-{template_base_name}",
    )
