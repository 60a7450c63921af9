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

"""Template handling for capupdate.

Public API:

- load_template: Parse a one-click-app template and resolve its main image
- discover_templates: List the templates of a catalog directory
- resolve_image: Substitute variable defaults into an image string
- is_main_service: Decide whether a service is the app's primary unit

Example:
    Basic usage:

        from pathlib import Path
        from capupdate.templates import load_template

        doc = load_template(Path("public/v4/apps/wordpress.yml"))
        for service in doc.services:
            print(service.parsed.full_name, service.parsed.tag)

"""

from .loader import (
    ResolvedService,
    TemplateDocument,
    discover_templates,
    load_template,
)
from .resolver import (
    ResolvedImage,
    VariableBinding,
    is_main_service,
    resolve_image,
)

__all__ = [
    "ResolvedImage",
    "ResolvedService",
    "TemplateDocument",
    "VariableBinding",
    "discover_templates",
    "is_main_service",
    "load_template",
    "resolve_image",
]
