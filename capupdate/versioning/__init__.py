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

"""Version comparison and update detection for capupdate.

Modules
-------
compare : module
    Tag-oriented comparator and major/minor/patch/other classifier.
detect : module
    UpdateVerdict and detect_update(), which never fabricates a verdict
    when no candidate version is known.

Public API
----------
compare_versions : function
    Compare two tags, returning -1, 0, or 1.
classify_update : function
    Classify a known update as "major", "minor", "patch" or "other".
is_newer : function
    True iff a candidate tag orders after the current one.
detect_update : function
    Build an UpdateVerdict from a current version and an optional candidate.
UpdateVerdict : dataclass
    Immutable result of detect_update().
UpdateType : Literal type
    "major" | "minor" | "patch" | "other".

Examples
--------
    >>> from capupdate.versioning import compare_versions, detect_update
    >>> compare_versions("1.10", "1.9")
    1
    >>> detect_update("6.7.0", "6.7.1").update_type
    'patch'

Notes
-----
- No network or file I/O; every function is pure and thread-safe.
- Pre-release tags are not ranked; sources filter them out beforehand.
"""

from .compare import (
    UPDATE_TYPES,
    UpdateType,
    classify_update,
    compare_versions,
    is_newer,
)
from .detect import UpdateVerdict, detect_update

__all__ = [
    "UPDATE_TYPES",
    "UpdateType",
    "UpdateVerdict",
    "classify_update",
    "compare_versions",
    "detect_update",
    "is_newer",
]
