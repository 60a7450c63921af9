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

"""Update detection for capupdate.

Combines the comparator with a candidate version supplied by a lookup
source. Three outcomes are kept distinct:

- None: no candidate known, nothing can be said
- UpdateVerdict(has_update=False): candidate is not newer
- UpdateVerdict(has_update=True, update_type=...): candidate is newer
"""

from __future__ import annotations

from dataclasses import dataclass

from .compare import UpdateType, classify_update, compare_versions


@dataclass(frozen=True)
class UpdateVerdict:
    """Result of comparing a current version against a candidate.

    Attributes:
        current_version: Version currently pinned in the template.
        candidate_version: Latest version reported by a lookup source.
        has_update: True iff candidate orders strictly after current.
        update_type: Classification of the jump; None when has_update is
            False.

    """

    current_version: str
    candidate_version: str
    has_update: bool
    update_type: UpdateType | None = None


def detect_update(current: str, candidate: str | None) -> UpdateVerdict | None:
    """Compute an update verdict.

    Args:
        current: Version currently in use.
        candidate: Latest known version, or None when no source had one.

    Returns:
        None if there is no candidate or the inputs cannot be compared,
        otherwise an UpdateVerdict.

    Example:
        ```python
        detect_update("6.7.0", "6.7.1")
        # UpdateVerdict("6.7.0", "6.7.1", has_update=True, update_type="patch")
        detect_update("1.0.0", None)
        # None
        ```
    """
    if not candidate:
        return None

    try:
        newer = compare_versions(candidate, current) > 0
    except (TypeError, AttributeError):
        return None

    if not newer:
        return UpdateVerdict(
            current_version=current,
            candidate_version=candidate,
            has_update=False,
        )

    return UpdateVerdict(
        current_version=current,
        candidate_version=candidate,
        has_update=True,
        update_type=classify_update(current, candidate),
    )
