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

"""Tag-oriented version comparison for capupdate.

This module is format-agnostic: it does NOT query registries or read files.
It only orders two version tags and classifies how big the jump between
them is.

The comparison is intentionally looser than semantic versioning:

- One leading "v" is dropped ("v1.2.3" == "1.2.3").
- Tags are split on "." and "-" into tokens.
- Purely numeric tokens compare numerically ("1.10" > "1.9").
- If either side of a position is non-numeric, both sides compare as
  strings ("1.0-alpine" vs "1.0-bullseye" orders by "alpine" < "bullseye").
- Missing trailing tokens count as 0 ("1.2" == "1.2.0").
- There is no pre-release precedence: "1.0.0-rc1" orders AFTER "1.0.0".
  Lookup sources filter non-stable tags before anything reaches here.
"""

from __future__ import annotations

import re
from typing import Literal

UpdateType = Literal["major", "minor", "patch", "other"]

UPDATE_TYPES: tuple[UpdateType, ...] = ("major", "minor", "patch", "other")

_TOKEN_SEP = re.compile(r"[.-]")


def _strip_v(version: str) -> str:
    return version[1:] if version.startswith("v") else version


def _tokens(version: str) -> list[int | str]:
    """Split a tag into int tokens (pure ASCII digits) and str tokens."""
    out: list[int | str] = []
    for part in _TOKEN_SEP.split(_strip_v(version)):
        if part.isascii() and part.isdigit():
            out.append(int(part))
        else:
            out.append(part)
    return out


def compare_versions(a: str, b: str) -> int:
    """Compare two version tags.

    Returns -1 if a < b, 0 if equal, 1 if a > b. Never raises for str input.

    Example:
        ```python
        compare_versions("6.7.1", "6.7.0")  # 1
        compare_versions("1.9", "1.10")     # -1
        ```
    """
    if a == b:
        return 0

    ta = _tokens(a)
    tb = _tokens(b)

    for i in range(max(len(ta), len(tb))):
        pa: int | str = ta[i] if i < len(ta) else 0
        pb: int | str = tb[i] if i < len(tb) else 0

        if isinstance(pa, int) and isinstance(pb, int):
            if pa != pb:
                return 1 if pa > pb else -1
        else:
            sa, sb = str(pa), str(pb)
            if sa != sb:
                return 1 if sa > sb else -1

    return 0


def _leading_ints(version: str) -> tuple[int, int, int]:
    """First three positions as ints; missing or non-numeric -> 0."""
    nums = [t if isinstance(t, int) else 0 for t in _tokens(version)[:3]]
    nums += [0] * (3 - len(nums))
    return nums[0], nums[1], nums[2]


def classify_update(current: str, candidate: str) -> UpdateType:
    """Classify the jump from current to candidate.

    Only meaningful once compare_versions(candidate, current) > 0. Each of
    the first three positions is checked for being strictly greater, in
    order. Anything else (a difference beyond position 2, in a non-numeric
    token, or in a date-style tag) is "other".

    Example:
        ```python
        classify_update("1.2.3", "1.3.0")        # "minor"
        classify_update("6.7.0", "6.7.0.1")      # "other"
        ```
    """
    cur = _leading_ints(current)
    new = _leading_ints(candidate)

    if new[0] > cur[0]:
        return "major"
    if new[1] > cur[1]:
        return "minor"
    if new[2] > cur[2]:
        return "patch"
    return "other"


def is_newer(candidate: str, current: str) -> bool:
    """True iff candidate orders strictly after current."""
    return compare_versions(candidate, current) > 0
