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

"""HTTP plumbing shared by the capupdate lookup clients.

Key Features:

- **Retry Logic with Exponential Backoff** - Retries transient failures
  (429, 500, 502, 503, 504) via urllib3.util.Retry.
- **Request Throttle** - Keeps consecutive requests to the same service at
  least ``delay`` seconds apart to stay under public API rate limits.

Example:
    ```python
    from capupdate.io import Throttle, make_session

    session = make_session()
    throttle = Throttle(delay=1.0)
    throttle.wait()
    response = session.get("https://hub.docker.com/v2/...", timeout=30)
    ```

Notes:
- Timeouts are per request and passed by the caller.
- The throttle clock and sleep are injectable so tests never wait.
"""

from __future__ import annotations

from collections.abc import Callable
import time

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from capupdate import __version__
from capupdate.logging import get_global_logger

USER_AGENT = f"capupdate/{__version__} (caprover one-click-apps update checker)"


def make_session() -> requests.Session:
    """
    Create a requests.Session with sane retry/backoff defaults.

    - Retries on common transient status codes.
    - Applies exponential backoff.
    - Sets a User-Agent (GitHub rejects requests without one).
    """
    s = requests.Session()
    retries = Retry(
        total=5,
        backoff_factor=0.5,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=("GET", "HEAD"),
        raise_on_status=False,
    )
    s.headers.update({"User-Agent": USER_AGENT})
    s.mount("http://", HTTPAdapter(max_retries=retries))
    s.mount("https://", HTTPAdapter(max_retries=retries))
    return s


class Throttle:
    """Minimum spacing between consecutive requests to one service.

    Attributes:
        delay: Minimum seconds between two wait() returns.

    Example:
        ```python
        throttle = Throttle(delay=1.0)
        for url in urls:
            throttle.wait()
            session.get(url)
        ```

    """

    def __init__(
        self,
        delay: float = 1.0,
        *,
        name: str = "HTTP",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.delay = delay
        self.name = name
        self._clock = clock
        self._sleep = sleep
        self._last: float | None = None

    def wait(self) -> None:
        """Block until at least ``delay`` seconds passed since the last call."""
        if self._last is not None and self.delay > 0:
            remaining = self.delay - (self._clock() - self._last)
            if remaining > 0:
                get_global_logger().debug(
                    self.name, f"Throttling for {remaining:.2f}s"
                )
                self._sleep(remaining)
        self._last = self._clock()
