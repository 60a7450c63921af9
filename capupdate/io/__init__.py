"""HTTP plumbing for capupdate.

Modules:

http : module
    Retrying requests.Session factory and a per-service request throttle.

Public API:

make_session : function
    Create a requests.Session with retry/backoff defaults.
Throttle : class
    Keeps consecutive requests to one service a minimum delay apart.

Example:
    from capupdate.io import Throttle, make_session

    session = make_session()
    throttle = Throttle(delay=1.0, name="DOCKERHUB")

"""

from .http import USER_AGENT, Throttle, make_session

__all__ = ["USER_AGENT", "Throttle", "make_session"]
