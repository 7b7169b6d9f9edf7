from dataclasses import dataclass, field
from typing import Literal, TypeAlias

Method: TypeAlias = Literal["GET", "POST", "PUT", "DELETE", "PATCH"]
Path: TypeAlias = str
Header: TypeAlias = str
Headers: TypeAlias = frozenset[str]

USER_HEADER: Header = "X-User-Id"


@dataclass(frozen=True, slots=True)
class HTTPRouteTrigger:
    """
    An HTTP route.

    ``headers`` are forwarded into the request payload under their
    snake-cased name without the ``X-`` prefix (``X-User-Id`` → ``user_id``).
    For JSON codecs they are required; raw-body codecs receive them as-is.
    """

    method: Method
    path: Path
    headers: Headers = field(default_factory=lambda: frozenset())
    status_code: int = 200


def user_route(method: Method, path: Path, status_code: int = 200) -> HTTPRouteTrigger:
    """Route acting on behalf of the caller identified by ``X-User-Id``."""
    return HTTPRouteTrigger(method, path, frozenset({USER_HEADER}), status_code)


def header_field(name: Header) -> str:
    key = name.lower()
    if key.startswith("x-"):
        key = key[2:]
    return key.replace("-", "_")
