from __future__ import annotations

from enum import Enum
from typing import Dict

API_BASE_URL = "https://api.twitch.tv/kraken"


class HttpVerb(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class Endpoint(str, Enum):
    """Kraken resources this client knows how to address.

    There is no idle member: "no endpoint yet" is spelled
    `Optional[Endpoint] = None` so it can never reach `resolve_path`.
    """

    USER = "user"
    CHANNELS = "channels"
    SUBSCRIPTIONS = "subscriptions"


_PATHS: Dict[Endpoint, str] = {
    Endpoint.USER: "/user",
    Endpoint.CHANNELS: "/channel",
    Endpoint.SUBSCRIPTIONS: "/subscriptions",
}


def resolve_path(endpoint: Endpoint) -> str:
    """Return the URL path for `endpoint`, e.g. `/user`."""
    if not isinstance(endpoint, Endpoint):
        raise TypeError(f"expected an Endpoint, got {endpoint!r}")
    return _PATHS[endpoint]


def endpoint_url(endpoint: Endpoint, base_url: str = API_BASE_URL) -> str:
    return base_url.rstrip("/") + resolve_path(endpoint)
