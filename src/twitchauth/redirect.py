from __future__ import annotations

import logging
from enum import Enum
from typing import Optional
from urllib.parse import parse_qs, urlsplit

from .errors import RedirectParseError

logger = logging.getLogger(__name__)

DEFAULT_REDIRECT_PREFIX = "https://localhost/#access_token"
DEFAULT_TOKEN_MARKER = "access_token="


class WatcherState(str, Enum):
    WATCHING = "watching"
    CAPTURED = "captured"


def _provider_error(url: str) -> Optional[str]:
    # Twitch reports denials as error=...&error_description=... in the
    # fragment or the query string
    parts = urlsplit(url)
    for raw in (parts.fragment, parts.query):
        params = parse_qs(raw)
        if "error" in params:
            desc = params.get("error_description", [""])[0]
            return f"{params['error'][0]}: {desc}" if desc else params["error"][0]
    return None


def extract_access_token(url: str, marker: str = DEFAULT_TOKEN_MARKER) -> str:
    """Cut the access token out of a redirect URL.

    The token is whatever follows `marker` up to the next `&` or the end of
    the string. A missing marker or an empty value raises
    `RedirectParseError` instead of returning a malformed token.
    """
    idx = url.find(marker)
    if idx < 0:
        reason = _provider_error(url)
        if reason:
            raise RedirectParseError(f"authorization failed: {reason}")
        raise RedirectParseError(f"no {marker!r} in redirect URL")

    token = url[idx + len(marker):].split("&", 1)[0]
    if not token:
        raise RedirectParseError("empty access token in redirect URL")
    return token


class RedirectWatcher:
    """Watches browser navigation for the OAuth redirect.

    `feed` returns the access token exactly once, on the navigation that
    starts with `prefix`. After that the watcher is inert; start a new
    sign-in with a new watcher.
    """

    def __init__(
        self,
        prefix: str = DEFAULT_REDIRECT_PREFIX,
        marker: str = DEFAULT_TOKEN_MARKER,
    ) -> None:
        self.prefix = prefix
        self.marker = marker
        self.state = WatcherState.WATCHING

    def feed(self, url: str) -> Optional[str]:
        if self.state is WatcherState.CAPTURED:
            return None
        if not url or not url.startswith(self.prefix):
            logger.debug("ignoring navigation to %s", url)
            return None

        # captured either way: a redirect without a token still ends the flow
        self.state = WatcherState.CAPTURED
        return extract_access_token(url, self.marker)
