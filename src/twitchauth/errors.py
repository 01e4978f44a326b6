from __future__ import annotations

from typing import Optional


class TwitchAuthError(Exception):
    """Base class for every failure that ends a sign-in attempt.

    `kind` is a short stable tag written to log lines and the event log.
    """

    kind = "error"


class TransportError(TwitchAuthError):
    """The request never completed (DNS, connect, TLS, read failures)."""

    kind = "transport"


class HttpStatusError(TwitchAuthError):
    kind = "http_status"

    def __init__(
        self, status_code: Optional[int], endpoint: Optional[object] = None
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(f"unexpected HTTP status {status_code} for {endpoint}")


class DecodeError(TwitchAuthError):
    """Response body is not JSON or does not fit the target record."""

    kind = "decode"


class RedirectParseError(TwitchAuthError):
    """The redirect matched but carried no usable access token."""

    kind = "redirect_parse"


class SignInTimeoutError(TwitchAuthError):
    kind = "timeout"


class SignInCancelledError(TwitchAuthError):
    kind = "cancelled"


class BrowserHostError(TwitchAuthError):
    """The browser host could not show the authorization page."""

    kind = "browser_host"
