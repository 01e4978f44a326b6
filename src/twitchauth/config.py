from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit

from .endpoints import API_BASE_URL
from .redirect import DEFAULT_REDIRECT_PREFIX, DEFAULT_TOKEN_MARKER

AUTHORIZE_URL = "https://api.twitch.tv/kraken/oauth2/authorize"


def _env_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Config:
    """Runtime configuration for the Twitch sign-in flow.

    - client_id: Twitch application client id (required to sign in).
    - force_verify: ask Twitch to show the consent page every time.
    - redirect_uri / redirect_prefix: the registered redirect and the URL
      prefix that identifies it during navigation.
    - sign_in_timeout: seconds to wait for the redirect; None waits forever.
    """

    client_id: str = ""
    force_verify: bool = True
    redirect_uri: str = "https://localhost"
    redirect_prefix: str = DEFAULT_REDIRECT_PREFIX
    token_marker: str = DEFAULT_TOKEN_MARKER
    authorize_url: str = AUTHORIZE_URL
    api_base_url: str = API_BASE_URL
    sign_in_timeout: Optional[float] = 300.0

    @property
    def callback_port(self) -> int:
        parts = urlsplit(self.redirect_uri)
        if parts.port:
            return parts.port
        return 443 if parts.scheme == "https" else 80

    @classmethod
    def from_env(cls) -> "Config":
        timeout_raw = os.environ.get("TWITCHAUTH_SIGN_IN_TIMEOUT")
        if timeout_raw is None:
            timeout: Optional[float] = cls.sign_in_timeout
        else:
            timeout = float(timeout_raw) if timeout_raw.strip() else 0.0
        return cls(
            client_id=os.environ.get("TWITCH_CLIENT_ID", ""),
            force_verify=_env_bool(os.environ.get("TWITCHAUTH_FORCE_VERIFY"), True),
            redirect_uri=os.environ.get("TWITCHAUTH_REDIRECT_URI", cls.redirect_uri),
            redirect_prefix=os.environ.get(
                "TWITCHAUTH_REDIRECT_PREFIX", cls.redirect_prefix
            ),
            authorize_url=os.environ.get("TWITCHAUTH_AUTHORIZE_URL", cls.authorize_url),
            api_base_url=os.environ.get("TWITCHAUTH_API_BASE_URL", cls.api_base_url),
            sign_in_timeout=timeout if timeout and timeout > 0 else None,
        )
