"""TwitchAuth package.

Twitch implicit-grant sign-in plus a thin Kraken client for the signed-in
user's profile. A local .env file is loaded on import (development
convenience) so `TWITCH_CLIENT_ID` and friends can live there.
"""

from typing import List

from dotenv import load_dotenv

load_dotenv()

from .config import Config  # noqa: E402
from .endpoints import Endpoint, HttpVerb, resolve_path  # noqa: E402
from .errors import (  # noqa: E402
    BrowserHostError,
    DecodeError,
    HttpStatusError,
    RedirectParseError,
    SignInCancelledError,
    SignInTimeoutError,
    TransportError,
    TwitchAuthError,
)
from .models import AuthorizedUser  # noqa: E402
from .redirect import RedirectWatcher, extract_access_token  # noqa: E402
from .signin import (  # noqa: E402
    BrowserHost,
    SignInOrchestrator,
    SignInState,
    build_authorize_url,
)
from .twitch_api import TwitchAPI, build_request  # noqa: E402

__all__: List[str] = [
    "AuthorizedUser",
    "BrowserHost",
    "BrowserHostError",
    "Config",
    "DecodeError",
    "Endpoint",
    "HttpStatusError",
    "HttpVerb",
    "RedirectParseError",
    "RedirectWatcher",
    "SignInCancelledError",
    "SignInOrchestrator",
    "SignInState",
    "SignInTimeoutError",
    "TransportError",
    "TwitchAPI",
    "TwitchAuthError",
    "build_authorize_url",
    "build_request",
    "extract_access_token",
    "resolve_path",
]
