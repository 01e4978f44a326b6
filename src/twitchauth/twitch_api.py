from __future__ import annotations

import logging
from typing import Optional, Type, TypeVar

import httpx

from .endpoints import API_BASE_URL, Endpoint, HttpVerb, endpoint_url
from .errors import HttpStatusError, TransportError
from .models import AuthorizedUser
from .responses import decode, is_response_valid

logger = logging.getLogger(__name__)

T = TypeVar("T")

ACCEPT_V5 = "application/vnd.twitchtv.v5+json"
ENDPOINT_EXTENSION = "twitchauth.endpoint"


def build_request(
    endpoint: Endpoint,
    verb: HttpVerb,
    token: Optional[str] = None,
    *,
    base_url: str = API_BASE_URL,
    client_id: Optional[str] = None,
) -> httpx.Request:
    """Build (but do not send) a Kraken request.

    The endpoint tag travels with the request in `extensions`, so whoever
    handles the response can recover it with `endpoint_of`.
    """
    headers = {"Accept": ACCEPT_V5}
    if token:
        # Kraken wants the legacy "OAuth" scheme, not "Bearer"
        headers["Authorization"] = f"OAuth {token}"
    if client_id:
        headers["Client-ID"] = client_id

    return httpx.Request(
        HttpVerb(verb).value,
        endpoint_url(endpoint, base_url),
        headers=headers,
        extensions={ENDPOINT_EXTENSION: endpoint},
    )


def endpoint_of(request: Optional[httpx.Request]) -> Optional[Endpoint]:
    if request is None:
        return None
    return request.extensions.get(ENDPOINT_EXTENSION)


class TwitchAPI:
    """Small authenticated client for the Kraken v5 REST API.

    Responsibilities implemented here:
    - Build requests through `build_request` and send them on one shared
      `httpx.AsyncClient`, which stays usable across sign-in attempts.
    - Turn transport failures and non-2xx statuses into `TransportError`
      and `HttpStatusError`; decoding errors surface as `DecodeError`.

    Notes:
    - No retries, redirects or caching. A failed call is final.
    """

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        client_id: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url
        self.client_id = client_id
        self._timeout = timeout
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def send(self, request: httpx.Request) -> httpx.Response:
        endpoint = endpoint_of(request)
        try:
            resp = await self._get_client().send(request)
        except httpx.HTTPError as exc:
            logger.warning("request to %s failed: %r", endpoint, exc)
            raise TransportError(f"request to {endpoint} failed: {exc}") from exc

        if not is_response_valid(resp, True):
            raise HttpStatusError(resp.status_code, endpoint_of(resp.request))
        return resp

    async def fetch(
        self,
        endpoint: Endpoint,
        model: Type[T],
        token: Optional[str],
        verb: HttpVerb = HttpVerb.GET,
    ) -> T:
        request = build_request(
            endpoint,
            verb,
            token,
            base_url=self.base_url,
            client_id=self.client_id,
        )
        resp = await self.send(request)
        return decode(model, resp.content)

    async def get_user(self, token: str) -> AuthorizedUser:
        """Return the profile behind `token` via `GET /user`."""
        return await self.fetch(Endpoint.USER, AuthorizedUser, token)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
