from __future__ import annotations

import asyncio
import logging
import threading
from enum import Enum
from typing import Any, Callable, Optional, Protocol

from .config import Config
from .errors import (
    BrowserHostError,
    RedirectParseError,
    SignInCancelledError,
    SignInTimeoutError,
    TwitchAuthError,
)
from .event_log import EventLogger, get_event_logger
from .models import AuthorizedUser
from .redirect import RedirectWatcher
from .twitch_api import TwitchAPI

logger = logging.getLogger(__name__)


class SignInState(str, Enum):
    IDLE = "idle"
    AWAITING_REDIRECT = "awaiting_redirect"
    FETCHING_PROFILE = "fetching_profile"
    SIGNED_IN = "signed_in"
    ERRORED = "errored"


_ACTIVE = (SignInState.AWAITING_REDIRECT, SignInState.FETCHING_PROFILE)


class BrowserHost(Protocol):
    """Whatever shows the Twitch login page to the user.

    The host must call `SignInOrchestrator.on_url_changed` for every
    navigation it observes.
    """

    def render_auth_url(self, url: str) -> None: ...

    def dismiss_auth_url(self) -> None: ...


def build_authorize_url(config: Config) -> str:
    force = "true" if config.force_verify else "false"
    return (
        f"{config.authorize_url}?response_type=token"
        f"&client_id={config.client_id}"
        f"&redirect_uri={config.redirect_uri}"
        f"&force_verify={force}"
    )


class SignInOrchestrator:
    """Drives one Twitch implicit-grant sign-in at a time.

    Usage:
      orch = SignInOrchestrator(Config.from_env(), host)
      orch.on_signed_in(lambda: print(orch.get_current_user()))
      orch.start_sign_in()          # returns immediately
      ...                           # host calls orch.on_url_changed(url)
      await orch.wait_until_done()

    A second `start_sign_in` while an attempt is awaiting the redirect or
    fetching the profile is rejected (returns False). State changes happen
    under a lock and every completion is checked against the attempt number
    it belongs to, so a navigation event and an HTTP response cannot both
    move the same attempt.
    """

    def __init__(
        self,
        config: Config,
        host: BrowserHost,
        api: Optional[TwitchAPI] = None,
        event_logger: Optional[EventLogger] = None,
    ) -> None:
        if not config.client_id:
            raise ValueError("client_id must be set to sign in with Twitch")
        self.config = config
        self._host = host
        # only what we create here is closed by aclose
        self._owns_api = api is None
        self._owns_events = event_logger is None
        self._api = api or TwitchAPI(
            base_url=config.api_base_url, client_id=config.client_id
        )
        self._events = event_logger or get_event_logger()

        self._lock = threading.Lock()
        self._state = SignInState.IDLE
        self._attempt = 0
        self._user = AuthorizedUser()
        self._access_token: Optional[str] = None
        self._watcher: Optional[RedirectWatcher] = None
        self._ui_open = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._done: Optional[asyncio.Event] = None
        self._timeout_handle: Optional[asyncio.TimerHandle] = None
        self._fetch_task: Optional[asyncio.Task] = None
        self._on_signed_in: Optional[Callable[[], Any]] = None
        self.last_error: Optional[TwitchAuthError] = None

    # --- queries ----------------------------------------------------------
    @property
    def state(self) -> SignInState:
        with self._lock:
            return self._state

    @property
    def access_token(self) -> Optional[str]:
        with self._lock:
            return self._access_token

    def get_current_user(self) -> AuthorizedUser:
        with self._lock:
            return self._user

    def on_signed_in(self, callback: Callable[[], Any]) -> None:
        """Register the callback fired once per successful sign-in.

        Coroutine functions are awaited on the orchestrator's loop.
        """
        self._on_signed_in = callback

    # --- commands ---------------------------------------------------------
    def start_sign_in(self) -> bool:
        """Open the Twitch login page and start watching for the redirect.

        Must be called from inside the running event loop. Returns False
        without side effects if another attempt is still active.
        """
        loop = asyncio.get_running_loop()
        with self._lock:
            if self._state in _ACTIVE:
                logger.warning(
                    "sign-in %d still %s; rejecting new attempt",
                    self._attempt,
                    self._state.value,
                )
                return False
            self._attempt += 1
            attempt = self._attempt
            self._state = SignInState.AWAITING_REDIRECT
            self._watcher = RedirectWatcher(
                self.config.redirect_prefix, self.config.token_marker
            )
            self._loop = loop
            self._done = asyncio.Event()
            self._fetch_task = None
            self.last_error = None
            self._ui_open = True
            if self.config.sign_in_timeout:
                self._timeout_handle = loop.call_later(
                    self.config.sign_in_timeout, self._expire, attempt
                )

        url = build_authorize_url(self.config)
        logger.info("sign-in %d started", attempt)
        self._log_event("sign_in_started", attempt, SignInState.AWAITING_REDIRECT)
        try:
            self._host.render_auth_url(url)
        except Exception as exc:
            logger.exception("browser host failed to render the login page")
            self._fail(
                attempt, BrowserHostError(f"could not render login page: {exc}")
            )
        return True

    def on_url_changed(self, url: str) -> None:
        """Feed one navigation event from the browser host.

        Safe to call from any thread.
        """
        with self._lock:
            if self._state is not SignInState.AWAITING_REDIRECT or not self._watcher:
                return
            attempt = self._attempt
            loop = self._loop
            try:
                token = self._watcher.feed(url)
            except RedirectParseError as exc:
                error: Optional[RedirectParseError] = exc
                token = None
            else:
                error = None
                if token is None:
                    return
                self._state = SignInState.FETCHING_PROFILE
                self._cancel_timeout()

        if error is not None:
            self._fail(attempt, error)
            return

        logger.info("sign-in %d captured access token", attempt)
        self._log_event("redirect_captured", attempt, SignInState.FETCHING_PROFILE)
        self._dismiss_ui()
        if loop is None or token is None:
            raise RuntimeError("captured a redirect outside a running sign-in")
        loop.call_soon_threadsafe(self._spawn_fetch, attempt, token)

    def cancel_sign_in(self) -> bool:
        """Abandon the active attempt, if any. Returns True if one was cancelled."""
        with self._lock:
            if self._state not in _ACTIVE:
                return False
            attempt = self._attempt
            task = self._fetch_task
        if self._fail(attempt, SignInCancelledError("sign-in cancelled")):
            if task is not None and self._loop is not None:
                self._loop.call_soon_threadsafe(task.cancel)
            return True
        return False

    async def wait_until_done(self, timeout: Optional[float] = None) -> SignInState:
        """Wait until the current attempt is SIGNED_IN or ERRORED."""
        with self._lock:
            done = self._done
            state = self._state
        if done is None or state not in _ACTIVE:
            return state
        await asyncio.wait_for(done.wait(), timeout)
        return self.state

    async def aclose(self, timeout: Optional[float] = 5.0) -> None:
        """Cancel any active attempt and release the HTTP client and event log.

        Injected `api` and `event_logger` objects are left open for their owner.
        """
        self.cancel_sign_in()
        with self._lock:
            task = self._fetch_task
        if task is not None and not task.done():
            try:
                await task
            except asyncio.CancelledError:
                pass
        if self._owns_api:
            await self._api.aclose()
        if self._owns_events:
            await asyncio.to_thread(self._events.close, timeout)

    # --- internals --------------------------------------------------------
    def _spawn_fetch(self, attempt: int, token: str) -> None:
        with self._lock:
            if attempt != self._attempt or self._state is not SignInState.FETCHING_PROFILE:
                return
            loop = self._loop
            if loop is None:
                raise RuntimeError("no event loop bound to the sign-in")
            self._fetch_task = loop.create_task(self._fetch_profile(attempt, token))

    async def _fetch_profile(self, attempt: int, token: str) -> None:
        try:
            user = await self._api.get_user(token)
        except TwitchAuthError as exc:
            self._fail(attempt, exc)
            return
        except Exception as exc:
            logger.exception("unexpected error fetching profile for sign-in %d", attempt)
            self._fail(attempt, TwitchAuthError(f"profile fetch crashed: {exc!r}"))
            return

        with self._lock:
            if attempt != self._attempt or self._state is not SignInState.FETCHING_PROFILE:
                logger.debug("dropping profile for superseded sign-in %d", attempt)
                return
            self._user = user
            self._access_token = token
            self._state = SignInState.SIGNED_IN
            self._watcher = None
            done = self._done

        logger.info("sign-in %d succeeded as %s", attempt, user.name or user.id)
        self._log_event("sign_in_succeeded", attempt, SignInState.SIGNED_IN)
        await self._notify_signed_in()
        if done is not None:
            done.set()

    async def _notify_signed_in(self) -> None:
        callback = self._on_signed_in
        if callback is None:
            return
        try:
            maybe = callback()
            if asyncio.iscoroutine(maybe):
                await maybe
        except Exception:
            logger.exception("signed-in callback raised")

    def _expire(self, attempt: int) -> None:
        self._fail(
            attempt,
            SignInTimeoutError(
                f"no redirect within {self.config.sign_in_timeout} seconds"
            ),
        )

    def _fail(self, attempt: int, exc: TwitchAuthError) -> bool:
        with self._lock:
            if attempt != self._attempt or self._state not in _ACTIVE:
                return False
            previous = self._state
            self._state = SignInState.ERRORED
            self._access_token = None
            self._watcher = None
            self.last_error = exc
            self._cancel_timeout()
            loop = self._loop
            done = self._done

        logger.warning(
            "sign-in %d failed while %s (%s): %s", attempt, previous.value, exc.kind, exc
        )
        self._log_event(
            "sign_in_failed",
            attempt,
            SignInState.ERRORED,
            error_kind=exc.kind,
            extra={"message": str(exc), "from_state": previous.value},
        )
        self._dismiss_ui()
        if loop is not None and done is not None and not loop.is_closed():
            loop.call_soon_threadsafe(done.set)
        return True

    def _cancel_timeout(self) -> None:
        # caller holds self._lock
        handle = self._timeout_handle
        self._timeout_handle = None
        if handle is not None and self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(handle.cancel)

    def _dismiss_ui(self) -> None:
        with self._lock:
            if not self._ui_open:
                return
            self._ui_open = False
        try:
            self._host.dismiss_auth_url()
        except Exception:
            logger.exception("browser host failed to dismiss the login page")

    def _log_event(
        self,
        event_type: str,
        attempt: int,
        state: SignInState,
        error_kind: Optional[str] = None,
        extra: Optional[dict] = None,
    ) -> None:
        try:
            self._events.log_sign_in_event(
                event_type, attempt, state.value, error_kind=error_kind, extra=extra
            )
        except Exception:
            logger.exception("event log write failed")
