"""Sign in with Twitch in the system browser and print the profile.

Usage:
  - Register https://localhost as the redirect URL of your Twitch app
  - export TWITCH_CLIENT_ID=...
  - python scripts/sign_in.py

Binding port 443 usually needs elevated rights; set
TWITCHAUTH_REDIRECT_URI=https://localhost:3883 (and register that URL)
to use an unprivileged port instead. Browsers will warn about the
self-signed certificate; accept the warning for local use.
"""

import asyncio
import logging

from twitchauth import Config, SignInOrchestrator, SignInState
from twitchauth.browser_host import LocalBrowserHost
from twitchauth.certs import ensure_self_signed_cert


async def main():
    logging.basicConfig(level=logging.INFO)
    config = Config.from_env()
    if not config.client_id:
        print("TWITCH_CLIENT_ID is not set")
        return

    cert, key = ensure_self_signed_cert()
    host = LocalBrowserHost(port=config.callback_port, certfile=cert, keyfile=key)
    orch = SignInOrchestrator(config, host)
    host.bind(orch.on_url_changed)
    orch.on_signed_in(lambda: print("Signed in!"))

    orch.start_sign_in()
    try:
        state = await orch.wait_until_done()
    finally:
        # no-op unless we were interrupted mid-flow
        orch.cancel_sign_in()
        await host.aclose()
        await orch.aclose()

    if state is SignInState.SIGNED_IN:
        user = orch.get_current_user()
        print("id=", user.id, "name=", user.name, "display_name=", user.display_name)
        print("email=", user.email or "(not shared)")
    else:
        print("Sign-in failed:", repr(orch.last_error))


if __name__ == "__main__":
    asyncio.run(main())
