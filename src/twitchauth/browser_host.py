"""Local browser host for the implicit-grant redirect.

The system browser cannot report its navigation to us, and the access
token lives in the URL fragment, which is never sent to a server. So the
redirect URI (`https://localhost`) is served by a tiny FastAPI app whose
page posts `window.location.href` back to `/url-changed`. That URL is then
handed to the orchestrator exactly like an embedded web view would.
"""

from __future__ import annotations

import asyncio
import logging
import socket
import webbrowser
from pathlib import Path
from typing import Callable, Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.responses import HTMLResponse

logger = logging.getLogger(__name__)

CALLBACK_PAGE = """<!doctype html>
<html>
<head><meta charset="utf-8"><title>Twitch sign-in</title></head>
<body>
<p id="msg">Finishing sign-in&hellip;</p>
<script>
fetch('/url-changed', {
  method: 'POST',
  headers: {'Content-Type': 'application/json'},
  body: JSON.stringify({url: window.location.href})
}).then(function () {
  document.getElementById('msg').textContent = 'Signed in. You can close this window.';
}).catch(function (err) {
  document.getElementById('msg').textContent = 'Sign-in failed: ' + err;
});
</script>
</body>
</html>
"""


def create_app(on_url_changed: Callable[[str], None]) -> FastAPI:
    app = FastAPI()

    @app.get("/")
    async def callback_page():
        return HTMLResponse(CALLBACK_PAGE)

    @app.post("/url-changed")
    async def url_changed(payload: dict):
        url = payload.get("url")
        if not isinstance(url, str) or not url:
            raise HTTPException(status_code=400, detail="Missing url")
        on_url_changed(url)
        return {"status": "ok"}

    return app


class LocalBrowserHost:
    """`BrowserHost` that uses the system browser plus a localhost listener.

    Usage:
      host = LocalBrowserHost(port=443, certfile=cert, keyfile=key)
      orch = SignInOrchestrator(config, host)
      host.bind(orch.on_url_changed)
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 443,
        certfile: Optional[Path] = None,
        keyfile: Optional[Path] = None,
        opener: Callable[[str], object] = webbrowser.open,
    ) -> None:
        self.host = host
        self.port = port
        self.certfile = certfile
        self.keyfile = keyfile
        self._opener = opener
        self._on_url_changed: Optional[Callable[[str], None]] = None
        self._server: Optional[uvicorn.Server] = None
        self._serve_task: Optional[asyncio.Task] = None

    def bind(self, on_url_changed: Callable[[str], None]) -> None:
        self._on_url_changed = on_url_changed

    def _forward(self, url: str) -> None:
        if self._on_url_changed is None:
            logger.warning("navigation to %s with no sign-in bound", url)
            return
        self._on_url_changed(url)

    def _build_server(self) -> uvicorn.Server:
        config = uvicorn.Config(
            create_app(self._forward),
            host=self.host,
            port=self.port,
            ssl_certfile=str(self.certfile) if self.certfile else None,
            ssl_keyfile=str(self.keyfile) if self.keyfile else None,
            log_level="warning",
        )
        return uvicorn.Server(config)

    def _bind_socket(self) -> socket.socket:
        # bound here so a busy or privileged port fails in the caller
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.host, self.port))
            sock.listen(128)
            sock.set_inheritable(True)
        except OSError:
            sock.close()
            raise
        return sock

    def _start_server(self) -> None:
        sock = self._bind_socket()
        try:
            server = self._build_server()
            # loads the TLS context now, so a bad cert raises here too
            server.config.load()
        except Exception:
            sock.close()
            raise
        self._server = server
        self._serve_task = asyncio.get_running_loop().create_task(
            server.serve(sockets=[sock])
        )

    def render_auth_url(self, url: str) -> None:
        if self._server is None or self._server.should_exit:
            self._start_server()
        logger.info("opening Twitch login page in the system browser")
        if not self._opener(url):
            # no browser available; the user can still paste it
            logger.warning("could not open a browser; visit %s to sign in", url)

    def dismiss_auth_url(self) -> None:
        if self._server is not None:
            self._server.should_exit = True

    async def aclose(self) -> None:
        self.dismiss_auth_url()
        if self._serve_task is not None:
            await self._serve_task
            self._serve_task = None
