import asyncio
import socket

import pytest
from fastapi.testclient import TestClient

from twitchauth.browser_host import LocalBrowserHost, create_app
from twitchauth.config import Config
from twitchauth.errors import BrowserHostError
from twitchauth.event_log import EventLogger
from twitchauth.signin import SignInOrchestrator, SignInState


def test_callback_page_posts_location():
    client = TestClient(create_app(lambda url: None))
    r = client.get("/")
    assert r.status_code == 200
    assert "/url-changed" in r.text
    assert "window.location.href" in r.text


def test_url_changed_forwards_url():
    seen = []
    client = TestClient(create_app(seen.append))

    r = client.post("/url-changed", json={"url": "https://localhost/#access_token=tok1"})
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}
    assert seen == ["https://localhost/#access_token=tok1"]


def test_url_changed_requires_url():
    seen = []
    client = TestClient(create_app(seen.append))
    assert client.post("/url-changed", json={}).status_code == 400
    assert client.post("/url-changed", json={"url": 5}).status_code == 400
    assert seen == []


class FakeConfig:
    def __init__(self):
        self.loaded = False

    def load(self):
        self.loaded = True


class FakeServer:
    def __init__(self):
        self.should_exit = False
        self.served = 0
        self.config = FakeConfig()
        self.sockets = []

    async def serve(self, sockets=None):
        self.served += 1
        self.sockets = sockets or []
        while not self.should_exit:
            await asyncio.sleep(0.01)
        for sock in self.sockets:
            sock.close()


@pytest.mark.asyncio
async def test_local_host_lifecycle(monkeypatch):
    opened = []
    host = LocalBrowserHost(port=0, opener=lambda url: opened.append(url) or True)
    servers = []

    def build():
        servers.append(FakeServer())
        return servers[-1]

    monkeypatch.setattr(host, "_build_server", build)

    host.render_auth_url("https://api.twitch.tv/kraken/oauth2/authorize?x=1")
    await asyncio.sleep(0.02)
    assert opened == ["https://api.twitch.tv/kraken/oauth2/authorize?x=1"]
    assert servers[0].served == 1
    assert servers[0].config.loaded is True
    assert len(servers[0].sockets) == 1

    host.dismiss_auth_url()
    assert servers[0].should_exit is True
    await host.aclose()

    # a new sign-in gets a fresh server
    host.render_auth_url("https://example.com/again")
    assert len(servers) == 2
    await host.aclose()


def test_forward_uses_bound_callback():
    host = LocalBrowserHost()
    host._forward("about:blank")  # nothing bound yet; ignored

    seen = []
    host.bind(seen.append)
    host._forward("https://localhost/#access_token=a")
    assert seen == ["https://localhost/#access_token=a"]


@pytest.mark.asyncio
async def test_busy_port_fails_the_attempt():
    busy = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    busy.bind(("127.0.0.1", 0))
    busy.listen(1)
    port = busy.getsockname()[1]
    opened = []
    try:
        host = LocalBrowserHost(port=port, opener=lambda url: opened.append(url) or True)
        orch = SignInOrchestrator(
            Config(client_id="abc"), host, event_logger=EventLogger(client=None)
        )
        host.bind(orch.on_url_changed)

        assert orch.start_sign_in() is True
        assert await orch.wait_until_done(timeout=1) is SignInState.ERRORED
        assert isinstance(orch.last_error, BrowserHostError)
        assert opened == []
        await host.aclose()
        await orch.aclose()
    finally:
        busy.close()
