import pytest

from twitchauth.errors import RedirectParseError
from twitchauth.redirect import RedirectWatcher, WatcherState, extract_access_token


def test_non_matching_urls_never_capture():
    w = RedirectWatcher()
    for url in [
        "about:blank",
        "https://api.twitch.tv/kraken/oauth2/authorize?response_type=token",
        "https://localhost/",
        "http://localhost/#access_token=abc",
        "",
    ]:
        assert w.feed(url) is None
        assert w.state is WatcherState.WATCHING


def test_extracts_token_up_to_next_param():
    assert extract_access_token("https://localhost/#access_token=abc123&scope=x") == "abc123"
    assert extract_access_token("https://localhost/#access_token=tok1") == "tok1"


def test_marker_missing_is_an_error():
    with pytest.raises(RedirectParseError):
        extract_access_token("https://localhost/#access_token")


def test_empty_token_is_an_error():
    with pytest.raises(RedirectParseError):
        extract_access_token("https://localhost/#access_token=&scope=x")


def test_provider_error_is_reported():
    with pytest.raises(RedirectParseError) as info:
        extract_access_token(
            "https://localhost/#error=access_denied&error_description=The+user+denied"
        )
    assert "access_denied" in str(info.value)


def test_watcher_captures_once_then_is_inert():
    w = RedirectWatcher()
    assert w.feed("about:blank") is None
    assert w.feed("https://localhost/#access_token=abc123&scope=x") == "abc123"
    assert w.state is WatcherState.CAPTURED
    assert w.feed("https://localhost/#access_token=other") is None


def test_watcher_parse_failure_still_captures():
    w = RedirectWatcher()
    with pytest.raises(RedirectParseError):
        w.feed("https://localhost/#access_token")
    assert w.state is WatcherState.CAPTURED
    assert w.feed("https://localhost/#access_token=late") is None


def test_watcher_custom_prefix():
    w = RedirectWatcher(prefix="https://localhost:3883/#access_token")
    assert w.feed("https://localhost/#access_token=a") is None
    assert w.feed("https://localhost:3883/#access_token=b") == "b"
