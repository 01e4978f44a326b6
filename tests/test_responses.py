import httpx
import pytest

from twitchauth.errors import DecodeError
from twitchauth.models import AuthorizedUser
from twitchauth.responses import decode, is_response_valid


@pytest.mark.parametrize("status", [200, 201, 204, 299])
def test_valid_for_2xx(status):
    assert is_response_valid(httpx.Response(status), True) is True


@pytest.mark.parametrize("status", [199, 300, 401, 404, 500])
def test_invalid_outside_2xx(status):
    assert is_response_valid(httpx.Response(status), True) is False


def test_invalid_when_transport_failed_or_missing():
    assert is_response_valid(httpx.Response(200), False) is False
    assert is_response_valid(None, True) is False


def test_decode_fills_defaults_for_missing_fields():
    user = decode(AuthorizedUser, '{"_id":"1","display_name":"Foo"}')
    assert user.id == "1"
    assert user.display_name == "Foo"
    assert user.name == ""
    assert user.bio == ""
    assert user.email == ""


def test_decode_ignores_unknown_and_null_fields():
    body = b'{"_id": 44322889, "name": "dallas", "bio": null, "type": "staff", "partnered": true}'
    user = decode(AuthorizedUser, body)
    assert user.id == "44322889"
    assert user.name == "dallas"
    assert user.bio == ""


def test_decode_malformed_json():
    with pytest.raises(DecodeError):
        decode(AuthorizedUser, "{not json")
    with pytest.raises(DecodeError):
        decode(AuthorizedUser, b"")


def test_decode_wrong_shape():
    with pytest.raises(DecodeError):
        decode(AuthorizedUser, "[1, 2]")
    with pytest.raises(DecodeError):
        decode(AuthorizedUser, '{"name": {"first": "x"}}')


def test_decode_requires_dataclass():
    with pytest.raises(TypeError):
        decode(dict, "{}")


def test_empty_user():
    assert AuthorizedUser().is_empty
    assert not AuthorizedUser(name="x").is_empty


def test_decode_keeps_json_spelling_for_booleans():
    user = decode(AuthorizedUser, '{"name": "dallas", "bio": true, "email": false}')
    assert user.bio == "true"
    assert user.email == "false"
