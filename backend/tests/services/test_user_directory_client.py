"""HttpUserDirectoryClient — decoding the remote list and mapping every failure to TransportError."""

import json

import httpx
import pytest

from app.core.domain_types import Address, User
from app.core.errors import TransportError
from app.infrastructure.user_directory_client import HttpUserDirectoryClient

URL = "http://directory.test/users"

REMOTE_BODY = [
    {
        "id": 1,
        "name": "Leanne Graham",
        "username": "Bret",
        "email": "Sincere@april.biz",
        "address": {
            "street": "Kulas Light",
            "suite": "Apt. 556",
            "city": "Gwenborough",
            "zipcode": "92998-3874",
            "geo": {"lat": "-37.3159", "lng": "81.1496"},
        },
        "phone": "1-770-736-8031 x56442",
    },
    {"email": "noaddress@x.com", "name": "No Address"},
]


def _client(handler) -> HttpUserDirectoryClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpUserDirectoryClient(URL, http_client=http)


async def test_fetch_users_decodes_remote_payload():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=REMOTE_BODY)

    users = await _client(handler).fetch_users()

    assert users == [
        User(
            name="Leanne Graham", email="Sincere@april.biz",
            address=Address(city="Gwenborough", street="Kulas Light"),
        ),
        User(name="No Address", email="noaddress@x.com", address=None),
    ]
    assert seen[0].method == "GET"
    assert str(seen[0].url) == URL


async def test_fetch_users_accepts_empty_list():
    assert await _client(lambda r: httpx.Response(200, json=[])).fetch_users() == []


@pytest.mark.parametrize("status_code", [404, 500, 503])
async def test_non_2xx_is_transport_error(status_code):
    client = _client(lambda r: httpx.Response(status_code, json={"detail": "nope"}))

    with pytest.raises(TransportError) as exc_info:
        await client.fetch_users()

    assert exc_info.value.reason == "http_status"
    assert exc_info.value.http_status == 502


async def test_invalid_json_is_transport_error():
    client = _client(lambda r: httpx.Response(200, content=b"<html>oops</html>"))

    with pytest.raises(TransportError) as exc_info:
        await client.fetch_users()

    assert exc_info.value.reason == "decode_error"


@pytest.mark.parametrize(
    "body",
    [
        {"users": []},
        [{"name": "Missing Email"}],
        [{"email": "a@x.com", "name": "Bad Address", "address": "Main St"}],
    ],
)
async def test_unexpected_shape_is_transport_error(body):
    client = _client(lambda r: httpx.Response(200, content=json.dumps(body).encode()))

    with pytest.raises(TransportError, match="decode_error"):
        await client.fetch_users()


async def test_connection_failure_is_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportError) as exc_info:
        await _client(handler).fetch_users()

    assert exc_info.value.reason == "connection_error"


async def test_timeout_is_transport_error():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(TransportError) as exc_info:
        await _client(handler).fetch_users()

    assert exc_info.value.reason == "timeout"
