"""User Routes — HTTP surface over the repository, error envelopes, and health probes.

Invariants:
    - POST /users returns 201; validation failures 400 with VALIDATION_ERROR envelope
    - DELETE /users/{email} returns 204, then 404 for the same email
    - POST /users/sync returns the merged snapshot; transport failure returns 502
    - Readiness reports the database state
    - The events stream replays the snapshot, then user_added and error events,
      and unsubscribes from the repository when the client goes away
"""

import asyncio
import json

import pytest

import app.infrastructure.database as db_module
from app.api.routes.users import (
    _error_event, _offer, _sse_line, _users_event, stream_events,
)
from app.core.domain_types import User
from app.core.errors import NotFoundError, TransportError

from tests.services.fakes import FakeMonitor, make_user


async def test_list_users_returns_current_snapshot(client, repository):
    await repository.fetch_users()

    res = await client.get("/api/v1/users")

    assert res.status_code == 200
    assert [u["name"] for u in res.json()["users"]] == ["Ervin Howell", "Leanne Graham"]


async def test_sync_fetches_and_merges(client):
    res = await client.post("/api/v1/users/sync")

    assert res.status_code == 200
    body = res.json()
    assert [u["email"] for u in body["users"]] == ["Shanna@melissa.tv", "Sincere@april.biz"]
    assert body["users"][1]["address"] == {"city": "Gwenborough", "street": "Kulas Light"}


async def test_sync_transport_failure_returns_502(client, directory):
    directory.responses = [TransportError("refused", "connection_error")]

    res = await client.post("/api/v1/users/sync")

    assert res.status_code == 502
    assert res.json()["error"]["code"] == "REMOTE_FETCH_ERROR"


async def test_create_user_returns_201(client):
    res = await client.post(
        "/api/v1/users",
        json={"name": "Amy", "email": "amy@x.com", "city": "Paris"},
    )

    assert res.status_code == 201
    assert res.json() == {
        "name": "Amy",
        "email": "amy@x.com",
        "address": {"city": "Paris", "street": None},
    }
    listed = await client.get("/api/v1/users")
    assert [u["email"] for u in listed.json()["users"]] == ["amy@x.com"]


async def test_create_user_with_duplicate_email_returns_400(client, sql_store):
    await sql_store.add_local(make_user("Amy", "amy@x.com"))

    res = await client.post("/api/v1/users", json={"name": "Bob", "email": "AMY@x.com"})

    assert res.status_code == 400
    error = res.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["message"] == "Email is already taken."


async def test_create_user_with_bad_email_returns_400(client):
    res = await client.post("/api/v1/users", json={"name": "Bob", "email": "bob"})

    assert res.status_code == 400
    assert res.json()["error"]["message"] == "Invalid email format."


async def test_create_user_missing_field_returns_field_details(client):
    res = await client.post("/api/v1/users", json={"name": "Bob"})

    assert res.status_code == 400
    details = res.json()["error"]["details"]
    assert details[0]["field"] == "body.email"


async def test_delete_user_then_delete_again(client, sql_store):
    await sql_store.add_local(make_user("Amy", "amy@x.com"))

    first = await client.delete("/api/v1/users/amy@x.com")
    second = await client.delete("/api/v1/users/amy@x.com")

    assert first.status_code == 204
    assert second.status_code == 404
    assert second.json()["error"]["code"] == "RESOURCE_NOT_FOUND"


async def test_health_liveness(client):
    res = await client.get("/api/v1/health/")

    assert res.status_code == 200
    assert res.json()["status"] == "healthy"


async def test_health_readiness_with_database(client):
    res = await client.get("/api/v1/health/ready")

    assert res.status_code == 200
    assert res.json()["checks"] == {"database": "healthy", "network": "disabled"}


async def test_health_readiness_without_database(client, monkeypatch):
    monkeypatch.setattr(db_module, "db_manager", None)

    res = await client.get("/api/v1/health/ready")

    assert res.status_code == 503
    assert res.json()["checks"]["database"] == "unreachable"


async def test_health_readiness_reports_network_level(client, repository, monkeypatch):
    monitor = FakeMonitor()
    monitor.set_available(True)
    monkeypatch.setattr(repository, "_monitor", monitor)

    res = await client.get("/api/v1/health/ready")

    assert res.status_code == 200
    assert res.json()["checks"]["network"] == "available"


def test_sse_line_format():
    assert _sse_line({"type": "users", "data": {}}) == 'data: {"type": "users", "data": {}}\n\n'


def test_users_event_serializes_snapshot():
    event = _users_event([make_user("Ångström", "a@x.com")])

    assert event["type"] == "users"
    assert event["data"]["users"][0]["name"] == "Ångström"
    assert "Ångström" in _sse_line(event)


def test_error_event_uses_roster_error_shape():
    event = _error_event(NotFoundError("User", "ghost@x.com"))

    assert event["type"] == "error"
    assert event["data"]["code"] == "RESOURCE_NOT_FOUND"
    assert event["data"]["recoverable"] is False


async def _next_event(frames) -> dict:
    frame = await asyncio.wait_for(anext(frames), timeout=2)
    assert frame.startswith("data: ") and frame.endswith("\n\n")
    return json.loads(frame.removeprefix("data: "))


async def test_event_stream_replays_snapshot_then_live_events(repository, sql_store):
    await sql_store.add_local(make_user("Zed", "z@x.com"))
    await repository.load_local_users()
    subscribers_before = (
        repository.users.subscriber_count,
        repository.added.subscriber_count,
        repository.errors.subscriber_count,
    )

    response = await stream_events(repository)
    frames = response.body_iterator

    assert response.media_type == "text/event-stream"
    snapshot = await _next_event(frames)
    assert snapshot["type"] == "users"
    assert [u["name"] for u in snapshot["data"]["users"]] == ["Zed"]

    await repository.add_user("Amy", "amy@x.com")
    refreshed = await _next_event(frames)
    added = await _next_event(frames)
    assert [u["name"] for u in refreshed["data"]["users"]] == ["Amy", "Zed"]
    assert added == {
        "type": "user_added",
        "data": {"name": "Amy", "email": "amy@x.com", "address": {"city": "N/A", "street": None}},
    }

    with pytest.raises(NotFoundError):
        await repository.delete_user(User(name="", email="ghost@x.com"))
    error = await _next_event(frames)
    assert error["type"] == "error"
    assert error["data"]["code"] == "RESOURCE_NOT_FOUND"

    await frames.aclose()

    assert (
        repository.users.subscriber_count,
        repository.added.subscriber_count,
        repository.errors.subscriber_count,
    ) == subscribers_before


def test_offer_evicts_oldest_event_when_backlog_is_full():
    queue = asyncio.Queue(maxsize=2)

    for n in range(3):
        _offer(queue, {"n": n})

    assert queue.qsize() == 2
    assert [queue.get_nowait()["n"] for _ in range(2)] == [1, 2]
