"""User Routes — list, sync, add, delete, and stream repository events.

Invariants:
    - Routes never contain business logic (delegate to UserRepository)
    - RosterError raised by the repository reaches the global handler unchanged
    - The events stream replays the current snapshot first, then live events
    - Each events client holds at most SSE_QUEUE_SIZE pending events

Design Decisions:
    - StreamingResponse for SSE: event_generator yields formatted SSE lines
    - DELETE by email path parameter: email is the user identity
"""

import asyncio
import json
import logging

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import StreamingResponse

from app.core.domain_types import User
from app.core.errors import RosterError
from app.schemas.user import UserCreate, UserListResponse, UserResponse
from app.services.user_repository import UserRepository, get_user_repository

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/users", tags=["users"])

# ADR: SSE headers prevent proxy/browser buffering of streamed events.
_SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
    "Connection": "keep-alive",
}

# Per-client backlog; a stalled client loses its oldest events first
SSE_QUEUE_SIZE = 100


def _list_response(users: list[User]) -> UserListResponse:
    return UserListResponse(users=[UserResponse.from_user(u) for u in users])


@router.get("", response_model=UserListResponse)
async def list_users(repo: UserRepository = Depends(get_user_repository)):
    """Current snapshot (no fetch)."""
    return _list_response(repo.snapshot)


@router.post("/sync", response_model=UserListResponse)
async def sync_users(repo: UserRepository = Depends(get_user_repository)):
    """Fetch the remote directory and merge it into the local store."""
    return _list_response(await repo.fetch_users())


@router.post(
    "", response_model=UserResponse, status_code=status.HTTP_201_CREATED,
)
async def create_user(
    body: UserCreate, repo: UserRepository = Depends(get_user_repository),
):
    user = await repo.add_user(body.name, body.email, body.city, body.street)
    return UserResponse.from_user(user)


@router.delete("/{email}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    email: str, repo: UserRepository = Depends(get_user_repository),
):
    await repo.delete_user(User(name="", email=email))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/events")
async def stream_events(repo: UserRepository = Depends(get_user_repository)):
    """SSE stream of snapshot, user_added, and error events."""
    queue: asyncio.Queue[dict] = asyncio.Queue(maxsize=SSE_QUEUE_SIZE)
    unsubscribers = [
        repo.users.subscribe(lambda users: _offer(queue, _users_event(users))),
        repo.added.subscribe(lambda user: _offer(queue, _added_event(user))),
        repo.errors.subscribe(lambda err: _offer(queue, _error_event(err))),
    ]

    async def event_generator():
        try:
            while True:
                yield _sse_line(await queue.get())
        except asyncio.CancelledError:
            logger.info("Client disconnected from user events stream")
        finally:
            for unsubscribe in unsubscribers:
                unsubscribe()

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers=_SSE_HEADERS,
    )


def _users_event(users: list[User]) -> dict:
    return {"type": "users", "data": _list_response(users).model_dump()}


def _added_event(user: User) -> dict:
    return {"type": "user_added", "data": UserResponse.from_user(user).model_dump()}


def _error_event(error: RosterError) -> dict:
    return error.to_event()


def _sse_line(event: dict) -> str:
    """Format event as SSE data line."""
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n"


def _offer(queue: asyncio.Queue, event: dict) -> None:
    """Enqueue without blocking the publisher; evict the oldest event when full."""
    if queue.full():
        queue.get_nowait()
        logger.warning("User events stream backlog full, dropping oldest event")
    queue.put_nowait(event)
