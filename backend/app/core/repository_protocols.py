"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell; dependency arrows point inward only
    - All IO operations accessed through Protocol types
    - Implementations provided by shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, the in-memory test fakes need no base class
    - Async in Protocol: boundary methods are async because implementations do IO
"""

from collections.abc import Sequence
from typing import Protocol

from app.core.domain_types import User
from app.core.errors import RosterError
from app.core.event_stream import EventStream, StateStream


class ValidationService(Protocol):
    """Contract for syntactic field validation."""
    def is_valid(self, text: str) -> bool: ...


class UserStore(Protocol):
    """Contract for local user persistence, implemented by shell."""
    errors: EventStream[RosterError]

    async def fetch_all(self) -> list[User]: ...
    async def upsert_from_remote(self, users: Sequence[User]) -> int: ...
    async def add_local(self, user: User) -> User: ...
    async def delete(self, user: User) -> None: ...
    def is_valid_email(self, email: str) -> bool: ...


class UserDirectoryClient(Protocol):
    """Contract for the remote user list, implemented by shell."""
    async def fetch_users(self) -> list[User]: ...


class NetworkMonitor(Protocol):
    """Contract for the level-triggered connectivity signal."""
    is_available: StateStream[bool]

    def start(self) -> None: ...
    async def stop(self) -> None: ...
