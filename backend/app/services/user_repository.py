"""User Repository — reconciles the remote directory into the local store and publishes snapshots.

Invariants:
    - `users` always holds the last published snapshot, sorted by name (locale-aware)
    - Store errors are forwarded verbatim onto `errors`; the repository never re-publishes them
    - add_user() validates (name, email, format, uniqueness) before any write; the store
      repeats the uniqueness check inside its write lock
    - A failed remote fetch publishes the error, then republishes a fresh local snapshot
    - delete_user() trims the snapshot in place, no re-fetch
    - No operation is cancellable once started

Design Decisions:
    - Holds no copy of the data besides the snapshot: every mutation re-reads the store
    - add_user() serialized by a lock: the uniqueness check and the insert are one step
    - Connectivity reactions run as background tasks behind a refresh lock so a stale
      local reload can never overwrite a newer post-fetch snapshot
"""

import asyncio
import logging
from collections.abc import Coroutine
from typing import NoReturn

from app.core.domain_types import Address, AddUserPhase, User, email_key
from app.core.errors import ErrorContext, RosterError, TransportError, ValidationError
from app.core.event_stream import EventStream, StateStream, Unsubscribe
from app.core.repository_protocols import NetworkMonitor, UserDirectoryClient, UserStore
from app.core.sort_users import sort_users_by_name

logger = logging.getLogger(__name__)

DEFAULT_CITY = "N/A"


class UserRepository:
    """Orchestrates the local store, the remote directory, and connectivity changes."""

    def __init__(
        self,
        store: UserStore,
        client: UserDirectoryClient,
        monitor: NetworkMonitor | None = None,
    ):
        self._store = store
        self._client = client
        self._monitor = monitor
        self.users: StateStream[list[User]] = StateStream([], name="users")
        self.errors: EventStream[RosterError] = EventStream("errors")
        self.added: EventStream[User] = EventStream("user_added")
        self.add_phase: StateStream[AddUserPhase] = StateStream(
            AddUserPhase.IDLE, name="add_phase",
        )
        self._add_lock = asyncio.Lock()
        self._refresh_lock = asyncio.Lock()
        self._background: set[asyncio.Task] = set()
        self._forwarding = store.errors.subscribe(self.errors.publish)
        self._connectivity: Unsubscribe | None = None

    @property
    def snapshot(self) -> list[User]:
        return list(self.users.value)

    @property
    def network_state(self) -> str:
        if self._monitor is None:
            return "disabled"
        return "available" if self._monitor.is_available.value else "unavailable"

    # --- Reads / reconciliation ----------------------------------------------

    async def fetch_users(self) -> list[User]:
        """Fetch remote users, merge them into the store, publish the sorted snapshot."""
        try:
            remote = await self._client.fetch_users()
        except TransportError as e:
            logger.warning(e.message, extra={"error_code": e.code})
            self.errors.publish(e)
            await self.load_local_users()
            raise
        await self._store.upsert_from_remote(remote)
        return await self.load_local_users()

    async def load_local_users(self) -> list[User]:
        users = sort_users_by_name(await self._store.fetch_all())
        self.users.publish(users)
        return users

    # --- Mutations -----------------------------------------------------------

    async def add_user(
        self,
        name: str | None,
        email: str | None,
        city: str | None = None,
        street: str | None = None,
    ) -> User:
        async with self._add_lock:
            self.add_phase.publish(AddUserPhase.VALIDATING)
            try:
                user = await self._validated_user(name, email, city, street)
            except ValidationError:
                self.add_phase.publish(AddUserPhase.INVALID)
                raise

            self.add_phase.publish(AddUserPhase.PERSISTING)
            try:
                await self._store.add_local(user)
            except ValidationError:
                self.add_phase.publish(AddUserPhase.INVALID)
                raise
            except RosterError:
                self.add_phase.publish(AddUserPhase.FAILED)
                raise

        self.add_phase.publish(AddUserPhase.SUCCEEDED)
        await self.load_local_users()
        self.added.publish(user)
        return user

    async def delete_user(self, user: User) -> None:
        await self._store.delete(user)
        key = email_key(user.email)
        self.users.publish([u for u in self.users.value if u.key != key])

    async def _validated_user(
        self, name: str | None, email: str | None, city: str | None, street: str | None,
    ) -> User:
        name = (name or "").strip()
        email = (email or "").strip()
        if not name:
            self._reject("Name cannot be empty.", "name", email)
        if not email:
            self._reject("Email cannot be empty.", "email", email)
        if not self._store.is_valid_email(email):
            self._reject("Invalid email format.", "email", email)

        key = email_key(email)
        existing = await self._store.fetch_all()
        if any(u.key == key for u in existing):
            self._reject("Email is already taken.", "email", email)

        address = Address(city=DEFAULT_CITY if city is None else city, street=street)
        return User(name=name, email=email, address=address)

    def _reject(self, message: str, field: str, email: str) -> NoReturn:
        error = ValidationError(
            message, field, ErrorContext(email=email or None, operation="add_user"),
        )
        logger.warning(message, extra={"error_code": error.code})
        self.errors.publish(error)
        raise error

    # --- Connectivity --------------------------------------------------------

    def start(self) -> None:
        """React to connectivity changes, or fetch once when no monitor is attached."""
        if self._monitor is None:
            self._spawn(self._refresh(True))
            return
        if self._connectivity is None:
            self._connectivity = self._monitor.is_available.subscribe(
                self._on_connectivity,
            )
        self._monitor.start()

    async def stop(self) -> None:
        if self._connectivity is not None:
            self._connectivity()
            self._connectivity = None
        if self._monitor is not None:
            await self._monitor.stop()
        await self.wait_idle()

    async def wait_idle(self) -> None:
        """Wait for background refreshes spawned so far (and any they spawn)."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    def _on_connectivity(self, available: bool) -> None:
        self._spawn(self._refresh(available))

    async def _refresh(self, available: bool) -> None:
        async with self._refresh_lock:
            if not available:
                await self.load_local_users()
                return
            try:
                await self.fetch_users()
            except RosterError as e:
                logger.debug(f"Background fetch ended with {e.code}")

    def _spawn(self, coro: Coroutine) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)


# Singleton (initialized on startup)
user_repository: UserRepository | None = None


def init_user_repository(repository: UserRepository) -> UserRepository:
    global user_repository
    user_repository = repository
    return repository


def get_user_repository() -> UserRepository:
    """FastAPI dependency for the user repository."""
    if not user_repository:
        raise RuntimeError("User repository not initialized")
    return user_repository
