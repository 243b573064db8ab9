"""Local User Store — CRUD over the persisted users table.

Invariants:
    - Every failure is published on `errors` exactly once, by this class
    - fetch_all() never raises: a storage fault degrades to [] plus an error event
    - upsert_from_remote() skips invalid and already-known emails, one commit per batch
    - add_local() checks email format, then uniqueness inside the write lock
    - delete() matches by case-insensitive email; a missing row raises NotFoundError
    - All mutations run under one asyncio.Lock (single writer)
    - Commits only happen when the session has pending changes

Design Decisions:
    - One AsyncSession per operation via DatabaseSessionManager: SQLAlchemy errors are
      already mapped to PersistenceError there, this class only reports them
    - upsert_from_remote() swallows its failure after reporting: batch imports run in
      the background and the caller re-reads the store regardless
"""

import asyncio
import logging
from collections.abc import Callable, Iterable, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.domain_types import EmailKey, User, UserOrigin, email_key
from app.core.errors import (
    ErrorContext, NotFoundError, PersistenceError, RosterError, ValidationError,
)
from app.core.event_stream import EventStream
from app.core.repository_protocols import ValidationService
from app.core.validate_email import EmailValidationService
from app.infrastructure.database import DatabaseSessionManager
from app.models.user import UserRecord

logger = logging.getLogger(__name__)


def select_new_users(
    users: Iterable[User],
    existing: set[EmailKey],
    is_valid: Callable[[str], bool],
) -> list[User]:
    """Users with a valid email not in `existing`, first occurrence wins within the batch."""
    seen = set(existing)
    survivors = []
    for user in users:
        if not is_valid(user.email) or user.key in seen:
            continue
        seen.add(user.key)
        survivors.append(user)
    return survivors


async def _commit_if_dirty(db: AsyncSession) -> bool:
    if not (db.new or db.dirty or db.deleted):
        return False
    await db.commit()
    return True


class SqlUserStore:
    """UserStore backed by SQLAlchemy."""

    def __init__(
        self,
        db: DatabaseSessionManager,
        validator: ValidationService | None = None,
        errors: EventStream[RosterError] | None = None,
    ):
        self._db = db
        self._validator = validator or EmailValidationService()
        self.errors: EventStream[RosterError] = errors or EventStream("store_errors")
        self._write_lock = asyncio.Lock()

    def is_valid_email(self, email: str) -> bool:
        return self._validator.is_valid(email)

    async def fetch_all(self) -> list[User]:
        try:
            async with self._db.session() as db:
                result = await db.execute(select(UserRecord).order_by(UserRecord.id))
                records = result.scalars().all()
        except PersistenceError as e:
            self._report(e)
            return []
        return [r.to_user() for r in records]

    async def upsert_from_remote(self, users: Sequence[User]) -> int:
        async with self._write_lock:
            try:
                async with self._db.session() as db:
                    result = await db.execute(select(UserRecord.email_key))
                    existing = {EmailKey(k) for k in result.scalars().all()}
                    survivors = select_new_users(users, existing, self.is_valid_email)
                    db.add_all(
                        UserRecord.from_user(u, UserOrigin.REMOTE) for u in survivors
                    )
                    await _commit_if_dirty(db)
            except PersistenceError as e:
                e.context.operation = "upsert_from_remote"
                self._report(e)
                return 0
        logger.info(
            f"Imported {len(survivors)} of {len(users)} remote users",
            extra={"count": len(survivors)},
        )
        return len(survivors)

    async def add_local(self, user: User) -> User:
        if not self.is_valid_email(user.email):
            error = ValidationError(
                "Invalid email format.", "email",
                ErrorContext(email=user.email, operation="add_local"),
            )
            self._report(error)
            raise error
        async with self._write_lock:
            try:
                async with self._db.session() as db:
                    taken = await db.scalar(
                        select(UserRecord.id).where(UserRecord.email_key == user.key),
                    )
                    if taken is not None:
                        raise ValidationError(
                            "Email is already taken.", "email",
                            ErrorContext(email=user.email, operation="add_local"),
                        )
                    db.add(UserRecord.from_user(user, UserOrigin.LOCAL))
                    await _commit_if_dirty(db)
            except PersistenceError as e:
                e.context.email = user.email
                e.context.operation = "add_local"
                self._report(e)
                raise
            except ValidationError as e:
                self._report(e)
                raise
        logger.info("Stored local user", extra={"email": user.email})
        return user

    async def delete(self, user: User) -> None:
        async with self._write_lock:
            try:
                async with self._db.session() as db:
                    result = await db.execute(
                        select(UserRecord).where(
                            UserRecord.email_key == email_key(user.email),
                        ),
                    )
                    record = result.scalars().first()
                    if record is None:
                        raise NotFoundError(
                            "User", user.email,
                            ErrorContext(email=user.email, operation="delete"),
                        )
                    await db.delete(record)
                    await _commit_if_dirty(db)
            except RosterError as e:
                self._report(e)
                raise
        logger.info("Deleted user", extra={"email": user.email})

    def _report(self, error: RosterError) -> None:
        if isinstance(error, (ValidationError, NotFoundError)):
            logger.warning(error.message, extra={"error_code": error.code})
        else:
            logger.error(error.message, extra={"error_code": error.code})
        self.errors.publish(error)
