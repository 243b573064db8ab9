"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - User identity is the email; email_key() is the only comparison form
    - User and Address are immutable: records change by delete + recreate only
    - UserOrigin maps 1:1 to the persisted is_local flag

Design Decisions:
    - Frozen dataclasses over ORM objects in the core: core never touches a DB session
    - str Enums: serialize to JSON without custom encoders
"""

from dataclasses import dataclass
from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

EmailKey = NewType("EmailKey", str)


def email_key(email: str) -> EmailKey:
    """Case-insensitive identity of an email address."""
    return EmailKey(email.strip().casefold())


# ─── Enums ───────────────────────────────────────────────────────

class UserOrigin(str, Enum):
    """Where a stored record came from; maps to DB `is_local` column."""
    LOCAL = "local"
    REMOTE = "remote"


class AddUserPhase(str, Enum):
    """add_user lifecycle: IDLE -> VALIDATING -> INVALID | PERSISTING -> FAILED | SUCCEEDED."""
    IDLE = "idle"
    VALIDATING = "validating"
    INVALID = "invalid"
    PERSISTING = "persisting"
    FAILED = "failed"
    SUCCEEDED = "succeeded"


# ─── Value Types ─────────────────────────────────────────────────

@dataclass(frozen=True)
class Address:
    city: str
    street: str | None = None


@dataclass(frozen=True)
class User:
    name: str
    email: str
    address: Address | None = None

    @property
    def key(self) -> EmailKey:
        return email_key(self.email)
