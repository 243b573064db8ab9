"""User ORM — persists the local user table reconciled with the remote directory.

Invariants:
    - email_key is the casefolded email and is UNIQUE: no two rows share an email
    - is_local distinguishes user-entered rows from remote imports
    - Rows are never updated in place: created or deleted

Design Decisions:
    - Synthetic integer id: the remote payload id is optional and not trusted as a key
    - email_key column over a functional index: portable across SQLite and PostgreSQL
"""

from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.domain_types import Address, User, UserOrigin, email_key
from app.db.base import Base


class UserRecord(Base):
    """A stored user, local or imported."""
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    email_key: Mapped[str] = mapped_column(
        String(320), nullable=False, unique=True, index=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    city: Mapped[str | None] = mapped_column(String(200), nullable=True)
    street: Mapped[str | None] = mapped_column(String(200), nullable=True)
    is_local: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    @classmethod
    def from_user(cls, user: User, origin: UserOrigin) -> "UserRecord":
        return cls(
            name=user.name,
            email=user.email,
            email_key=email_key(user.email),
            city=user.address.city if user.address else None,
            street=user.address.street if user.address else None,
            is_local=origin == UserOrigin.LOCAL,
        )

    @property
    def origin(self) -> UserOrigin:
        return UserOrigin.LOCAL if self.is_local else UserOrigin.REMOTE

    def to_user(self) -> User:
        # Stored rows always surface an address, blank where nothing was saved
        return User(
            name=self.name or "",
            email=self.email,
            address=Address(city=self.city or "", street=self.street or ""),
        )
