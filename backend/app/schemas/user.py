"""User Schemas — Pydantic models for the remote payload and the HTTP API.

Invariants:
    - RemoteUserPayload ignores unknown keys (remote list carries phone, company, geo...)
    - UserCreate.name / email are stripped; emptiness is checked by the repository
      so the API and the in-process caller get the same error messages
    - UserResponse mirrors the domain User plus nothing else

Design Decisions:
    - TypeAdapter for the top-level array: the remote body is a bare JSON list
"""

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from app.core.domain_types import Address, User


# --- Remote directory payload -------------------------------------------------

class RemoteAddressPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    city: str = ""
    street: str | None = None


class RemoteUserPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int | None = None
    email: str
    name: str
    address: RemoteAddressPayload | None = None

    def to_user(self) -> User:
        address = None
        if self.address is not None:
            address = Address(city=self.address.city, street=self.address.street)
        return User(name=self.name, email=self.email, address=address)


RemoteUserList = TypeAdapter(list[RemoteUserPayload])


# --- API ----------------------------------------------------------------------

class UserCreate(BaseModel):
    """Local user creation request."""
    name: str = Field(max_length=200)
    email: str = Field(max_length=320)
    city: str | None = Field(None, max_length=200)
    street: str | None = Field(None, max_length=200)

    @field_validator("name", "email")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()


class AddressResponse(BaseModel):
    city: str
    street: str | None = None


class UserResponse(BaseModel):
    name: str
    email: str
    address: AddressResponse | None = None

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        address = None
        if user.address is not None:
            address = AddressResponse(city=user.address.city, street=user.address.street)
        return cls(name=user.name, email=user.email, address=address)


class UserListResponse(BaseModel):
    users: list[UserResponse]
