"""
Request and response models for the users API.
"""

from datetime import datetime

from pydantic import BaseModel, field_validator

from ..repositories import User
from ..services import UserChanges


class UserCreate(BaseModel):
    """Body of POST /users. Email presence is checked by the handler."""

    name: str = ""
    email: str = ""
    password: str = ""

    @field_validator("email")
    @classmethod
    def strip_email(cls, value: str) -> str:
        return value.strip()

    def to_entity(self) -> User:
        return User(name=self.name, email=self.email, password=self.password)


class UserUpdate(BaseModel):
    """Body of PUT /users/{id}; omitted fields are left unchanged."""

    name: str | None = None
    email: str | None = None
    password: str | None = None

    @field_validator("email")
    @classmethod
    def strip_email(cls, value: str | None) -> str | None:
        return value.strip() if value is not None else None

    def to_changes(self) -> UserChanges:
        return UserChanges(name=self.name, email=self.email, password=self.password)


class UserOut(BaseModel):
    """Public view of a user; the password hash is never exposed."""

    id: str
    name: str
    email: str
    date_created: datetime | None = None
    updated_created: datetime | None = None

    @classmethod
    def from_entity(cls, user: User) -> "UserOut":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            date_created=user.created_at,
            updated_created=user.updated_at,
        )


class Pagination(BaseModel):
    page: int
    limit: int
    total: int


class UserPage(BaseModel):
    items: list[UserOut]
    pagination: Pagination
