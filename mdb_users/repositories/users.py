"""
User entity and user repositories.

The users collection stores documents shaped like:

    {
        "_id": ObjectId,
        "name": str,
        "email": str,
        "pass": str,              # bcrypt hash
        "date_created": datetime,
        "updated_created": datetime,
    }
"""

import logging
from abc import abstractmethod
from dataclasses import dataclass, field
from typing import Any

from .base import Entity, InMemoryRepository, Repository
from .mongo import MongoRepository

logger = logging.getLogger(__name__)


@dataclass
class User(Entity):
    """A user account. ``email`` is the unique business key."""

    name: str = ""
    email: str = ""
    password: str = field(default="", repr=False, metadata={"key": "pass"})


class UserLookup(Repository[User]):
    """Repository of users with lookup by the unique business key."""

    @abstractmethod
    async def find_by_email(self, email: str, *, timeout: float | None = None) -> User:
        """
        Find the user owning ``email``.

        Raises:
            NotFoundError: If no user has this email
        """


class UserRepository(MongoRepository[User], UserLookup):
    """MongoDB-backed user repository."""

    def __init__(self, collection: Any, timeout: float | None = None):
        super().__init__(collection, User, timeout=timeout)

    async def find_by_email(self, email: str, *, timeout: float | None = None) -> User:
        doc = await self._run(
            "find_by_email", self._collection.find_one({"email": email}), timeout
        )
        if doc is None:
            raise self._not_found("find_by_email", email=email)
        return self._to_entity(doc)

    async def ensure_indexes(self) -> str:
        """
        Create a unique index on ``email``.

        With the index in place a concurrent duplicate insert fails in the
        store with DuplicateKeyError instead of succeeding silently.
        """
        name = await self._run(
            "ensure_indexes",
            self._collection.create_index("email", unique=True, name="email_unique"),
        )
        logger.info(f"Ensured unique index '{name}' on '{self.collection_name}'")
        return name


class InMemoryUserRepository(InMemoryRepository[User], UserLookup):
    """Dictionary-backed user repository for tests and local runs."""

    def __init__(self, name: str = "users"):
        super().__init__(User, name=name)

    async def find_by_email(self, email: str, *, timeout: float | None = None) -> User:
        return await self.find_one({"email": email}, timeout=timeout)
