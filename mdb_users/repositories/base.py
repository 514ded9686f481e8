"""
Abstract Repository Pattern

Defines the entity base class, the repository contract shared by every
entity type, and an in-memory implementation of that contract.
"""

import copy
import dataclasses
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

from ..constants import CREATED_FIELD, ID_FIELD, SERVER_ASSIGNED_FIELDS, UPDATED_FIELD
from ..exceptions import InvalidIdentityError, NotFoundError

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Current time as an aware UTC datetime with millisecond precision."""
    now = datetime.now(timezone.utc)
    # BSON dates carry milliseconds only
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


@dataclass
class Entity:
    """
    Base class for domain entities.

    ``id``, ``created_at`` and ``updated_at`` are assigned by repositories.
    Every other dataclass field is persisted under its own name, or under
    ``metadata["key"]`` when the stored name differs.

    Example:
        @dataclass
        class User(Entity):
            email: str = ""
            password: str = field(default="", metadata={"key": "pass"})
    """

    id: str | None = None
    created_at: datetime | None = field(default=None)
    updated_at: datetime | None = field(default=None)

    @classmethod
    def _stored_fields(cls) -> list[tuple[str, str]]:
        """(attribute, document key) pairs for the caller-owned fields."""
        return [
            (f.name, f.metadata.get("key", f.name))
            for f in dataclasses.fields(cls)
            if f.name not in SERVER_ASSIGNED_FIELDS
        ]

    def to_document(self) -> dict[str, Any]:
        """Encode the caller-owned fields for storage."""
        return {key: getattr(self, name) for name, key in self._stored_fields()}

    @classmethod
    def from_document(cls, doc: dict[str, Any] | None) -> "Entity | None":
        """Decode a stored document; unknown keys are ignored."""
        if doc is None:
            return None

        values: dict[str, Any] = {}
        if ID_FIELD in doc:
            values["id"] = str(doc[ID_FIELD])
        if CREATED_FIELD in doc:
            values["created_at"] = doc[CREATED_FIELD]
        if UPDATED_FIELD in doc:
            values["updated_at"] = doc[UPDATED_FIELD]

        for name, key in cls._stored_fields():
            if key in doc:
                values[name] = doc[key]

        return cls(**values)


T = TypeVar("T", bound=Entity)


class Repository(ABC, Generic[T]):
    """
    Repository contract for one collection of entities.

    Every method accepts an optional ``timeout`` in seconds that bounds the
    store round trip; implementations raise DeadlineExceededError when it
    expires.

    Errors:
        InvalidIdentityError: id cannot be parsed into a store identity
        NotFoundError: nothing matches the id or filter
        PersistenceError: any other store failure
    """

    @abstractmethod
    async def create(self, entity: T, *, timeout: float | None = None) -> str:
        """
        Insert a new entity.

        Stamps creation and update timestamps and populates ``entity.id``.

        Returns:
            ID of the created entity
        """

    @abstractmethod
    async def find_by_id(self, id: str, *, timeout: float | None = None) -> T:
        """Get a single entity by ID."""

    @abstractmethod
    async def find_one(self, filter: dict[str, Any], *, timeout: float | None = None) -> T:
        """Get the first entity whose document matches ``filter``."""

    @abstractmethod
    async def find_all(self, page: int, limit: int, *, timeout: float | None = None) -> list[T]:
        """
        Get one page of entities.

        Args:
            page: 1-based page number (trusted, already normalized)
            limit: Page size (trusted, already normalized)
        """

    @abstractmethod
    async def update(self, id: str, entity: T, *, timeout: float | None = None) -> None:
        """Replace the caller-owned fields of an entity and refresh its update timestamp."""

    @abstractmethod
    async def delete(self, id: str, *, timeout: float | None = None) -> None:
        """Delete an entity by ID. Deleting a missing entity is a no-op."""

    @abstractmethod
    async def count(self, *, timeout: float | None = None) -> int:
        """Count every entity in the collection."""


class InMemoryRepository(Repository[T]):
    """
    In-memory repository implementation for testing.

    Stores encoded documents in a dictionary keyed by sequential string ids,
    so entities handed out are always fresh copies.
    """

    def __init__(self, entity_class: type[T], name: str = "memory"):
        self._entity_class = entity_class
        self._name = name
        self._storage: dict[str, dict[str, Any]] = {}
        self._counter = 0

    @property
    def collection_name(self) -> str:
        return self._name

    def _parse_id(self, id: str, operation: str) -> str:
        if not isinstance(id, str) or not id.isdigit():
            raise InvalidIdentityError(
                f"Invalid identity: {id!r}",
                operation=operation,
                collection=self._name,
            )
        return id

    def _not_found(self, operation: str, **context: Any) -> NotFoundError:
        return NotFoundError(
            f"{self._entity_class.__name__} not found",
            operation=operation,
            collection=self._name,
            context=context,
        )

    def _decode(self, doc: dict[str, Any]) -> T:
        return self._entity_class.from_document(copy.deepcopy(doc))

    async def create(self, entity: T, *, timeout: float | None = None) -> str:
        self._counter += 1
        id = str(self._counter)
        now = utcnow()

        doc = copy.deepcopy(entity.to_document())
        doc[ID_FIELD] = id
        doc[CREATED_FIELD] = now
        doc[UPDATED_FIELD] = now
        self._storage[id] = doc

        entity.id = id
        entity.created_at = now
        entity.updated_at = now
        return id

    async def find_by_id(self, id: str, *, timeout: float | None = None) -> T:
        id = self._parse_id(id, "find_by_id")
        doc = self._storage.get(id)
        if doc is None:
            raise self._not_found("find_by_id", id=id)
        return self._decode(doc)

    async def find_one(self, filter: dict[str, Any], *, timeout: float | None = None) -> T:
        for doc in self._storage.values():
            if self._matches_filter(doc, filter):
                return self._decode(doc)
        raise self._not_found("find_one", filter=filter)

    async def find_all(self, page: int, limit: int, *, timeout: float | None = None) -> list[T]:
        skip = (page - 1) * limit
        docs = list(self._storage.values())[skip : skip + limit]
        return [self._decode(doc) for doc in docs]

    async def update(self, id: str, entity: T, *, timeout: float | None = None) -> None:
        id = self._parse_id(id, "update")
        if id not in self._storage:
            raise self._not_found("update", id=id)

        now = utcnow()
        self._storage[id].update(copy.deepcopy(entity.to_document()))
        self._storage[id][UPDATED_FIELD] = now

        entity.id = id
        entity.created_at = self._storage[id][CREATED_FIELD]
        entity.updated_at = now

    async def delete(self, id: str, *, timeout: float | None = None) -> None:
        id = self._parse_id(id, "delete")
        if self._storage.pop(id, None) is None:
            logger.debug(f"delete: no {self._entity_class.__name__} with id={id}")

    async def count(self, *, timeout: float | None = None) -> int:
        return len(self._storage)

    def _matches_filter(self, data: dict[str, Any], filter: dict[str, Any]) -> bool:
        """Equality-only filter matching."""
        for key, value in filter.items():
            if key not in data:
                return False
            if data[key] != value:
                return False
        return True

    def clear(self) -> None:
        """Clear all entities (useful for test setup)."""
        self._storage.clear()
        self._counter = 0
