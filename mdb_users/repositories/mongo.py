"""
MongoDB Repository Implementation

Implements the Repository contract once for any Entity subclass: identity
translation, pagination, timestamps, deadlines and error classification.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable
from typing import Any, Generic, TypeVar

from bson import ObjectId
from bson.errors import BSONError
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError as MongoDuplicateKeyError
from pymongo.errors import ExecutionTimeout, NetworkTimeout, PyMongoError

from ..constants import CREATED_FIELD, ID_FIELD, UPDATED_FIELD
from ..exceptions import (
    DeadlineExceededError,
    DuplicateKeyError,
    InvalidIdentityError,
    NotFoundError,
    PersistenceError,
)
from ..observability import record_operation
from .base import Entity, Repository, utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Entity)
R = TypeVar("R")


class MongoRepository(Repository[T], Generic[T]):
    """
    MongoDB implementation of the Repository contract.

    Example:
        store = DocumentStore(mongo_uri, db_name)
        await store.connect()
        repo = MongoRepository(store.collection("orders"), Order, timeout=10)

        order_id = await repo.create(Order(total=42))
        order = await repo.find_by_id(order_id)
    """

    def __init__(
        self,
        collection: Any,  # AsyncIOMotorCollection
        entity_class: type[T],
        timeout: float | None = None,
    ):
        """
        Initialize the MongoDB repository.

        Args:
            collection: Motor collection this repository owns
            entity_class: Entity subclass stored in the collection
            timeout: Default per-call timeout in seconds (None = no deadline)
        """
        self._collection = collection
        self._entity_class = entity_class
        self._timeout = timeout

    @property
    def collection_name(self) -> str:
        return getattr(self._collection, "name", "?")

    def _to_entity(self, doc: dict[str, Any]) -> T:
        return self._entity_class.from_document(doc)

    def _parse_id(self, id: str, operation: str) -> ObjectId:
        """Translate an identity string into an ObjectId."""
        if isinstance(id, ObjectId):
            return id
        if not isinstance(id, str) or not ObjectId.is_valid(id):
            raise InvalidIdentityError(
                f"Invalid identity: {id!r}",
                operation=operation,
                collection=self.collection_name,
            )
        return ObjectId(id)

    def _not_found(self, operation: str, **context: Any) -> NotFoundError:
        return NotFoundError(
            f"{self._entity_class.__name__} not found",
            operation=operation,
            collection=self.collection_name,
            context=context,
        )

    async def _run(
        self, operation: str, awaitable: Awaitable[R], timeout: float | None = None
    ) -> R:
        """
        Await one store call under the deadline and classify its failures.

        Cancellation of the calling task propagates as asyncio.CancelledError.
        """
        timeout = self._timeout if timeout is None else timeout
        start_time = time.time()
        success = False
        try:
            if timeout is None:
                result = await awaitable
            else:
                result = await asyncio.wait_for(awaitable, timeout=timeout)
            success = True
            return result
        except asyncio.TimeoutError as e:
            raise DeadlineExceededError(
                f"{operation} exceeded its deadline of {timeout}s",
                operation=operation,
                collection=self.collection_name,
                timeout=timeout,
            ) from e
        except (ExecutionTimeout, NetworkTimeout) as e:
            raise DeadlineExceededError(
                f"{operation} timed out in the store: {e}",
                operation=operation,
                collection=self.collection_name,
                timeout=timeout,
            ) from e
        except MongoDuplicateKeyError as e:
            raise DuplicateKeyError(
                f"Duplicate key on {operation}: {e}",
                operation=operation,
                collection=self.collection_name,
            ) from e
        except (PyMongoError, BSONError, OverflowError) as e:
            logger.error(
                f"{operation} failed on collection '{self.collection_name}': {e}",
                exc_info=True,
            )
            raise PersistenceError(
                f"{operation} failed: {e}",
                operation=operation,
                collection=self.collection_name,
                context={"error_type": type(e).__name__},
            ) from e
        finally:
            duration_ms = (time.time() - start_time) * 1000
            record_operation(
                f"repository.{operation}",
                duration_ms,
                success,
                collection=self.collection_name,
            )

    async def create(self, entity: T, *, timeout: float | None = None) -> str:
        """Insert an entity and return its new ID."""
        now = utcnow()
        doc = entity.to_document()
        doc[CREATED_FIELD] = now
        doc[UPDATED_FIELD] = now

        result = await self._run("create", self._collection.insert_one(doc), timeout)

        entity.id = str(result.inserted_id)
        entity.created_at = now
        entity.updated_at = now
        logger.debug(f"Created {self._entity_class.__name__} with id={entity.id}")
        return entity.id

    async def find_by_id(self, id: str, *, timeout: float | None = None) -> T:
        """Get entity by ID."""
        object_id = self._parse_id(id, "find_by_id")
        doc = await self._run(
            "find_by_id", self._collection.find_one({ID_FIELD: object_id}), timeout
        )
        if doc is None:
            raise self._not_found("find_by_id", id=str(object_id))
        return self._to_entity(doc)

    async def find_one(self, filter: dict[str, Any], *, timeout: float | None = None) -> T:
        """Find a single entity matching a filter."""
        doc = await self._run("find_one", self._collection.find_one(filter), timeout)
        if doc is None:
            raise self._not_found("find_one", filter=filter)
        return self._to_entity(doc)

    async def find_all(self, page: int, limit: int, *, timeout: float | None = None) -> list[T]:
        """Get page ``page`` of size ``limit`` in the store's natural order."""
        cursor = self._collection.find({}).skip((page - 1) * limit).limit(limit)
        docs = await self._run("find_all", cursor.to_list(length=limit), timeout)
        return [self._to_entity(doc) for doc in docs]

    async def update(self, id: str, entity: T, *, timeout: float | None = None) -> None:
        """Overwrite the caller-owned fields of an entity."""
        object_id = self._parse_id(id, "update")
        now = utcnow()
        doc = entity.to_document()
        doc[UPDATED_FIELD] = now

        stored = await self._run(
            "update",
            self._collection.find_one_and_update(
                {ID_FIELD: object_id},
                {"$set": doc},
                projection={CREATED_FIELD: True},
                return_document=ReturnDocument.AFTER,
            ),
            timeout,
        )
        if stored is None:
            raise self._not_found("update", id=str(object_id))

        entity.id = str(object_id)
        entity.created_at = stored.get(CREATED_FIELD)
        entity.updated_at = now

    async def delete(self, id: str, *, timeout: float | None = None) -> None:
        """Delete an entity by ID; a missing entity is not an error."""
        object_id = self._parse_id(id, "delete")
        result = await self._run(
            "delete", self._collection.delete_one({ID_FIELD: object_id}), timeout
        )
        if result.deleted_count == 0:
            logger.debug(
                f"delete matched no {self._entity_class.__name__} with id={object_id}"
            )

    async def count(self, *, timeout: float | None = None) -> int:
        """Count every document in the collection."""
        return await self._run("count", self._collection.count_documents({}), timeout)
