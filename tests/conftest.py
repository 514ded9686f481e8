"""
Pytest configuration and shared fixtures for MDB_USERS tests.

This module provides:
- An in-process stand-in for a Motor collection
- Mock MongoDB client fixtures
- Repository, service and HTTP client fixtures
"""

import copy
from types import SimpleNamespace
from typing import Any, Dict, List
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection

from mdb_users.api import create_app
from mdb_users.config import ServiceConfig
from mdb_users.observability import get_metrics_collector
from mdb_users.repositories import InMemoryUserRepository, UserRepository
from mdb_users.services import UserService

# ============================================================================
# MOTOR COLLECTION STAND-IN
# ============================================================================


class FakeCursor:
    """Supports the skip/limit/to_list chain used by MongoRepository."""

    def __init__(self, docs: List[Dict[str, Any]]):
        self._docs = docs
        self._skip = 0
        self._limit = 0

    def skip(self, count: int) -> "FakeCursor":
        self._skip = count
        return self

    def limit(self, count: int) -> "FakeCursor":
        self._limit = count
        return self

    async def to_list(self, length: int | None = None) -> List[Dict[str, Any]]:
        docs = self._docs[self._skip :]
        if self._limit:
            docs = docs[: self._limit]
        return [copy.deepcopy(d) for d in docs]


class FakeMotorCollection:
    """
    Minimal in-memory collection with Motor's async method signatures.

    Filters are equality-only; updates support ``$set``.
    """

    def __init__(self, name: str = "onb-ptf-users"):
        self.name = name
        self.docs: List[Dict[str, Any]] = []
        self.unique_fields: set = set()

    def _matches(self, doc: Dict[str, Any], filter: Dict[str, Any]) -> bool:
        return all(doc.get(k) == v for k, v in filter.items())

    async def insert_one(self, doc: Dict[str, Any]):
        from pymongo.errors import DuplicateKeyError

        for field in self.unique_fields:
            if any(d.get(field) == doc.get(field) for d in self.docs):
                raise DuplicateKeyError(f"E11000 duplicate key error: {field}")
        doc.setdefault("_id", ObjectId())
        self.docs.append(copy.deepcopy(doc))
        return SimpleNamespace(inserted_id=doc["_id"])

    async def find_one(self, filter: Dict[str, Any], *args, **kwargs):
        for doc in self.docs:
            if self._matches(doc, filter):
                return copy.deepcopy(doc)
        return None

    def find(self, filter: Dict[str, Any] | None = None) -> FakeCursor:
        return FakeCursor([d for d in self.docs if self._matches(d, filter or {})])

    async def find_one_and_update(
        self,
        filter: Dict[str, Any],
        update: Dict[str, Any],
        projection: Dict[str, Any] | None = None,
        return_document: Any = None,
    ):
        for doc in self.docs:
            if self._matches(doc, filter):
                doc.update(copy.deepcopy(update.get("$set", {})))
                if projection is None:
                    return copy.deepcopy(doc)
                fields = {"_id", *projection}
                return {k: copy.deepcopy(v) for k, v in doc.items() if k in fields}
        return None

    async def delete_one(self, filter: Dict[str, Any]):
        for index, doc in enumerate(self.docs):
            if self._matches(doc, filter):
                del self.docs[index]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    async def count_documents(self, filter: Dict[str, Any]) -> int:
        return len([d for d in self.docs if self._matches(d, filter)])

    async def create_index(self, key: str, unique: bool = False, name: str | None = None) -> str:
        if unique:
            self.unique_fields.add(key)
        return name or f"{key}_1"


# ============================================================================
# MOCK MONGODB FIXTURES
# ============================================================================


@pytest.fixture
def mock_mongo_client() -> MagicMock:
    """Create a mock MongoDB client whose ping succeeds."""
    client = MagicMock(spec=AsyncIOMotorClient)
    client.admin = MagicMock()
    client.admin.command = AsyncMock(return_value={"ok": 1})
    client.close = MagicMock()
    return client


@pytest.fixture
def mock_mongo_collection() -> MagicMock:
    """Create a mock MongoDB collection."""
    collection = MagicMock(spec=AsyncIOMotorCollection)
    collection.name = "onb-ptf-users"
    collection.find_one = AsyncMock(return_value=None)
    collection.insert_one = AsyncMock(return_value=MagicMock(inserted_id=ObjectId()))
    collection.find_one_and_update = AsyncMock(return_value=None)
    collection.delete_one = AsyncMock(return_value=MagicMock(deleted_count=1))
    collection.count_documents = AsyncMock(return_value=0)
    collection.create_index = AsyncMock(return_value="email_unique")
    return collection


@pytest.fixture
def fake_collection() -> FakeMotorCollection:
    return FakeMotorCollection()


@pytest.fixture
def user_repository(fake_collection: FakeMotorCollection) -> UserRepository:
    """MongoRepository-backed user repository over the in-memory collection."""
    return UserRepository(fake_collection, timeout=5.0)


# ============================================================================
# SERVICE AND APP FIXTURES
# ============================================================================


@pytest.fixture(autouse=True)
def reset_metrics():
    """Start every test with empty metrics."""
    get_metrics_collector().reset()
    yield
    get_metrics_collector().reset()


@pytest.fixture
def memory_repository() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def user_service(memory_repository: InMemoryUserRepository) -> UserService:
    """UserService with the cheapest bcrypt cost to keep tests fast."""
    return UserService(memory_repository, password_rounds=4)


@pytest.fixture
def service_config() -> ServiceConfig:
    return ServiceConfig(
        app_name="mdb-users-test",
        app_version="9.9.9",
        environment="test",
        entity_uuid="test-uuid",
        mongo_uri="mongodb://localhost:27017",
        db_name="test_db",
        password_rounds=4,
    )


@pytest.fixture
def client(service_config: ServiceConfig, user_service: UserService) -> TestClient:
    """HTTP client for an app wired to the in-memory user service."""
    app = create_app(service_config, user_service=user_service)
    with TestClient(app) as test_client:
        yield test_client
