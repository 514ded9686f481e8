"""
MDB Users Repository Pattern

Usage:
    from mdb_users.repositories import UserRepository

    repo = UserRepository(store.collection("onb-ptf-users"), timeout=10)
    user_id = await repo.create(User(name="Ada", email="ada@example.com"))
    user = await repo.find_by_email("ada@example.com")
"""

from .base import Entity, InMemoryRepository, Repository
from .mongo import MongoRepository
from .users import InMemoryUserRepository, User, UserLookup, UserRepository

__all__ = [
    "Repository",
    "Entity",
    "InMemoryRepository",
    "MongoRepository",
    "User",
    "UserLookup",
    "UserRepository",
    "InMemoryUserRepository",
]
