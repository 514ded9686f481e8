"""
MDB_USERS - MongoDB user service

A generic MongoDB repository, a user repository and service built on it,
and the FastAPI application that serves them.
"""

from .config import ServiceConfig
from .database import DocumentStore
from .exceptions import (
    ConfigurationError,
    DeadlineExceededError,
    DuplicateKeyError,
    InitializationError,
    InvalidArgumentError,
    InvalidIdentityError,
    NotFoundError,
    PersistenceError,
    RepositoryError,
    UserServiceError,
)
from .repositories import (
    Entity,
    InMemoryRepository,
    InMemoryUserRepository,
    MongoRepository,
    Repository,
    User,
    UserRepository,
)
from .services import Page, UserChanges, UserService

__version__ = "0.1.0"

__all__ = [
    # Config
    "ServiceConfig",
    # Database
    "DocumentStore",
    # Repositories
    "Entity",
    "Repository",
    "MongoRepository",
    "InMemoryRepository",
    "User",
    "UserRepository",
    "InMemoryUserRepository",
    # Services
    "Page",
    "UserChanges",
    "UserService",
    # Errors
    "UserServiceError",
    "InitializationError",
    "InvalidArgumentError",
    "ConfigurationError",
    "RepositoryError",
    "InvalidIdentityError",
    "NotFoundError",
    "DuplicateKeyError",
    "PersistenceError",
    "DeadlineExceededError",
]
