"""
Constants for MDB_USERS.

This module contains all shared constants used across the codebase to avoid
magic numbers and improve maintainability.
"""

from typing import Final

# ============================================================================
# DATABASE CONSTANTS
# ============================================================================

# Connection pool defaults
DEFAULT_MAX_POOL_SIZE: Final[int] = 100
"""Default maximum MongoDB connection pool size."""

DEFAULT_MIN_POOL_SIZE: Final[int] = 5
"""Default minimum MongoDB connection pool size."""

DEFAULT_MAX_IDLE_TIME_MS: Final[int] = 45000
"""Default maximum idle time before closing connections (milliseconds)."""

DEFAULT_MONGO_URI: Final[str] = "mongodb://localhost:27017"
"""Connection URI used when MONGO_URI is not set."""

DEFAULT_DB_NAME: Final[str] = "business_orchestrator"
"""Database name used when DB_NAME is not set."""

DEFAULT_TIMEOUT_SECONDS: Final[float] = 10.0
"""Default per-call timeout for store operations (seconds)."""

DEFAULT_CONNECT_RETRIES: Final[int] = 3
"""Number of connection attempts made at startup before giving up."""

DEFAULT_CONNECT_BACKOFF_SECONDS: Final[float] = 1.0
"""Base backoff between startup connection attempts (multiplied by attempt)."""

# ============================================================================
# DOCUMENT SHAPE
# ============================================================================

ID_FIELD: Final[str] = "_id"
"""Storage-native identity key."""

CREATED_FIELD: Final[str] = "date_created"
"""Storage key for the creation timestamp."""

UPDATED_FIELD: Final[str] = "updated_created"
"""Storage key for the last update timestamp."""

SERVER_ASSIGNED_FIELDS: Final[tuple[str, ...]] = ("id", "created_at", "updated_at")
"""Entity attributes populated by the repository, never by callers."""

DEFAULT_USERS_COLLECTION: Final[str] = "onb-ptf-users"
"""Collection holding user documents."""

# ============================================================================
# PAGINATION CONSTANTS
# ============================================================================

DEFAULT_PAGE: Final[int] = 1
"""First page number (pages are 1-based)."""

DEFAULT_PAGE_SIZE: Final[int] = 10
"""Page size used when the caller asks for less than one item."""

MAX_PAGE_SIZE: Final[int] = 100
"""Upper bound for page size."""

INT64_MAX: Final[int] = 2**63 - 1
"""Largest integer BSON can encode; query parameters and skip counts stay within it."""

# ============================================================================
# SECURITY CONSTANTS
# ============================================================================

DEFAULT_PASSWORD_ROUNDS: Final[int] = 12
"""bcrypt cost factor used when hashing passwords."""

GENERATED_PASSWORD_LENGTH: Final[int] = 6
"""Length of the password generated when a user is created without one."""

GENERATED_PASSWORD_ALPHABET: Final[str] = (
    "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
)
"""Characters used for generated passwords."""

# ============================================================================
# HTTP CONSTANTS
# ============================================================================

DEFAULT_HTTP_PORT: Final[int] = 8080
"""Port the HTTP server listens on."""

DEFAULT_BASE_PATH: Final[str] = "/api/v1"
"""Prefix for all API routes."""

REQUEST_ID_HEADER: Final[str] = "X-Request-ID"
"""Header carrying the request correlation id."""

GRACEFUL_SHUTDOWN_SECONDS: Final[int] = 30
"""Grace period given to in-flight requests on shutdown."""
