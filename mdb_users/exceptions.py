"""
Custom exceptions for MDB_USERS.

Every error raised by the store, repositories and services derives from
UserServiceError, which keeps backward compatibility with RuntimeError.
"""

from typing import Any, Dict, Optional


class UserServiceError(RuntimeError):
    """
    Base exception for MDB_USERS errors.

    Attributes:
        message: Error message
        context: Optional dictionary with additional context (operation,
                 collection, entity id, etc.)
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            context: Optional dictionary with additional context information
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """Return formatted error message with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (context: {context_str})"
        return self.message


class InitializationError(UserServiceError):
    """
    Raised when the document store cannot be reached at startup.

    Attributes:
        message: Error message
        mongo_uri: MongoDB connection URI (if available)
        db_name: Database name (if available)
        context: Additional context information
    """

    def __init__(
        self,
        message: str,
        mongo_uri: Optional[str] = None,
        db_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if mongo_uri:
            context["mongo_uri"] = mongo_uri
        if db_name:
            context["db_name"] = db_name
        super().__init__(message, context=context)
        self.mongo_uri = mongo_uri
        self.db_name = db_name


class ConfigurationError(UserServiceError):
    """
    Raised when configuration is invalid or missing.

    Attributes:
        message: Error message
        config_key: Configuration key that caused the error (if available)
        config_value: Configuration value that caused the error (if available)
        context: Additional context information
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if config_key:
            context["config_key"] = config_key
        if config_value is not None:
            context["config_value"] = config_value
        super().__init__(message, context=context)
        self.config_key = config_key
        self.config_value = config_value


class InvalidArgumentError(UserServiceError):
    """
    Raised when a caller-supplied value is rejected before any store call.

    Attributes:
        message: Error message
        field: Name of the rejected field (if available)
        context: Additional context information
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if field:
            context["field"] = field
        super().__init__(message, context=context)
        self.field = field


class RepositoryError(UserServiceError):
    """
    Base class for data-access errors.

    Attributes:
        message: Error message
        operation: Repository operation that failed (e.g. "find_by_id")
        collection: Collection the operation targeted
        context: Additional context information
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        collection: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if operation:
            context["operation"] = operation
        if collection:
            context["collection"] = collection
        super().__init__(message, context=context)
        self.operation = operation
        self.collection = collection


class InvalidIdentityError(RepositoryError):
    """Raised when an identity string cannot be parsed into a store identity."""


class NotFoundError(RepositoryError):
    """Raised when no document matches an identity or a unique-key filter."""


class DuplicateKeyError(RepositoryError):
    """Raised when an entity with the same unique business key already exists."""


class PersistenceError(RepositoryError):
    """Raised for store failures (network, serialization, server errors)."""


class DeadlineExceededError(RepositoryError):
    """
    Raised when a store operation does not complete within its deadline.

    Attributes:
        timeout: Deadline in seconds that was exceeded (if known)
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        collection: Optional[str] = None,
        timeout: Optional[float] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if timeout is not None:
            context["timeout"] = timeout
        super().__init__(message, operation=operation, collection=collection, context=context)
        self.timeout = timeout
