"""
Configuration management for MDB_USERS.

Settings come from explicit constructor arguments first and environment
variables second, with defaults from constants.py.
"""

import os
import re

from .constants import (
    DEFAULT_BASE_PATH,
    DEFAULT_CONNECT_RETRIES,
    DEFAULT_DB_NAME,
    DEFAULT_HTTP_PORT,
    DEFAULT_MAX_POOL_SIZE,
    DEFAULT_MIN_POOL_SIZE,
    DEFAULT_MONGO_URI,
    DEFAULT_PAGE_SIZE,
    DEFAULT_PASSWORD_ROUNDS,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_USERS_COLLECTION,
    MAX_PAGE_SIZE,
)
from .exceptions import ConfigurationError

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*$")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(value: str | None, default: float = DEFAULT_TIMEOUT_SECONDS) -> float:
    """
    Parse a duration such as "10s", "500ms" or "1m" into seconds.

    A bare number is read as seconds. Unparseable or empty values fall
    back to ``default``.
    """
    if not value:
        return default
    match = _DURATION_RE.match(value)
    if not match:
        return default
    amount, unit = match.groups()
    return float(amount) * _DURATION_UNITS[unit or "s"]


def normalize_base_path(path: str | None) -> str:
    """Return ``path`` with exactly one leading slash and no trailing slash."""
    path = (path or "").strip().strip("/")
    if not path:
        return DEFAULT_BASE_PATH
    return "/" + path


def normalize_mongo_uri(uri: str | None) -> str:
    """Prefix ``mongodb://`` when the URI carries no scheme."""
    uri = (uri or "").strip()
    if not uri:
        return DEFAULT_MONGO_URI
    if not uri.startswith(("mongodb://", "mongodb+srv://")):
        uri = "mongodb://" + uri
    return uri


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class ServiceConfig:
    """
    User service configuration.

    Example:
        # Using environment variables
        config = ServiceConfig()
        config.validate()

        # Or explicit values
        config = ServiceConfig(
            mongo_uri="mongodb://localhost:27017",
            db_name="users_db",
        )
    """

    def __init__(
        self,
        app_name: str | None = None,
        app_version: str | None = None,
        environment: str | None = None,
        entity_uuid: str | None = None,
        http_port: int | None = None,
        base_path: str | None = None,
        mongo_uri: str | None = None,
        db_name: str | None = None,
        timeout: float | None = None,
        max_pool_size: int | None = None,
        min_pool_size: int | None = None,
        connect_retries: int | None = None,
        users_collection: str | None = None,
        default_page_size: int | None = None,
        max_page_size: int | None = None,
        password_rounds: int | None = None,
        ensure_unique_email_index: bool | None = None,
        log_level: str | None = None,
    ):
        """
        Initialize configuration.

        Args:
            app_name: Service name reported by the health endpoint (APP_NAME)
            app_version: Service version (APP_VERSION)
            environment: Deployment environment (ENVIRONMENT)
            entity_uuid: Deployment identifier (ENTITY_UUID)
            http_port: HTTP listen port (HTTP_PORT, default 8080)
            base_path: API route prefix (HTTP_BASE_PATH, default /api/v1)
            mongo_uri: MongoDB connection URI (MONGO_URI)
            db_name: Database name (DB_NAME)
            timeout: Per-call store timeout in seconds (MONGO_TIMEOUT, e.g. "10s")
            max_pool_size: Maximum connection pool size (MONGO_MAX_POOL_SIZE)
            min_pool_size: Minimum connection pool size (MONGO_MIN_POOL_SIZE)
            connect_retries: Startup connection attempts (MONGO_CONNECT_RETRIES)
            users_collection: Collection holding users (USERS_COLLECTION)
            default_page_size: Page size for invalid limits (DEFAULT_PAGE_SIZE)
            max_page_size: Page size cap (MAX_PAGE_SIZE)
            password_rounds: bcrypt cost factor (PASSWORD_SALT_ROUNDS)
            ensure_unique_email_index: Create a unique email index at startup
                (ENSURE_UNIQUE_EMAIL_INDEX)
            log_level: Root log level (LOG_LEVEL)
        """
        self.app_name = app_name or os.getenv("APP_NAME", "mdb-users")
        self.app_version = app_version or os.getenv("APP_VERSION", "0.1.0")
        self.environment = environment or os.getenv("ENVIRONMENT", "development")
        self.entity_uuid = entity_uuid or os.getenv("ENTITY_UUID", "")
        self.http_port = http_port or int(os.getenv("HTTP_PORT", str(DEFAULT_HTTP_PORT)))
        self.base_path = normalize_base_path(base_path or os.getenv("HTTP_BASE_PATH"))
        self.mongo_uri = normalize_mongo_uri(mongo_uri or os.getenv("MONGO_URI"))
        self.db_name = db_name or os.getenv("DB_NAME", DEFAULT_DB_NAME)
        self.timeout = timeout or parse_duration(os.getenv("MONGO_TIMEOUT"))
        self.max_pool_size = max_pool_size or int(
            os.getenv("MONGO_MAX_POOL_SIZE", str(DEFAULT_MAX_POOL_SIZE))
        )
        self.min_pool_size = min_pool_size or int(
            os.getenv("MONGO_MIN_POOL_SIZE", str(DEFAULT_MIN_POOL_SIZE))
        )
        self.connect_retries = connect_retries or int(
            os.getenv("MONGO_CONNECT_RETRIES", str(DEFAULT_CONNECT_RETRIES))
        )
        self.users_collection = users_collection or os.getenv(
            "USERS_COLLECTION", DEFAULT_USERS_COLLECTION
        )
        self.default_page_size = default_page_size or int(
            os.getenv("DEFAULT_PAGE_SIZE", str(DEFAULT_PAGE_SIZE))
        )
        self.max_page_size = max_page_size or int(os.getenv("MAX_PAGE_SIZE", str(MAX_PAGE_SIZE)))
        self.password_rounds = password_rounds or int(
            os.getenv("PASSWORD_SALT_ROUNDS", str(DEFAULT_PASSWORD_ROUNDS))
        )
        if ensure_unique_email_index is None:
            ensure_unique_email_index = _env_bool("ENSURE_UNIQUE_EMAIL_INDEX")
        self.ensure_unique_email_index = ensure_unique_email_index
        self.log_level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ConfigurationError: If configuration is missing or invalid
        """
        if not self.db_name:
            raise ConfigurationError("db_name is required", config_key="DB_NAME")

        if not self.users_collection:
            raise ConfigurationError(
                "users_collection is required", config_key="USERS_COLLECTION"
            )

        if not 0 < self.http_port < 65536:
            raise ConfigurationError(
                f"http_port must be between 1 and 65535, got {self.http_port}",
                config_key="HTTP_PORT",
                config_value=self.http_port,
            )

        if self.timeout <= 0:
            raise ConfigurationError(
                f"timeout must be > 0, got {self.timeout}",
                config_key="MONGO_TIMEOUT",
                config_value=self.timeout,
            )

        if self.min_pool_size < 1:
            raise ConfigurationError(
                f"min_pool_size must be >= 1, got {self.min_pool_size}",
                config_key="MONGO_MIN_POOL_SIZE",
                config_value=self.min_pool_size,
            )

        if self.min_pool_size > self.max_pool_size:
            raise ConfigurationError(
                f"min_pool_size ({self.min_pool_size}) cannot be greater than "
                f"max_pool_size ({self.max_pool_size})",
                config_key="MONGO_MIN_POOL_SIZE",
                config_value=self.min_pool_size,
            )

        if self.connect_retries < 1:
            raise ConfigurationError(
                f"connect_retries must be >= 1, got {self.connect_retries}",
                config_key="MONGO_CONNECT_RETRIES",
                config_value=self.connect_retries,
            )

        if not 1 <= self.default_page_size <= self.max_page_size:
            raise ConfigurationError(
                f"default_page_size must be between 1 and max_page_size "
                f"({self.max_page_size}), got {self.default_page_size}",
                config_key="DEFAULT_PAGE_SIZE",
                config_value=self.default_page_size,
            )

        if not 4 <= self.password_rounds <= 31:
            raise ConfigurationError(
                f"password_rounds must be between 4 and 31, got {self.password_rounds}",
                config_key="PASSWORD_SALT_ROUNDS",
                config_value=self.password_rounds,
            )
