"""
Document store connection management.

DocumentStore owns the single pooled MongoDB client of the process. It is
constructed once by the application, connected at startup, handed to every
repository, and disconnected during shutdown.
"""

import asyncio
import logging
import time

from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
)
from pymongo.errors import ConnectionFailure, PyMongoError, ServerSelectionTimeoutError

from ..constants import (
    DEFAULT_CONNECT_BACKOFF_SECONDS,
    DEFAULT_CONNECT_RETRIES,
    DEFAULT_MAX_IDLE_TIME_MS,
    DEFAULT_MAX_POOL_SIZE,
    DEFAULT_MIN_POOL_SIZE,
    DEFAULT_TIMEOUT_SECONDS,
)
from ..exceptions import InitializationError
from ..observability import get_logger as get_contextual_logger
from ..observability import record_operation

logger = logging.getLogger(__name__)
contextual_logger = get_contextual_logger(__name__)


class DocumentStore:
    """
    Holds one MongoDB client and exposes collection handles by name.

    Example:
        store = DocumentStore("mongodb://localhost:27017", "users_db")
        await store.connect()
        users = store.collection("onb-ptf-users")
        ...
        await store.disconnect()
    """

    def __init__(
        self,
        mongo_uri: str,
        db_name: str,
        max_pool_size: int = DEFAULT_MAX_POOL_SIZE,
        min_pool_size: int = DEFAULT_MIN_POOL_SIZE,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        """
        Initialize the document store.

        Args:
            mongo_uri: MongoDB connection URI
            db_name: Database name
            max_pool_size: Maximum MongoDB connection pool size
            min_pool_size: Minimum MongoDB connection pool size
            timeout: Server selection and connect timeout in seconds
        """
        self.mongo_uri = mongo_uri
        self.db_name = db_name
        self.max_pool_size = max_pool_size
        self.min_pool_size = min_pool_size
        self.timeout = timeout

        self._client: AsyncIOMotorClient | None = None
        self._db: AsyncIOMotorDatabase | None = None
        self._connected: bool = False

    def _create_client(self) -> AsyncIOMotorClient:
        timeout_ms = int(self.timeout * 1000)
        return AsyncIOMotorClient(
            self.mongo_uri,
            serverSelectionTimeoutMS=timeout_ms,
            connectTimeoutMS=timeout_ms,
            appname="MDB_USERS",
            maxPoolSize=self.max_pool_size,
            minPoolSize=self.min_pool_size,
            maxIdleTimeMS=DEFAULT_MAX_IDLE_TIME_MS,
            retryWrites=True,
            retryReads=True,
            tz_aware=True,
        )

    async def connect(
        self,
        max_retries: int = DEFAULT_CONNECT_RETRIES,
        backoff_seconds: float = DEFAULT_CONNECT_BACKOFF_SECONDS,
    ) -> None:
        """
        Connect to MongoDB and verify the connection with a ping.

        Unreachable servers are retried up to ``max_retries`` attempts in
        total, sleeping ``backoff_seconds * attempt`` between attempts. Any
        other failure (bad URI, authentication, server error) is not retried.
        The client is closed whenever the connection is not established.

        Raises:
            InitializationError: If the connection cannot be established
        """
        if self._connected:
            logger.warning("DocumentStore already connected. Skipping re-connection.")
            return

        max_retries = max(1, max_retries)
        start_time = time.time()
        contextual_logger.info(
            "Connecting to MongoDB",
            extra={
                "db_name": self.db_name,
                "max_pool_size": self.max_pool_size,
                "min_pool_size": self.min_pool_size,
                "timeout": self.timeout,
            },
        )

        client: AsyncIOMotorClient | None = None
        attempt = 0
        try:
            client = self._create_client()
            while True:
                attempt += 1
                try:
                    await client.admin.command("ping")
                    break
                except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                    contextual_logger.warning(
                        "MongoDB ping failed",
                        extra={
                            "attempt": attempt,
                            "max_retries": max_retries,
                            "error_type": type(e).__name__,
                            "error": str(e),
                        },
                    )
                    if attempt >= max_retries:
                        raise
                    await asyncio.sleep(backoff_seconds * attempt)

            self._client = client
            self._db = client[self.db_name]
            self._connected = True
        except (PyMongoError, TypeError, ValueError, KeyError) as e:
            duration_ms = (time.time() - start_time) * 1000
            record_operation("store.connect", duration_ms, success=False)
            contextual_logger.critical(
                "MongoDB connection failed",
                extra={
                    "attempts": attempt,
                    "error_type": type(e).__name__,
                    "duration_ms": round(duration_ms, 2),
                },
            )
            raise InitializationError(
                f"Failed to connect to MongoDB after {attempt} attempt(s): {e}",
                mongo_uri=self.mongo_uri,
                db_name=self.db_name,
                context={
                    "error_type": type(e).__name__,
                    "attempts": attempt,
                },
            ) from e
        finally:
            if not self._connected and client is not None:
                client.close()

        duration_ms = (time.time() - start_time) * 1000
        record_operation("store.connect", duration_ms, success=True)
        contextual_logger.info(
            "MongoDB connection established",
            extra={
                "db_name": self.db_name,
                "pool_size": f"{self.min_pool_size}-{self.max_pool_size}",
                "duration_ms": round(duration_ms, 2),
            },
        )

    async def disconnect(self) -> None:
        """
        Close the MongoDB client.

        This method is idempotent - it's safe to call multiple times.
        """
        if not self._connected:
            return

        contextual_logger.info("Disconnecting from MongoDB...")
        if self._client is not None:
            self._client.close()

        self._connected = False
        self._client = None
        self._db = None
        contextual_logger.info("MongoDB connection closed.")

    def collection(self, name: str) -> AsyncIOMotorCollection:
        """
        Return the collection handle for ``name``.

        Raises:
            ValueError: If name is empty
            RuntimeError: If the store is not connected
        """
        if not name:
            raise ValueError("Collection name must not be empty")
        return self.database[name]

    @property
    def client(self) -> AsyncIOMotorClient:
        """
        Get the MongoDB client.

        Raises:
            RuntimeError: If the store is not connected
        """
        if not self._connected or self._client is None:
            raise RuntimeError("DocumentStore not connected. Call connect() first.")
        return self._client

    @property
    def database(self) -> AsyncIOMotorDatabase:
        """
        Get the MongoDB database.

        Raises:
            RuntimeError: If the store is not connected
        """
        if not self._connected or self._db is None:
            raise RuntimeError("DocumentStore not connected. Call connect() first.")
        return self._db

    @property
    def connected(self) -> bool:
        """Check if the store is connected."""
        return self._connected
