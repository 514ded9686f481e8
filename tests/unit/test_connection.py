"""
Unit tests for DocumentStore.

Tests connection retry, error handling and lifecycle.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pymongo.errors import OperationFailure, ServerSelectionTimeoutError

from mdb_users.database import DocumentStore
from mdb_users.exceptions import InitializationError
from mdb_users.observability import get_metrics_collector


@pytest.fixture
def store_config():
    """Provide default configuration for DocumentStore."""
    return {
        "mongo_uri": "mongodb://localhost:27017",
        "db_name": "test_db",
        "max_pool_size": 10,
        "min_pool_size": 1,
        "timeout": 1.0,
    }


class TestDocumentStoreConnect:
    @pytest.mark.asyncio
    async def test_connect_success(self, store_config, mock_mongo_client):
        with patch(
            "mdb_users.database.connection.AsyncIOMotorClient",
            return_value=mock_mongo_client,
        ) as client_class:
            store = DocumentStore(**store_config)
            await store.connect()

        assert store.connected is True
        assert store.client is mock_mongo_client
        mock_mongo_client.admin.command.assert_awaited_once_with("ping")
        kwargs = client_class.call_args.kwargs
        assert kwargs["maxPoolSize"] == 10
        assert kwargs["minPoolSize"] == 1
        assert kwargs["serverSelectionTimeoutMS"] == 1000
        assert get_metrics_collector().count("store.connect") == 1

    @pytest.mark.asyncio
    async def test_connect_retries_then_succeeds(self, store_config, mock_mongo_client):
        mock_mongo_client.admin.command = AsyncMock(
            side_effect=[ServerSelectionTimeoutError("down"), {"ok": 1}]
        )
        with patch(
            "mdb_users.database.connection.AsyncIOMotorClient",
            return_value=mock_mongo_client,
        ), patch("mdb_users.database.connection.asyncio.sleep", new=AsyncMock()) as sleep:
            store = DocumentStore(**store_config)
            await store.connect(max_retries=3, backoff_seconds=1.0)

        assert store.connected is True
        assert mock_mongo_client.admin.command.await_count == 2
        sleep.assert_awaited_once_with(1.0)

    @pytest.mark.asyncio
    async def test_connect_gives_up_with_increasing_backoff(
        self, store_config, mock_mongo_client
    ):
        mock_mongo_client.admin.command = AsyncMock(
            side_effect=ServerSelectionTimeoutError("down")
        )
        with patch(
            "mdb_users.database.connection.AsyncIOMotorClient",
            return_value=mock_mongo_client,
        ), patch("mdb_users.database.connection.asyncio.sleep", new=AsyncMock()) as sleep:
            store = DocumentStore(**store_config)
            with pytest.raises(InitializationError) as exc_info:
                await store.connect(max_retries=3, backoff_seconds=0.5)

        assert store.connected is False
        assert mock_mongo_client.admin.command.await_count == 3
        assert [c.args[0] for c in sleep.await_args_list] == [0.5, 1.0]
        assert exc_info.value.db_name == "test_db"
        assert exc_info.value.context["attempts"] == 3
        assert isinstance(exc_info.value.__cause__, ServerSelectionTimeoutError)
        mock_mongo_client.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_connect_twice_is_noop(self, store_config, mock_mongo_client):
        with patch(
            "mdb_users.database.connection.AsyncIOMotorClient",
            return_value=mock_mongo_client,
        ) as client_class:
            store = DocumentStore(**store_config)
            await store.connect()
            await store.connect()

        assert client_class.call_count == 1


class TestDocumentStoreLifecycle:
    def test_collection_before_connect_raises(self, store_config):
        store = DocumentStore(**store_config)
        with pytest.raises(RuntimeError):
            store.collection("users")

    def test_client_before_connect_raises(self, store_config):
        store = DocumentStore(**store_config)
        with pytest.raises(RuntimeError):
            _ = store.client

    @pytest.mark.asyncio
    async def test_collection_lookup(self, store_config, mock_mongo_client):
        collection = MagicMock()
        database = MagicMock()
        database.__getitem__.return_value = collection
        mock_mongo_client.__getitem__ = MagicMock(return_value=database)

        with patch(
            "mdb_users.database.connection.AsyncIOMotorClient",
            return_value=mock_mongo_client,
        ):
            store = DocumentStore(**store_config)
            await store.connect()

        assert store.collection("users") is collection
        database.__getitem__.assert_called_with("users")
        with pytest.raises(ValueError):
            store.collection("")

    @pytest.mark.asyncio
    async def test_disconnect_is_idempotent(self, store_config, mock_mongo_client):
        with patch(
            "mdb_users.database.connection.AsyncIOMotorClient",
            return_value=mock_mongo_client,
        ):
            store = DocumentStore(**store_config)
            await store.connect()

        await store.disconnect()
        await store.disconnect()

        assert store.connected is False
        mock_mongo_client.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_disconnect_without_connect(self, store_config):
        store = DocumentStore(**store_config)
        await store.disconnect()
        assert store.connected is False


class TestDocumentStoreConnectFailures:
    @pytest.mark.asyncio
    async def test_auth_failure_is_not_retried(self, store_config, mock_mongo_client):
        mock_mongo_client.admin.command = AsyncMock(
            side_effect=OperationFailure("Authentication failed.", code=18)
        )
        with patch(
            "mdb_users.database.connection.AsyncIOMotorClient",
            return_value=mock_mongo_client,
        ), patch("mdb_users.database.connection.asyncio.sleep", new=AsyncMock()) as sleep:
            store = DocumentStore(**store_config)
            with pytest.raises(InitializationError) as exc_info:
                await store.connect(max_retries=3)

        assert mock_mongo_client.admin.command.await_count == 1
        sleep.assert_not_awaited()
        mock_mongo_client.close.assert_called_once()
        assert store.connected is False
        assert exc_info.value.context["error_type"] == "OperationFailure"
        assert isinstance(exc_info.value.__cause__, OperationFailure)

    @pytest.mark.asyncio
    async def test_client_construction_error(self, store_config):
        with patch(
            "mdb_users.database.connection.AsyncIOMotorClient",
            side_effect=ValueError("Port must be an integer"),
        ):
            store = DocumentStore(**store_config)
            with pytest.raises(InitializationError) as exc_info:
                await store.connect()

        assert store.connected is False
        assert isinstance(exc_info.value.__cause__, ValueError)
        assert get_metrics_collector().count("store.connect") == 1

    @pytest.mark.asyncio
    async def test_malformed_uri(self, store_config):
        store_config["mongo_uri"] = "mongodb://host:notaport"
        store = DocumentStore(**store_config)

        with pytest.raises(InitializationError):
            await store.connect(max_retries=1)

        assert store.connected is False

    @pytest.mark.asyncio
    async def test_cancelled_connect_closes_client(self, store_config, mock_mongo_client):
        mock_mongo_client.admin.command = AsyncMock(side_effect=asyncio.CancelledError())
        with patch(
            "mdb_users.database.connection.AsyncIOMotorClient",
            return_value=mock_mongo_client,
        ):
            store = DocumentStore(**store_config)
            with pytest.raises(asyncio.CancelledError):
                await store.connect()

        mock_mongo_client.close.assert_called_once()
