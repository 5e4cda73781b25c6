"""
Unit tests for application wiring: lifespan, sweep task and connection config.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError

from chat_service.database import mongodb, redis_client
from chat_service.database.mongodb import MongoDBConfig, MongoDBConnectionManager, MongoIndexManager
from chat_service.database.redis_client import RedisConfig, RedisConnectionManager
from chat_service.main import sweep_rate_windows
from chat_service.services.rate_governor import RateGovernor


class TestLifespan:

    def test_prebuilt_container_skips_connections(self, app, container):
        with TestClient(app) as client:
            assert app.state.container is container
            assert client.get("/health").status_code == 200

    def test_missing_container_is_503(self, app, auth_headers):
        headers = auth_headers()
        app.state.container = None

        response = TestClient(app).get("/api/chat/history", headers=headers)

        assert response.status_code == 503


class TestRateWindowSweep:

    @pytest.mark.asyncio
    async def test_sweep_purges_stale_windows(self):
        governor = RateGovernor(max_requests=5, window_seconds=1)
        governor.admit("u1", now=0.0)

        task = asyncio.create_task(sweep_rate_windows(governor, 0.01))

        async def drained():
            while len(governor):
                await asyncio.sleep(0.01)

        await asyncio.wait_for(drained(), timeout=2)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task


class TestConnectionConfig:

    def test_mongodb_config_from_settings(self, settings):
        options = MongoDBConfig.from_settings(settings).get_client_options()

        assert options["maxPoolSize"] == settings.MONGODB_MAX_CONNECTIONS
        assert options["serverSelectionTimeoutMS"] == settings.MONGODB_SERVER_SELECTION_TIMEOUT_MS
        assert options["retryWrites"] is True

    def test_redis_config_from_settings(self, settings):
        config = RedisConfig.from_settings(settings)

        assert config.url == settings.REDIS_URL
        assert config.get_pool_kwargs()["decode_responses"] is True

    @pytest.mark.asyncio
    async def test_chat_index_on_user_and_timestamp(self):
        collection = MagicMock()
        collection.create_indexes = AsyncMock()
        database = MagicMock()
        database.__getitem__.return_value = collection

        await MongoIndexManager(database).create_chat_indexes()

        (indexes,), _ = collection.create_indexes.await_args
        assert indexes[0].document["key"] == {"user_id": 1, "timestamp": -1}
        assert indexes[0].document["name"] == "user_timestamp"


class TestConnectionManagers:

    @pytest.mark.asyncio
    async def test_mongodb_connect_pings_and_disconnect_closes(self, monkeypatch):
        database = MagicMock()
        client = MagicMock()
        client.__getitem__.return_value = database
        client.admin.command = AsyncMock(return_value={"ok": 1})
        monkeypatch.setattr(mongodb, "AsyncIOMotorClient", MagicMock(return_value=client))
        manager = MongoDBConnectionManager(MongoDBConfig(database_name="chats_test"))

        assert await manager.connect() is database
        client.__getitem__.assert_called_once_with("chats_test")
        client.admin.command.assert_awaited_once_with("ping")

        await manager.disconnect()

        client.close.assert_called_once()
        assert manager.client is None

    @pytest.mark.asyncio
    async def test_redis_connect_failure_releases_client(self, monkeypatch):
        pool = MagicMock()
        pool.disconnect = AsyncMock()
        client = MagicMock()
        client.ping = AsyncMock(side_effect=OSError("connection refused"))
        client.aclose = AsyncMock()
        monkeypatch.setattr(redis_client, "ConnectionPool", MagicMock(**{"from_url.return_value": pool}))
        monkeypatch.setattr(redis_client, "Redis", MagicMock(return_value=client))
        manager = RedisConnectionManager(RedisConfig())

        with pytest.raises(RedisConnectionError):
            await manager.connect()

        client.aclose.assert_awaited_once()
        pool.disconnect.assert_awaited_once()
        assert manager.client is None
