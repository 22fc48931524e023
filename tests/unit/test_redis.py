"""Tests for Redis connection management."""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from redis.exceptions import ConnectionError as RedisConnectionError

from crisis_engine.config import Settings
from crisis_engine.infra.redis import RedisClient, check_redis_health


@pytest.fixture(autouse=True)
def reset_client():
    """Clear the shared connection between tests."""
    RedisClient._client = None
    RedisClient._connected = False
    yield
    RedisClient._client = None
    RedisClient._connected = False


class TestRedisClient:
    """Test connection handling and graceful degradation."""

    @pytest.mark.asyncio
    async def test_connect(self):
        """Test successful connection is cached."""
        mock_client = MagicMock()
        mock_client.ping = AsyncMock(return_value=True)

        with patch("crisis_engine.infra.redis.redis.from_url", return_value=mock_client) as from_url:
            first = await RedisClient.get_client()
            second = await RedisClient.get_client()

        assert first is mock_client
        assert second is mock_client
        from_url.assert_called_once()
        assert RedisClient.is_connected()

    @pytest.mark.asyncio
    async def test_connection_uses_settings(self):
        """Test timeouts and retries come from the storage settings."""
        mock_client = MagicMock()
        mock_client.ping = AsyncMock(return_value=True)
        config = Settings(
            _env_file=None,
            redis_url="redis://cache.internal:6380/2",
            redis_connect_timeout=1.5,
            redis_socket_timeout=2.5,
            redis_max_retries=7,
        )

        with patch("crisis_engine.infra.redis.redis.from_url", return_value=mock_client) as from_url:
            await RedisClient.get_client(config)

        args, kwargs = from_url.call_args
        assert args == ("redis://cache.internal:6380/2",)
        assert kwargs["socket_connect_timeout"] == 1.5
        assert kwargs["socket_timeout"] == 2.5
        assert kwargs["retry"]._retries == 7

    @pytest.mark.asyncio
    async def test_connection_failure_returns_none(self):
        """Test unreachable Redis yields None instead of raising."""
        mock_client = MagicMock()
        mock_client.ping = AsyncMock(side_effect=RedisConnectionError("refused"))

        with patch("crisis_engine.infra.redis.redis.from_url", return_value=mock_client):
            client = await RedisClient.get_client()

        assert client is None
        assert not RedisClient.is_connected()

    @pytest.mark.asyncio
    async def test_health_check_unavailable(self):
        with patch("crisis_engine.infra.redis.get_redis", AsyncMock(return_value=None)):
            assert await check_redis_health() is False

    @pytest.mark.asyncio
    async def test_close(self):
        """Test close releases the connection."""
        mock_client = MagicMock()
        mock_client.aclose = AsyncMock()
        RedisClient._client = mock_client
        RedisClient._connected = True

        await RedisClient.close()

        mock_client.aclose.assert_called_once()
        assert RedisClient._client is None
        assert not RedisClient.is_connected()
