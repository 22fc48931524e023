"""
Redis Connection for Crisis Storage

One shared connection backs the crisis event log, the emergency action log,
the safety plan and scheduled follow-ups. Timeouts and retries come from
Settings. When the server cannot be reached, callers get None and the
storage layer switches to its in-memory fallback.
"""

import logging
from typing import Optional

import redis.asyncio as redis
from redis.asyncio import Redis
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError, TimeoutError, RedisError

from crisis_engine.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


def build_redis_client(config: Settings) -> Redis:
    """Create an (unconnected) client from the storage settings."""
    return redis.from_url(
        config.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=config.redis_connect_timeout,
        socket_timeout=config.redis_socket_timeout,
        retry_on_timeout=True,
        retry=Retry(ExponentialBackoff(), retries=config.redis_max_retries),
    )


class RedisClient:
    """
    Holds the process-wide Redis connection for crisis storage.

    The client is created lazily on first use and verified with a ping.
    A failed connection is not cached, so the next call tries again.
    """

    _client: Optional[Redis] = None
    _connected: bool = False

    @classmethod
    async def get_client(cls, config: Optional[Settings] = None) -> Optional[Redis]:
        """
        Get the connected client, connecting on first use.

        Args:
            config: Settings to connect with (defaults to the app settings)

        Returns:
            Redis client, or None if the server is unreachable
        """
        if cls._client is not None and cls._connected:
            return cls._client

        config = config or default_settings

        try:
            cls._client = build_redis_client(config)
            await cls._client.ping()
            cls._connected = True
            logger.info(
                f"Redis connected for crisis storage "
                f"(prefix={config.redis_key_prefix}, retries={config.redis_max_retries})"
            )
            return cls._client

        except (ConnectionError, TimeoutError, RedisError) as e:
            logger.error(f"Failed to connect to Redis for crisis storage: {e}")
            cls._connected = False
            cls._client = None
            return None

    @classmethod
    async def close(cls) -> None:
        """Close the shared connection, if any."""
        if cls._client is None:
            return
        try:
            await cls._client.aclose()
            logger.info("Redis connection closed")
        except RedisError as e:
            logger.error(f"Error closing Redis connection: {e}")
        finally:
            cls._client = None
            cls._connected = False

    @classmethod
    def is_connected(cls) -> bool:
        return cls._connected


async def get_redis(config: Optional[Settings] = None) -> Optional[Redis]:
    """Shared client, or None when Redis is unavailable."""
    return await RedisClient.get_client(config)


async def check_redis_health() -> bool:
    """True if the crisis storage server answers a ping."""
    try:
        client = await get_redis()
        if client is None:
            return False

        await client.ping()
        return True

    except RedisError as e:
        logger.error(f"Redis health check failed: {e}")
        return False
