"""
Key-Value Persistence

The crisis engine persists a handful of JSON blobs (safety plan, crisis
event log, emergency action log, follow-ups) through a minimal async
key-value interface. Two adapters are provided:

- RedisKeyValueStore: namespaced keys on the shared Redis connection
- InMemoryKeyValueStore: process-local dict, used as the fallback when
  Redis is unavailable and in tests

Adapters raise StorageError on I/O failure. Components that use a store
catch it and report it through StorageResult instead of propagating it.
"""

import logging
from dataclasses import dataclass
from typing import Generic, Optional, Protocol, TypeVar

from redis.asyncio import Redis
from redis.exceptions import RedisError

from crisis_engine.config import Settings, settings as default_settings
from crisis_engine.infra.redis import get_redis

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StorageError(Exception):
    """Raised when a persistence read or write fails."""

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


@dataclass(frozen=True)
class StorageResult(Generic[T]):
    """
    Outcome of a storage-backed operation.

    Keeps "nothing stored" (ok, value None) distinct from "storage failed"
    (error set) for callers that need the difference. Public component
    methods collapse it to Optional with unwrap_or_none().
    """

    value: Optional[T] = None
    error: Optional[StorageError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap_or_none(self) -> Optional[T]:
        return self.value if self.error is None else None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "StorageResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: StorageError) -> "StorageResult[T]":
        return cls(error=error)


class KeyValueStore(Protocol):
    """Async string key-value store."""

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...


class InMemoryKeyValueStore:
    """Dictionary-backed store. Not shared between processes."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data


class RedisKeyValueStore:
    """
    Redis-backed store.

    Key pattern: {redis_key_prefix}{key}, e.g. crisis:v1:user_safety_plan
    """

    def __init__(self, redis_client: Redis, key_prefix: str = ""):
        self.redis = redis_client
        self.key_prefix = key_prefix

    def _key(self, key: str) -> str:
        """Generate key with namespace."""
        return f"{self.key_prefix}{key}"

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self.redis.get(self._key(key))
        except RedisError as e:
            logger.error(f"Failed to read key {key}: {e}")
            raise StorageError(f"Redis read failed: {e}", key=key) from e

    async def set(self, key: str, value: str) -> None:
        try:
            await self.redis.set(self._key(key), value)
        except RedisError as e:
            logger.error(f"Failed to write key {key}: {e}")
            raise StorageError(f"Redis write failed: {e}", key=key) from e

    async def delete(self, key: str) -> None:
        try:
            await self.redis.delete(self._key(key))
        except RedisError as e:
            logger.error(f"Failed to delete key {key}: {e}")
            raise StorageError(f"Redis delete failed: {e}", key=key) from e


async def get_key_value_store(config: Optional[Settings] = None) -> KeyValueStore:
    """
    Build the configured key-value store.

    Returns an in-memory store when configured to, or when Redis is
    unreachable (graceful degradation).
    """
    config = config or default_settings

    if config.storage_backend == "memory":
        logger.info("Using in-memory key-value store")
        return InMemoryKeyValueStore()

    client = await get_redis(config)
    if client is None:
        logger.warning("Redis unavailable, using in-memory fallback for crisis storage")
        return InMemoryKeyValueStore()

    return RedisKeyValueStore(client, key_prefix=config.redis_key_prefix)
