"""Key/value storage that carts are mirrored into (get/set/remove by string key)."""
from __future__ import annotations

import logging
import os
from typing import Optional

import redis

logger = logging.getLogger(__name__)


class MemoryStorage:
    """Process-local storage. Lost on restart."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class RedisStorage:
    """Redis-backed storage; every write refreshes a 24h TTL."""

    EXPIRY_SECONDS = 24 * 60 * 60

    def __init__(self, client) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisStorage":
        client = redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )
        return cls(client)

    def get(self, key: str) -> Optional[str]:
        return self._client.get(key)

    def set(self, key: str, value: str) -> None:
        self._client.setex(key, self.EXPIRY_SECONDS, value)

    def remove(self, key: str) -> None:
        self._client.delete(key)


def build_storage(url: Optional[str] = None):
    """Redis when REDIS_URL is set and answers a ping, memory otherwise."""
    url = url or os.getenv("REDIS_URL")
    if not url:
        logger.warning("REDIS_URL is not set; carts use in-memory storage")
        return MemoryStorage()
    try:
        storage = RedisStorage.from_url(url)
        storage._client.ping()
    except (redis.RedisError, ValueError) as exc:
        logger.warning("Redis cart storage init failed, fallback to memory: %s", exc)
        return MemoryStorage()
    logger.info("Redis cart storage enabled")
    return storage
