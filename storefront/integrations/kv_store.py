"""Key-value persistence used by the cart and the checkout return handoff.

Values are JSON documents. Redis is the durable backend; when it is not
configured or stops answering, storage continues in process memory.
"""
from __future__ import annotations

import json
import time
from typing import Any, Protocol

import redis

from logging_config import logger


class KeyValueStore(Protocol):
    def get(self, key: str) -> Any: ...

    def set(self, key: str, value: Any, ttl: int | None = None) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryKeyValueStore:
    """Process-local store with optional per-key expiry."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._expires_at: dict[str, float] = {}

    def _expired(self, key: str) -> bool:
        deadline = self._expires_at.get(key)
        if deadline is not None and time.monotonic() >= deadline:
            self._data.pop(key, None)
            self._expires_at.pop(key, None)
            return True
        return False

    def get(self, key: str) -> Any:
        if self._expired(key):
            return None
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        self._data[key] = json.dumps(value, ensure_ascii=False)
        if ttl:
            self._expires_at[key] = time.monotonic() + ttl
        else:
            self._expires_at.pop(key, None)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)
        self._expires_at.pop(key, None)


class RedisKeyValueStore:
    """Redis-backed store that degrades to memory on connection problems."""

    def __init__(self, redis_url: str | None):
        self._redis_url = redis_url
        self._memory = MemoryKeyValueStore()
        self._client = self._init_client()

    @property
    def is_durable(self) -> bool:
        return self._client is not None

    def _init_client(self):
        if not self._redis_url:
            logger.warning("REDIS_URL is not set; key-value store uses in-memory fallback")
            return None

        try:
            client = redis.from_url(
                self._redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
            client.ping()
            logger.info("Redis key-value store enabled")
            return client
        except redis.RedisError as exc:
            logger.warning("Redis init failed, fallback to in-memory: %s", exc)
            return None

    def _switch_to_memory_fallback(self, reason: Exception) -> None:
        logger.warning("Redis fallback to memory mode: %s", reason)
        self._client = None

    def get(self, key: str) -> Any:
        if not self._client:
            return self._memory.get(key)
        try:
            raw = self._client.get(key)
        except redis.RedisError as exc:
            self._switch_to_memory_fallback(exc)
            return self._memory.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Discarding undecodable value under %s", key)
            return None

    def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        if self._client:
            serialized = json.dumps(value, ensure_ascii=False)
            try:
                if ttl:
                    self._client.setex(key, ttl, serialized)
                else:
                    self._client.set(key, serialized)
                return
            except redis.RedisError as exc:
                self._switch_to_memory_fallback(exc)
        self._memory.set(key, value, ttl)

    def delete(self, key: str) -> None:
        if self._client:
            try:
                self._client.delete(key)
                return
            except redis.RedisError as exc:
                self._switch_to_memory_fallback(exc)
        self._memory.delete(key)
