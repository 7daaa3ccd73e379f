"""
Key-Value Stores
================
The storage seam behind sessions, booking drafts and the message guard.

Keys are `<namespace>:<id>` strings (e.g. `session:9627...`, `draft:9627...`).
Two backends:

- InMemoryStore: process-lifetime dict, values stored as-is (the same object
  comes back on every read)
- RedisStore: redis.asyncio, values JSON-encoded through a per-namespace codec
"""
import json
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Callable, Dict, Optional, Tuple

import redis.asyncio as redis
from redis import exceptions as redis_exceptions
from loguru import logger


Encoder = Callable[[Any], Any]
Decoder = Callable[[Any], Any]


class KeyValueStore(ABC):
    """Async key-value storage used by SessionManager and MessageGuard"""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        ...

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...

    @abstractmethod
    def items(self, prefix: str = "") -> AsyncIterator[Tuple[str, Any]]:
        """Iterate over (key, value) pairs whose key starts with `prefix`"""

    async def close(self) -> None:
        return None


class InMemoryStore(KeyValueStore):
    """Dict-backed store; nothing expires and nothing survives a restart"""

    def __init__(self):
        self._data: Dict[str, Any] = {}

    async def get(self, key: str) -> Optional[Any]:
        return self._data.get(key)

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def items(self, prefix: str = "") -> AsyncIterator[Tuple[str, Any]]:
        # Snapshot so callers may delete while iterating
        for key, value in list(self._data.items()):
            if key.startswith(prefix):
                yield key, value

    def __len__(self) -> int:
        return len(self._data)


class RedisStore(KeyValueStore):
    """
    Redis-backed store.

    Values under a namespace with a registered codec are converted with the
    codec's encoder before JSON serialization and rebuilt with its decoder on
    read; other values must already be JSON-friendly.
    """

    def __init__(
        self,
        client: "redis.Redis",
        key_prefix: str = "ibtisama",
        codecs: Optional[Dict[str, Tuple[Encoder, Decoder]]] = None,
    ):
        self.redis = client
        self.key_prefix = key_prefix
        self.codecs = dict(codecs or {})

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisStore":
        client = redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=3,
            socket_timeout=5,
            socket_keepalive=True,
            retry_on_timeout=False,
        )
        logger.info(f"✅ Redis store connected ({url.split('@')[-1]})")
        return cls(client, **kwargs)

    def register_codec(self, namespace: str, encoder: Encoder, decoder: Decoder) -> None:
        self.codecs[namespace] = (encoder, decoder)

    def _redis_key(self, key: str) -> str:
        return f"{self.key_prefix}:{key}"

    def _codec(self, key: str) -> Optional[Tuple[Encoder, Decoder]]:
        return self.codecs.get(key.split(":", 1)[0])

    def _encode(self, key: str, value: Any) -> str:
        codec = self._codec(key)
        payload = codec[0](value) if codec else value
        return json.dumps(payload, ensure_ascii=False)

    def _decode(self, key: str, raw: str) -> Any:
        payload = json.loads(raw)
        codec = self._codec(key)
        return codec[1](payload) if codec else payload

    async def get(self, key: str) -> Optional[Any]:
        try:
            raw = await self.redis.get(self._redis_key(key))
        except (redis_exceptions.ConnectionError, redis_exceptions.TimeoutError) as exc:
            logger.error(f"🔴 REDIS READ FAILED for {key[:40]}: {exc}")
            return None
        if raw is None:
            return None
        try:
            return self._decode(key, raw)
        except (json.JSONDecodeError, TypeError, ValueError) as exc:
            logger.error(f"⚠️ Dropping unreadable value at {key[:40]}: {exc}")
            return None

    async def set(self, key: str, value: Any) -> None:
        try:
            await self.redis.set(self._redis_key(key), self._encode(key, value))
        except (redis_exceptions.ConnectionError, redis_exceptions.TimeoutError) as exc:
            logger.error(f"🔴 REDIS WRITE FAILED for {key[:40]}: {exc}")

    async def delete(self, key: str) -> None:
        try:
            await self.redis.delete(self._redis_key(key))
        except (redis_exceptions.ConnectionError, redis_exceptions.TimeoutError) as exc:
            logger.error(f"🔴 REDIS DELETE FAILED for {key[:40]}: {exc}")

    async def items(self, prefix: str = "") -> AsyncIterator[Tuple[str, Any]]:
        strip = len(self.key_prefix) + 1
        async for redis_key in self.redis.scan_iter(match=f"{self._redis_key(prefix)}*"):
            key = redis_key[strip:]
            value = await self.get(key)
            if value is not None:
                yield key, value

    async def close(self) -> None:
        await self.redis.aclose()
        logger.info("🛑 Redis store closed")
