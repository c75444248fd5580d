"""Redis-backed durable storage for linked token records."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from redis import asyncio as redis_asyncio
from redis.exceptions import RedisError

from token_bridge.models import TokenSerializationError

if TYPE_CHECKING:
    from token_bridge.services.token_cipher import TokenCipherService

logger = logging.getLogger(__name__)


class DurableStoreUnavailableError(Exception):
    """Raised when Redis cannot be reached or rejects the command."""


class DurableRecordNotFoundError(Exception):
    """Raised when no record is stored under the requested key."""


class RedisTokenStore:
    """
    Thin async gateway over Redis ``SET``/``GET``.

    One client (and its connection pool) is created at startup and shared by
    every request. Records never receive a TTL here; Redis retention policy
    governs expiry.
    """

    def __init__(
        self,
        redis_client: "redis_asyncio.Redis",
        *,
        key_prefix: str = "",
        cipher: Optional["TokenCipherService"] = None,
    ) -> None:
        self._redis = redis_client
        self._prefix = key_prefix
        self._cipher = cipher

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        key_prefix: str = "",
        cipher: Optional["TokenCipherService"] = None,
    ) -> "RedisTokenStore":
        client = redis_asyncio.from_url(url, decode_responses=True)
        return cls(client, key_prefix=key_prefix, cipher=cipher)

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, overwriting any previous record."""
        payload = self._cipher.encrypt(value) if self._cipher else value
        try:
            await self._redis.set(self._key(key), payload)
        except RedisError as exc:
            logger.error("Redis SET failed for key %s: %s", key, exc)
            raise DurableStoreUnavailableError("Durable store unavailable.") from exc

    async def get(self, key: str) -> str:
        """Return the record stored under ``key``."""
        try:
            payload = await self._redis.get(self._key(key))
        except RedisError as exc:
            logger.error("Redis GET failed for key %s: %s", key, exc)
            raise DurableStoreUnavailableError("Durable store unavailable.") from exc

        if payload is None:
            raise DurableRecordNotFoundError(f"No record stored for {key}.")
        if isinstance(payload, bytes):
            payload = payload.decode("utf-8")
        if not self._cipher:
            return payload
        try:
            return self._cipher.decrypt(payload)
        except ValueError as exc:
            raise TokenSerializationError(f"Record for {key} could not be decrypted.") from exc

    async def ping(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except RedisError as exc:
            logger.warning("Redis ping failed: %s", exc)
            return False

    async def close(self) -> None:
        await self._redis.aclose()


__all__ = [
    "DurableRecordNotFoundError",
    "DurableStoreUnavailableError",
    "RedisTokenStore",
]
