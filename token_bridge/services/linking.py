"""
Issue handles for fresh token bundles and move claimed bundles into Redis.
"""

from __future__ import annotations

import logging

from token_bridge.clients.redis_store import RedisTokenStore
from token_bridge.models import TokenBundle
from token_bridge.services.handles import (
    EphemeralHandleStore,
    HandleNotFoundError,
    generate_handle_async,
)

logger = logging.getLogger(__name__)


class TokenLinkService:
    """Two halves of the handshake: hand out a handle, later claim it for a user."""

    def __init__(self, *, handle_store: EphemeralHandleStore, durable_store: RedisTokenStore) -> None:
        self._handles = handle_store
        self._store = durable_store

    async def issue_handle(self, bundle: TokenBundle) -> str:
        """Park ``bundle`` in memory and return the handle that claims it."""
        handle = await generate_handle_async()
        await self._handles.insert(handle, bundle)
        logger.info("Issued handle %s...", handle[:4])
        return handle

    async def link(self, *, handle: str, identity: str) -> None:
        """
        Persist the bundle held under ``handle`` for ``identity``.

        The handle is dropped only after Redis confirms the write, so a failed
        write can be retried with the same handle. Holding the handle's lock
        for the whole sequence means two concurrent claims cannot both write.

        Raises ``HandleNotFoundError`` for unknown, expired or consumed
        handles, ``TokenSerializationError`` if the bundle cannot be encoded,
        and ``DurableStoreUnavailableError`` if Redis rejects the write.
        """
        async with self._handles.locked(handle):
            bundle = self._handles.peek(handle)
            if bundle is None:
                raise HandleNotFoundError("Unknown or already used handle.")

            record = bundle.to_record()
            await self._store.set(identity, record)
            self._handles.discard(handle)

        logger.info("Linked handle %s... to identity %s", handle[:4], identity)


__all__ = ["TokenLinkService"]
