"""
Handle generation and the in-memory store that holds token bundles until a
Telegram user claims them.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import string
import time
from collections import OrderedDict
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Callable, Dict, Optional

from token_bridge.models import TokenBundle

logger = logging.getLogger(__name__)

HANDLE_ALPHABET = string.ascii_letters + string.digits
HANDLE_LENGTH = 20


class HandleNotFoundError(Exception):
    """Raised for handles that were never issued, already claimed, or expired."""


def generate_handle(length: int = HANDLE_LENGTH) -> str:
    """Return a random alphanumeric handle of ``length`` characters."""
    return "".join(secrets.choice(HANDLE_ALPHABET) for _ in range(length))


async def generate_handle_async(length: int = HANDLE_LENGTH) -> str:
    """Generate a handle on a worker thread so the event loop never waits on entropy."""
    return await asyncio.to_thread(generate_handle, length)


@dataclass
class _Entry:
    bundle: TokenBundle
    expires_at: float


@dataclass
class _KeyLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class EphemeralHandleStore:
    """
    Maps handles to token bundles for a bounded time.

    Operations on one handle are serialized through a lock owned by that
    handle; different handles never wait on each other. Locks exist only
    while a task holds or waits for them.

    Entries expire ``ttl_seconds`` after insertion, and once ``max_entries``
    is reached the oldest insertion is dropped to make room. Handles whose
    lock is held or awaited are skipped by both kinds of eviction.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = 900,
        max_entries: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, _Entry]" = OrderedDict()
        self._locks: Dict[str, _KeyLock] = {}

    def __len__(self) -> int:
        return len(self._entries)

    @asynccontextmanager
    async def locked(self, handle: str) -> AsyncIterator[None]:
        """Hold the per-handle lock for a multi-step operation on ``handle``."""
        key_lock = self._locks.get(handle)
        if key_lock is None:
            key_lock = self._locks[handle] = _KeyLock()
        key_lock.users += 1
        try:
            async with key_lock.lock:
                yield
        finally:
            key_lock.users -= 1
            if key_lock.users == 0:
                self._locks.pop(handle, None)

    def _live_entry(self, handle: str) -> Optional[_Entry]:
        entry = self._entries.get(handle)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            self._entries.pop(handle, None)
            logger.info("Handle %s expired before it was claimed", handle[:4])
            return None
        return entry

    def _prune(self) -> None:
        # Handles with a registered lock are mid-operation and are never
        # evicted; the store may run over capacity until they are released.
        now = self._clock()
        excess = len(self._entries) - self._max_entries + 1
        victims = []
        for handle, entry in self._entries.items():
            expired = entry.expires_at <= now
            if not expired and excess <= 0:
                break
            if handle in self._locks:
                continue
            victims.append((handle, expired))
            excess -= 1

        for handle, expired in victims:
            del self._entries[handle]
            if not expired:
                logger.warning("Handle store full; evicted oldest handle %s", handle[:4])
        if excess > 0:
            logger.warning(
                "Handle store over capacity; %d oldest handles are in use", excess
            )

    async def insert(self, handle: str, bundle: TokenBundle) -> None:
        """Store ``bundle`` under ``handle``; an existing entry is replaced."""
        async with self.locked(handle):
            self.put(handle, bundle)

    async def get(self, handle: str) -> Optional[TokenBundle]:
        """Return the bundle for ``handle`` without removing it."""
        async with self.locked(handle):
            return self.peek(handle)

    async def remove(self, handle: str) -> None:
        """Drop ``handle``; unknown handles are ignored."""
        async with self.locked(handle):
            self.discard(handle)

    # put, peek and discard expect the caller to hold ``locked(handle)``.

    def put(self, handle: str, bundle: TokenBundle) -> None:
        self._entries.pop(handle, None)
        self._prune()
        self._entries[handle] = _Entry(bundle=bundle, expires_at=self._clock() + self._ttl)

    def peek(self, handle: str) -> Optional[TokenBundle]:
        entry = self._live_entry(handle)
        return entry.bundle if entry else None

    def discard(self, handle: str) -> None:
        self._entries.pop(handle, None)


__all__ = [
    "EphemeralHandleStore",
    "HANDLE_ALPHABET",
    "HANDLE_LENGTH",
    "HandleNotFoundError",
    "generate_handle",
    "generate_handle_async",
]
