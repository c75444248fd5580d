"""Secret-gated read access to stored token records."""

from __future__ import annotations

import hmac
import logging
from typing import Optional

from token_bridge.clients.redis_store import RedisTokenStore

logger = logging.getLogger(__name__)


class LookupRejectedError(Exception):
    """Raised when the caller's secret is missing or wrong."""


class GatedLookupService:
    """Return stored token records to callers that present the shared secret."""

    def __init__(self, *, durable_store: RedisTokenStore, secret: str) -> None:
        if not secret:
            raise ValueError("Lookup secret must be provided.")
        self._store = durable_store
        self._secret = secret.encode("utf-8")

    def verify_secret(self, presented: Optional[str]) -> None:
        if presented is None or not hmac.compare_digest(
            presented.encode("utf-8"), self._secret
        ):
            logger.warning(
                "Rejected token lookup with %s secret",
                "missing" if presented is None else "mismatched",
            )
            raise LookupRejectedError("Lookup secret rejected.")

    async def fetch(self, *, identity: str, presented_secret: Optional[str]) -> str:
        """Return the raw record for ``identity`` once the secret checks out."""
        self.verify_secret(presented_secret)
        return await self._store.get(identity)


__all__ = ["GatedLookupService", "LookupRejectedError"]
