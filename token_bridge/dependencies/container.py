"""Composition root wiring settings into shared clients and services."""

from __future__ import annotations

import logging
from typing import Optional

from token_bridge.clients import GitHubOAuthClient, RedisTokenStore
from token_bridge.core.config import AppSettings
from token_bridge.services import (
    EphemeralHandleStore,
    GatedLookupService,
    TokenCipherService,
    TokenLinkService,
)

logger = logging.getLogger(__name__)


class ServiceContainer:
    """Owns every long-lived component; built once per application."""

    def __init__(
        self,
        settings: AppSettings,
        *,
        oauth_client: Optional[GitHubOAuthClient] = None,
        durable_store: Optional[RedisTokenStore] = None,
        handle_store: Optional[EphemeralHandleStore] = None,
    ) -> None:
        self.settings = settings
        self.oauth_client = oauth_client or GitHubOAuthClient(settings.github)

        cipher = None
        if settings.security.token_encryption_secret:
            cipher = TokenCipherService(secret=settings.security.token_encryption_secret)
        self.durable_store = durable_store or RedisTokenStore.from_url(
            settings.redis.url,
            key_prefix=settings.redis.key_prefix,
            cipher=cipher,
        )
        self.handle_store = handle_store or EphemeralHandleStore(
            ttl_seconds=settings.handles.ttl_seconds,
            max_entries=settings.handles.max_entries,
        )
        self.link_service = TokenLinkService(
            handle_store=self.handle_store,
            durable_store=self.durable_store,
        )
        self.lookup_service = GatedLookupService(
            durable_store=self.durable_store,
            secret=settings.security.lookup_secret,
        )

    async def shutdown(self) -> None:
        logger.info("Closing Redis connection pool")
        await self.durable_store.close()


__all__ = ["ServiceContainer"]
