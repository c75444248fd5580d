"""Expose constructed client wrappers."""

from .github_oauth import GitHubOAuthClient, OAuthTokenExchangeError
from .redis_store import (
    DurableRecordNotFoundError,
    DurableStoreUnavailableError,
    RedisTokenStore,
)

__all__ = [
    "DurableRecordNotFoundError",
    "DurableStoreUnavailableError",
    "GitHubOAuthClient",
    "OAuthTokenExchangeError",
    "RedisTokenStore",
]
