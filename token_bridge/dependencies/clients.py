"""
Accessors exposing the container's shared clients and services as FastAPI
dependencies. Tests replace them through ``app.dependency_overrides``.
"""

from fastapi import Request

from token_bridge.clients import GitHubOAuthClient, RedisTokenStore
from token_bridge.dependencies.config import get_container
from token_bridge.services import GatedLookupService, TokenLinkService


def get_github_oauth_client(request: Request) -> GitHubOAuthClient:
    return get_container(request).oauth_client


def get_durable_store(request: Request) -> RedisTokenStore:
    return get_container(request).durable_store


def get_link_service(request: Request) -> TokenLinkService:
    return get_container(request).link_service


def get_lookup_service(request: Request) -> GatedLookupService:
    return get_container(request).lookup_service


__all__ = [
    "get_durable_store",
    "get_github_oauth_client",
    "get_link_service",
    "get_lookup_service",
]
