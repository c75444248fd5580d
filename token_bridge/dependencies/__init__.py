"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_durable_store,
    get_github_oauth_client,
    get_link_service,
    get_lookup_service,
)
from .config import get_app_settings, get_container
from .container import ServiceContainer

__all__ = [
    "ServiceContainer",
    "get_app_settings",
    "get_container",
    "get_durable_store",
    "get_github_oauth_client",
    "get_link_service",
    "get_lookup_service",
]
