"""
FastAPI dependency utilities for injecting configuration and shared clients.
"""

from fastapi import Request

from token_bridge.core.config import AppSettings
from token_bridge.dependencies.container import ServiceContainer


def get_container(request: Request) -> ServiceContainer:
    """Return the container built by ``create_app``."""
    return request.app.state.container


def get_app_settings(request: Request) -> AppSettings:
    """FastAPI dependency returning application settings."""
    return get_container(request).settings


__all__ = ["get_app_settings", "get_container"]
