"""
FastAPI application entrypoint for the token bridge.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from token_bridge import __version__
from token_bridge.api.routes import API_PREFIX, validation_error_handler
from token_bridge.api.routes import router as api_router
from token_bridge.core.config import AppSettings, get_settings
from token_bridge.core.logging import configure_logging
from token_bridge.dependencies import ServiceContainer


def create_app(
    settings: Optional[AppSettings] = None,
    container: Optional[ServiceContainer] = None,
) -> FastAPI:
    """Factory for the FastAPI application."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    container = container or ServiceContainer(settings)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        await container.shutdown()

    app = FastAPI(
        title="GitHub Token Bridge",
        version=__version__,
        description="Links GitHub OAuth grants to Telegram users.",
        lifespan=lifespan,
    )
    app.state.container = container
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.include_router(api_router, prefix=API_PREFIX)
    return app


app = create_app()

__all__ = ["app", "create_app"]
