"""FastAPI application wiring ``DiscordStrategy`` behind a session cookie.

Run with ``uvicorn discord_strategy.main:create_app --factory``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from discord_strategy import router as auth
from discord_strategy.config import Settings, get_settings
from discord_strategy.logging_config import configure_logging
from discord_strategy.oauth2 import AuthorizationError, VerifyCallback
from discord_strategy.strategy import DiscordStrategy

_logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    configure_logging()
    _logger.info("Starting Discord login service")
    yield
    _logger.info("Shutting down Discord login service")


def create_app(
    settings: Settings | None = None,
    *,
    verify: VerifyCallback | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build and return the FastAPI application.

    Raises ``DiscordConfigurationError`` when the settings describe an
    invalid strategy; the app is never built in that case.
    """
    if settings is None:
        settings = get_settings()

    strategy = DiscordStrategy(
        settings.strategy_options(),
        verify or auth.default_verify,
        transport=transport,
    )

    application = FastAPI(
        title="Discord login",
        version="0.1.0",
        lifespan=lifespan,
    )
    application.state.discord_strategy = strategy

    application.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        https_only=settings.is_production,
        same_site="lax",
    )

    application.include_router(auth.router)

    # -- Exception handlers ----------------------------------------------------
    @application.exception_handler(AuthorizationError)
    async def _authorization_error_handler(
        _request: Request, exc: AuthorizationError
    ) -> JSONResponse:
        return JSONResponse(status_code=401, content={"detail": str(exc)})

    @application.exception_handler(Exception)
    async def _global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch unhandled exceptions and return a clean JSON error response."""
        _logger.exception(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
            },
        )

        # Don't expose internal details in production
        if settings.is_production:
            return JSONResponse(
                status_code=500,
                content={"detail": "Internal server error"},
            )
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "error": str(exc),
                "type": type(exc).__name__,
            },
        )

    return application
