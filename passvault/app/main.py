"""
FastAPI Application Factory
===========================

Entry point for the passvault API that serves the password vault web client.

Architecture:
    Web client → passvault API (this service) → Discord OAuth / account database

Routers:
    - /api/auth/*   : Discord login redirect and OAuth callback
    - /api/user/me  : Signed-in user's profile (requires session JWT)
    - /api/passwords: Signed-in user's stored passwords (requires session JWT)
    - /health       : Health check endpoint

Environment Variables Required:
    - JWT_SECRET: Secret for signing session JWTs (32+ characters)
    - DISCORD_CLIENT_ID: Discord application client ID
    - DISCORD_CLIENT_SECRET: Discord application client secret
    - SERVER_URL: Public base URL of this API in production
    - CLIENT_URL: Public base URL of the web client in production
    - ENVIRONMENT: DEVELOPMENT to use DEV_SERVER_URL / DEV_CLIENT_URL instead
    - LOG_LEVEL: Logging level (default: INFO)

Running the Service:
    Development:
        ENVIRONMENT=DEVELOPMENT uvicorn passvault.app.main:create_app --factory --reload --port 8080

    Production:
        uvicorn passvault.app.main:create_app --factory --host 0.0.0.0 --port 8080 --workers 4

Note: with the in-memory database each worker keeps its own accounts; run a
single worker unless a shared Database implementation is passed in.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Dict, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .accounts import AccountStore, Database, InMemoryDatabase
from .auth.discord import DiscordClient
from .auth.routes import auth_router
from .auth.session import SessionTokenIssuer
from .config import Settings, get_settings, validate_configuration
from .users.routes import users_router

SERVICE_NAME = "passvault"
SERVICE_VERSION = "1.0.0"


# Configure structured JSON logging
def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s", "module": "%(module)s", "function": "%(funcName)s"}',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


# Lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup tasks:
        - Configure logging
        - Log the configuration validation report

    Nothing needs releasing on shutdown; outbound HTTP clients are opened
    per request.
    """
    settings: Settings = app.state.settings

    setup_logging(settings.LOG_LEVEL)
    logger = logging.getLogger("passvault.main")

    report = validate_configuration(settings)
    for warning in report["warnings"]:
        logger.warning(f"Configuration warning: {warning}")
    for error in report["errors"]:
        logger.error(f"Configuration error: {error}")

    logger.info(
        "passvault API started",
        extra={
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "environment": report["environment"],
            "redirect_uri": report["redirect_uri"],
        }
    )

    yield

    logger.info("passvault API shutdown complete")


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    discord_client: Optional[DiscordClient] = None,
) -> FastAPI:
    """
    Application factory function.

    Builds every component once from the given settings and keeps them on
    app.state for the request dependencies.

    Args:
        settings: Settings to use; loaded from the environment when omitted
        database: Account database; an InMemoryDatabase when omitted
        discord_client: Discord client; built from settings when omitted

    Returns:
        FastAPI: Configured application instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="passvault API",
        description="Discord-authenticated password vault API",
        version=SERVICE_VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.state.settings = settings
    app.state.discord_client = discord_client or DiscordClient(settings)
    app.state.account_store = AccountStore(
        database if database is not None else InMemoryDatabase(),
        serialize_upserts=settings.SERIALIZE_ACCOUNT_UPSERTS,
    )
    app.state.token_issuer = SessionTokenIssuer.from_settings(settings)

    origins = settings.allowed_origins_list
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            allow_headers=["*"],
        )

    app.include_router(auth_router)
    app.include_router(users_router)

    @app.get("/health", tags=["System"])
    async def health_check() -> Dict[str, str]:
        return {
            "status": "ok",
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
        }

    @app.get("/", tags=["System"])
    async def root() -> Dict[str, object]:
        """Service metadata and available endpoints."""
        return {
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "endpoints": {
                "health": "/health",
                "docs": "/docs",
                "login": "/api/auth",
                "callback": "/api/auth/callback",
                "profile": "/api/user/me",
                "passwords": "/api/passwords",
            }
        }

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """
        Log unhandled errors and return a standardized 500 response.
        """
        logger = logging.getLogger("passvault.main")
        logger.error(
            f"Unhandled exception: {str(exc)}",
            extra={
                "path": request.url.path,
                "method": request.method,
                "exception_type": type(exc).__name__
            },
            exc_info=True
        )

        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred",
                "detail": str(exc) if settings.LOG_LEVEL == "DEBUG" else None
            }
        )

    return app


if __name__ == "__main__":
    settings = get_settings()

    uvicorn.run(
        "passvault.app.main:create_app",
        factory=True,
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=settings.is_development,
        log_level=settings.LOG_LEVEL.lower()
    )
