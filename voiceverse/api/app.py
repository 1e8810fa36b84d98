"""
FastAPI Application Module

This module provides the main FastAPI application setup with
all routes, middleware, and configuration.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException

from .auth import APIAuthenticator, JWTConfig
from .base import (
    APIException,
    AuthenticationError,
    AuthorizationError,
    ErrorCode,
    NotFoundError,
    ServiceError,
    ValidationError,
    error_response,
)
from .middleware import (
    LogConfig,
    RequestLogMiddleware,
    RequestTracker,
    RequestTrackingMiddleware,
)
from .routes import (
    health_router,
    auth_router,
    users_router,
    saved_voices_router,
    voice_router,
    translation_router,
    voice_translate_router,
    audio_router,
    feed_router,
    challenges_router,
    algorand_router,
    subscription_router,
    contact_router,
)
from ..billing import StripeClient, SubscriptionService, WebhookReconciler, build_plans
from ..blockchain import AlgorandClient
from ..config import VERCEL_ORIGIN_REGEX, AppConfig
from ..database.base import close_database, init_database
from ..notifications.email import EmailService
from ..storage import IMAGE_DIR, LocalStorage
from ..translation.providers import GoogleTranslateClient, LibreTranslateClient, WhisperClient
from ..voice.elevenlabs import ElevenLabsClient


logger = logging.getLogger(__name__)


# =============================================================================
# Exception Handlers
# =============================================================================


async def api_exception_handler(request: Request, exc: APIException):
    """Handle API exceptions."""
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(error_response(exc)))


async def http_exception_handler(request: Request, exc: HTTPException):
    """Map framework HTTP errors onto the API error envelope."""
    if exc.status_code == 401:
        error = AuthenticationError(str(exc.detail))
    elif exc.status_code == 403:
        error = AuthorizationError(str(exc.detail))
    elif exc.status_code == 404:
        error = NotFoundError("Resource", message=str(exc.detail))
    elif exc.status_code < 500:
        error = ValidationError(str(exc.detail), status_code=exc.status_code)
    else:
        error = ServiceError(str(exc.detail))

    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(error_response(error)))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Schema validation failures keep FastAPI's 422."""
    errors = jsonable_encoder(exc.errors())
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", [])[1:]) or None
    error = ValidationError(
        first.get("msg", "Invalid request"),
        field=field,
        details={"errors": errors},
        status_code=422,
        code=ErrorCode.VALIDATION_ERROR,
    )
    return JSONResponse(status_code=422, content=jsonable_encoder(error_response(error)))


async def generic_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")
    error = ServiceError("An unexpected error occurred")
    return JSONResponse(status_code=500, content=jsonable_encoder(error_response(error)))


# =============================================================================
# Application Factory
# =============================================================================


def create_app(config: Optional[AppConfig] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Provider clients are attached to ``app.state`` here rather than in the
    lifespan, so an app driven without lifespan events still resolves its
    dependencies.

    Args:
        config: Application configuration

    Returns:
        Configured FastAPI application
    """
    config = config or AppConfig.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting VoiceVerse API ({config.environment})...")

        db = init_database(
            database_url=config.database_url,
            pool_size=config.database_pool_size,
            echo=config.debug,
        )

        # Create tables if they don't exist (for development)
        if config.debug or "sqlite" in config.database_url:
            logger.info("Creating database tables...")
            await db.create_all()

        if await db.health_check():
            logger.info("Database connection established successfully")
        else:
            logger.error("Database connection failed!")

        if config.dev_bypass_enabled:
            logger.warning("Development auth bypass is enabled")

        yield

        logger.info("Shutting down VoiceVerse API...")
        for client in (app.state.elevenlabs, app.state.google_translate, app.state.libretranslate, app.state.whisper):
            await client.close()
        await close_database()
        logger.info("Database connection closed")

    app = FastAPI(
        title=config.title,
        description=config.description,
        version=config.version,
        docs_url="/docs" if config.docs_enabled else None,
        redoc_url="/redoc" if config.docs_enabled else None,
        openapi_url="/openapi.json" if config.docs_enabled else None,
        lifespan=lifespan,
    )

    # ==========================================================================
    # Application State
    # ==========================================================================

    app.state.config = config
    app.state.authenticator = APIAuthenticator(
        JWTConfig(
            secret_key=config.jwt_secret,
            access_token_expire_hours=config.jwt_expires_in,
            allow_unverified_firebase=config.firebase_allow_unverified,
        )
    )

    storage = LocalStorage(base_path=config.upload_dir, base_url="/uploads")
    storage.ensure_directories()
    app.state.storage = storage

    app.state.elevenlabs = ElevenLabsClient(api_key=config.elevenlabs_api_key)
    app.state.google_translate = GoogleTranslateClient(api_key=config.google_translate_api_key)
    app.state.libretranslate = LibreTranslateClient(
        api_url=config.libretranslate_api_url,
        api_key=config.libretranslate_api_key,
    )
    app.state.whisper = WhisperClient(api_key=config.openai_api_key)

    email = EmailService(config.email_config())
    stripe = StripeClient(config.stripe_config())
    app.state.email = email
    app.state.stripe = stripe
    app.state.subscriptions = SubscriptionService(stripe, email, build_plans(config.stripe_price_ids))
    app.state.webhooks = WebhookReconciler(email)
    app.state.algorand = AlgorandClient(config.algorand_config())

    # ==========================================================================
    # Add Middleware (order matters - first added = innermost)
    # ==========================================================================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_origin_regex=VERCEL_ORIGIN_REGEX,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Range", "Accept-Ranges", "Content-Length", "X-Request-ID"],
    )

    # Tracking wraps access logging so the log line sees the live request context
    if config.log_requests:
        app.add_middleware(RequestLogMiddleware, config=LogConfig())

    app.add_middleware(RequestTrackingMiddleware, tracker=RequestTracker())

    # ==========================================================================
    # Add Exception Handlers
    # ==========================================================================

    app.add_exception_handler(APIException, api_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    # ==========================================================================
    # Add Routes
    # ==========================================================================

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(users_router)
    # Saved voices before /api/voice so "/saved" is not taken for a voice id
    app.include_router(saved_voices_router)
    app.include_router(voice_router)
    app.include_router(translation_router)
    app.include_router(voice_translate_router)
    app.include_router(audio_router)
    app.include_router(feed_router)
    app.include_router(challenges_router)
    app.include_router(algorand_router)
    app.include_router(subscription_router)
    app.include_router(contact_router)

    app.mount("/uploads", StaticFiles(directory=str(storage.base_path)), name="uploads")
    app.mount("/api/images", StaticFiles(directory=str(storage.base_path / IMAGE_DIR)), name="images")

    return app


# =============================================================================
# Default App Instance
# =============================================================================


app = create_app()


# =============================================================================
# Entry Point
# =============================================================================


def run_server(
    host: str = "0.0.0.0",
    port: int = 5000,
    reload: bool = False,
):
    """Run the API server."""
    import uvicorn

    uvicorn.run(
        "voiceverse.api.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


if __name__ == "__main__":
    run_server(reload=True)
