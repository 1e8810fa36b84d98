"""
API Dependencies

This module provides FastAPI dependencies for database sessions,
authentication, configuration and the integration clients kept on the
application state.
"""

import logging
import uuid
from typing import AsyncGenerator, Optional

from fastapi import Depends, Header, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from ..billing import StripeClient, SubscriptionService, WebhookReconciler
from ..blockchain import AlgorandClient
from ..config import AppConfig
from ..database.base import get_session
from ..database.models import AudioFile, User
from ..database.repositories import AudioFileRepository, UserRepository
from ..notifications import EmailService
from ..storage import LocalStorage
from ..translation import GoogleTranslateClient, LibreTranslateClient, WhisperClient
from ..voice import ElevenLabsClient
from .auth import APIAuthenticator, FirebaseIdentity
from .base import (
    AuthenticationError,
    AuthorizationError,
    ErrorCode,
    NotFoundError,
    ValidationError,
)
from .middleware.tracking import set_user_id


logger = logging.getLogger(__name__)


DEV_USER_EMAIL = "dev@voiceverse.local"
DEV_USERNAME = "devuser"


# =============================================================================
# Database Session Dependency
# =============================================================================

async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for database sessions.

    Usage in routes:
        @router.get("/items")
        async def list_items(db: AsyncSession = Depends(get_db_session)):
            repo = ItemRepository(db)
            return await repo.get_all()
    """
    async with get_session() as session:
        yield session


# =============================================================================
# Application State
# =============================================================================

def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_authenticator(request: Request) -> APIAuthenticator:
    return request.app.state.authenticator


def get_storage(request: Request) -> LocalStorage:
    return request.app.state.storage


def get_elevenlabs(request: Request) -> ElevenLabsClient:
    return request.app.state.elevenlabs


def get_google_translate(request: Request) -> GoogleTranslateClient:
    return request.app.state.google_translate


def get_libretranslate(request: Request) -> LibreTranslateClient:
    return request.app.state.libretranslate


def get_whisper(request: Request) -> WhisperClient:
    return request.app.state.whisper


def get_stripe(request: Request) -> StripeClient:
    return request.app.state.stripe


def get_subscription_service(request: Request) -> SubscriptionService:
    return request.app.state.subscriptions


def get_webhook_reconciler(request: Request) -> WebhookReconciler:
    return request.app.state.webhooks


def get_algorand(request: Request) -> AlgorandClient:
    return request.app.state.algorand


def get_email(request: Request) -> EmailService:
    return request.app.state.email


# =============================================================================
# Security Schemes
# =============================================================================

bearer_scheme = HTTPBearer(auto_error=False)


async def get_token(
    authorization: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    x_auth_token: Optional[str] = Header(default=None),
) -> Optional[str]:
    """Extract the token from a Bearer header or ``x-auth-token``."""
    if authorization and authorization.scheme.lower() == "bearer":
        return authorization.credentials
    return x_auth_token or None


# =============================================================================
# User Resolution
# =============================================================================

async def resolve_firebase_user(db: AsyncSession, identity: FirebaseIdentity) -> User:
    """
    Find or provision the user for a Firebase identity.

    Users are matched by Firebase UID, then by email (linking the UID).
    Unknown identities get a new passwordless account.
    """
    users = UserRepository(db)

    user = await users.get_by_firebase_uid(identity.uid)
    if user:
        return user

    if identity.email:
        user = await users.get_by_email(identity.email)
        if user:
            user.firebase_uid = identity.uid
            if not user.avatar and identity.photo_url:
                user.avatar = identity.photo_url
            await db.flush()
            logger.info(f"Linked Firebase account {identity.uid} to user {user.id}")
            return user

    email = (identity.email or f"{identity.uid}@firebase.local").lower()
    base = identity.display_name or email.split("@")[0]
    base = "".join(ch for ch in base if ch.isalnum() or ch in "_-")[:20] or "user"
    username = await users.available_username(base)

    user = await users.create(
        email=email,
        username=username,
        firebase_uid=identity.uid,
        display_name=identity.display_name or username,
        avatar=identity.photo_url,
        is_verified=identity.email_verified,
    )
    logger.info(f"Provisioned user {user.id} for Firebase account {identity.uid}")
    return user


async def get_dev_user(db: AsyncSession) -> User:
    """Development user, created on first use."""
    users = UserRepository(db)
    user = await users.get_by_email(DEV_USER_EMAIL)
    if user is None:
        user = await users.create(
            email=DEV_USER_EMAIL,
            username=await users.available_username(DEV_USERNAME),
            display_name="Dev User",
            is_verified=True,
        )
        logger.info(f"Created development user {user.id}")
    return user


async def authenticate_token(
    db: AsyncSession,
    authenticator: APIAuthenticator,
    token: Optional[str],
    client_ip: Optional[str] = None,
) -> User:
    """Resolve a bearer token to its user."""
    if not token:
        raise AuthenticationError()

    context = authenticator.authenticate_jwt(token, client_ip=client_ip)
    if context.firebase is not None:
        return await resolve_firebase_user(db, context.firebase)

    user = await UserRepository(db).get_by_id(context.user_id)
    if user is None:
        raise AuthenticationError(
            message="Token is not valid",
            code=ErrorCode.INVALID_TOKEN,
        )
    return user


# =============================================================================
# Authentication Dependencies
# =============================================================================

async def get_current_user(
    request: Request,
    token: Optional[str] = Depends(get_token),
    db: AsyncSession = Depends(get_db_session),
    config: AppConfig = Depends(get_config),
    authenticator: APIAuthenticator = Depends(get_authenticator),
) -> User:
    """
    Authenticated user for the request.

    Usage in routes:
        @router.get("/me")
        async def me(user: User = Depends(get_current_user)):
            ...
    """
    client_ip = request.client.host if request.client else None
    try:
        user = await authenticate_token(db, authenticator, token, client_ip)
    except AuthenticationError:
        if not config.dev_bypass_enabled:
            raise
        logger.debug("Dev mode: resolving request to the development user")
        user = await get_dev_user(db)

    set_user_id(user.id)
    return user


async def get_optional_user(
    request: Request,
    token: Optional[str] = Depends(get_token),
    db: AsyncSession = Depends(get_db_session),
    authenticator: APIAuthenticator = Depends(get_authenticator),
) -> Optional[User]:
    """Authenticated user, or None when the request carries no valid token."""
    if not token:
        return None
    client_ip = request.client.host if request.client else None
    try:
        return await authenticate_token(db, authenticator, token, client_ip)
    except AuthenticationError:
        return None


# =============================================================================
# Validation Helpers
# =============================================================================

def parse_uuid(value: str, message: str = "Invalid ID format") -> str:
    """Validate a path id, raising a 400 for malformed values."""
    try:
        return str(uuid.UUID(value))
    except (ValueError, AttributeError):
        raise ValidationError(message)


async def load_owned_audio(db: AsyncSession, audio_id: str, user: User) -> AudioFile:
    """Audio file owned by the user: 404 when missing, 403 when not theirs."""
    audio = await AudioFileRepository(db).get_by_id(audio_id)
    if not audio:
        raise NotFoundError("Audio file", audio_id)
    if audio.user_id != user.id:
        raise AuthorizationError("Not authorized to use this audio file")
    return audio


__all__ = [
    "get_db_session",
    "get_config",
    "get_authenticator",
    "get_storage",
    "get_elevenlabs",
    "get_google_translate",
    "get_libretranslate",
    "get_whisper",
    "get_stripe",
    "get_subscription_service",
    "get_webhook_reconciler",
    "get_algorand",
    "get_email",
    "bearer_scheme",
    "get_token",
    "resolve_firebase_user",
    "get_dev_user",
    "authenticate_token",
    "get_current_user",
    "get_optional_user",
    "parse_uuid",
    "load_owned_audio",
]
