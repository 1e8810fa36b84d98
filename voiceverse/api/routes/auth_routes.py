"""
Authentication API Routes

This module provides REST API endpoints for signup, login, Firebase
token exchange and password reset.
"""

import logging
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import (
    APIAuthenticator,
    generate_reset_token,
    hash_password,
    hash_reset_token,
    verify_password,
)
from ..base import (
    AuthenticationError,
    ErrorCode,
    ValidationError,
    success_response,
)
from ..dependencies import (
    get_authenticator,
    get_config,
    get_current_user,
    get_db_session,
    get_email,
    resolve_firebase_user,
)
from ..serializers import user_to_response
from ...config import AppConfig
from ...database.models import User
from ...database.repositories import UserRepository
from ...notifications import EmailService


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


RESET_TOKEN_TTL = timedelta(hours=1)


# =============================================================================
# Request Models
# =============================================================================

class SignupRequest(BaseModel):
    """Signup request."""
    username: str = Field(..., min_length=3, max_length=20)
    email: EmailStr
    password: str = Field(..., min_length=6)


class LoginRequest(BaseModel):
    """Login request."""
    email: EmailStr
    password: str


class FirebaseLoginRequest(BaseModel):
    idToken: str = Field(..., min_length=1)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    password: str = Field(..., min_length=6)


# =============================================================================
# Routes
# =============================================================================

@router.post(
    "/signup",
    status_code=201,
    summary="Signup",
    description="Create a new account with a password.",
)
async def signup(
    request: SignupRequest,
    db: AsyncSession = Depends(get_db_session),
    authenticator: APIAuthenticator = Depends(get_authenticator),
):
    """User registration endpoint."""
    users = UserRepository(db)

    if await users.get_by_email(request.email):
        raise ValidationError("Email already in use", field="email")

    if await users.get_by_username(request.username):
        raise ValidationError("Username already taken", field="username")

    user = await users.create(
        email=request.email.lower(),
        username=request.username,
        password_hash=hash_password(request.password),
        display_name=request.username,
    )
    await db.commit()

    logger.info(f"User registered: {user.email}")

    return success_response({
        "token": authenticator.create_jwt(user.id),
        "user": user_to_response(user),
    })


@router.post(
    "/login",
    summary="Login",
    description="Authenticate with email and password.",
)
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
    authenticator: APIAuthenticator = Depends(get_authenticator),
):
    """User login endpoint."""
    user = await UserRepository(db).get_by_email(request.email)

    if not user or not verify_password(request.password, user.password_hash):
        raise AuthenticationError(
            message="Invalid credentials",
            code=ErrorCode.INVALID_CREDENTIALS,
        )

    logger.info(f"User logged in: {user.email}")

    return success_response({
        "token": authenticator.create_jwt(user.id),
        "user": user_to_response(user),
    })


@router.post(
    "/firebase",
    summary="Firebase login",
    description="Exchange a Firebase ID token for a VoiceVerse token.",
)
async def firebase_login(
    request: FirebaseLoginRequest,
    db: AsyncSession = Depends(get_db_session),
    authenticator: APIAuthenticator = Depends(get_authenticator),
):
    identity = authenticator.decode_firebase_token(request.idToken)
    user = await resolve_firebase_user(db, identity)
    await db.commit()

    logger.info(f"Firebase login for user {user.id}")

    return success_response({
        "token": authenticator.create_jwt(user.id),
        "user": user_to_response(user),
    })


@router.get(
    "/me",
    summary="Current user",
)
async def get_me(user: User = Depends(get_current_user)):
    return success_response(user_to_response(user))


@router.post(
    "/forgot-password",
    summary="Request password reset",
    description="Email a password reset link. Always reports success.",
)
async def forgot_password(
    request: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db_session),
    config: AppConfig = Depends(get_config),
    email: EmailService = Depends(get_email),
):
    user = await UserRepository(db).get_by_email(request.email)

    if user:
        token, token_hash = generate_reset_token()
        user.reset_password_token = token_hash
        user.reset_password_expires = datetime.utcnow() + RESET_TOKEN_TTL
        await db.commit()

        reset_link = f"{config.frontend_url.rstrip('/')}/reset-password/{token}"
        await email.send_password_reset(user.email, reset_link)
        logger.info(f"Password reset requested for user {user.id}")

    return success_response(
        message="If an account exists with that email, a password reset link has been sent",
    )


@router.post(
    "/reset-password/{token}",
    summary="Reset password",
)
async def reset_password(
    token: str,
    request: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db_session),
    authenticator: APIAuthenticator = Depends(get_authenticator),
):
    user = await UserRepository(db).get_by_reset_token(hash_reset_token(token))
    if not user:
        raise ValidationError("Invalid or expired token", field="token")

    user.password_hash = hash_password(request.password)
    user.reset_password_token = None
    user.reset_password_expires = None
    await db.commit()

    logger.info(f"Password reset for user {user.id}")

    return success_response(
        {"token": authenticator.create_jwt(user.id)},
        message="Password has been reset",
    )
