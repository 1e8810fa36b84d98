"""
API Authentication Module

This module provides authentication mechanisms for the REST API,
including local JWT handling, Firebase token decoding, and password
hashing.
"""

import hashlib
import hmac
import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import (
    Any,
    Dict,
    Optional,
    Tuple,
)

import jwt
from pydantic import BaseModel, Field

from .base import (
    AuthenticationError,
    ErrorCode,
)


logger = logging.getLogger(__name__)


PASSWORD_HASH_ITERATIONS = 100000


class AuthMethod(str, Enum):
    """Authentication methods."""

    JWT = "jwt"
    FIREBASE = "firebase"
    DEV_BYPASS = "dev_bypass"


@dataclass
class FirebaseIdentity:
    """Claims read from a Firebase ID token."""

    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    email_verified: bool = False


@dataclass
class AuthContext:
    """Authentication context for a request."""

    method: AuthMethod
    is_authenticated: bool = False

    # Identity
    user_id: Optional[str] = None
    firebase: Optional[FirebaseIdentity] = None

    # Metadata
    authenticated_at: datetime = field(default_factory=datetime.utcnow)
    client_ip: Optional[str] = None
    user_agent: Optional[str] = None


class JWTConfig(BaseModel):
    """JWT configuration."""

    secret_key: str = Field(..., description="Secret key for signing")
    algorithm: str = Field(default="HS256", description="Signing algorithm")
    access_token_expire_hours: int = Field(
        default=24 * 7,
        description="Access token expiration in hours",
    )
    allow_unverified_firebase: bool = Field(
        default=False,
        description="Accept Firebase RS256 tokens without signature verification",
    )


class APIAuthenticator:
    """
    Handles API authentication.

    Local tokens are HS256 JWTs carrying the user id. Tokens signed with
    another algorithm are treated as Firebase ID tokens when the fallback
    is enabled, and their claims are read without verifying the signature.
    """

    def __init__(self, jwt_config: JWTConfig):
        self.jwt_config = jwt_config

    def authenticate_jwt(
        self,
        token: str,
        client_ip: Optional[str] = None,
    ) -> AuthContext:
        """
        Authenticate using a bearer token.

        Args:
            token: JWT token string
            client_ip: Client IP address

        Returns:
            Authentication context. For Firebase tokens ``user_id`` is
            unset and ``firebase`` carries the identity to resolve.
        """
        try:
            header = jwt.get_unverified_header(token)
        except jwt.InvalidTokenError:
            raise AuthenticationError(
                message="Token is not valid",
                code=ErrorCode.INVALID_TOKEN,
            )

        if header.get("alg") != self.jwt_config.algorithm:
            if not self.jwt_config.allow_unverified_firebase:
                raise AuthenticationError(
                    message="Token is not valid",
                    code=ErrorCode.INVALID_TOKEN,
                )
            return AuthContext(
                method=AuthMethod.FIREBASE,
                is_authenticated=True,
                firebase=self.decode_firebase_token(token),
                client_ip=client_ip,
            )

        try:
            payload = jwt.decode(
                token,
                self.jwt_config.secret_key,
                algorithms=[self.jwt_config.algorithm],
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError(
                message="Token expired",
                code=ErrorCode.EXPIRED_TOKEN,
            )
        except jwt.InvalidTokenError as e:
            logger.debug(f"Rejected token: {e}")
            raise AuthenticationError(
                message="Token is not valid",
                code=ErrorCode.INVALID_TOKEN,
            )

        user_id = payload.get("id") or payload.get("sub")
        if not user_id:
            raise AuthenticationError(
                message="Token is not valid",
                code=ErrorCode.INVALID_TOKEN,
            )

        return AuthContext(
            method=AuthMethod.JWT,
            is_authenticated=True,
            user_id=user_id,
            client_ip=client_ip,
        )

    def decode_firebase_token(self, token: str) -> FirebaseIdentity:
        """Read the identity claims of a Firebase ID token without verification."""
        try:
            payload = jwt.decode(token, options={"verify_signature": False})
        except jwt.InvalidTokenError:
            raise AuthenticationError(
                message="Token is not valid",
                code=ErrorCode.INVALID_TOKEN,
            )

        uid = payload.get("user_id") or payload.get("sub") or payload.get("uid")
        if not uid:
            raise AuthenticationError(
                message="Token is not valid",
                code=ErrorCode.INVALID_TOKEN,
            )

        exp = payload.get("exp")
        if exp and datetime.utcfromtimestamp(exp) < datetime.utcnow():
            raise AuthenticationError(
                message="Token expired",
                code=ErrorCode.EXPIRED_TOKEN,
            )

        return FirebaseIdentity(
            uid=uid,
            email=payload.get("email"),
            display_name=payload.get("name"),
            photo_url=payload.get("picture"),
            email_verified=bool(payload.get("email_verified", False)),
        )

    def create_jwt(
        self,
        user_id: str,
        additional_claims: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Create an access token for a user.

        Args:
            user_id: User ID
            additional_claims: Additional JWT claims

        Returns:
            JWT token string
        """
        now = datetime.utcnow()
        exp = now + timedelta(hours=self.jwt_config.access_token_expire_hours)

        payload = {
            "id": user_id,
            "sub": user_id,
            "iat": now,
            "exp": exp,
            "jti": secrets.token_hex(16),
        }

        if additional_claims:
            payload.update(additional_claims)

        return jwt.encode(
            payload,
            self.jwt_config.secret_key,
            algorithm=self.jwt_config.algorithm,
        )


# =============================================================================
# Passwords & Reset Tokens
# =============================================================================


def hash_password(password: str) -> str:
    """Hash a password as ``salt$pbkdf2-sha256``."""
    salt = secrets.token_hex(16)
    hash_val = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode(),
        salt.encode(),
        PASSWORD_HASH_ITERATIONS,
    ).hex()
    return f"{salt}${hash_val}"


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    """Verify a password against its stored hash."""
    if not password_hash or "$" not in password_hash:
        return False

    salt, hash_val = password_hash.split("$", 1)
    computed = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode(),
        salt.encode(),
        PASSWORD_HASH_ITERATIONS,
    ).hex()
    return hmac.compare_digest(computed, hash_val)


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def generate_reset_token() -> Tuple[str, str]:
    """Generate a password reset token and the hash to store for it."""
    token = secrets.token_hex(32)
    return token, hash_reset_token(token)


__all__ = [
    "AuthMethod",
    "FirebaseIdentity",
    "AuthContext",
    "JWTConfig",
    "APIAuthenticator",
    "hash_password",
    "verify_password",
    "hash_reset_token",
    "generate_reset_token",
]
