"""
REST API Module

FastAPI application, authentication, error envelope and the route
modules of the VoiceVerse API.
"""

from .base import (
    ErrorCode,
    APIException,
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    ValidationError,
    ConflictError,
    PaymentError,
    ServiceError,
    success_response,
    error_response,
    paginated_response,
)
from .auth import (
    APIAuthenticator,
    JWTConfig,
    hash_password,
    verify_password,
)
from .app import create_app, run_server


__all__ = [
    # Errors
    "ErrorCode",
    "APIException",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "PaymentError",
    "ServiceError",
    # Responses
    "success_response",
    "error_response",
    "paginated_response",
    # Auth
    "APIAuthenticator",
    "JWTConfig",
    "hash_password",
    "verify_password",
    # Application
    "create_app",
    "run_server",
]
