"""
API Base Types and Models Module

This module provides core types, response models, error handling,
and common utilities for the REST API layer.
"""

import secrets
import time
from datetime import datetime
from enum import Enum
from typing import (
    Any,
    Dict,
    Generic,
    List,
    Optional,
    TypeVar,
)

from pydantic import BaseModel, Field


# Generic type for response data
T = TypeVar("T")


class ErrorCode(str, Enum):
    """Standardized error codes."""

    # Authentication errors (1xxx)
    AUTHENTICATION_REQUIRED = "AUTH_1001"
    INVALID_TOKEN = "AUTH_1002"
    EXPIRED_TOKEN = "AUTH_1003"
    INSUFFICIENT_PERMISSIONS = "AUTH_1004"
    INVALID_CREDENTIALS = "AUTH_1005"
    INVALID_SIGNATURE = "AUTH_1006"

    # Validation errors (2xxx)
    VALIDATION_ERROR = "VAL_2001"
    INVALID_REQUEST_BODY = "VAL_2002"
    MISSING_REQUIRED_FIELD = "VAL_2003"
    INVALID_FIELD_VALUE = "VAL_2004"
    INVALID_FILE = "VAL_2005"

    # Resource errors (3xxx)
    RESOURCE_NOT_FOUND = "RES_3001"
    RESOURCE_ALREADY_EXISTS = "RES_3002"
    RESOURCE_CONFLICT = "RES_3003"

    # Server errors (5xxx)
    INTERNAL_ERROR = "SRV_5001"
    SERVICE_UNAVAILABLE = "SRV_5002"
    DEPENDENCY_FAILURE = "SRV_5003"

    # Business logic errors (6xxx)
    OPERATION_NOT_ALLOWED = "BIZ_6002"
    PAYMENT_FAILED = "BIZ_6005"
    PRO_REQUIRED = "BIZ_6006"


# =============================================================================
# Request Models
# =============================================================================


class PaginationParams(BaseModel):
    """Pagination parameters for list endpoints."""

    page: int = Field(default=1, ge=1, description="Page number (1-indexed)")
    limit: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Number of items per page",
    )

    @property
    def offset(self) -> int:
        """Calculate offset for database queries."""
        return (self.page - 1) * self.limit


# =============================================================================
# Response Models
# =============================================================================


class APIError(BaseModel):
    """API error response model."""

    code: ErrorCode = Field(..., description="Error code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Additional error details",
    )
    field: Optional[str] = Field(
        default=None,
        description="Field that caused the error (for validation errors)",
    )
    request_id: Optional[str] = Field(
        default=None,
        description="Request ID for tracking",
    )

    class Config:
        use_enum_values = True


class PaginationMeta(BaseModel):
    """Pagination metadata for list responses."""

    page: int = Field(..., description="Current page number")
    limit: int = Field(..., description="Items per page")
    total: Optional[int] = Field(default=None, description="Total number of items")
    pages: Optional[int] = Field(default=None, description="Total number of pages")
    has_more: bool = Field(..., alias="hasMore", description="Whether there's a next page")

    class Config:
        populate_by_name = True

    @classmethod
    def create(
        cls,
        page: int,
        limit: int,
        total: Optional[int] = None,
        page_length: Optional[int] = None,
    ) -> "PaginationMeta":
        """
        Create pagination metadata.

        With a known total the next-page flag is exact. Without one it is
        inferred from whether the page came back full.
        """
        if total is not None:
            pages = (total + limit - 1) // limit if limit > 0 else 0
            has_more = page * limit < total
        else:
            pages = None
            has_more = page_length == limit
        return cls(page=page, limit=limit, total=total, pages=pages, hasMore=has_more)


class APIResponse(BaseModel, Generic[T]):
    """Standard API response wrapper."""

    success: bool = Field(default=True, description="Whether request succeeded")
    data: Optional[T] = Field(default=None, description="Response data")
    error: Optional[APIError] = Field(default=None, description="Error information")
    meta: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Additional metadata",
    )
    message: Optional[str] = Field(default=None, description="Status message")
    request_id: Optional[str] = Field(default=None, description="Unique request identifier")
    timestamp: Optional[datetime] = Field(default=None, description="Response timestamp")

    class Config:
        arbitrary_types_allowed = True


# =============================================================================
# Exception Classes
# =============================================================================


class APIException(Exception):
    """Base exception for API errors."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: Optional[Dict[str, Any]] = None,
        field: Optional[str] = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        self.field = field
        super().__init__(message)

    def to_error(self, request_id: Optional[str] = None) -> APIError:
        """Convert to APIError model."""
        return APIError(
            code=self.code,
            message=self.message,
            details=self.details,
            field=self.field,
            request_id=request_id,
        )


class AuthenticationError(APIException):
    """Authentication failure."""

    def __init__(
        self,
        message: str = "No token, authorization denied",
        code: ErrorCode = ErrorCode.AUTHENTICATION_REQUIRED,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=401,
            details=details,
        )


class AuthorizationError(APIException):
    """Authorization failure."""

    def __init__(
        self,
        message: str = "Insufficient permissions",
        code: ErrorCode = ErrorCode.INSUFFICIENT_PERMISSIONS,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=403,
            details=details,
        )


class NotFoundError(APIException):
    """Resource not found."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
    ):
        super().__init__(
            code=ErrorCode.RESOURCE_NOT_FOUND,
            message=message or f"{resource_type} not found",
            status_code=404,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class ValidationError(APIException):
    """
    Validation failure.

    Raised with ``status_code=400`` for malformed requests the handlers
    reject themselves, while schema validation failures keep 422.
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 400,
        code: ErrorCode = ErrorCode.VALIDATION_ERROR,
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=status_code,
            details=details,
            field=field,
        )


class ConflictError(APIException):
    """Resource conflict."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            code=ErrorCode.RESOURCE_CONFLICT,
            message=message,
            status_code=409,
            details=details,
        )


class PaymentError(APIException):
    """Payment provider rejected an operation."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            code=ErrorCode.PAYMENT_FAILED,
            message=message,
            status_code=402,
            details=details,
        )


class ServiceError(APIException):
    """Internal service error."""

    def __init__(
        self,
        message: str = "Internal server error",
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=500,
            details=details,
        )


# =============================================================================
# Utility Functions
# =============================================================================


def generate_request_id() -> str:
    """Generate a unique request ID."""
    timestamp = int(time.time() * 1000)
    random_part = secrets.token_hex(8)
    return f"req_{timestamp}_{random_part}"


def _current_request_id() -> str:
    # Imported lazily, the middleware package imports this module
    from .middleware.tracking import get_request_id

    return get_request_id() or generate_request_id()


def success_response(
    data: Any = None,
    meta: Optional[Dict[str, Any]] = None,
    message: Optional[str] = None,
    request_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Create a success response."""
    return {
        "success": True,
        "data": data,
        "error": None,
        "meta": meta,
        "message": message,
        "request_id": request_id or _current_request_id(),
        "timestamp": datetime.utcnow().isoformat(),
    }


def error_response(
    error: APIException,
    request_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Create an error response."""
    request_id = request_id or _current_request_id()
    return {
        "success": False,
        "data": None,
        "error": error.to_error(request_id).dict(),
        "meta": None,
        "request_id": request_id,
        "timestamp": datetime.utcnow().isoformat(),
    }


def paginated_response(
    items: List[Any],
    page: int,
    limit: int,
    total: Optional[int] = None,
    request_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Create a paginated response."""
    pagination = PaginationMeta.create(page, limit, total=total, page_length=len(items))

    return success_response(
        items,
        meta={"pagination": pagination.dict(by_alias=True, exclude_none=True)},
        request_id=request_id,
    )


__all__ = [
    # Enums
    "ErrorCode",
    # Request models
    "PaginationParams",
    # Response models
    "APIError",
    "PaginationMeta",
    "APIResponse",
    # Exceptions
    "APIException",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "PaymentError",
    "ServiceError",
    # Utilities
    "generate_request_id",
    "success_response",
    "error_response",
    "paginated_response",
]
