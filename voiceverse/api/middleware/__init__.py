"""
API Middleware Module

This module provides middleware components for the REST API,
including request logging and request tracking.
"""

from .logging import (
    LogConfig,
    RequestLogMiddleware,
    AccessLogEntry,
)

from .tracking import (
    RequestTracker,
    RequestContext,
    RequestTrackingMiddleware,
    get_request_id,
)


__all__ = [
    # Logging
    "LogConfig",
    "RequestLogMiddleware",
    "AccessLogEntry",
    # Tracking
    "RequestTracker",
    "RequestContext",
    "RequestTrackingMiddleware",
    "get_request_id",
]
