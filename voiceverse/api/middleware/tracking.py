"""
Request Tracking Middleware

This module provides request context tracking and correlation IDs.
"""

import contextvars
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Optional


logger = logging.getLogger(__name__)


# Context variable for current request
_current_request_context: contextvars.ContextVar[Optional["RequestContext"]] = (
    contextvars.ContextVar("request_context", default=None)
)


@dataclass
class RequestContext:
    """Context for a single request."""

    # Identifiers
    request_id: str
    correlation_id: str

    # Timing
    start_time: float

    # Request info
    method: str = ""
    path: str = ""
    client_ip: Optional[str] = None

    # Auth info
    user_id: Optional[str] = None

    @property
    def elapsed_ms(self) -> float:
        """Get elapsed time in milliseconds."""
        return (time.time() - self.start_time) * 1000


class RequestTracker:
    """Tracks request context throughout the request lifecycle."""

    def create_context(
        self,
        request_id: Optional[str] = None,
        correlation_id: Optional[str] = None,
        method: str = "",
        path: str = "",
        client_ip: Optional[str] = None,
    ) -> RequestContext:
        """
        Create a new request context and make it current.

        Args:
            request_id: Request ID (generated if not provided)
            correlation_id: Correlation ID (uses request_id if not provided)
            method: HTTP method
            path: Request path
            client_ip: Client IP address
        """
        request_id = request_id or str(uuid.uuid4())
        correlation_id = correlation_id or request_id

        context = RequestContext(
            request_id=request_id,
            correlation_id=correlation_id,
            start_time=time.time(),
            method=method,
            path=path,
            client_ip=client_ip,
        )

        _current_request_context.set(context)
        return context

    def end_context(self, context: RequestContext) -> None:
        """End a request context."""
        logger.debug(f"Request {context.request_id} finished in {context.elapsed_ms:.1f}ms")
        _current_request_context.set(None)


def get_current_context() -> Optional[RequestContext]:
    """Get the current request context."""
    return _current_request_context.get()


def get_request_id() -> Optional[str]:
    """Get the current request ID."""
    context = get_current_context()
    return context.request_id if context else None


def set_user_id(user_id: str) -> None:
    """Record the authenticated user on the current context."""
    context = get_current_context()
    if context:
        context.user_id = user_id


class RequestTrackingMiddleware:
    """
    ASGI middleware for request tracking.

    Usage:
        app = FastAPI()
        app.add_middleware(RequestTrackingMiddleware, tracker=RequestTracker())
    """

    def __init__(
        self,
        app,
        tracker: RequestTracker,
        header_name: str = "X-Request-ID",
        correlation_header: str = "X-Correlation-ID",
    ):
        self.app = app
        self.tracker = tracker
        self.header_name = header_name
        self.correlation_header = correlation_header

    async def __call__(self, scope, receive, send):
        """Process request."""
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        from starlette.requests import Request
        request = Request(scope, receive)

        headers = dict(request.headers)
        context = self.tracker.create_context(
            request_id=headers.get(self.header_name.lower()),
            correlation_id=headers.get(self.correlation_header.lower()),
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else None,
        )

        async def send_wrapper(message):
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                headers.append((
                    self.header_name.lower().encode(),
                    context.request_id.encode(),
                ))
                headers.append((
                    self.correlation_header.lower().encode(),
                    context.correlation_id.encode(),
                ))
                message["headers"] = headers

            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            self.tracker.end_context(context)


__all__ = [
    "RequestContext",
    "RequestTracker",
    "RequestTrackingMiddleware",
    "get_current_context",
    "get_request_id",
    "set_user_id",
]
