"""
Request Logging Middleware

Writes one access log line per HTTP request.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Optional, Set

from .tracking import get_current_context


logger = logging.getLogger("voiceverse.access")


@dataclass
class LogConfig:
    """Access log configuration."""

    skip_paths: Set[str] = field(default_factory=lambda: {"/health", "/api/health"})
    slow_request_ms: float = 2000.0


@dataclass
class AccessLogEntry:
    """A single access log record."""

    method: str
    path: str
    status_code: int
    duration_ms: float
    client_ip: Optional[str] = None
    request_id: Optional[str] = None
    user_id: Optional[str] = None

    def format(self) -> str:
        return (
            f"{self.client_ip or '-'} {self.method} {self.path} {self.status_code} "
            f"{self.duration_ms:.1f}ms"
            + (f" user={self.user_id}" if self.user_id else "")
            + (f" [{self.request_id}]" if self.request_id else "")
        )


class RequestLogMiddleware:
    """ASGI middleware logging method, path, status and duration."""

    def __init__(self, app, config: Optional[LogConfig] = None):
        self.app = app
        self.config = config or LogConfig()

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http" or scope.get("path") in self.config.skip_paths:
            await self.app(scope, receive, send)
            return

        start = time.time()
        status_holder = {"status": 500}

        async def send_wrapper(message):
            if message["type"] == "http.response.start":
                status_holder["status"] = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            client = scope.get("client")
            context = get_current_context()
            entry = AccessLogEntry(
                method=scope.get("method", ""),
                path=scope.get("path", ""),
                status_code=status_holder["status"],
                duration_ms=(time.time() - start) * 1000,
                client_ip=client[0] if client else None,
                request_id=context.request_id if context else None,
                user_id=context.user_id if context else None,
            )
            if entry.status_code >= 500:
                logger.error(entry.format())
            elif entry.duration_ms > self.config.slow_request_ms:
                logger.warning(f"Slow request: {entry.format()}")
            else:
                logger.info(entry.format())


__all__ = [
    "LogConfig",
    "AccessLogEntry",
    "RequestLogMiddleware",
]
