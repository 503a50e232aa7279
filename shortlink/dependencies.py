"""Dependency injection for request handlers.

The application context is built once at startup and stored on
``app.state.context``; handlers reach the service through it instead of
through module globals. A lightweight per-request context adds request
identifiers and timing to log messages.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field

from fastapi import Depends, HTTPException, Request

from shortlink.context import AppContext
from shortlink.service import ShortLinkService

__all__ = ["RequestContext", "RequestLoggerAdapter", "get_app_context", "get_request_context", "get_service"]


# ============================================================================
# LIGHTWEIGHT REQUEST CONTEXT
# ============================================================================


class RequestLoggerAdapter(logging.LoggerAdapter):
    """Prefix every message with the request id and client address.

    Example:
        >>> adapter.info("Short URL created")
        # [3f2a...] [10.0.0.7] Short URL created
    """

    def process(self, msg, kwargs):
        return f"[{self.extra['request_id']}] [{self.extra['client_ip'] or '-'}] {msg}", kwargs


@dataclass
class RequestContext:
    """Per-request tracking on top of the shared application context.

    Attributes:
        app: Shared application context (store, cache, service, settings)
        request_id: Unique identifier for this request
        client_ip: Client IP address
        start_time: Request start timestamp
    """

    app: AppContext
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    client_ip: str | None = None
    start_time: float = field(default_factory=time.perf_counter)

    @property
    def logger(self) -> RequestLoggerAdapter:
        """Get shared logger with request context."""
        return RequestLoggerAdapter(
            self.app.logger,
            {
                "request_id": self.request_id,
                "client_ip": self.client_ip,
            },
        )

    def get_duration(self) -> float:
        """Get request duration in milliseconds."""
        return (time.perf_counter() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


def get_app_context(request: Request) -> AppContext:
    ctx = getattr(request.app.state, "context", None)
    if ctx is None:
        raise HTTPException(status_code=503, detail="Service Unavailable")
    return ctx


def get_request_context(
    request: Request,
    app_ctx: AppContext = Depends(get_app_context),
) -> RequestContext:
    return RequestContext(
        app=app_ctx,
        request_id=request.headers.get("x-request-id") or str(uuid.uuid4()),
        client_ip=request.client.host if request.client else None,
    )


def get_service(app_ctx: AppContext = Depends(get_app_context)) -> ShortLinkService:
    return app_ctx.service
