"""FastAPI application entry point for the shortlink service.

Application Lifecycle Diagram
=============================
::
    ┌─────────────┐
    │  uvicorn    │
    │  startup    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ create_app()│
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ lifespan()  │
    │ startup:    │
    │ build_      │
    │ context()   │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Serve HTTP  │
    │ requests    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ lifespan()  │
    │ shutdown:   │
    │ ctx.close() │
    └─────────────┘

How to Use
===========
**Step 1 — Run**::
    shortlink                       # listens on $PORT (default 8080)
    uvicorn shortlink.main:app --port 8080

**Step 2 — Shorten a URL**::
    curl -X POST http://localhost:8080/newurl \
         -H "Content-Type: application/json" \
         -d '{"domain": "localhost", "url": "https://www.google.com"}'

**Step 3 — Follow it**::
    curl -i http://localhost:8080/<code>

Key Behaviours
===============
- The database schema is created on startup when DATABASE_URL is set.
- An unreachable database or cache degrades to in-memory storage / no cache.
- Request validation failures are answered with 400, not 422.
- Prometheus metrics are exposed at /metrics when METRICS_ENABLED is set.
"""

__all__ = ["app", "create_app", "main"]

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from shortlink.config import Settings, get_settings
from shortlink.context import AppContext, build_context
from shortlink.routes import router


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"detail": "Bad Request", "errors": jsonable_encoder(exc.errors())},
    )


def create_app(settings: Settings | None = None, context: AppContext | None = None) -> FastAPI:
    """Build the application.

    Args:
        settings: Configuration; defaults to the injected context's settings or
            the environment.
        context: Pre-built application context. When given, startup does not
            build one and shutdown leaves it open for the caller to close.
    """
    if settings is None:
        settings = context.settings if context is not None else get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        # Startup
        owns_context = getattr(app.state, "context", None) is None
        if owns_context:
            app.state.context = await build_context(settings)
        yield
        # Shutdown
        if owns_context:
            await app.state.context.close()
            app.state.context = None

    app = FastAPI(
        title=settings.APP_NAME,
        version="1.0.0",
        description="Domain-scoped URL shortener",
        lifespan=lifespan,
    )
    app.state.context = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    if settings.METRICS_ENABLED:
        Instrumentator(
            should_group_status_codes=True,
            should_ignore_untemplated=False,
            should_respect_env_var=False,
        ).instrument(app).expose(app)

    app.include_router(router)
    return app


app = create_app()


def main() -> None:
    settings = get_settings()
    uvicorn.run("shortlink.main:app", host="0.0.0.0", port=settings.PORT)


if __name__ == "__main__":
    main()
