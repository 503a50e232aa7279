"""FastAPI route definitions for the shortlink HTTP API.

API Endpoint Overview
=====================
::
    GET  /health
        └─ HealthResponse (200)

    POST /newurl
        ├─ NewURLRequest (request body)
        └─ NewURLResponse (201) or 400/500

    GET  /:code
        └─ 301 Redirect or 404/500

Request Flow Diagram
====================
::
    ┌─────────────┐
    │  HTTP       │
    │  Request    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Validate &  │
    │ normalize   │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Call Service│
    │ Layer       │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Map errors  │
    │ to status   │
    └─────────────┘

Key Behaviours
===============
- The lookup domain is the Host header, lower-cased, without its port.
- Paths that are not exactly 9 characters of [0-9A-Za-z] are 404 before any
  backend is touched.
- Backend failures surface as a bare 500; details only go to the log.
- 301 redirects: mappings never change, so clients may cache them.
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse

from shortlink.codegen import is_valid_code
from shortlink.dependencies import RequestContext, get_request_context, get_service
from shortlink.enums import HealthStatus
from shortlink.exceptions import InvalidInputError, NotFoundError, ShortlinkError
from shortlink.schemas import HealthResponse, NewURLRequest, NewURLResponse
from shortlink.service import ShortLinkService
from shortlink.validation import build_short_url, domain_from_host, normalize_domain

__all__ = ["router"]

router = APIRouter()


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(ctx: RequestContext = Depends(get_request_context)) -> HealthResponse:
    store = ctx.app.store
    cache = ctx.app.cache

    store_status = HealthStatus.HEALTHY if await store.ping() else HealthStatus.UNHEALTHY
    if cache is None:
        cache_status = HealthStatus.DISABLED
    elif await cache.ping():
        cache_status = HealthStatus.HEALTHY
    else:
        cache_status = HealthStatus.UNHEALTHY

    # a degraded cache does not make the service unhealthy
    status = store_status
    ctx.logger.debug(f"Health check: store={store_status.value} cache={cache_status.value}")
    return HealthResponse(
        status=status,
        store=store_status,
        cache=cache_status,
        store_backend=store.backend,
    )


@router.post("/newurl", response_model=NewURLResponse, status_code=201, tags=["urls"])
async def create_short_url(
    payload: NewURLRequest,
    ctx: RequestContext = Depends(get_request_context),
    service: ShortLinkService = Depends(get_service),
) -> NewURLResponse:
    try:
        code = await service.allocate(payload.domain, payload.url)
    except InvalidInputError as exc:
        raise HTTPException(status_code=400, detail=f"Bad Request: {exc}") from exc
    except ShortlinkError as exc:
        ctx.logger.error(f"Error saving URL mapping: {exc}")
        raise HTTPException(status_code=500, detail="Internal Server Error") from exc

    domain = normalize_domain(payload.domain)
    ctx.logger.info(f"Short URL created: {domain}/{code} in {ctx.get_duration():.1f}ms")
    return NewURLResponse(url=payload.url, shorten_url=build_short_url(domain, code))


@router.get("/{code}", tags=["redirect"])
async def redirect_to_url(
    code: str,
    request: Request,
    ctx: RequestContext = Depends(get_request_context),
    service: ShortLinkService = Depends(get_service),
) -> RedirectResponse:
    if not is_valid_code(code):
        raise HTTPException(status_code=404, detail="Not Found")

    domain = domain_from_host(request.headers.get("host"))
    try:
        original_url = await service.resolve(domain, code)
    except (NotFoundError, InvalidInputError) as exc:
        raise HTTPException(status_code=404, detail="Not Found") from exc
    except ShortlinkError as exc:
        ctx.logger.error(f"Error retrieving URL for code {code}: {exc}")
        raise HTTPException(status_code=500, detail="Internal Server Error") from exc

    return RedirectResponse(url=original_url, status_code=301)
