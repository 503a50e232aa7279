"""Pydantic schemas for request/response validation in the shortlink API.

Schema Hierarchy
=================
::
    NewURLRequest (Input)
    ├─ domain: str | None   (required, checked by the service)
    └─ url: str | None      (required, checked by the service)

    NewURLResponse (Output)
    ├─ url: str
    └─ shortenUrl: str      (scheme://domain/code)

    HealthResponse (Output)
    ├─ status: HealthStatus
    ├─ store: HealthStatus
    ├─ cache: HealthStatus  (disabled when no cache is configured)
    └─ store_backend: StoreBackend

Key Behaviours
===============
- Missing request fields are accepted here and rejected by the service with a
  400, so the wire contract does not depend on pydantic's 422 shape.
- The response uses the camelCase ``shortenUrl`` key on the wire.
"""

from pydantic import BaseModel, ConfigDict, Field

from shortlink.enums import HealthStatus, StoreBackend

__all__ = ["NewURLRequest", "NewURLResponse", "HealthResponse"]


class NewURLRequest(BaseModel):
    domain: str | None = None
    url: str | None = None


class NewURLResponse(BaseModel):
    url: str
    shorten_url: str = Field(..., serialization_alias="shortenUrl")

    model_config = ConfigDict(populate_by_name=True)


class HealthResponse(BaseModel):
    status: HealthStatus
    store: HealthStatus
    cache: HealthStatus
    store_backend: StoreBackend
