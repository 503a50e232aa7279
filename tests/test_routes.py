"""API tests for the shortlink HTTP surface."""

import logging
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from shortlink.cache import MappingCache
from shortlink.config import Settings
from shortlink.enums import StoreBackend
from shortlink.exceptions import ExhaustedRetriesError, StoreUnavailableError
from shortlink.main import create_app
from shortlink.service import ShortLinkService
from shortlink.storage.base import MappingStore
from shortlink.storage.memory import InMemoryMappingStore


@pytest.fixture
def store_double() -> AsyncMock:
    store = AsyncMock(spec=MappingStore)
    store.backend = StoreBackend.DURABLE
    store.ping.return_value = True
    return store


# ============================================================================
# POST /newurl
# ============================================================================


@pytest.mark.asyncio
async def test_create_short_url(client: AsyncClient, memory_store: InMemoryMappingStore) -> None:
    response = await client.post(
        "/newurl", json={"domain": "shortenurl.org", "url": "https://www.google.com"}
    )

    assert response.status_code == 201
    data = response.json()
    assert set(data) == {"url", "shortenUrl"}
    assert data["url"] == "https://www.google.com"
    assert data["shortenUrl"].startswith("https://shortenurl.org/")
    code = data["shortenUrl"].rsplit("/", 1)[1]
    assert len(code) == 9
    assert await memory_store.get("shortenurl.org", code) == "https://www.google.com"


@pytest.mark.asyncio
async def test_create_short_url_localhost_uses_http(client: AsyncClient) -> None:
    response = await client.post("/newurl", json={"domain": "LocalHost", "url": "https://www.google.com"})

    assert response.status_code == 201
    assert response.json()["shortenUrl"].startswith("http://localhost/")


@pytest.mark.parametrize(
    "payload",
    [
        {"url": "https://www.google.com"},
        {"domain": "shortenurl.org"},
        {"domain": "", "url": "https://www.google.com"},
        {"domain": "   ", "url": "https://www.google.com"},
        {"domain": "shortenurl.org", "url": ""},
        {},
    ],
)
@pytest.mark.asyncio
async def test_create_short_url_missing_fields(client: AsyncClient, payload) -> None:
    response = await client.post("/newurl", json=payload)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_create_short_url_invalid_json(client: AsyncClient) -> None:
    response = await client.post(
        "/newurl", content="not json", headers={"Content-Type": "application/json"}
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_create_short_url_store_failure(context_factory, client_factory, store_double) -> None:
    store_double.insert_unique.side_effect = StoreUnavailableError("db down")

    async with client_factory(context_factory(store_double)) as ac:
        response = await ac.post("/newurl", json={"domain": "shortenurl.org", "url": "https://www.google.com"})

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal Server Error"}


@pytest.mark.asyncio
async def test_create_short_url_exhausted(context_factory, client_factory, memory_store) -> None:
    service = AsyncMock(spec=ShortLinkService)
    service.allocate.side_effect = ExhaustedRetriesError("shortenurl.org", 5)

    async with client_factory(context_factory(memory_store, service=service)) as ac:
        response = await ac.post("/newurl", json={"domain": "shortenurl.org", "url": "https://www.google.com"})

    assert response.status_code == 500


# ============================================================================
# GET /{code}
# ============================================================================


@pytest.mark.asyncio
async def test_redirect(client: AsyncClient) -> None:
    created = await client.post(
        "/newurl", json={"domain": "shortenurl.org", "url": "https://www.google.com/search?q=x"}
    )
    code = created.json()["shortenUrl"].rsplit("/", 1)[1]

    response = await client.get(f"/{code}")

    assert response.status_code == 301
    assert response.headers["location"] == "https://www.google.com/search?q=x"


@pytest.mark.asyncio
async def test_redirect_normalizes_host(
    app_context, client_factory, memory_store: InMemoryMappingStore
) -> None:
    await memory_store.insert_unique("shortenurl.org", "abcDEF123", "https://www.google.com")

    async with client_factory(app_context, host="ShortenURL.org:8080") as ac:
        response = await ac.get("/abcDEF123")

    assert response.status_code == 301
    assert response.headers["location"] == "https://www.google.com"


@pytest.mark.asyncio
async def test_redirect_is_domain_scoped(
    app_context, client_factory, memory_store: InMemoryMappingStore
) -> None:
    await memory_store.insert_unique("shortenurl.org", "abcDEF123", "https://www.google.com")

    async with client_factory(app_context, host="other.org") as ac:
        response = await ac.get("/abcDEF123")

    assert response.status_code == 404


@pytest.mark.parametrize("path", ["/abc", "/abcDEF1234", "/abc_DEF12", "/abc%20DEF1"])
@pytest.mark.asyncio
async def test_redirect_malformed_code(context_factory, client_factory, store_double, path) -> None:
    async with client_factory(context_factory(store_double)) as ac:
        response = await ac.get(path)

    assert response.status_code == 404
    store_double.get.assert_not_awaited()


@pytest.mark.asyncio
async def test_redirect_unknown_code(client: AsyncClient) -> None:
    response = await client.get("/zzzzzzzzz")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_redirect_store_failure(context_factory, client_factory, store_double) -> None:
    store_double.get.side_effect = StoreUnavailableError("db down")

    async with client_factory(context_factory(store_double)) as ac:
        response = await ac.get("/abcDEF123")

    assert response.status_code == 500


@pytest.mark.asyncio
async def test_redirect_served_from_cache(
    context_factory, client_factory, store_double, cache: MappingCache, mock_redis: AsyncMock
) -> None:
    mock_redis.data["short:shortenurl.org:abcDEF123"] = "https://www.google.com"

    async with client_factory(context_factory(store_double, cache=cache)) as ac:
        response = await ac.get("/abcDEF123")

    assert response.status_code == 301
    store_double.get.assert_not_awaited()


# ============================================================================
# GET /health
# ============================================================================


@pytest.mark.asyncio
async def test_health(client: AsyncClient) -> None:
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "healthy",
        "store": "healthy",
        "cache": "healthy",
        "store_backend": "memory",
    }


@pytest.mark.asyncio
async def test_health_without_cache(context_factory, client_factory, memory_store) -> None:
    async with client_factory(context_factory(memory_store)) as ac:
        response = await ac.get("/health")

    assert response.json()["cache"] == "disabled"
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_health_degraded_cache_keeps_service_healthy(
    context_factory, client_factory, memory_store, failing_cache: MappingCache
) -> None:
    async with client_factory(context_factory(memory_store, cache=failing_cache)) as ac:
        response = await ac.get("/health")

    assert response.json()["status"] == "healthy"
    assert response.json()["cache"] == "unhealthy"


@pytest.mark.asyncio
async def test_health_store_down(context_factory, client_factory, store_double) -> None:
    store_double.ping.return_value = False

    async with client_factory(context_factory(store_double)) as ac:
        response = await ac.get("/health")

    assert response.json()["status"] == "unhealthy"
    assert response.json()["store_backend"] == "durable"


@pytest.mark.asyncio
async def test_requests_before_startup_are_unavailable(settings: Settings) -> None:
    app = create_app(settings=settings)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://shortenurl.org") as ac:
        response = await ac.get("/health")

    assert response.status_code == 503


@pytest.mark.asyncio
async def test_request_logs_carry_request_id(client: AsyncClient, caplog) -> None:
    caplog.set_level(logging.INFO, logger="shortlink")

    response = await client.post(
        "/newurl",
        json={"domain": "shortenurl.org", "url": "https://www.google.com"},
        headers={"x-request-id": "req-42"},
    )

    assert response.status_code == 201
    created = [r.getMessage() for r in caplog.records if "Short URL created" in r.getMessage()]
    assert created and created[0].startswith("[req-42] ")
