"""Shared pytest fixtures for swiftgate tests.

A single FastAPI app is created per test session to avoid duplicate
Prometheus metric registration errors (the instrumentator registers
collectors in the global prometheus_client registry). Tests that need a
differently configured app build one with metrics disabled.

The session cache is replaced before each test so logins never leak
between tests.
"""

import pytest
from httpx import ASGITransport, AsyncClient

from swiftgate.config import (
    AuthConfig,
    ObservabilityConfig,
    ProviderConfig,
    ServerConfig,
    SwiftGateConfig,
)
from swiftgate.resolver import ProviderResolver
from swiftgate.server import create_app
from swiftgate.session import Authenticator, SessionCache


@pytest.fixture(scope="session")
def config() -> SwiftGateConfig:
    """Create a test config serving the transient provider."""
    return SwiftGateConfig(
        server=ServerConfig(host="127.0.0.1", port=8090),
        auth=AuthConfig(token_life=3600),
        provider=ProviderConfig(kind="transient"),
        observability=ObservabilityConfig(metrics=True, health_check=True),
    )


@pytest.fixture(scope="session")
def app(config: SwiftGateConfig):
    """Create a single test FastAPI application for the whole session."""
    return create_app(config)


@pytest.fixture
async def client(app, config) -> AsyncClient:
    """Create an async test client with a fresh session cache."""
    cache = SessionCache(ttl=config.auth.token_life)
    app.state.session_cache = cache
    app.state.authenticator = Authenticator(ProviderResolver(config.provider), cache)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


@pytest.fixture
def login(client):
    """Return a coroutine that logs in and returns the session token."""

    async def _login(user: str = "test:tester", key: str = "testing") -> str:
        resp = await client.get("/auth/v1.0", headers={"X-Auth-User": user, "X-Auth-Key": key})
        assert resp.status_code == 200, resp.text
        return resp.headers["X-Auth-Token"]

    return _login


@pytest.fixture
async def account(app, login):
    """Log in as a fresh identity and return ``(token, store)``."""
    token = await login()
    handle = app.state.authenticator.resolve(token)
    store = await handle.get()
    return token, store
