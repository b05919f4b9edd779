"""FastAPI application factory and route setup for swiftgate."""

import email.utils
import logging
import re
import secrets
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.exception_handlers import http_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from swiftgate.config import SwiftGateConfig
from swiftgate.errors import UNAUTHORIZED_BODY, NotFound, SwiftError
from swiftgate.handlers.account import AccountHandler
from swiftgate.handlers.auth import AuthHandler
from swiftgate.info import build_info
from swiftgate.resolver import (
    BlobStoreLocator,
    HandleResolver,
    LocatorResolver,
    ProviderResolver,
)
from swiftgate.session import Authenticator, SessionCache

logger = logging.getLogger(__name__)

# Login paths accepted by Swift clients
AUTH_PATHS = ("/auth/v1.0", "/auth/v1.0/", "/v1.0")

# Paths under this prefix require a valid X-Auth-Token (see _requires_token)
PROTECTED_PREFIX = "/v1/"

# /v1/{account} with no container part
_ACCOUNT_PATH = re.compile(r"^/v1/[^/]+/?$")

# Paths to suppress from per-request logging
_QUIET_PATHS = {"/metrics", "/health", "/healthz"}


# Module-level singleton so multiple create_app() calls (e.g. in tests)
# don't re-register the same Prometheus gauge in the global registry.
_instrumentator = None


def _get_instrumentator():
    global _instrumentator
    if _instrumentator is None:
        from prometheus_fastapi_instrumentator import Instrumentator

        _instrumentator = Instrumentator(
            should_instrument_requests_inprogress=True,
            excluded_handlers=["/metrics"],
        )
    return _instrumentator


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app(
    config: SwiftGateConfig,
    locator: BlobStoreLocator | None = None,
    clock=time.monotonic,
) -> FastAPI:
    """Create and configure the swiftgate FastAPI application.

    The backend resolver is chosen here, once: a supplied ``locator``
    resolves identities dynamically, otherwise the provider named in the
    configuration serves every identity.

    Args:
        config: The loaded swiftgate configuration.
        locator: Optional locator supplied by an embedding application.
        clock: Clock used by the session cache for token expiry.

    Returns:
        A configured FastAPI application ready to run.

    Raises:
        ValueError: If the configured provider kind is unknown.
    """
    resolver: HandleResolver
    if locator is not None:
        resolver = LocatorResolver(locator)
    else:
        resolver = ProviderResolver(config.provider)

    session_cache = SessionCache(ttl=config.auth.token_life, clock=clock)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan hook: recover provider state, then close stores on shutdown."""
        if isinstance(resolver, ProviderResolver):
            await resolver.recover()
        logger.info(
            "swiftgate ready: resolver=%s token_life=%ds",
            "locator" if locator is not None else config.provider.kind,
            config.auth.token_life,
        )

        yield

        await app.state.authenticator.close()
        logger.info("Open blob stores closed")

    app = FastAPI(
        title="swiftgate",
        version="0.1.0",
        lifespan=lifespan,
        openapi_url=None,
        docs_url=None,
        redoc_url=None,
    )
    app.state.config = config
    app.state.session_cache = session_cache
    app.state.authenticator = Authenticator(resolver, session_cache)
    app.state.info = build_info(config.auth.token_life)

    _register_exception_handlers(app)
    _register_middleware(app)

    # /metrics must be registered before the /v1/{account} routes
    if config.observability.metrics:
        import swiftgate.metrics as _metrics

        _metrics.init_metrics()
        _get_instrumentator().instrument(app, metric_namespace="swiftgate").expose(
            app, endpoint="/metrics"
        )

    _setup_routes(app, config)

    return app


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


def _register_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the FastAPI app."""

    @app.exception_handler(SwiftError)
    async def swift_error_handler(request: Request, exc: SwiftError) -> Response:
        """Render SwiftError exceptions. HEAD requests must not have a body."""
        if request.method == "HEAD" or not exc.body:
            return Response(status_code=exc.http_status)
        return Response(content=exc.body, status_code=exc.http_status, media_type=exc.media_type)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> Response:
        """Render unknown routes as a Swift 404; other HTTP errors keep FastAPI's body."""
        if exc.status_code == 404:
            return await swift_error_handler(request, NotFound())
        return await http_exception_handler(request, exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> Response:
        """Map FastAPI validation errors to 400 Bad Request."""
        messages = []
        for err in exc.errors():
            loc = " -> ".join(str(p) for p in err.get("loc", []))
            msg = err.get("msg", "Invalid value")
            messages.append(f"{loc}: {msg}" if loc else msg)
        combined = "; ".join(messages) or "Invalid request parameters"

        if request.method == "HEAD":
            return Response(status_code=400)
        return Response(content=combined, status_code=400, media_type="text/plain")

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception) -> Response:
        """Catch unexpected exceptions and return 500."""
        logger.exception("Unhandled exception in request handler")
        if request.method == "HEAD":
            return Response(status_code=500)
        return Response(
            content="An error occurred while processing the request.",
            status_code=500,
            media_type="text/plain",
        )


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------


def _register_middleware(app: FastAPI) -> None:
    """Register middleware on the FastAPI app.

    In FastAPI, middleware is registered in reverse order (last registered
    runs first). We register common_headers first, then auth, so the
    execution order is: common_headers -> auth -> handler.
    """

    @app.middleware("http")
    async def common_headers_middleware(request: Request, call_next) -> Response:
        """Add a transaction id and Date to every response and log the request.

        Handlers that set their own ``X-Trans-Id`` keep it.
        """
        trans_id = "tx" + secrets.token_hex(11)
        request.state.trans_id = trans_id
        start = time.monotonic()

        response = await call_next(request)

        duration_ms = round((time.monotonic() - start) * 1000, 2)

        response.headers.setdefault("X-Trans-Id", trans_id)
        response.headers["Date"] = email.utils.formatdate(usegmt=True)

        if request.url.path not in _QUIET_PATHS:
            logger.info(
                "%s %s %d %.2fms",
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status": response.status_code,
                    "duration_ms": duration_ms,
                    "trans_id": trans_id,
                },
            )

        return response

    @app.middleware("http")
    async def auth_middleware(request: Request, call_next) -> Response:
        """Token authentication middleware.

        Only paths under /v1/ are protected, apart from the account requests
        that never reach a backend (see ``_requires_token``). On success the
        caller's backend handle is stored on request.state; on failure a 401
        is returned directly, since FastAPI exception handlers do not catch
        exceptions from middleware. A missing token, an unknown token and an
        expired handle all produce the same response.
        """
        if not _requires_token(request):
            return await call_next(request)

        authenticator: Authenticator = app.state.authenticator
        handle = authenticator.resolve(request.headers.get("x-auth-token"))
        if handle is None:
            if request.method == "HEAD":
                return Response(status_code=401)
            return Response(
                content=UNAUTHORIZED_BODY,
                status_code=401,
                media_type="text/html; charset=UTF-8",
            )

        request.state.handle = handle
        return await call_next(request)


def _requires_token(request: Request) -> bool:
    """Return whether ``request`` must carry a valid X-Auth-Token.

    HEAD on an account only reports static headers, and an account-level
    POST or DELETE without ``bulk-delete`` is rejected as not implemented,
    so neither is authenticated.
    """
    path = request.url.path
    if not path.startswith(PROTECTED_PREFIX):
        return False
    if not _ACCOUNT_PATH.match(path):
        return True
    if request.method == "HEAD":
        return False
    if request.method in ("POST", "DELETE"):
        return "bulk-delete" in request.query_params
    return True


# ---------------------------------------------------------------------------
# Route handlers
# ---------------------------------------------------------------------------


def _setup_routes(app: FastAPI, config: SwiftGateConfig) -> None:
    """Register all Swift-compatible routes on the application.

    Args:
        app: The FastAPI application to attach routes to.
        config: The swiftgate configuration.
    """
    account_handler = AccountHandler(app)
    auth_handler = AuthHandler(app)

    @app.get("/health")
    async def health_check() -> Response:
        """Return static health status."""
        return JSONResponse(content={"status": "ok"})

    if config.observability.health_check:

        @app.get("/healthz")
        async def healthz() -> Response:
            """Liveness probe. Returns 200 with empty body."""
            return Response(status_code=200)

    @app.get("/info")
    async def info() -> Response:
        """Serve the static cluster information document."""
        return JSONResponse(content=app.state.info)

    async def login(request: Request) -> Response:
        """Handle GET /auth/v1.0 -- TempAuth login."""
        return await auth_handler.login(request)

    for path in AUTH_PATHS:
        app.add_api_route(path, login, methods=["GET"])

    @app.get("/v1/{account}")
    async def handle_account_get(account: str, request: Request) -> Response:
        """Handle GET /v1/{account} -- list containers."""
        return await account_handler.get_account(request, account)

    @app.head("/v1/{account}")
    async def handle_account_head(account: str, request: Request) -> Response:
        """Handle HEAD /v1/{account} -- account headers only."""
        return await account_handler.head_account(request, account)

    @app.post("/v1/{account}")
    async def handle_account_post(account: str, request: Request) -> Response:
        """Handle POST /v1/{account} -- ?bulk-delete."""
        return await account_handler.bulk_delete(request, account)

    @app.delete("/v1/{account}")
    async def handle_account_delete(account: str, request: Request) -> Response:
        """Handle DELETE /v1/{account} -- ?bulk-delete; account delete is unsupported."""
        return await account_handler.bulk_delete(request, account)
