from __future__ import annotations

import contextlib
from pathlib import Path

import httpx
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import FileResponse, JSONResponse, RedirectResponse, Response
from starlette.routing import Mount, Route
from starlette.staticfiles import StaticFiles

from auth.cookies import CookiePolicy, credential_from_cookies
from auth.cors import CredentialedCORSMiddleware
from auth.guard import TokenGuard
from auth.login_flow import LoginFlow
from auth.oauth_server import OAuthServer

from .api_routes import build_api_routes
from .constants import APP_VERSION, LOGGER, SERVICE_NAME
from .env import Settings, load_env, setup_logging
from .http import build_http_client
from .spotify_api import SpotifyAPI


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        LOGGER.info(
            "%s %s (cookies: %s)",
            request.method,
            request.url.path,
            ", ".join(sorted(request.cookies)) or "none",
        )
        return await call_next(request)


async def health_route(request: Request) -> Response:
    del request
    return JSONResponse(
        {
            "status": "ok",
            "version": APP_VERSION,
            "service": SERVICE_NAME,
        }
    )


async def internal_error_handler(request: Request, exc: Exception) -> Response:
    LOGGER.error("Unhandled error for %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse({"error": "Internal server error"}, status_code=500)


def static_routes(static_dir: Path) -> list:
    """Landing and dashboard pages; only mounted when ``static_dir`` exists."""
    if not static_dir.is_dir():
        LOGGER.info("Static directory %s not found; page routes disabled", static_dir)
        return []

    index_file = static_dir / "index.html"
    dashboard_file = static_dir / "dashboard.html"

    async def root(request: Request) -> Response:
        if credential_from_cookies(request.cookies).is_complete():
            return RedirectResponse(url="/dashboard", status_code=302)
        return FileResponse(index_file)

    async def dashboard(request: Request) -> Response:
        del request
        return FileResponse(dashboard_file)

    return [
        Route("/", root, methods=["GET"]),
        Route("/dashboard", dashboard, methods=["GET"]),
        Mount("/static", app=StaticFiles(directory=static_dir), name="static"),
    ]


def create_app(
    settings: Settings | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
    guard: TokenGuard | None = None,
    login_flow: LoginFlow | None = None,
) -> Starlette:
    if settings is None:
        load_env()
        debug_enabled = setup_logging()
        settings = Settings.from_env(debug=debug_enabled)

    own_client = http_client is None
    client = http_client or build_http_client(
        timeout=settings.timeout,
        debug_enabled=settings.debug,
    )
    cookie_policy = CookiePolicy(secure=settings.cookie_secure)
    guard = guard or TokenGuard(
        client_id=settings.client_id,
        client_secret=settings.client_secret,
        client=client,
    )
    login_flow = login_flow or LoginFlow(
        client_id=settings.client_id,
        client_secret=settings.client_secret,
        redirect_uri=settings.redirect_uri,
        scopes=settings.scopes,
        client=client,
    )
    oauth_server = OAuthServer(
        login_flow=login_flow,
        guard=guard,
        cookie_policy=cookie_policy,
    )

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette):
        LOGGER.info(
            "%s %s starting (client_id=%s, client_secret=%s, redirect_uri=%s)",
            SERVICE_NAME,
            APP_VERSION,
            "set" if settings.client_id else "not set",
            "set" if settings.client_secret else "not set",
            settings.redirect_uri,
        )
        try:
            yield
        finally:
            if own_client:
                await client.aclose()

    routes = [
        Route("/health", health_route, methods=["GET"]),
        *oauth_server.routes(),
        build_api_routes(SpotifyAPI(client), guard, cookie_policy),
        *static_routes(settings.static_dir),
    ]
    middleware = [
        Middleware(CredentialedCORSMiddleware, allowed_origins=settings.cors_origins),
        Middleware(RequestLogMiddleware),
    ]
    app = Starlette(
        routes=routes,
        middleware=middleware,
        exception_handlers={Exception: internal_error_handler},
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.oauth_server = oauth_server
    return app
