"""
FastAPI application factory.

Every failure a route raises ends up on the error page with HTTP 500;
a request never takes the process down.
"""

from __future__ import annotations

import logging

import httpx
from fastapi import FastAPI, Request
from starlette.middleware.sessions import SessionMiddleware

from xeroshowcase import __version__
from xeroshowcase.auth.manager import AuthorizationSessionManager
from xeroshowcase.auth.session import SessionStore
from xeroshowcase.config import ShowcaseConfig
from xeroshowcase.errors import ShowcaseError, UpstreamApiError
from xeroshowcase.resources.registry import ResourceRegistry
from xeroshowcase.web.routes import add_resource_routes, get_session, router, templates

logger = logging.getLogger("xeroshowcase.web")


def create_app(
    config: ShowcaseConfig | None = None,
    *,
    registry: ResourceRegistry | None = None,
    sessions: SessionStore | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the web app.

    Args:
        config: Loaded configuration; read from the environment if omitted.
        registry: Resource routes to serve; the built-in Xero table by default.
        sessions: Server-side session store; a fresh in-memory one by default.
        transport: httpx transport for all upstream calls (tests use a mock).
    """
    config = config or ShowcaseConfig.load()
    registry = registry or ResourceRegistry.builtin()

    app = FastAPI(title="Xero API Showcase", version=__version__)
    app.state.config = config
    app.state.registry = registry
    app.state.sessions = sessions if sessions is not None else SessionStore(config.server.session_max_age)
    app.state.manager = AuthorizationSessionManager(config, transport=transport)

    app.add_middleware(
        SessionMiddleware,
        secret_key=config.server.session_secret,
        session_cookie=config.server.session_cookie,
        max_age=config.server.session_max_age,
    )

    app.include_router(router)
    add_resource_routes(app, registry)

    app.add_exception_handler(ShowcaseError, render_error)
    app.add_exception_handler(Exception, render_error)

    return app


async def render_error(request: Request, exc: Exception):
    """Render any route failure as the error page."""
    if isinstance(exc, ShowcaseError):
        logger.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc)
    else:
        logger.exception("Unhandled error on %s", request.url.path, exc_info=exc)

    config: ShowcaseConfig = request.app.state.config
    manager: AuthorizationSessionManager = request.app.state.manager
    # Only offer a consent link when one can be built. The scope lacks a
    # session only when the failure happened before the session middleware ran.
    consent_url = None
    if "session" in request.scope and not config.xero.missing_credentials():
        consent_url = manager.begin_authorization(get_session(request))

    status_code = exc.status_code if isinstance(exc, ShowcaseError) else 500
    return templates.TemplateResponse(
        request,
        "error.html",
        {
            "consent_url": consent_url,
            "error_type": type(exc).__name__,
            "error": str(exc),
            "upstream_body": exc.body if isinstance(exc, UpstreamApiError) else "",
        },
        status_code=status_code,
    )
