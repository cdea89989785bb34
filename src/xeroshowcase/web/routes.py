"""
HTTP routes: the authorization handshake plus one page per resource route.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, Form, Request
from fastapi.responses import HTMLResponse, StreamingResponse
from fastapi.templating import Jinja2Templates

from xeroshowcase.auth.manager import AuthorizationSessionManager
from xeroshowcase.auth.session import SessionData, SessionStore
from xeroshowcase.resources.base import ResourceDownload, ResourceRoute
from xeroshowcase.resources.registry import ResourceRegistry

logger = logging.getLogger("xeroshowcase.web")

TEMPLATES_DIR = Path(__file__).parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

# Key in the signed cookie that holds the opaque session id
SESSION_KEY = "sid"

router = APIRouter()


def get_session(request: Request) -> SessionData:
    """Resolve (or start) the server-side session for this browser."""
    sessions: SessionStore = request.app.state.sessions
    session = sessions.get_or_create(request.session.get(SESSION_KEY))
    if request.session.get(SESSION_KEY) != session.session_id:
        request.session[SESSION_KEY] = session.session_id
    return session


def page_context(request: Request, session: SessionData) -> dict[str, Any]:
    """Context shared by every page: consent link or signed-in details."""
    manager: AuthorizationSessionManager = request.app.state.manager
    registry: ResourceRegistry = request.app.state.registry
    authorized = session.is_authorized
    return {
        "consent_url": None if authorized else manager.begin_authorization(session),
        "authenticated": session.authentication_data() if authorized else None,
        "routes": list(registry),
    }


@router.get("/", response_class=HTMLResponse)
async def home(request: Request, session: SessionData = Depends(get_session)):
    return templates.TemplateResponse(request, "home.html", page_context(request, session))


@router.get("/callback", response_class=HTMLResponse)
async def callback(request: Request, session: SessionData = Depends(get_session)):
    manager: AuthorizationSessionManager = request.app.state.manager
    await manager.complete_authorization(session, request.query_params)
    return templates.TemplateResponse(request, "callback.html", page_context(request, session))


@router.get("/refresh-token", response_class=HTMLResponse)
async def refresh_token(request: Request, session: SessionData = Depends(get_session)):
    manager: AuthorizationSessionManager = request.app.state.manager
    await manager.refresh_token(session)
    return templates.TemplateResponse(request, "home.html", page_context(request, session))


@router.get("/logout", response_class=HTMLResponse)
async def logout(request: Request, session: SessionData = Depends(get_session)):
    manager: AuthorizationSessionManager = request.app.state.manager
    manager.logout(session)
    return templates.TemplateResponse(request, "home.html", page_context(request, session))


@router.post("/change_organisation", response_class=HTMLResponse)
async def change_organisation(
    request: Request,
    active_org_id: str = Form(...),
    session: SessionData = Depends(get_session),
):
    manager: AuthorizationSessionManager = request.app.state.manager
    manager.change_organisation(session, active_org_id)
    return templates.TemplateResponse(request, "home.html", page_context(request, session))


def _resource_endpoint(route: ResourceRoute):
    async def endpoint(request: Request, session: SessionData = Depends(get_session)):
        manager: AuthorizationSessionManager = request.app.state.manager
        async with manager.apply_token(session) as xero:
            result = await route.run(xero, request.query_params)

        if isinstance(result, ResourceDownload):
            logger.info("Sending /%s as %s", route.path, result.filename)
            return StreamingResponse(
                iter([result.content]),
                media_type=result.media_type,
                headers={"Content-Disposition": f"attachment; filename={result.filename}"},
            )

        logger.info("Rendered /%s (count=%s)", route.path, result.count)
        context = page_context(request, session)
        context["summary"] = result
        return templates.TemplateResponse(request, "resource.html", context)

    endpoint.__name__ = f"resource_{route.path.replace('-', '_')}"
    return endpoint


def add_resource_routes(app: FastAPI, registry: ResourceRegistry) -> None:
    """Serve every registry entry at ``GET /<path>``."""
    for route in registry:
        app.add_api_route(
            route.url_path,
            _resource_endpoint(route),
            methods=["GET"],
            response_class=HTMLResponse,
            name=route.path,
        )
