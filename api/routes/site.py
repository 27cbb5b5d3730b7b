"""
api/routes/site.py -- Non-API routes: crawler hints, NodeInfo and the page view.

Routes:
  GET /robots.txt
  GET /.well-known/nodeinfo
  GET /.well-known/nodeinfo/2.0
  GET /{url}                   -- plain-text paste view (counts a view)

The page view is a catch-all, so asgi.py includes this router last. The
session-issuing middleware in api/main.py runs on these GETs.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from api.models import (
    NodeInfo,
    NodeInfoLink,
    NodeInfoLinks,
    NodeInfoSoftware,
    NodeInfoUsage,
    NodeInfoUsers,
)
from api.responses import forward_directive
from auth.association import Association
from auth.dependencies import get_association
from pastes.service import PasteService

router = APIRouter()

ROBOTS_TXT = "User-agent: *\nAllow: /\nDisallow: /api\nDisallow: /api/admin\nDisallow: /api/paste\nDisallow: /api/*?"
NODEINFO_SCHEMA = "http://nodeinfo.diaspora.software/ns/schema/2.0"


@router.get("/robots.txt", include_in_schema=False)
async def robots_txt() -> PlainTextResponse:
    return PlainTextResponse(ROBOTS_TXT)


@router.get("/.well-known/nodeinfo", include_in_schema=False)
async def nodeinfo_links(request: Request) -> JSONResponse:
    origin = str(request.base_url).rstrip("/")
    links = NodeInfoLinks(links=[NodeInfoLink(rel=NODEINFO_SCHEMA, href=f"{origin}/.well-known/nodeinfo/2.0")])
    return JSONResponse(content=links.model_dump())


@router.get("/.well-known/nodeinfo/2.0", include_in_schema=False)
def nodeinfo(request: Request) -> JSONResponse:
    """NodeInfo 2.0. There are no user accounts; "users" counts browser sessions."""
    service: PasteService = request.app.state.paste_service
    sessions, pastes = service.node_usage()
    document = NodeInfo(
        software=NodeInfoSoftware(version=request.app.state.settings.version),
        usage=NodeInfoUsage(users=NodeInfoUsers(total=max(sessions - 1, 0)), local_posts=pastes),
    )
    return JSONResponse(content=document.model_dump(by_alias=True))


@router.get("/{custom_url:path}", include_in_schema=False)
def view_paste(
    request: Request,
    custom_url: str,
    association: Association = Depends(get_association),
) -> PlainTextResponse:
    """Serve a paste as plain text. The empty path is the landing page."""
    service: PasteService = request.app.state.paste_service
    if not custom_url:
        message = request.query_params.get("err") or request.query_params.get("msg") or ""
        landing = PlainTextResponse(f"Entry {request.app.state.settings.version}\n{message}".rstrip())
        return forward_directive(landing, association.set_cookie)

    found = service.view_paste(custom_url, identity=association.identity)
    if not found.ok:
        response = PlainTextResponse(found.message, status_code=404, headers={"X-Entry-Error": "Not found"})
    elif found.record.view_password:
        response = PlainTextResponse(
            "This paste is encrypted.",
            status_code=403,
            headers={"X-Entry-Error": "This paste is encrypted."},
        )
    else:
        response = PlainTextResponse(found.record.content)
    return forward_directive(response, association.set_cookie)
