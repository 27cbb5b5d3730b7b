"""
api/routes/association.py -- Paste login and logout.

Routes:
  POST /api/associate      -- act as a paste for this browser session (form); rate limited
  POST /api/disassociate   -- drop the session's association (form)
  GET  /api/association    -- who the session acts as

The association lives in the session log; the "associated" cookie only
mirrors it. Every response forwards whatever Set-Cookie directive the
resolver produced so the mirror stays in sync.
"""

from __future__ import annotations

from fastapi import APIRouter, Form, Request
from fastapi.responses import JSONResponse

from api.limiter import PASTE_RATE_LIMIT, limiter
from api.models import AssociationResponse
from api.responses import form_response, forward_directive
from auth.dependencies import client_ip, get_association
from pastes.service import PasteService

router = APIRouter()


@limiter.limit(PASTE_RATE_LIMIT)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/associate")
def associate(
    request: Request,
    custom_url: str = Form(..., alias="CustomURL"),
    edit_password: str = Form(..., alias="EditPassword"),
) -> JSONResponse:
    service: PasteService = request.app.state.paste_service
    outcome = service.associate(custom_url, edit_password, request.cookies, client_ip(request))
    return form_response(outcome)


@router.post("/disassociate")
def disassociate(
    request: Request,
    edit_password: str = Form(default="", alias="EditPassword"),
) -> JSONResponse:
    service: PasteService = request.app.state.paste_service
    outcome = service.disassociate(request.cookies, edit_password)
    return form_response(outcome)


@router.get("/association")
def current_association(request: Request) -> JSONResponse:
    association = get_association(request)
    identity = association.identity
    response = JSONResponse(
        content=AssociationResponse(associated=identity is not None, custom_url=identity).model_dump(by_alias=True)
    )
    return forward_directive(response, association.set_cookie)
