"""
api/routes/comments.py -- Comment threads.

Routes:
  GET  /api/comments/{url}    -- comments posted on a paste (JSON list)
  POST /api/comments/delete   -- remove a comment (form)

A comment is created through POST /api/new with CommentOn set. Deleting one
is allowed for the thread owner, the paste one level up the reply chain,
the paste's edit password, or the instance admin.
"""

from __future__ import annotations

from urllib.parse import quote

from fastapi import APIRouter, Form, HTTPException, Request
from fastapi.responses import JSONResponse

from api.models import ErrorDetail
from api.responses import form_response, to_jsonable
from pastes.service import PasteService

router = APIRouter()


@router.get("/comments/{custom_url:path}")
def list_comments(request: Request, custom_url: str) -> JSONResponse:
    service: PasteService = request.app.state.paste_service
    found = service.list_comments(custom_url)
    if not found.ok:
        raise HTTPException(
            status_code=404,
            detail=ErrorDetail(code="not_found", message=found.message).model_dump(),
        )
    return JSONResponse(content=to_jsonable(found.record))


@router.post("/comments/delete")
def delete_comment(
    request: Request,
    custom_url: str = Form(..., alias="CustomURL"),
    comment_url: str = Form(..., alias="CommentURL"),
    edit_password: str = Form(default="", alias="EditPassword"),
) -> JSONResponse:
    service: PasteService = request.app.state.paste_service
    outcome = service.delete_comment(custom_url, comment_url, edit_password, request.cookies)
    failure = f"/?err={quote(outcome.result.message)}"
    return form_response(outcome, failure_location=failure)
