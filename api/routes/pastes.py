"""
api/routes/pastes.py -- Paste CRUD, reads and owner settings.

Routes:
  POST /api/new            -- create a paste (form); rate limited
  POST /api/edit           -- edit content / URL / edit password (form)
  POST /api/delete         -- delete a paste (form)
  POST /api/decrypt        -- decrypt a private paste (form); text/plain
  POST /api/metadata       -- merge metadata changes (JSON)
  POST /api/domain         -- link a custom domain (form)
  GET  /api/get/{url}      -- client-safe paste record (JSON)
  GET  /api/raw/{url}      -- stored content (text/plain) with X-Paste-* headers
  GET  /api/exists/{url}   -- "true" / "false"
  GET  /api/all            -- public pastes
  GET  /api/group/{group}  -- pastes in a group (local or "<group>:<server>")

Form endpoints answer 302 (see api/responses.py). Handlers are plain `def`:
the stores are synchronous and FastAPI runs them in its threadpool.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from api.limiter import PASTE_RATE_LIMIT, limiter
from api.models import ErrorDetail, MetadataEditRequest, PasteResponse
from api.responses import form_response, forward_directive, header_safe, to_jsonable
from auth.access import SOURCE_PRIVATE
from auth.association import Association
from auth.dependencies import client_ip, get_association
from core.models import Result
from pastes.encryption import get_decrypted
from pastes.models import Paste
from pastes.service import Outcome, PasteEdit, PasteService, PasteSubmission

router = APIRouter()

_FALSE_VALUES = ("", "false", "off", "0", "no")


def _service(request: Request) -> PasteService:
    return request.app.state.paste_service


def _parse_expiry(value: Optional[str]) -> Optional[int]:
    """Accept unix milliseconds or an ISO 8601 datetime. Raises ValueError."""
    if not value:
        return None
    if value.isdigit():
        return int(value)
    return int(datetime.fromisoformat(value).timestamp() * 1000)


def _not_found(message: str, headers: Optional[dict[str, str]] = None) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail=ErrorDetail(code="not_found", message=message).model_dump(),
        headers=headers,
    )


def _read_or_raise(service: PasteService, url: str, association: Association) -> Paste:
    """Fetch a paste for a read endpoint, mapping failures to 403/404.

    Error responses still carry the association directive.
    """
    headers = {"set-cookie": association.set_cookie} if association.set_cookie else None
    found = service.view_paste(url, identity=association.identity, count_view=False)
    if found.ok:
        return found.record
    if found.message == SOURCE_PRIVATE:
        raise HTTPException(
            status_code=403,
            detail=ErrorDetail(code="source_private", message=SOURCE_PRIVATE).model_dump(),
            headers=headers,
        )
    raise _not_found(found.message, headers)


# ---------------------------------------------------------------------------
# Create / edit / delete
# ---------------------------------------------------------------------------


@limiter.limit(PASTE_RATE_LIMIT)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/new")
def create_paste(
    request: Request,
    content: str = Form(..., alias="Content"),
    custom_url: str = Form(default="", alias="CustomURL"),
    edit_password: str = Form(default="", alias="EditPassword"),
    view_password: str = Form(default="", alias="ViewPassword"),
    group_name: str = Form(default="", alias="GroupName"),
    group_submit_password: str = Form(default="", alias="GroupSubmitPassword"),
    is_editable: str = Form(default="true", alias="IsEditable"),
    expire_on: Optional[str] = Form(default=None, alias="ExpireOn"),
    comment_on: str = Form(default="", alias="CommentOn"),
    report_on: str = Form(default="", alias="ReportOn"),
) -> JSONResponse:
    """Create a paste, associating an anonymous browser session with it."""
    try:
        expiry = _parse_expiry(expire_on)
    except ValueError:
        return form_response(Outcome(Result(False, "Invalid expiry date!")))

    submission = PasteSubmission(
        content=content,
        custom_url=custom_url,
        edit_password=edit_password,
        view_password=view_password,
        group_name=group_name,
        group_submit_password=group_submit_password,
        is_editable=is_editable.strip().lower() not in _FALSE_VALUES,
        expire_on=expiry,
        comment_on=comment_on,
        report_on=report_on,
    )
    outcome = _service(request).create_paste(submission, request.cookies, client_ip(request))
    if not outcome.result.ok:
        return form_response(outcome)

    if submission.comment_on:
        location = f"/?msg={quote('Comment posted!')}"
    elif submission.report_on:
        location = f"/?msg={quote('Paste reported!')}"
    else:
        created: Paste = outcome.result.record
        location = f"/{quote(created.custom_url)}?UnhashedEditPassword={quote(outcome.edit_code or '')}"
    return form_response(outcome, success_location=location)


@router.post("/edit")
def edit_paste(
    request: Request,
    old_url: str = Form(..., alias="OldURL"),
    old_edit_password: str = Form(..., alias="OldEditPassword"),
    new_content: str = Form(default="", alias="NewContent"),
    new_url: str = Form(default="", alias="NewURL"),
    new_edit_password: str = Form(default="", alias="NewEditPassword"),
) -> JSONResponse:
    edit = PasteEdit(
        old_url=old_url,
        old_edit_password=old_edit_password,
        new_content=new_content,
        new_url=new_url,
        new_edit_password=new_edit_password,
    )
    outcome = _service(request).edit_paste(edit, request.cookies, client_ip(request))
    failure = f"/?err={quote(outcome.result.message)}&mode=edit&OldURL={quote(old_url)}"
    success = None
    if isinstance(outcome.result.record, Paste):
        success = f"/{quote(outcome.result.record.custom_url)}"
    return form_response(outcome, success_location=success, failure_location=failure)


@router.post("/delete")
def delete_paste(
    request: Request,
    custom_url: str = Form(..., alias="CustomURL"),
    edit_password: str = Form(..., alias="EditPassword"),
) -> JSONResponse:
    outcome = _service(request).delete_paste(custom_url, edit_password)
    failure = f"/?err={quote(outcome.result.message)}&mode=edit&OldURL={quote(custom_url)}"
    return form_response(outcome, failure_location=failure)


@router.post("/decrypt")
def decrypt_paste(
    request: Request,
    custom_url: str = Form(..., alias="CustomURL"),
    view_password: str = Form(default="", alias="ViewPassword"),
) -> PlainTextResponse:
    """Return the plaintext of a private paste, or 400 "Failed to decrypt".

    Every failure looks the same so the endpoint cannot be used to probe
    which pastes are private.
    """
    plaintext = get_decrypted(request.app.state.paste_store, custom_url.strip().lower(), view_password)
    if plaintext is None:
        return PlainTextResponse("Failed to decrypt", status_code=400, headers={"X-Entry-Error": "Failed to decrypt"})
    return PlainTextResponse(plaintext)


# ---------------------------------------------------------------------------
# Owner settings
# ---------------------------------------------------------------------------


@router.post("/metadata")
def edit_metadata(request: Request, body: MetadataEditRequest) -> JSONResponse:
    outcome = _service(request).edit_metadata(body.custom_url, body.edit_password, request.cookies, body.metadata)
    return form_response(outcome)


@router.post("/domain")
def link_domain(
    request: Request,
    custom_url: str = Form(..., alias="CustomURL"),
    edit_password: str = Form(..., alias="EditPassword"),
    domain: str = Form(..., alias="Domain"),
) -> JSONResponse:
    outcome = _service(request).link_domain(custom_url, edit_password, domain)
    return form_response(outcome)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


@router.get("/get/{custom_url:path}")
def get_paste(
    request: Request,
    custom_url: str,
    association: Association = Depends(get_association),
) -> JSONResponse:
    paste = _read_or_raise(_service(request), custom_url, association)
    response = JSONResponse(content=PasteResponse.from_paste(paste).model_dump(by_alias=True))
    return forward_directive(response, association.set_cookie)


@router.get("/raw/{custom_url:path}")
def get_raw_paste(
    request: Request,
    custom_url: str,
    association: Association = Depends(get_association),
) -> PlainTextResponse:
    paste = _read_or_raise(_service(request), custom_url, association)
    response = PlainTextResponse(
        paste.content,
        headers={
            "X-Paste-PubDate": str(paste.pub_date),
            "X-Paste-EditDate": str(paste.edit_date),
            "X-Paste-GroupName": header_safe(paste.group_name or ""),
        },
    )
    return forward_directive(response, association.set_cookie)


@router.get("/exists/{custom_url:path}")
def paste_exists(request: Request, custom_url: str) -> PlainTextResponse:
    return PlainTextResponse("true" if _service(request).paste_exists(custom_url) else "false")


@router.get("/all")
def list_pastes(request: Request) -> JSONResponse:
    return JSONResponse(content=to_jsonable(_service(request).list_pastes()))


@router.get("/group/{group:path}")
def list_group(request: Request, group: str) -> JSONResponse:
    return JSONResponse(content=to_jsonable(_service(request).list_group(group)))
