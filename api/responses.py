"""
api/responses.py -- Translating core Results into HTTP responses.

Mutating form endpoints answer the way browser form posts expect:

  302 Found
  Location: <success target> | /?err=<url-encoded reason>
  X-Entry-Error: <reason>
  Set-Cookie: <directive from the association resolver, if any>
  body: the Result as a JSON array [success, message, record]

The JSON body lets scripted clients (and remote Entry instances forwarding
edits here) read the outcome without following the redirect.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Optional
from urllib.parse import quote

from fastapi.responses import JSONResponse, Response

from api.models import PasteResponse
from core.models import Result
from pastes.models import Paste
from pastes.service import Outcome


def to_jsonable(value: Any) -> Any:
    """Recursively convert Results, pastes and dataclasses into JSON values."""
    if isinstance(value, Result):
        return [value.ok, value.message, to_jsonable(value.record)]
    if isinstance(value, Paste):
        return PasteResponse.from_paste(value).model_dump(by_alias=True)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    return value


def header_safe(message: str) -> str:
    """Header values must be latin-1; percent-encode anything else."""
    return message if message.isascii() else quote(message)


def message_location(result: Result) -> str:
    key = "msg" if result.ok else "err"
    return f"/?{key}={quote(result.message)}"


def form_response(
    outcome: Outcome,
    success_location: Optional[str] = None,
    failure_location: Optional[str] = None,
) -> JSONResponse:
    """302 response for a form endpoint. Locations default to /?msg= and /?err=."""
    result = outcome.result
    if result.ok:
        location = success_location or message_location(result)
    else:
        location = failure_location or message_location(result)
    response = JSONResponse(
        status_code=302,
        content=to_jsonable(result),
        headers={"Location": location, "X-Entry-Error": header_safe(result.message)},
    )
    return forward_directive(response, outcome.set_cookie)


def result_response(result: Result, status_code: int = 200) -> JSONResponse:
    """Plain JSON Result for endpoints that never redirect (admin API)."""
    return JSONResponse(status_code=status_code, content=to_jsonable(result))


def forward_directive(response: Response, set_cookie: Optional[str]) -> Response:
    """Attach the association resolver's Set-Cookie directive, if it produced one."""
    if set_cookie:
        response.headers.append("set-cookie", set_cookie)
    return response
