"""
api/routes/admin.py -- Instance administration (JSON API).

Routes:
  POST /api/admin/export        -- every paste with hashes and key material
  POST /api/admin/import        -- recreate exported pastes (no re-hashing)
  POST /api/admin/mass-delete   -- delete many pastes
  POST /api/admin/logs/export   -- dump log records, optionally of one type
  POST /api/admin/logs/delete   -- delete log records by id

Every request carries AdminPassword in its body. A wrong password answers
401 with the Result body; every admitted call writes an access_admin log.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.models import (
    AdminImportRequest,
    AdminLogsDeleteRequest,
    AdminLogsExportRequest,
    AdminMassDeleteRequest,
    AdminRequest,
)
from api.responses import result_response
from core.models import Result
from pastes.service import PasteService

router = APIRouter()


def _respond(result: Result) -> JSONResponse:
    return result_response(result, status_code=200 if result.ok else 401)


def _service(request: Request) -> PasteService:
    return request.app.state.paste_service


@router.post("/admin/export")
def export_pastes(request: Request, body: AdminRequest) -> JSONResponse:
    return _respond(_service(request).export_pastes(body.admin_password))


@router.post("/admin/import")
def import_pastes(request: Request, body: AdminImportRequest) -> JSONResponse:
    return _respond(_service(request).import_pastes(body.admin_password, body.pastes))


@router.post("/admin/mass-delete")
def mass_delete(request: Request, body: AdminMassDeleteRequest) -> JSONResponse:
    return _respond(_service(request).mass_delete(body.admin_password, body.pastes))


@router.post("/admin/logs/export")
def export_logs(request: Request, body: AdminLogsExportRequest) -> JSONResponse:
    return _respond(_service(request).export_logs(body.admin_password, body.log_type))


@router.post("/admin/logs/delete")
def delete_logs(request: Request, body: AdminLogsDeleteRequest) -> JSONResponse:
    return _respond(_service(request).mass_delete_logs(body.admin_password, body.ids))
