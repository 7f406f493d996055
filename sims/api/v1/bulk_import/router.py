import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile, status
from fastapi.responses import JSONResponse, Response

from sims.auth.dependencies import Backend, get_backend, get_bearer_token
from sims.core.enums import IMPORTABLE_ROLES, AppRole, TemplateFormat
from sims.core.exceptions import InvalidArgumentError, ServiceError

from .schemas import BulkImportResponse
from . import parsers, service

logger = logging.getLogger(__name__)

# Sent on every bulk-import response, preflight included
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}

router = APIRouter(prefix="/api/v1/bulk-import-users", tags=["bulk-import"])


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code, headers=CORS_HEADERS)


def _unexpected(e: Exception) -> JSONResponse:
    logger.exception("Bulk import request failed")
    return error_response(str(e) or "Unknown error", status.HTTP_500_INTERNAL_SERVER_ERROR)


def _require_importable(role: AppRole) -> None:
    if role not in IMPORTABLE_ROLES:
        raise InvalidArgumentError(f"Invalid role: {role.value}")


@router.options("", include_in_schema=False)
@router.options("/{path:path}", include_in_schema=False)
async def bulk_import_preflight() -> Response:
    return Response(status_code=status.HTTP_200_OK, headers=CORS_HEADERS)


@router.post("", response_model=BulkImportResponse)
async def bulk_import_users(
    request: Request,
    token: Optional[str] = Depends(get_bearer_token),
    backend: Backend = Depends(get_backend),
):
    """
    Create up to 50 teacher/student/guardian accounts from JSON `{"users": [...]}`.
    Always 200 once the caller is an admin and the batch size is valid; per-row
    failures are reported in `results`, in input order.
    """
    try:
        caller = await service.authorize_admin(backend.identity, backend.store, token)
        # Body is read only after the caller is known to be an admin
        body = await request.json()
        users = body.get("users") if isinstance(body, dict) else None
        result = await service.process_batch(backend.identity, backend.store, users, caller_id=caller.id)
    except ServiceError as e:
        return error_response(e.message, e.status_code)
    except Exception as e:
        return _unexpected(e)
    return JSONResponse(result.to_json(), headers=CORS_HEADERS)


@router.post("/upload", response_model=BulkImportResponse)
async def bulk_import_users_upload(
    file: UploadFile = File(
        ...,
        description="CSV or Excel with header row: nama, email, password and the role's columns (see /template)",
    ),
    role: AppRole = Query(AppRole.TEACHER, description="Role given to every row of the file"),
    token: Optional[str] = Depends(get_bearer_token),
    backend: Backend = Depends(get_backend),
):
    """Same import as the JSON route, with rows read from an uploaded sheet. Missing passwords are generated."""
    try:
        caller = await service.authorize_admin(backend.identity, backend.store, token)
        _require_importable(role)
        content = await file.read()
        users = parsers.parse_upload(file.filename or "", content, role)
        result = await service.process_batch(backend.identity, backend.store, users, caller_id=caller.id)
    except ServiceError as e:
        return error_response(e.message, e.status_code)
    except ValueError as e:
        return error_response(str(e), status.HTTP_400_BAD_REQUEST)
    except Exception as e:
        return _unexpected(e)
    finally:
        await file.close()
    return JSONResponse(result.to_json(), headers=CORS_HEADERS)


@router.get("/template")
async def download_import_template(
    role: AppRole = Query(AppRole.TEACHER),
    fmt: TemplateFormat = Query(TemplateFormat.CSV, alias="format"),
    token: Optional[str] = Depends(get_bearer_token),
    backend: Backend = Depends(get_backend),
) -> Response:
    """Download a CSV or Excel template with the role's columns and one example row."""
    try:
        await service.authorize_admin(backend.identity, backend.store, token)
        _require_importable(role)
        content, media_type, filename = parsers.build_template(role, fmt)
    except ServiceError as e:
        return error_response(e.message, e.status_code)
    return Response(
        content=content,
        media_type=media_type,
        headers={**CORS_HEADERS, "Content-Disposition": f"attachment; filename={filename}"},
    )
