"""
Catalog import API routes.

The pipeline is stateless over HTTP: every call uploads the spreadsheet again
together with the operator's current mappings (JSON form field). When
mappings are omitted the auto-mapper's suggestion is used.

Writes require the acting user in the X-User-Id header.
"""

import json
from datetime import date
from typing import Optional

from fastapi import APIRouter, File, Form, Header, UploadFile
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field, TypeAdapter
import structlog

from config import settings
from exceptions import AppError, ImportValidationError, ValidationError
from models.diff import ApplyOptions
from models.mapping import SYSTEM_FIELDS, ColumnMapping
from parsers.spreadsheet_reader import ParsedSheet, get_preview_rows, read_spreadsheet
from services.column_mapper import auto_map, ensure_unique_assignments, mapping_stats
from services.catalog_export import error_report_csv, error_report_filename
from services.import_service import get_import_service
from services.row_validator import Severity, ValidationResult, apply_cell_edits, filter_issues, validate_rows

router = APIRouter(prefix="/api/imports", tags=["Imports"])
logger = structlog.get_logger(__name__)

_MAPPINGS_ADAPTER = TypeAdapter(list[ColumnMapping])


# ===================
# REQUEST MODELS
# ===================

class CellEdit(BaseModel):
    """Operator correction of one cell."""
    row: int = Field(..., ge=2, description="Physical spreadsheet row")
    column: str
    value: Optional[str] = None


_EDITS_ADAPTER = TypeAdapter(list[CellEdit])


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


# ===================
# HELPERS
# ===================

async def _read_upload(file: UploadFile) -> ParsedSheet:
    content = await file.read()
    return read_spreadsheet(content, filename=file.filename)


def _parse_json_field(raw: str, adapter: TypeAdapter, field_name: str):
    try:
        return adapter.validate_python(json.loads(raw))
    except ValueError as e:
        raise ValidationError(
            message=f"Invalid {field_name} payload",
            code="INVALID_FORM_FIELD",
            details={"field": field_name, "reason": str(e)}
        )


def _resolve_mappings(sheet: ParsedSheet, raw: Optional[str]) -> list[ColumnMapping]:
    if not raw:
        return auto_map(SYSTEM_FIELDS, sheet.columns)

    mappings = _parse_json_field(raw, _MAPPINGS_ADAPTER, "mappings")
    ensure_unique_assignments(mappings)
    return mappings


def _apply_edits(sheet: ParsedSheet, raw: Optional[str]) -> ParsedSheet:
    if not raw:
        return sheet

    edits = _parse_json_field(raw, _EDITS_ADAPTER, "edits")
    rows = apply_cell_edits(sheet.rows, {(e.row, e.column): e.value for e in edits})
    return ParsedSheet(columns=sheet.columns, rows=rows)


def _validation_failure(result: ValidationResult) -> JSONResponse:
    error = ImportValidationError(result.error_count, result.warning_count)
    content = error.to_dict()
    content["validation"] = result.to_dict()
    return JSONResponse(status_code=error.status_code, content=content)


# ===================
# ROUTES
# ===================

@router.post("/parse")
async def parse_upload(file: UploadFile = File(...)):
    """
    Read an uploaded spreadsheet.

    Returns the header columns, row count, preview rows and the suggested
    field-to-column mappings.
    """
    try:
        sheet = await _read_upload(file)
        mappings = auto_map(SYSTEM_FIELDS, sheet.columns)

        logger.info(
            "import_file_parsed",
            filename=file.filename,
            columns=len(sheet.columns),
            rows=sheet.total_rows
        )

        return {
            "columns": sheet.columns,
            "total_rows": sheet.total_rows,
            "preview": get_preview_rows(sheet.rows, settings.preview_row_count),
            "mappings": [m.model_dump() for m in mappings],
            "stats": mapping_stats(mappings, SYSTEM_FIELDS, sheet.columns).model_dump(),
            "system_fields": [f.model_dump(mode="json") for f in SYSTEM_FIELDS],
        }

    except Exception as e:
        return handle_error(e)


@router.post("/validate")
async def validate_upload(
    file: UploadFile = File(...),
    mappings: Optional[str] = Form(None),
    edits: Optional[str] = Form(None),
    severity: Optional[Severity] = Form(None),
):
    """Validate every row under the given mappings and cell edits."""
    try:
        sheet = _apply_edits(await _read_upload(file), edits)
        resolved = _resolve_mappings(sheet, mappings)
        result = validate_rows(sheet.rows, resolved, SYSTEM_FIELDS)

        payload = result.to_dict()
        if severity is not None:
            payload["errors"] = [i.to_dict() for i in filter_issues(result, severity)]
        payload["stats"] = mapping_stats(resolved, SYSTEM_FIELDS, sheet.columns).model_dump()

        return payload

    except Exception as e:
        return handle_error(e)


@router.post("/errors.csv")
async def download_error_report(
    file: UploadFile = File(...),
    mappings: Optional[str] = Form(None),
    edits: Optional[str] = Form(None),
    catalog_name: str = Form("catalogo"),
):
    """Validation issues as a CSV download."""
    try:
        sheet = _apply_edits(await _read_upload(file), edits)
        resolved = _resolve_mappings(sheet, mappings)
        result = validate_rows(sheet.rows, resolved, SYSTEM_FIELDS)

        filename = error_report_filename(catalog_name, date.today())
        return Response(
            content=error_report_csv(result.issues),
            media_type="text/csv; charset=utf-8",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'}
        )

    except Exception as e:
        return handle_error(e)


@router.post("/catalogs", status_code=201)
async def import_new_catalog(
    file: UploadFile = File(...),
    name: str = Form(..., min_length=1),
    description: Optional[str] = Form(None),
    mappings: Optional[str] = Form(None),
    edits: Optional[str] = Form(None),
    x_user_id: Optional[str] = Header(None),
):
    """
    Create a catalog with version 1 from the upload.

    Rows with blocking validation errors reject the whole request (422).
    Failed insert batches are reported in the response, not raised.
    """
    try:
        sheet = _apply_edits(await _read_upload(file), edits)
        resolved = _resolve_mappings(sheet, mappings)

        validation = validate_rows(sheet.rows, resolved, SYSTEM_FIELDS)
        if not validation.is_valid:
            return _validation_failure(validation)

        result = get_import_service().import_new_catalog(
            name=name,
            description=description,
            rows=sheet.rows,
            mappings=resolved,
            created_by=x_user_id,
        )

        return result.to_dict()

    except Exception as e:
        return handle_error(e)


@router.post("/catalogs/{catalog_id}/diff")
async def diff_catalog_update(
    catalog_id: str,
    file: UploadFile = File(...),
    mappings: Optional[str] = Form(None),
    edits: Optional[str] = Form(None),
):
    """
    Compare the upload with the catalog's base version.

    Also returns the default selection: every new and modified code, no
    deletions.
    """
    try:
        sheet = _apply_edits(await _read_upload(file), edits)
        resolved = _resolve_mappings(sheet, mappings)

        validation = validate_rows(sheet.rows, resolved, SYSTEM_FIELDS)
        if not validation.is_valid:
            return _validation_failure(validation)

        plan = get_import_service().build_update_diff(catalog_id, sheet.rows, resolved)

        return {
            "base_version": plan.base_version.model_dump(mode="json"),
            "diff": plan.diff.model_dump(mode="json"),
            "has_changes": plan.diff.has_changes,
            "next_version_number": plan.next_version_number,
            "default_selection": ApplyOptions.select_default(plan.diff).model_dump(mode="json"),
        }

    except Exception as e:
        return handle_error(e)


@router.post("/catalogs/{catalog_id}/apply", status_code=201)
async def apply_catalog_update(
    catalog_id: str,
    file: UploadFile = File(...),
    mappings: Optional[str] = Form(None),
    edits: Optional[str] = Form(None),
    selection: Optional[str] = Form(None),
    x_user_id: Optional[str] = Header(None),
):
    """
    Write the selected changes as the catalog's next version.

    `selection` is a JSON ApplyOptions; omitted means the default selection.
    """
    try:
        sheet = _apply_edits(await _read_upload(file), edits)
        resolved = _resolve_mappings(sheet, mappings)

        validation = validate_rows(sheet.rows, resolved, SYSTEM_FIELDS)
        if not validation.is_valid:
            return _validation_failure(validation)

        service = get_import_service()

        if selection:
            options = _parse_json_field(selection, TypeAdapter(ApplyOptions), "selection")
        else:
            plan = service.build_update_diff(catalog_id, sheet.rows, resolved)
            options = ApplyOptions.select_default(plan.diff)

        result = service.apply_update(
            catalog_id=catalog_id,
            rows=sheet.rows,
            mappings=resolved,
            options=options,
            created_by=x_user_id,
        )

        return result.to_dict()

    except Exception as e:
        return handle_error(e)
