"""
Catalog version API routes.

List versions, publish/archive them and download a version as a spreadsheet.
"""

from enum import Enum
from typing import Optional

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse, Response
import structlog

from exceptions import AppError
from services.catalog_export import CatalogExporter, ExportOptions, build_export_filename
from services.catalog_store import get_catalog_store
from services.version_service import get_version_service

router = APIRouter(prefix="/api/catalogs", tags=["Catalogs"])
logger = structlog.get_logger(__name__)


class ExportFormat(str, Enum):
    XLSX = "xlsx"
    CSV = "csv"


_MEDIA_TYPES = {
    ExportFormat.XLSX: "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ExportFormat.CSV: "text/csv; charset=utf-8",
}


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


@router.get("/{catalog_id}/versions")
async def list_versions(catalog_id: str):
    """Versions of a catalog, newest first."""
    try:
        versions = get_version_service().list_versions(catalog_id)
        return {
            "data": [v.model_dump(mode="json") for v in versions],
            "total": len(versions),
        }

    except Exception as e:
        return handle_error(e)


@router.post("/versions/{version_id}/publish")
async def publish_version(version_id: str):
    """Publish a version; the previously published one is archived."""
    try:
        version = get_version_service().publish_version(version_id)
        return version.model_dump(mode="json")

    except Exception as e:
        return handle_error(e)


@router.post("/versions/{version_id}/archive")
async def archive_version(version_id: str):
    """Archive a draft or published version."""
    try:
        version = get_version_service().archive_version(version_id)
        return version.model_dump(mode="json")

    except Exception as e:
        return handle_error(e)


@router.get("/versions/{version_id}/export")
async def export_version(
    version_id: str,
    format: ExportFormat = Query(ExportFormat.XLSX, description="xlsx or csv"),
    include_inactive: bool = Query(False),
    only_selected: bool = Query(False),
    category: Optional[str] = Query(None, description="Only items of this category"),
):
    """Download a version's items as Excel or CSV."""
    try:
        store = get_catalog_store()
        version = store.get_version(version_id)
        catalog = store.get_catalog(version.catalog_id)
        items = store.list_items(version.id)

        options = ExportOptions(
            catalog_name=catalog.name,
            include_inactive=include_inactive,
            only_selected=only_selected,
            category=category,
        )
        exporter = CatalogExporter()

        if format == ExportFormat.CSV:
            content = exporter.to_csv(items, options)
        else:
            content = exporter.to_excel(items, options).getvalue()

        filename = build_export_filename(options, format.value)

        logger.info(
            "version_exported",
            version_id=version_id,
            format=format.value,
            filename=filename
        )

        return Response(
            content=content,
            media_type=_MEDIA_TYPES[format],
            headers={"Content-Disposition": f'attachment; filename="{filename}"'}
        )

    except Exception as e:
        return handle_error(e)
