"""
Custom exception classes for the application.

Every error raised past a service boundary derives from AppError so routes can
render it with a stable code and HTTP status.
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "CATALOG_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


class NotAuthenticatedError(AppError):
    """No acting user for a write operation (401)."""

    def __init__(self):
        super().__init__(
            code="NOT_AUTHENTICATED",
            message="Usuario no autenticado",
            status_code=401
        )


# ===================
# SPREADSHEET ERRORS
# ===================

class SpreadsheetParseError(ValidationError):
    """Spreadsheet file could not be turned into rows."""

    def __init__(
        self,
        message: str,
        code: str = "SPREADSHEET_PARSE_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            details=details
        )


class EmptyFileError(SpreadsheetParseError):
    """File has no bytes or no sheets."""

    def __init__(self, details: Optional[dict] = None):
        super().__init__(
            code="SPREADSHEET_EMPTY_FILE",
            message="El archivo Excel está vacío",
            details=details
        )


class NoDataError(SpreadsheetParseError):
    """Header row present but no data rows."""

    def __init__(self, details: Optional[dict] = None):
        super().__init__(
            code="SPREADSHEET_NO_DATA",
            message="El archivo Excel no contiene datos",
            details=details
        )


class DecodeError(SpreadsheetParseError):
    """The decoder rejected the file contents."""

    def __init__(self, original_error: str):
        super().__init__(
            code="SPREADSHEET_DECODE_ERROR",
            message="Error al procesar el archivo Excel",
            details={"original_error": original_error}
        )


# ===================
# MAPPING ERRORS
# ===================

class DuplicateMappingError(ValidationError):
    """One spreadsheet column assigned to more than one system field."""

    def __init__(self, column: str, fields: list[str]):
        super().__init__(
            code="MAPPING_DUPLICATE_COLUMN",
            message=f"Column '{column}' is mapped to more than one field",
            details={"column": column, "fields": fields}
        )


class UnknownFieldError(ValidationError):
    """Mapping refers to a system field that does not exist."""

    def __init__(self, field_key: str):
        super().__init__(
            code="MAPPING_UNKNOWN_FIELD",
            message=f"Unknown system field: {field_key}",
            details={"field": field_key}
        )


class ImportValidationError(ValidationError):
    """Rows still carry blocking validation errors."""

    def __init__(self, error_count: int, warning_count: int = 0):
        super().__init__(
            code="IMPORT_VALIDATION_FAILED",
            message=f"Import blocked by {error_count} validation errors",
            details={"error_count": error_count, "warning_count": warning_count}
        )


# ===================
# CATALOG ERRORS
# ===================

class CatalogNotFoundError(NotFoundError):
    """Catalog not found."""

    def __init__(self, catalog_id: str):
        super().__init__(
            resource="Catalog",
            identifier=catalog_id,
            code="CATALOG_NOT_FOUND"
        )


class CatalogVersionNotFoundError(NotFoundError):
    """Catalog version not found."""

    def __init__(self, identifier: str):
        super().__init__(
            resource="Catalog version",
            identifier=identifier,
            code="CATALOG_VERSION_NOT_FOUND"
        )


class CatalogCreateError(AppError):
    """Catalog row could not be created. Aborts the import."""

    def __init__(self, name: str, reason: str):
        super().__init__(
            code="CATALOG_CREATE_FAILED",
            message="Error al crear el catálogo",
            status_code=500,
            details={"name": name, "reason": reason}
        )


class VersionCreateError(AppError):
    """Catalog version could not be created. Aborts the import."""

    def __init__(self, catalog_id: str, version_number: int, reason: str):
        super().__init__(
            code="CATALOG_VERSION_CREATE_FAILED",
            message="Error al crear la versión del catálogo",
            status_code=500,
            details={
                "catalog_id": catalog_id,
                "version_number": version_number,
                "reason": reason
            }
        )


class InvalidStatusTransitionError(ValidationError):
    """Invalid version status transition."""

    def __init__(self, current_status: str, new_status: str):
        super().__init__(
            code="INVALID_STATUS_TRANSITION",
            message=f"Cannot transition from {current_status} to {new_status}",
            details={
                "current_status": current_status,
                "new_status": new_status,
                "reason": "Versions move draft -> published -> archived, and archived is terminal"
            }
        )


# ===================
# EXPORT ERRORS
# ===================

class EmptyExportError(ValidationError):
    """Nothing left to export after filters."""

    def __init__(self, filters: Optional[dict] = None):
        super().__init__(
            code="EXPORT_EMPTY",
            message="No hay items para exportar",
            details={"filters": filters or {}}
        )
