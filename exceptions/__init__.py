"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    DatabaseError,
    NotAuthenticatedError,

    # Spreadsheet reader
    SpreadsheetParseError,
    EmptyFileError,
    NoDataError,
    DecodeError,

    # Column mapping
    DuplicateMappingError,
    UnknownFieldError,
    ImportValidationError,

    # Catalogs and versions
    CatalogNotFoundError,
    CatalogVersionNotFoundError,
    CatalogCreateError,
    VersionCreateError,
    InvalidStatusTransitionError,

    # Export
    EmptyExportError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "DatabaseError",
    "NotAuthenticatedError",

    # Spreadsheet reader
    "SpreadsheetParseError",
    "EmptyFileError",
    "NoDataError",
    "DecodeError",

    # Column mapping
    "DuplicateMappingError",
    "UnknownFieldError",
    "ImportValidationError",

    # Catalogs and versions
    "CatalogNotFoundError",
    "CatalogVersionNotFoundError",
    "CatalogCreateError",
    "VersionCreateError",
    "InvalidStatusTransitionError",

    # Export
    "EmptyExportError",
]
