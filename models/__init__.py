"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
    TimestampMixin,
)
from models.mapping import (
    FieldType,
    SystemField,
    ColumnMapping,
    MappingStats,
    SYSTEM_FIELDS,
    CODE_FIELD,
)
from models.catalog import (
    VersionStatus,
    Catalog,
    CatalogVersion,
    CatalogItemData,
)
from models.diff import (
    FieldChange,
    DiffItem,
    DiffSummary,
    DiffResult,
    ApplyOptions,
)

__all__ = [
    # Base
    "BaseSchema",
    "TimestampMixin",

    # Mapping
    "FieldType",
    "SystemField",
    "ColumnMapping",
    "MappingStats",
    "SYSTEM_FIELDS",
    "CODE_FIELD",

    # Catalog
    "VersionStatus",
    "Catalog",
    "CatalogVersion",
    "CatalogItemData",

    # Diff
    "FieldChange",
    "DiffItem",
    "DiffSummary",
    "DiffResult",
    "ApplyOptions",
]
