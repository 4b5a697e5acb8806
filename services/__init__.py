"""
Business logic services.

Each service handles one step of the catalog import pipeline.
"""

from services.column_mapper import (
    auto_map,
    apply_manual_mapping,
    clear_mappings,
    ensure_unique_assignments,
    find_duplicate_assignments,
    mapping_stats,
)
from services.row_validator import (
    Severity,
    ValidationIssue,
    ValidationResult,
    apply_cell_edits,
    filter_issues,
    validate_rows,
)
from services.row_transformer import to_catalog_item, transform_rows
from services.catalog_diff import (
    create_catalog_diff,
    format_change_value,
    merge_selected_changes,
)
from services.catalog_store import (
    CatalogStore,
    SupabaseCatalogStore,
    get_catalog_store,
)
from services.version_service import CatalogVersionService, get_version_service
from services.import_service import (
    BatchFailure,
    CatalogImportService,
    ImportResult,
    UpdatePlan,
    get_import_service,
)
from services.catalog_export import (
    CatalogExporter,
    ExportOptions,
    FieldPath,
    build_export_filename,
    error_report_csv,
)

__all__ = [
    "auto_map",
    "apply_manual_mapping",
    "clear_mappings",
    "ensure_unique_assignments",
    "find_duplicate_assignments",
    "mapping_stats",
    "Severity",
    "ValidationIssue",
    "ValidationResult",
    "apply_cell_edits",
    "filter_issues",
    "validate_rows",
    "to_catalog_item",
    "transform_rows",
    "create_catalog_diff",
    "format_change_value",
    "merge_selected_changes",
    "CatalogStore",
    "SupabaseCatalogStore",
    "get_catalog_store",
    "CatalogVersionService",
    "get_version_service",
    "BatchFailure",
    "CatalogImportService",
    "ImportResult",
    "UpdatePlan",
    "get_import_service",
    "CatalogExporter",
    "ExportOptions",
    "FieldPath",
    "build_export_filename",
    "error_report_csv",
]
