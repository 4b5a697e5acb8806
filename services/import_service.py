"""
Catalog import orchestration.

Drives an upload from mapped rows to persisted catalog items:

    fresh import:  create catalog -> create version 1 -> transform -> batches
    update import: diff against base version -> merge selection
                   -> create version N+1 -> batches

Items are written in fixed-size batches, strictly in order. A failed batch is
recorded and the run carries on with the next one; items_imported counts only
batches the store accepted.
"""

from dataclasses import dataclass, field
from math import ceil, floor
from typing import Callable, Optional, Sequence
import structlog

from config import settings
from exceptions import (
    AppError,
    CatalogCreateError,
    NotAuthenticatedError,
    VersionCreateError,
)
from models.catalog import CatalogItemData, CatalogVersion, VersionStatus
from models.diff import ApplyOptions, DiffResult
from models.mapping import ColumnMapping
from parsers.spreadsheet_reader import RawRow
from services.catalog_diff import create_catalog_diff, merge_selected_changes
from services.catalog_store import CatalogStore, get_catalog_store
from services.row_transformer import transform_rows
from services.version_service import CatalogVersionService

logger = structlog.get_logger(__name__)

ProgressCallback = Callable[[int, str], None]
CancelCheck = Callable[[], bool]


@dataclass
class BatchFailure:
    """
    One batch the store rejected.

    first_item/last_item are 1-based positions in the submitted item list;
    for a fresh import item n came from spreadsheet row n + 1.
    """
    batch_number: int
    first_item: int
    last_item: int
    message: str

    @property
    def item_count(self) -> int:
        return self.last_item - self.first_item + 1

    def to_dict(self) -> dict:
        return {
            "batch_number": self.batch_number,
            "first_item": self.first_item,
            "last_item": self.last_item,
            "item_count": self.item_count,
            "message": self.message,
        }


@dataclass
class ImportResult:
    """Outcome of a bulk write."""
    catalog_id: str
    version_id: str
    total_items: int = 0
    items_imported: int = 0
    failed_batches: list[BatchFailure] = field(default_factory=list)
    cancelled: bool = False

    @property
    def complete(self) -> bool:
        """True if every item was written."""
        return not self.cancelled and self.items_imported == self.total_items

    def to_dict(self) -> dict:
        """Convert to dictionary for API response."""
        return {
            "catalog_id": self.catalog_id,
            "version_id": self.version_id,
            "total_items": self.total_items,
            "items_imported": self.items_imported,
            "failed_batches": [f.to_dict() for f in self.failed_batches],
            "cancelled": self.cancelled,
            "complete": self.complete,
        }


@dataclass
class UpdatePlan:
    """
    Base version, its items and the diff against the upload.

    The next version is numbered after latest_version_number, which can be
    ahead of the base when drafts sit above the published version.
    """
    base_version: CatalogVersion
    existing_items: list[CatalogItemData]
    diff: DiffResult
    latest_version_number: int

    @property
    def next_version_number(self) -> int:
        return self.latest_version_number + 1


def _round_half_up(value: float) -> int:
    return int(floor(value + 0.5))


class CatalogImportService:
    """
    Import orchestration over a CatalogStore.

    Progress callbacks receive (percent 0..100, message); percentages never
    decrease within a run.
    """

    def __init__(
        self,
        store: Optional[CatalogStore] = None,
        batch_size: Optional[int] = None,
    ):
        self.store = store or get_catalog_store()
        self.batch_size = batch_size or settings.import_batch_size
        self.versions = CatalogVersionService(self.store)

    # ===================
    # FRESH IMPORT
    # ===================

    def import_new_catalog(
        self,
        name: str,
        description: Optional[str],
        rows: Sequence[RawRow],
        mappings: Sequence[ColumnMapping],
        created_by: Optional[str],
        on_progress: Optional[ProgressCallback] = None,
        should_cancel: Optional[CancelCheck] = None,
    ) -> ImportResult:
        """
        Create a catalog with version 1 holding the uploaded rows.

        Args:
            name: Catalog name
            description: Optional catalog description
            rows: Validated spreadsheet rows
            mappings: Field-to-column assignments
            created_by: Acting user id
            on_progress: Progress callback
            should_cancel: Checked before each batch; True stops the run

        Returns:
            ImportResult; batch failures are recorded, not raised

        Raises:
            NotAuthenticatedError: created_by missing
            CatalogCreateError: Catalog row could not be created
            VersionCreateError: Version row could not be created (the new
                catalog is deleted first)
        """
        self._require_user(created_by)
        report = self._reporter(on_progress)

        logger.info("catalog_import_started", name=name, row_count=len(rows))

        report(5, "Creando catálogo...")
        try:
            catalog = self.store.create_catalog(name, description, created_by)
        except Exception as e:
            logger.error("catalog_import_catalog_failed", name=name, error=str(e))
            raise CatalogCreateError(name, _reason(e)) from e

        report(15, "Creando versión...")
        try:
            version = self.store.create_version(
                catalog.id,
                1,
                VersionStatus.DRAFT,
                f"Importación inicial de {len(rows)} productos",
                created_by,
            )
        except Exception as e:
            logger.error("catalog_import_version_failed", catalog_id=catalog.id, error=str(e))
            self._rollback_catalog(catalog.id)
            raise VersionCreateError(catalog.id, 1, _reason(e)) from e

        report(25, "Preparando productos...")
        items = transform_rows(rows, mappings)

        result = ImportResult(
            catalog_id=catalog.id,
            version_id=version.id,
            total_items=len(items),
        )
        self._insert_in_batches(
            version.id,
            items,
            result,
            report,
            start_percent=25,
            span_percent=70,
            label="Importando productos",
            should_cancel=should_cancel,
        )

        report(100, "¡Importación completada!")

        logger.info(
            "catalog_import_finished",
            catalog_id=catalog.id,
            version_id=version.id,
            items_imported=result.items_imported,
            total_items=result.total_items,
            failed_batches=len(result.failed_batches)
        )

        return result

    # ===================
    # UPDATE IMPORT
    # ===================

    def import_catalog_update(
        self,
        catalog_id: str,
        base_version_number: int,
        items: Sequence[CatalogItemData],
        created_by: Optional[str],
        on_progress: Optional[ProgressCallback] = None,
        should_cancel: Optional[CancelCheck] = None,
    ) -> ImportResult:
        """
        Write a merged item set as version base_version_number + 1.

        Every item is written again; nothing is shared with the base version.

        Raises:
            NotAuthenticatedError: created_by missing
            VersionCreateError: Version row could not be created
        """
        self._require_user(created_by)
        report = self._reporter(on_progress)
        version_number = base_version_number + 1

        logger.info(
            "catalog_update_started",
            catalog_id=catalog_id,
            version_number=version_number,
            item_count=len(items)
        )

        report(5, "Creando nueva versión...")
        try:
            version = self.store.create_version(
                catalog_id,
                version_number,
                VersionStatus.DRAFT,
                f"Actualización con {len(items)} productos",
                created_by,
            )
        except Exception as e:
            logger.error(
                "catalog_update_version_failed",
                catalog_id=catalog_id,
                version_number=version_number,
                error=str(e)
            )
            raise VersionCreateError(catalog_id, version_number, _reason(e)) from e

        result = ImportResult(
            catalog_id=catalog_id,
            version_id=version.id,
            total_items=len(items),
        )
        self._insert_in_batches(
            version.id,
            list(items),
            result,
            report,
            start_percent=10,
            span_percent=85,
            label="Actualizando productos",
            should_cancel=should_cancel,
        )

        report(100, "Actualización completada")

        logger.info(
            "catalog_update_finished",
            catalog_id=catalog_id,
            version_id=version.id,
            items_imported=result.items_imported,
            total_items=result.total_items,
            failed_batches=len(result.failed_batches)
        )

        return result

    def build_update_diff(
        self,
        catalog_id: str,
        rows: Sequence[RawRow],
        mappings: Sequence[ColumnMapping],
    ) -> UpdatePlan:
        """
        Diff the upload against the catalog's base version.

        Raises:
            CatalogVersionNotFoundError: Catalog has no versions
        """
        base_version = self.versions.find_base_version(catalog_id)
        existing_items = self.store.list_items(base_version.id)
        incoming = transform_rows(rows, mappings)

        return UpdatePlan(
            base_version=base_version,
            existing_items=existing_items,
            diff=create_catalog_diff(existing_items, incoming),
            latest_version_number=self.versions.latest_version_number(catalog_id),
        )

    def apply_update(
        self,
        catalog_id: str,
        rows: Sequence[RawRow],
        mappings: Sequence[ColumnMapping],
        options: ApplyOptions,
        created_by: Optional[str],
        on_progress: Optional[ProgressCallback] = None,
        should_cancel: Optional[CancelCheck] = None,
    ) -> ImportResult:
        """Diff, merge the selected changes and write the next version."""
        self._require_user(created_by)

        plan = self.build_update_diff(catalog_id, rows, mappings)
        merged = merge_selected_changes(plan.existing_items, plan.diff, options)

        return self.import_catalog_update(
            catalog_id,
            plan.latest_version_number,
            merged,
            created_by,
            on_progress=on_progress,
            should_cancel=should_cancel,
        )

    # ===================
    # HELPERS
    # ===================

    def _insert_in_batches(
        self,
        version_id: str,
        items: list[CatalogItemData],
        result: ImportResult,
        report: ProgressCallback,
        start_percent: int,
        span_percent: int,
        label: str,
        should_cancel: Optional[CancelCheck],
    ) -> None:
        total = len(items)
        total_batches = ceil(total / self.batch_size)

        for batch_number, start in enumerate(range(0, total, self.batch_size), start=1):
            if should_cancel is not None and should_cancel():
                result.cancelled = True
                logger.warning(
                    "import_cancelled",
                    version_id=version_id,
                    next_batch=batch_number,
                    items_imported=result.items_imported
                )
                break

            batch = items[start:start + self.batch_size]
            end = start + len(batch)

            report(
                start_percent + _round_half_up(batch_number / total_batches * span_percent),
                f"{label} ({end}/{total})...",
            )

            try:
                self.store.insert_items(version_id, batch)
            except Exception as e:
                logger.error(
                    "import_batch_failed",
                    version_id=version_id,
                    batch_number=batch_number,
                    total_batches=total_batches,
                    error=str(e)
                )
                result.failed_batches.append(BatchFailure(
                    batch_number=batch_number,
                    first_item=start + 1,
                    last_item=end,
                    message=_reason(e),
                ))
                continue

            result.items_imported += len(batch)

    def _rollback_catalog(self, catalog_id: str) -> None:
        """Delete a catalog whose import could not start."""
        try:
            self.store.delete_catalog(catalog_id)
            logger.info("catalog_rolled_back", catalog_id=catalog_id)
        except Exception as e:
            logger.error("catalog_rollback_failed", catalog_id=catalog_id, error=str(e))

    @staticmethod
    def _require_user(created_by: Optional[str]) -> None:
        if not created_by:
            raise NotAuthenticatedError()

    @staticmethod
    def _reporter(on_progress: Optional[ProgressCallback]) -> ProgressCallback:
        def report(percent: int, message: str) -> None:
            logger.debug("import_progress", percent=percent, message=message)
            if on_progress is not None:
                on_progress(percent, message)
        return report


def _reason(error: Exception) -> str:
    if isinstance(error, AppError):
        return error.message
    return str(error)


def get_import_service() -> CatalogImportService:
    """Import service over the default store."""
    return CatalogImportService(get_catalog_store())
