"""
Catalog storage collaborator.

The import pipeline only talks to storage through CatalogStore. The Supabase
implementation maps each call to the catalogs, catalog_versions and
catalog_items tables.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence
import structlog

from config import get_supabase_client
from exceptions import (
    CatalogNotFoundError,
    CatalogVersionNotFoundError,
    DatabaseError,
    InvalidStatusTransitionError,
)
from models.catalog import (
    Catalog,
    CatalogItemData,
    CatalogVersion,
    VersionStatus,
)

logger = structlog.get_logger(__name__)

# PostgREST caps a select at 1000 rows
ITEMS_PAGE_SIZE = 1000


class CatalogStore(ABC):
    """Abstract persistence for catalogs, versions and their items."""

    # ===================
    # CATALOGS
    # ===================

    @abstractmethod
    def create_catalog(
        self,
        name: str,
        description: Optional[str],
        created_by: str,
    ) -> Catalog:
        """Create a draft catalog."""

    @abstractmethod
    def get_catalog(self, catalog_id: str) -> Catalog:
        """Raises CatalogNotFoundError if missing."""

    @abstractmethod
    def delete_catalog(self, catalog_id: str) -> None:
        """Remove a catalog. Only used to undo a failed import."""

    # ===================
    # VERSIONS
    # ===================

    @abstractmethod
    def create_version(
        self,
        catalog_id: str,
        version_number: int,
        status: VersionStatus,
        notes: Optional[str],
        created_by: str,
    ) -> CatalogVersion:
        """Create a version row."""

    @abstractmethod
    def get_version(self, version_id: str) -> CatalogVersion:
        """Raises CatalogVersionNotFoundError if missing."""

    @abstractmethod
    def list_versions(self, catalog_id: str) -> list[CatalogVersion]:
        """Versions of a catalog, highest version number first."""

    @abstractmethod
    def archive_version(self, catalog_id: str, version_id: str) -> CatalogVersion:
        """
        Archive one version as a single atomic step.

        The catalog falls back to draft once it has no published version left.
        Raises InvalidStatusTransitionError if the version is already archived.
        """

    @abstractmethod
    def archive_versions(self, catalog_id: str, except_version_id: Optional[str] = None) -> int:
        """Archive published versions of a catalog. Returns how many changed."""

    @abstractmethod
    def publish_version(self, catalog_id: str, version_id: str) -> CatalogVersion:
        """
        Make version_id the only published version of its catalog.

        Archiving the previously published version, publishing the target and
        flagging the catalog published happen as one atomic step.
        """

    # ===================
    # ITEMS
    # ===================

    @abstractmethod
    def insert_items(self, version_id: str, items: Sequence[CatalogItemData]) -> int:
        """Insert one batch of items. Raises on failure; returns rows written."""

    @abstractmethod
    def list_items(self, version_id: str) -> list[CatalogItemData]:
        """All items of a version, ordered by code."""


def _raise_if_archived(error: Exception, target: VersionStatus) -> None:
    """Surface the database functions' archived-version guard as a status error."""
    if "is archived" in str(error):
        raise InvalidStatusTransitionError(VersionStatus.ARCHIVED.value, target.value) from error


class SupabaseCatalogStore(CatalogStore):
    """
    CatalogStore backed by Supabase tables.

    Publishing and archiving go through the publish_catalog_version and
    archive_catalog_version Postgres functions (sql/publish_catalog_version.sql),
    each of which runs in a single transaction.
    """

    def __init__(self, client=None):
        self.db = client or get_supabase_client()
        self.catalogs_table = "catalogs"
        self.versions_table = "catalog_versions"
        self.items_table = "catalog_items"

    # ===================
    # CATALOGS
    # ===================

    def create_catalog(
        self,
        name: str,
        description: Optional[str],
        created_by: str,
    ) -> Catalog:
        logger.info("creating_catalog", name=name)

        try:
            result = (
                self.db.table(self.catalogs_table)
                .insert({
                    "name": name,
                    "description": description or None,
                    "status": VersionStatus.DRAFT.value,
                    "created_by": created_by,
                })
                .execute()
            )

            catalog = Catalog(**result.data[0])

            logger.info("catalog_created", catalog_id=catalog.id, name=name)

            return catalog

        except Exception as e:
            logger.error("create_catalog_failed", name=name, error=str(e))
            raise DatabaseError("insert", str(e))

    def get_catalog(self, catalog_id: str) -> Catalog:
        logger.debug("getting_catalog", catalog_id=catalog_id)

        try:
            result = (
                self.db.table(self.catalogs_table)
                .select("*")
                .eq("id", catalog_id)
                .execute()
            )
        except Exception as e:
            logger.error("get_catalog_failed", catalog_id=catalog_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            raise CatalogNotFoundError(catalog_id)

        return Catalog(**result.data[0])

    def delete_catalog(self, catalog_id: str) -> None:
        logger.info("deleting_catalog", catalog_id=catalog_id)

        try:
            self.db.table(self.catalogs_table).delete().eq("id", catalog_id).execute()
        except Exception as e:
            logger.error("delete_catalog_failed", catalog_id=catalog_id, error=str(e))
            raise DatabaseError("delete", str(e))

    # ===================
    # VERSIONS
    # ===================

    def create_version(
        self,
        catalog_id: str,
        version_number: int,
        status: VersionStatus,
        notes: Optional[str],
        created_by: str,
    ) -> CatalogVersion:
        logger.info(
            "creating_catalog_version",
            catalog_id=catalog_id,
            version_number=version_number
        )

        try:
            result = (
                self.db.table(self.versions_table)
                .insert({
                    "catalog_id": catalog_id,
                    "version_number": version_number,
                    "status": status.value,
                    "notes": notes,
                    "created_by": created_by,
                })
                .execute()
            )

            version = CatalogVersion(**result.data[0])

            logger.info(
                "catalog_version_created",
                catalog_id=catalog_id,
                version_id=version.id,
                version_number=version.version_number
            )

            return version

        except Exception as e:
            logger.error(
                "create_catalog_version_failed",
                catalog_id=catalog_id,
                version_number=version_number,
                error=str(e)
            )
            raise DatabaseError("insert", str(e))

    def get_version(self, version_id: str) -> CatalogVersion:
        logger.debug("getting_catalog_version", version_id=version_id)

        try:
            result = (
                self.db.table(self.versions_table)
                .select("*")
                .eq("id", version_id)
                .execute()
            )
        except Exception as e:
            logger.error("get_catalog_version_failed", version_id=version_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            raise CatalogVersionNotFoundError(version_id)

        return CatalogVersion(**result.data[0])

    def list_versions(self, catalog_id: str) -> list[CatalogVersion]:
        logger.debug("listing_catalog_versions", catalog_id=catalog_id)

        try:
            result = (
                self.db.table(self.versions_table)
                .select("*")
                .eq("catalog_id", catalog_id)
                .order("version_number", desc=True)
                .execute()
            )

            return [CatalogVersion(**row) for row in result.data]

        except Exception as e:
            logger.error("list_catalog_versions_failed", catalog_id=catalog_id, error=str(e))
            raise DatabaseError("select", str(e))

    def archive_version(self, catalog_id: str, version_id: str) -> CatalogVersion:
        logger.info("archiving_version", catalog_id=catalog_id, version_id=version_id)

        try:
            self.db.rpc(
                "archive_catalog_version",
                {"p_catalog_id": catalog_id, "p_version_id": version_id}
            ).execute()
        except Exception as e:
            logger.error(
                "archive_version_failed",
                catalog_id=catalog_id,
                version_id=version_id,
                error=str(e)
            )
            _raise_if_archived(e, VersionStatus.ARCHIVED)
            raise DatabaseError("archive", str(e))

        return self.get_version(version_id)

    def archive_versions(self, catalog_id: str, except_version_id: Optional[str] = None) -> int:
        logger.info(
            "archiving_published_versions",
            catalog_id=catalog_id,
            except_version_id=except_version_id
        )

        try:
            query = (
                self.db.table(self.versions_table)
                .update({"status": VersionStatus.ARCHIVED.value})
                .eq("catalog_id", catalog_id)
                .eq("status", VersionStatus.PUBLISHED.value)
            )
            if except_version_id:
                query = query.neq("id", except_version_id)

            result = query.execute()
            return len(result.data or [])

        except Exception as e:
            logger.error("archive_versions_failed", catalog_id=catalog_id, error=str(e))
            raise DatabaseError("update", str(e))

    def publish_version(self, catalog_id: str, version_id: str) -> CatalogVersion:
        logger.info("publishing_version", catalog_id=catalog_id, version_id=version_id)

        try:
            self.db.rpc(
                "publish_catalog_version",
                {"p_catalog_id": catalog_id, "p_version_id": version_id}
            ).execute()
        except Exception as e:
            logger.error(
                "publish_version_failed",
                catalog_id=catalog_id,
                version_id=version_id,
                error=str(e)
            )
            _raise_if_archived(e, VersionStatus.PUBLISHED)
            raise DatabaseError("publish", str(e))

        return self.get_version(version_id)

    # ===================
    # ITEMS
    # ===================

    def insert_items(self, version_id: str, items: Sequence[CatalogItemData]) -> int:
        if not items:
            return 0

        try:
            result = (
                self.db.table(self.items_table)
                .insert([item.to_insert_row(version_id) for item in items])
                .execute()
            )
            return len(result.data or items)

        except Exception as e:
            logger.error(
                "insert_items_failed",
                version_id=version_id,
                count=len(items),
                error=str(e)
            )
            raise DatabaseError("insert", str(e), details={"version_id": version_id})

    def list_items(self, version_id: str) -> list[CatalogItemData]:
        logger.debug("listing_catalog_items", version_id=version_id)

        items: list[CatalogItemData] = []
        offset = 0

        try:
            while True:
                result = (
                    self.db.table(self.items_table)
                    .select("*")
                    .eq("version_id", version_id)
                    .order("code")
                    .range(offset, offset + ITEMS_PAGE_SIZE - 1)
                    .execute()
                )
                items.extend(CatalogItemData(**row) for row in result.data)

                if len(result.data) < ITEMS_PAGE_SIZE:
                    break
                offset += ITEMS_PAGE_SIZE

        except Exception as e:
            logger.error("list_catalog_items_failed", version_id=version_id, error=str(e))
            raise DatabaseError("select", str(e))

        logger.info("catalog_items_listed", version_id=version_id, count=len(items))

        return items


# Singleton instance for convenience
_catalog_store: Optional[SupabaseCatalogStore] = None


def get_catalog_store() -> SupabaseCatalogStore:
    """Get or create SupabaseCatalogStore instance."""
    global _catalog_store
    if _catalog_store is None:
        _catalog_store = SupabaseCatalogStore()
    return _catalog_store
