"""
Catalog version lifecycle.

A version moves draft -> published -> archived. A catalog has at most one
published version; the store performs the archive-and-publish step atomically.
"""

from typing import Optional
import structlog

from exceptions import (
    CatalogVersionNotFoundError,
    InvalidStatusTransitionError,
)
from models.catalog import CatalogVersion, VersionStatus
from services.catalog_store import CatalogStore, get_catalog_store

logger = structlog.get_logger(__name__)

ALLOWED_TRANSITIONS: dict[VersionStatus, frozenset[VersionStatus]] = {
    VersionStatus.DRAFT: frozenset({VersionStatus.PUBLISHED, VersionStatus.ARCHIVED}),
    VersionStatus.PUBLISHED: frozenset({VersionStatus.ARCHIVED}),
    VersionStatus.ARCHIVED: frozenset(),
}


def ensure_transition(current: VersionStatus, target: VersionStatus) -> None:
    """Raise InvalidStatusTransitionError unless current -> target is allowed."""
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStatusTransitionError(current.value, target.value)


class CatalogVersionService:
    """Version queries and status changes."""

    def __init__(self, store: Optional[CatalogStore] = None):
        self.store = store or get_catalog_store()

    def list_versions(self, catalog_id: str) -> list[CatalogVersion]:
        """Versions of a catalog, newest first."""
        return self.store.list_versions(catalog_id)

    def find_base_version(self, catalog_id: str) -> CatalogVersion:
        """
        Version an update is compared against.

        The published version if there is one, otherwise the highest
        version number.

        Raises:
            CatalogVersionNotFoundError: Catalog has no versions
        """
        versions = self.store.list_versions(catalog_id)
        if not versions:
            raise CatalogVersionNotFoundError(catalog_id)

        for version in versions:
            if version.status == VersionStatus.PUBLISHED:
                return version

        return max(versions, key=lambda v: v.version_number)

    def latest_version_number(self, catalog_id: str) -> int:
        """Highest version number of a catalog, 0 when it has none."""
        return max((v.version_number for v in self.store.list_versions(catalog_id)), default=0)

    def publish_version(self, version_id: str) -> CatalogVersion:
        """
        Publish a version, archiving the catalog's previously published one.

        Publishing an already published version is a no-op.

        Raises:
            CatalogVersionNotFoundError: Unknown version
            InvalidStatusTransitionError: Version is archived
        """
        version = self.store.get_version(version_id)

        if version.status == VersionStatus.PUBLISHED:
            logger.info("version_already_published", version_id=version_id)
            return version

        ensure_transition(version.status, VersionStatus.PUBLISHED)

        published = self.store.publish_version(version.catalog_id, version.id)

        logger.info(
            "version_published",
            catalog_id=version.catalog_id,
            version_id=version.id,
            version_number=version.version_number
        )

        return published

    def archive_version(self, version_id: str) -> CatalogVersion:
        """
        Archive a draft or published version.

        Archiving the only published version moves the catalog back to draft.

        Raises:
            InvalidStatusTransitionError: Version is already archived
        """
        version = self.store.get_version(version_id)
        ensure_transition(version.status, VersionStatus.ARCHIVED)

        archived = self.store.archive_version(version.catalog_id, version.id)

        logger.info(
            "version_archived",
            catalog_id=version.catalog_id,
            version_id=version.id,
            previous_status=version.status.value
        )

        return archived


def get_version_service() -> CatalogVersionService:
    """Version service over the default store."""
    return CatalogVersionService(get_catalog_store())
