"""
Catalog, version and catalog item schemas.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import Field, field_validator

from models.base import BaseSchema, TimestampMixin


class VersionStatus(str, Enum):
    """Lifecycle of a catalog version: draft -> published -> archived."""
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class Catalog(BaseSchema, TimestampMixin):
    """Named collection of products with versions."""

    id: str = Field(..., description="Catalog UUID")
    name: str
    description: Optional[str] = None
    status: VersionStatus = VersionStatus.DRAFT
    created_by: Optional[str] = None


class CatalogVersion(BaseSchema, TimestampMixin):
    """Snapshot of a catalog's items."""

    id: str = Field(..., description="Version UUID")
    catalog_id: str
    version_number: int = Field(..., ge=1)
    status: VersionStatus = VersionStatus.DRAFT
    notes: Optional[str] = None
    created_by: Optional[str] = None
    published_at: Optional[datetime] = None


class CatalogItemData(BaseSchema):
    """
    Canonical catalog item.

    Produced by the row transformer and read back from storage. `code` is the
    natural key within a version. The nested maps are never None.
    """

    code: str = Field(..., description="Unique product code within a version")
    name: str = ""
    price_usd: float = 0.0
    category: Optional[str] = None
    category_f1: Optional[str] = None
    category_f2: Optional[str] = None
    category_f3: Optional[str] = None
    supplier: Optional[str] = None
    warehouse: Optional[str] = None
    store_id: Optional[str] = None
    store_name: Optional[str] = None
    image_url: Optional[str] = None
    image_filter: Optional[str] = None
    states: dict[str, str] = Field(default_factory=dict)
    extra_prices: dict[str, float] = Field(default_factory=dict)
    flags: dict[str, bool] = Field(default_factory=dict)
    is_selected: bool = False
    is_active: bool = True

    @field_validator("states", "extra_prices", "flags", mode="before")
    @classmethod
    def empty_map_when_missing(cls, v: Any) -> Any:
        """Stored rows may carry NULL for the JSON columns."""
        if v is None:
            return {}
        return v

    @field_validator("is_selected", "is_active", mode="before")
    @classmethod
    def bool_default_when_missing(cls, v: Any, info) -> Any:
        if v is None:
            return info.field_name == "is_active"
        return v

    def to_insert_row(self, version_id: str) -> dict:
        """Row payload for the catalog_items table."""
        return {"version_id": version_id, **self.model_dump(mode="json")}
