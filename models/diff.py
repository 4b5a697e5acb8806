"""
Catalog diff schemas.

A DiffResult is built once per update attempt and never mutated; the
operator's choice of changes to apply travels separately as ApplyOptions.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.catalog import CatalogItemData


class FieldChange(BaseModel):
    """Single differing field between the stored and the incoming item."""
    model_config = ConfigDict(frozen=True)

    field: str
    label: str
    old_value: Any = None
    new_value: Any = None


class DiffItem(BaseModel):
    """One code's classification and, for modified items, its changes."""
    model_config = ConfigDict(frozen=True)

    code: str
    existing_item: Optional[CatalogItemData] = None
    new_item: Optional[CatalogItemData] = None
    changes: list[FieldChange] = Field(default_factory=list)


class DiffSummary(BaseModel):
    """Counts per bucket."""
    model_config = ConfigDict(frozen=True)

    new: int = 0
    modified: int = 0
    deleted: int = 0
    unchanged: int = 0


class DiffResult(BaseModel):
    """Classification of every code as new, modified, deleted or unchanged."""
    model_config = ConfigDict(frozen=True)

    summary: DiffSummary
    new_items: list[DiffItem] = Field(default_factory=list)
    modified_items: list[DiffItem] = Field(default_factory=list)
    deleted_items: list[DiffItem] = Field(default_factory=list)
    unchanged_items: list[DiffItem] = Field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.summary.new or self.summary.modified or self.summary.deleted)


class ApplyOptions(BaseModel):
    """Codes the operator chose to apply, per bucket."""

    selected_new_codes: set[str] = Field(default_factory=set)
    selected_modified_codes: set[str] = Field(default_factory=set)
    selected_deleted_codes: set[str] = Field(default_factory=set)

    @property
    def total_selected(self) -> int:
        return (
            len(self.selected_new_codes)
            + len(self.selected_modified_codes)
            + len(self.selected_deleted_codes)
        )

    @classmethod
    def select_default(cls, diff: DiffResult) -> "ApplyOptions":
        """All new and modified items, no deletions."""
        return cls(
            selected_new_codes={item.code for item in diff.new_items},
            selected_modified_codes={item.code for item in diff.modified_items},
        )
