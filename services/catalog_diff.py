"""
Catalog diff engine.

Compares the items of a stored version with freshly transformed items, keyed
by product code, and merges the operator's selection of changes into the item
set of the next version.
"""

import json
from typing import Any, Sequence
import structlog

from models.catalog import CatalogItemData
from models.diff import (
    ApplyOptions,
    DiffItem,
    DiffResult,
    DiffSummary,
    FieldChange,
)

logger = structlog.get_logger(__name__)

# Every canonical field except the code itself, in display order
TRACKED_FIELDS: tuple[tuple[str, str], ...] = (
    ("name", "Producto"),
    ("price_usd", "Precio"),
    ("category", "Categoría"),
    ("category_f1", "Categoría F1"),
    ("category_f2", "Categoría F2"),
    ("category_f3", "Categoría F3"),
    ("supplier", "Suministrador"),
    ("warehouse", "Almacén"),
    ("store_id", "ID Tienda"),
    ("store_name", "Tienda"),
    ("image_url", "Imagen"),
    ("image_filter", "Filtro Imagen"),
    ("states", "Estados"),
    ("extra_prices", "Precios extra"),
    ("flags", "Flags"),
    ("is_selected", "Selecto"),
    ("is_active", "Activo"),
)


def values_equal(left: Any, right: Any) -> bool:
    """
    Structural equality for item field values.

    Maps are compared through key-sorted JSON so key order never counts as
    a change.
    """
    if isinstance(left, dict) and isinstance(right, dict):
        return json.dumps(left, sort_keys=True) == json.dumps(right, sort_keys=True)
    if isinstance(left, bool) or isinstance(right, bool):
        return left is right
    return left == right


def compare_items(existing: CatalogItemData, incoming: CatalogItemData) -> list[FieldChange]:
    """Changed tracked fields between two items with the same code."""
    changes: list[FieldChange] = []
    for field, label in TRACKED_FIELDS:
        old_value = getattr(existing, field)
        new_value = getattr(incoming, field)
        if not values_equal(old_value, new_value):
            changes.append(FieldChange(
                field=field,
                label=label,
                old_value=old_value,
                new_value=new_value,
            ))
    return changes


def create_catalog_diff(
    existing_items: Sequence[CatalogItemData],
    new_items: Sequence[CatalogItemData],
) -> DiffResult:
    """
    Classify every code as new, modified, deleted or unchanged.

    Args:
        existing_items: Items of the base version
        new_items: Items transformed from the upload

    Returns:
        DiffResult; new/modified/unchanged follow upload order, deleted follows
        base version order
    """
    existing_by_code = {item.code: item for item in existing_items}
    new_codes = {item.code for item in new_items}

    new_list: list[DiffItem] = []
    modified_list: list[DiffItem] = []
    unchanged_list: list[DiffItem] = []
    deleted_list: list[DiffItem] = []

    for item in new_items:
        existing = existing_by_code.get(item.code)
        if existing is None:
            new_list.append(DiffItem(code=item.code, new_item=item))
            continue

        changes = compare_items(existing, item)
        entry = DiffItem(
            code=item.code,
            existing_item=existing,
            new_item=item,
            changes=changes,
        )
        if changes:
            modified_list.append(entry)
        else:
            unchanged_list.append(entry)

    for item in existing_items:
        if item.code not in new_codes:
            deleted_list.append(DiffItem(code=item.code, existing_item=item))

    result = DiffResult(
        summary=DiffSummary(
            new=len(new_list),
            modified=len(modified_list),
            deleted=len(deleted_list),
            unchanged=len(unchanged_list),
        ),
        new_items=new_list,
        modified_items=modified_list,
        deleted_items=deleted_list,
        unchanged_items=unchanged_list,
    )

    logger.info(
        "catalog_diff_created",
        existing_count=len(existing_items),
        incoming_count=len(new_items),
        new=result.summary.new,
        modified=result.summary.modified,
        deleted=result.summary.deleted,
        unchanged=result.summary.unchanged
    )

    return result


def merge_selected_changes(
    existing_items: Sequence[CatalogItemData],
    diff: DiffResult,
    options: ApplyOptions,
) -> list[CatalogItemData]:
    """
    Build the next version's item set from the selected changes only.

    Starts from the existing items, replaces selected modified items in
    place, appends selected new items, then drops selected deleted items.
    Unselected changes are left out, and selected codes outside the matching
    diff bucket are ignored.
    """
    merged: dict[str, CatalogItemData] = {item.code: item for item in existing_items}

    for entry in diff.modified_items:
        if entry.code in options.selected_modified_codes and entry.new_item is not None:
            merged[entry.code] = entry.new_item

    for entry in diff.new_items:
        if entry.code in options.selected_new_codes and entry.new_item is not None:
            merged[entry.code] = entry.new_item

    deletable = {entry.code for entry in diff.deleted_items}
    for code in options.selected_deleted_codes & deletable:
        merged.pop(code, None)

    logger.info(
        "catalog_changes_merged",
        base_count=len(existing_items),
        merged_count=len(merged),
        selected_new=len(options.selected_new_codes),
        selected_modified=len(options.selected_modified_codes),
        selected_deleted=len(options.selected_deleted_codes)
    )

    return list(merged.values())


def format_change_value(value: Any) -> str:
    """Render a changed value for display."""
    if value is None:
        return "—"
    if isinstance(value, bool):
        return "Sí" if value else "No"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)
