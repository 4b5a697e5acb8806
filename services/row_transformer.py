"""
Row transformer: raw spreadsheet row -> canonical catalog item.
"""

from typing import Optional, Sequence
import structlog

from models.catalog import CatalogItemData
from models.mapping import ColumnMapping
from parsers.spreadsheet_reader import RawRow
from services.value_parsers import (
    cell_text,
    normalize_image_url,
    parse_boolean,
    parse_price,
)

logger = structlog.get_logger(__name__)


class _MappedRow:
    """Reads one row through the field-to-column mapping."""

    def __init__(self, row: RawRow, field_to_column: dict[str, str]):
        self.row = row
        self.field_to_column = field_to_column

    def text(self, field_key: str) -> Optional[str]:
        column = self.field_to_column.get(field_key)
        if not column:
            return None
        return cell_text(self.row.get(column))

    def number(self, field_key: str) -> Optional[float]:
        value = self.text(field_key)
        return parse_price(value) if value else None

    def boolean(self, field_key: str) -> bool:
        return parse_boolean(self.text(field_key)) or False

    def optional_text(self, field_key: str) -> Optional[str]:
        """Text with empty cells folded to None."""
        return self.text(field_key) or None


def _field_to_column(mappings: Sequence[ColumnMapping]) -> dict[str, str]:
    return {m.field_key: m.column for m in mappings if m.column}


def to_catalog_item(row: RawRow, mappings: Sequence[ColumnMapping]) -> CatalogItemData:
    """
    Convert one validated row into a canonical catalog item.

    Nested maps:
        states:       estado_anuncio, estado_tienda (when present)
        extra_prices: precio_p, precio_m (when they parse)
        flags:        selecto (always), ef_tkc (when present)
    """
    return _build_item(_MappedRow(row, _field_to_column(mappings)))


def transform_rows(
    rows: Sequence[RawRow],
    mappings: Sequence[ColumnMapping],
) -> list[CatalogItemData]:
    """Transform every row, preserving row order."""
    field_to_column = _field_to_column(mappings)
    items = [_build_item(_MappedRow(row, field_to_column)) for row in rows]
    logger.debug("rows_transformed", count=len(items))
    return items


def _build_item(mapped: _MappedRow) -> CatalogItemData:
    states: dict[str, str] = {}
    for key in ("estado_anuncio", "estado_tienda"):
        value = mapped.text(key)
        if value:
            states[key] = value

    extra_prices: dict[str, float] = {}
    for key in ("precio_p", "precio_m"):
        price = mapped.number(key)
        if price is not None:
            extra_prices[key] = price

    selected = mapped.boolean("selecto")
    flags: dict[str, bool] = {"selecto": selected}
    ef_tkc = mapped.text("ef_tkc")
    if ef_tkc:
        flags["ef_tkc"] = parse_boolean(ef_tkc) or False

    return CatalogItemData(
        code=mapped.text("codigo") or "",
        name=mapped.text("producto") or "",
        price_usd=mapped.number("precio") or 0.0,
        category=mapped.optional_text("categoria"),
        category_f1=mapped.optional_text("cat_f1"),
        category_f2=mapped.optional_text("cat_f2"),
        category_f3=mapped.optional_text("cat_f3"),
        supplier=mapped.optional_text("suministrador"),
        warehouse=mapped.optional_text("almacen"),
        store_id=mapped.optional_text("id_tienda"),
        store_name=mapped.optional_text("tienda"),
        image_url=normalize_image_url(mapped.text("imagen")),
        image_filter=mapped.optional_text("filtro_imagenes"),
        states=states,
        extra_prices=extra_prices,
        flags=flags,
        is_selected=selected,
        is_active=True,
    )
