"""
Catalog export: version items to Excel/CSV, validation report to CSV.

Export columns are declared as FieldPath values (an item attribute plus an
optional key into one of the nested maps) so every column resolves the same
way and the header order stays fixed.
"""

import csv
import io
import json
import re
from dataclasses import dataclass
from datetime import date
from io import BytesIO
from typing import Any, Optional, Sequence, Union

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
import structlog

from exceptions import EmptyExportError
from models.catalog import CatalogItemData
from services.row_validator import ValidationIssue

logger = structlog.get_logger(__name__)

SHEET_TITLE = "Catalogo"
MIN_COLUMN_WIDTH = 15
ERROR_REPORT_HEADER = ("Fila", "Columna", "Campo", "Error", "Valor", "Severidad")

# Letters kept in filenames besides [A-Za-z0-9_.-]
_FILENAME_UNSAFE = re.compile(r"[^a-zA-Z0-9_\-.áéíóúñÁÉÍÓÚÑ]")

ExportValue = Union[str, float, int, None]


@dataclass(frozen=True)
class FieldPath:
    """Location of an export value: item attribute, then optional map key."""
    attribute: str
    key: Optional[str] = None

    @classmethod
    def parse(cls, path: str) -> "FieldPath":
        """'states.estado_tienda' -> FieldPath('states', 'estado_tienda')."""
        attribute, _, key = path.partition(".")
        return cls(attribute, key or None)

    def resolve(self, item: CatalogItemData) -> Any:
        value = getattr(item, self.attribute)
        if self.key is None:
            return value
        if isinstance(value, dict):
            return value.get(self.key)
        return None

    def __str__(self) -> str:
        return f"{self.attribute}.{self.key}" if self.key else self.attribute


@dataclass(frozen=True)
class ExportColumn:
    header: str
    path: FieldPath


def _column(path: str, header: str) -> ExportColumn:
    return ExportColumn(header=header, path=FieldPath.parse(path))


EXPORT_COLUMNS: tuple[ExportColumn, ...] = (
    _column("code", "Codigo"),
    _column("name", "Producto"),
    _column("price_usd", "Precio"),
    _column("image_url", "Imagen"),
    _column("supplier", "Suministrador"),
    _column("warehouse", "Almacen"),
    _column("category", "Categoria"),
    _column("extra_prices.precio_p", "Precio P"),
    _column("extra_prices.precio_m", "Precio M."),
    _column("image_filter", "Filtro para Imagenes"),
    _column("flags.ef_tkc", "EF TKC"),
    _column("store_id", "ID Tienda"),
    _column("states.estado_anuncio", "Estado Anuncio"),
    _column("states.estado_tienda", "Estado en Tienda"),
    _column("store_name", "Tienda"),
    _column("is_selected", "Selecto"),
    _column("category_f1", "Cat.F1"),
    _column("category_f2", "Cat.F2"),
    _column("category_f3", "Cat.F3"),
    _column("is_active", "Activo"),
)


def format_export_value(value: Any) -> ExportValue:
    """Spreadsheet cell value: booleans as Sí/No, maps as JSON."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "Sí" if value else "No"
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def sanitize_filename(filename: str) -> str:
    return _FILENAME_UNSAFE.sub("_", filename)


@dataclass
class ExportOptions:
    """Filters and naming for a catalog export."""
    catalog_name: str
    include_inactive: bool = False
    only_selected: bool = False
    category: Optional[str] = None

    def filters(self) -> dict:
        return {
            "include_inactive": self.include_inactive,
            "only_selected": self.only_selected,
            "category": self.category,
        }


def build_export_filename(
    options: ExportOptions,
    extension: str,
    today: Optional[date] = None,
) -> str:
    """<catalog>_<YYYY-MM-DD>[_selectos][_<category>].<ext>, sanitized."""
    filename = f"{options.catalog_name}_{(today or date.today()).isoformat()}"
    if options.only_selected:
        filename += "_selectos"
    if options.category:
        filename += f"_{options.category}"
    return sanitize_filename(f"{filename}.{extension}")


class CatalogExporter:
    """Renders catalog items as a spreadsheet download."""

    def __init__(self, columns: Sequence[ExportColumn] = EXPORT_COLUMNS):
        self.columns = tuple(columns)

    @property
    def headers(self) -> list[str]:
        return [column.header for column in self.columns]

    def filter_items(
        self,
        items: Sequence[CatalogItemData],
        options: ExportOptions,
    ) -> list[CatalogItemData]:
        filtered = list(items)
        if not options.include_inactive:
            filtered = [item for item in filtered if item.is_active]
        if options.only_selected:
            filtered = [item for item in filtered if item.is_selected]
        if options.category:
            filtered = [item for item in filtered if item.category == options.category]
        return filtered

    def to_rows(
        self,
        items: Sequence[CatalogItemData],
        options: ExportOptions,
    ) -> list[list[ExportValue]]:
        """
        Filtered items as rows of cell values in header order.

        Raises:
            EmptyExportError: Nothing left after filtering
        """
        filtered = self.filter_items(items, options)
        if not filtered:
            raise EmptyExportError(options.filters())

        return [
            [format_export_value(column.path.resolve(item)) for column in self.columns]
            for item in filtered
        ]

    def to_excel(
        self,
        items: Sequence[CatalogItemData],
        options: ExportOptions,
    ) -> BytesIO:
        """
        Generate the .xlsx export.

        Returns:
            BytesIO containing the Excel file
        """
        rows = self.to_rows(items, options)

        wb = Workbook()
        ws = wb.active
        ws.title = SHEET_TITLE

        ws.append(self.headers)
        for cell in ws[1]:
            cell.font = Font(bold=True)

        for row in rows:
            ws.append(row)

        for index, header in enumerate(self.headers, start=1):
            ws.column_dimensions[get_column_letter(index)].width = max(len(header), MIN_COLUMN_WIDTH)

        logger.info(
            "catalog_excel_exported",
            catalog_name=options.catalog_name,
            row_count=len(rows),
            **options.filters()
        )

        output = BytesIO()
        wb.save(output)
        output.seek(0)

        return output

    def to_csv(
        self,
        items: Sequence[CatalogItemData],
        options: ExportOptions,
    ) -> bytes:
        """Generate the CSV export as UTF-8 bytes."""
        rows = self.to_rows(items, options)

        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(self.headers)
        writer.writerows(["" if value is None else value for value in row] for row in rows)

        logger.info(
            "catalog_csv_exported",
            catalog_name=options.catalog_name,
            row_count=len(rows),
            **options.filters()
        )

        return buffer.getvalue().encode("utf-8")


def error_report_csv(issues: Sequence[ValidationIssue]) -> bytes:
    """
    Validation issues as a downloadable CSV.

    Header is Fila,Columna,Campo,Error,Valor,Severidad; text fields are
    quoted, row numbers are not.
    """
    buffer = io.StringIO()
    buffer.write(",".join(ERROR_REPORT_HEADER) + "\n")

    writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    for issue in issues:
        writer.writerow([
            issue.row,
            issue.column,
            issue.field,
            issue.message,
            issue.value or "",
            issue.severity.value,
        ])

    return buffer.getvalue().encode("utf-8")


def error_report_filename(catalog_name: str, today: Optional[date] = None) -> str:
    return sanitize_filename(f"errores_{catalog_name}_{(today or date.today()).isoformat()}.csv")
