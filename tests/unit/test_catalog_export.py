"""
Unit tests for catalog export and the validation error report.
"""

from datetime import date
from io import BytesIO

import pytest
from openpyxl import load_workbook

from services.catalog_export import (
    EXPORT_COLUMNS,
    CatalogExporter,
    ExportOptions,
    FieldPath,
    build_export_filename,
    error_report_csv,
    error_report_filename,
)
from services.row_validator import Severity, ValidationIssue
from exceptions import EmptyExportError
from tests.factories import CatalogItemFactory


@pytest.fixture
def items():
    return [
        CatalogItemFactory.create(
            code="A-1",
            name="Martillo",
            price_usd=12.5,
            category="Herramientas",
            states={"estado_tienda": "Visible"},
            extra_prices={"precio_p": 11.0},
            flags={"selecto": True, "ef_tkc": False},
            is_selected=True,
        ),
        CatalogItemFactory.create(code="A-2", category="Pinturas"),
        CatalogItemFactory.create(code="A-3", category="Herramientas", is_active=False),
    ]


@pytest.fixture
def exporter() -> CatalogExporter:
    return CatalogExporter()


class TestFieldPath:
    """Tests for FieldPath."""

    def test_parse(self):
        assert FieldPath.parse("states.estado_tienda") == FieldPath("states", "estado_tienda")
        assert FieldPath.parse("code") == FieldPath("code")

    def test_resolve_missing_key(self, items):
        assert FieldPath("extra_prices", "precio_m").resolve(items[0]) is None


class TestRows:
    """Tests for column layout and filters."""

    def test_header_order(self, exporter):
        assert len(EXPORT_COLUMNS) == 20
        assert exporter.headers[:4] == ["Codigo", "Producto", "Precio", "Imagen"]
        assert exporter.headers[-1] == "Activo"

    def test_values(self, exporter, items):
        row = dict(zip(exporter.headers, exporter.to_rows(items, ExportOptions("Ferretería"))[0]))

        assert row["Codigo"] == "A-1"
        assert row["Precio"] == 12.5
        assert row["Precio P"] == 11.0
        assert row["Precio M."] is None
        assert row["EF TKC"] == "No"
        assert row["Estado en Tienda"] == "Visible"
        assert row["Selecto"] == "Sí"
        assert row["Activo"] == "Sí"
        assert row["Imagen"] is None

    def test_inactive_excluded_by_default(self, exporter, items):
        rows = exporter.to_rows(items, ExportOptions("Ferretería"))

        assert [r[0] for r in rows] == ["A-1", "A-2"]

    def test_include_inactive(self, exporter, items):
        rows = exporter.to_rows(items, ExportOptions("Ferretería", include_inactive=True))

        assert len(rows) == 3
        assert rows[2][-1] == "No"

    def test_only_selected_and_category(self, exporter, items):
        assert len(exporter.to_rows(items, ExportOptions("F", only_selected=True))) == 1
        assert [r[0] for r in exporter.to_rows(items, ExportOptions("F", category="Pinturas"))] == ["A-2"]

    def test_nothing_to_export(self, exporter, items):
        with pytest.raises(EmptyExportError) as exc_info:
            exporter.to_rows(items, ExportOptions("F", category="Jardín"))

        assert exc_info.value.message == "No hay items para exportar"
        assert exc_info.value.details["filters"]["category"] == "Jardín"


class TestFiles:
    """Tests for the Excel and CSV files."""

    def test_excel(self, exporter, items):
        output = exporter.to_excel(items, ExportOptions("Ferretería"))

        wb = load_workbook(BytesIO(output.getvalue()))
        ws = wb["Catalogo"]
        assert [cell.value for cell in ws[1]] == exporter.headers
        assert ws["A2"].value == "A-1"
        assert ws.max_row == 3
        assert ws.column_dimensions["A"].width == 15
        assert ws.column_dimensions["J"].width == len("Filtro para Imagenes")

    def test_csv(self, exporter, items):
        content = exporter.to_csv(items, ExportOptions("Ferretería")).decode("utf-8")

        lines = content.splitlines()
        assert lines[0] == ",".join(exporter.headers)
        assert lines[1].startswith("A-1,Martillo,12.5,,")
        assert len(lines) == 3

    def test_filename(self):
        options = ExportOptions("Ferretería Central", only_selected=True, category="Pinturas/Int")

        filename = build_export_filename(options, "xlsx", today=date(2024, 5, 1))

        assert filename == "Ferretería_Central_2024-05-01_selectos_Pinturas_Int.xlsx"

    def test_plain_filename(self):
        assert build_export_filename(ExportOptions("Lista"), "csv", today=date(2024, 5, 1)) == "Lista_2024-05-01.csv"


class TestErrorReport:
    """Tests for the validation error CSV."""

    def test_layout(self):
        issues = [
            ValidationIssue(2, "Precio", "precio", "Valor no numérico: 'abc'", "abc", Severity.ERROR),
            ValidationIssue(3, "Imagen", "imagen", 'URL inválida: \'a "b"\'', 'a "b"', Severity.WARNING),
            ValidationIssue(4, "Precio", "precio", "Campo requerido no mapeado", None, Severity.ERROR),
        ]

        lines = error_report_csv(issues).decode("utf-8").splitlines()

        assert lines[0] == "Fila,Columna,Campo,Error,Valor,Severidad"
        assert lines[1] == '2,"Precio","precio","Valor no numérico: \'abc\'","abc","error"'
        assert lines[2] == '3,"Imagen","imagen","URL inválida: \'a ""b""\'","a ""b""","warning"'
        assert lines[3] == '4,"Precio","precio","Campo requerido no mapeado","","error"'

    def test_empty_report_has_header(self):
        assert error_report_csv([]) == b"Fila,Columna,Campo,Error,Valor,Severidad\n"

    def test_filename(self):
        assert error_report_filename("Mi Lista", today=date(2024, 5, 1)) == "errores_Mi_Lista_2024-05-01.csv"
