"""
Unit tests for the spreadsheet reader.

Workbooks are built in memory with pandas/openpyxl.
"""

import pytest

from parsers.spreadsheet_reader import get_preview_rows, read_spreadsheet
from exceptions import DecodeError, EmptyFileError, NoDataError
from tests.factories import create_excel_file


class TestReadExcel:
    """Tests for reading .xlsx uploads."""

    def test_reads_columns_and_rows(self, sample_excel, sample_columns):
        """Header names come back verbatim and in sheet order."""
        sheet = read_spreadsheet(sample_excel, filename="catalogo.xlsx")

        assert sheet.columns == sample_columns
        assert sheet.total_rows == 3
        assert sheet.rows[0]["Codigo"] == "A-001"
        assert sheet.rows[1]["Precio"] == "4,75"

    def test_missing_cells_are_none(self, sample_excel):
        sheet = read_spreadsheet(sample_excel)

        assert sheet.rows[1]["Imagen"] is None
        assert sheet.rows[2]["Selecto"] is None

    def test_blank_rows_are_skipped(self):
        content = create_excel_file(
            [
                {"Codigo": "A", "Producto": "Uno"},
                {"Codigo": None, "Producto": None},
                {"Codigo": "B", "Producto": "Dos"},
            ],
            ["Codigo", "Producto"],
        )

        sheet = read_spreadsheet(content)

        assert [row["Codigo"] for row in sheet.rows] == ["A", "B"]

    def test_empty_bytes_raise_empty_file(self):
        with pytest.raises(EmptyFileError) as exc_info:
            read_spreadsheet(b"", filename="vacio.xlsx")

        assert exc_info.value.message == "El archivo Excel está vacío"

    def test_header_only_raises_no_data(self):
        content = create_excel_file([], ["Codigo", "Producto"])

        with pytest.raises(NoDataError) as exc_info:
            read_spreadsheet(content)

        assert exc_info.value.message == "El archivo Excel no contiene datos"

    def test_garbage_raises_decode_error(self):
        with pytest.raises(DecodeError) as exc_info:
            read_spreadsheet(b"definitely not a workbook", filename="roto.xlsx")

        assert exc_info.value.code == "SPREADSHEET_DECODE_ERROR"
        assert exc_info.value.status_code == 422


class TestReadCsv:
    """Tests for reading .csv uploads."""

    def test_reads_utf8_with_bom(self):
        content = "\ufeffCodigo,Producto,Almacén\nA-1,Martillo,Central\n".encode("utf-8")

        sheet = read_spreadsheet(content, filename="catalogo.csv")

        assert sheet.columns == ["Codigo", "Producto", "Almacén"]
        assert sheet.rows == [{"Codigo": "A-1", "Producto": "Martillo", "Almacén": "Central"}]

    def test_values_stay_text(self):
        content = b"Codigo,Precio\n007,12.50\n"

        sheet = read_spreadsheet(content, filename="catalogo.csv")

        assert sheet.rows[0] == {"Codigo": "007", "Precio": "12.50"}

    def test_header_only_raises_no_data(self):
        with pytest.raises(NoDataError):
            read_spreadsheet(b"Codigo,Producto\n", filename="catalogo.csv")


class TestPreviewRows:
    """Tests for get_preview_rows."""

    def test_limits_and_blanks_missing_cells(self):
        rows = [{"Codigo": str(i), "Imagen": None} for i in range(10)]

        preview = get_preview_rows(rows, count=5)

        assert len(preview) == 5
        assert preview[0] == {"Codigo": "0", "Imagen": ""}
