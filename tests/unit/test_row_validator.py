"""
Unit tests for the row validator.

Row numbers are physical spreadsheet rows: the first data row is row 2.
"""

import pytest

from models.mapping import SYSTEM_FIELDS, ColumnMapping
from services.column_mapper import apply_manual_mapping
from services.row_validator import (
    Severity,
    apply_cell_edits,
    filter_issues,
    validate_rows,
)
from exceptions import ValidationError


def _row(code="A-1", name="Martillo", price="10", **extra) -> dict:
    return {"Codigo": code, "Producto": name, "Precio": price, **extra}


def _messages(result) -> list[str]:
    return [issue.message for issue in result.issues]


# ===================
# BASIC VALIDATION
# ===================

class TestValidRows:
    """Tests for rows without problems."""

    def test_sample_rows_are_valid(self, sample_rows, sample_mappings):
        result = validate_rows(sample_rows, sample_mappings, SYSTEM_FIELDS)

        assert result.is_valid
        assert result.total_rows == 3
        assert result.valid_rows == 3
        assert result.issues == []

    def test_to_dict_shape(self, sample_rows, sample_mappings):
        payload = validate_rows(sample_rows, sample_mappings, SYSTEM_FIELDS).to_dict()

        assert payload["is_valid"] is True
        assert payload["errors"] == []
        assert payload["duplicates"] == {}


class TestRequiredFields:
    """Tests for required field checks."""

    def test_unmapped_required_field_reported_per_row(self, sample_rows, sample_mappings):
        mappings = apply_manual_mapping(sample_mappings, "precio", None)

        result = validate_rows(sample_rows, mappings, SYSTEM_FIELDS)

        unmapped = [i for i in result.issues if i.message == "Campo requerido no mapeado"]
        assert [i.row for i in unmapped] == [2, 3, 4]
        assert all(i.column == "Precio" and i.field == "precio" for i in unmapped)
        assert result.valid_rows == 0
        assert not result.is_valid

    def test_empty_required_value(self, sample_mappings):
        result = validate_rows([_row(name="  ")], sample_mappings, SYSTEM_FIELDS)

        assert _messages(result) == ["Valor vacío en campo requerido"]
        assert result.issues[0].row == 2
        assert result.issues[0].column == "Producto"
        assert result.issues[0].severity == Severity.ERROR

    def test_missing_optional_value_is_fine(self, sample_mappings):
        result = validate_rows([_row(Imagen=None, Selecto="")], sample_mappings, SYSTEM_FIELDS)

        assert result.is_valid
        assert result.issues == []


class TestTypedFields:
    """Tests for number, URL, boolean and length checks."""

    def test_non_numeric_price_is_error(self, sample_mappings):
        result = validate_rows([_row(price="abc")], sample_mappings, SYSTEM_FIELDS)

        assert _messages(result) == ["Valor no numérico: 'abc'"]
        assert result.issues[0].severity == Severity.ERROR
        assert result.valid_rows == 0

    def test_negative_price_is_warning(self, sample_mappings):
        result = validate_rows([_row(price="-5")], sample_mappings, SYSTEM_FIELDS)

        assert _messages(result) == ["Precio negativo: -5"]
        assert result.issues[0].severity == Severity.WARNING
        assert result.is_valid
        assert result.valid_rows == 1

    def test_invalid_url_is_warning(self, sample_mappings):
        result = validate_rows([_row(Imagen="not a url")], sample_mappings, SYSTEM_FIELDS)

        assert _messages(result) == ["URL inválida: 'not a url'"]
        assert result.warning_count == 1
        assert result.is_valid

    def test_unrecognized_boolean_is_warning(self, sample_mappings):
        result = validate_rows([_row(Selecto="quizás")], sample_mappings, SYSTEM_FIELDS)

        assert _messages(result) == ["Valor booleano no reconocido: 'quizás'"]
        assert result.issues[0].severity == Severity.WARNING

    def test_text_too_long_is_warning_with_truncated_value(self, sample_mappings):
        long_name = "x" * 501

        result = validate_rows([_row(name=long_name)], sample_mappings, SYSTEM_FIELDS)

        assert _messages(result) == ["Texto demasiado largo (501/500)"]
        assert result.issues[0].value == "x" * 50 + "..."
        assert result.is_valid


class TestDuplicateCodes:
    """Tests for duplicate code detection."""

    def test_later_occurrences_are_errors(self, sample_mappings):
        rows = [_row("A"), _row("B"), _row("A"), _row("A")]

        result = validate_rows(rows, sample_mappings, SYSTEM_FIELDS)

        assert result.duplicates == {"A": [2, 4, 5]}
        duplicate_issues = [i for i in result.issues if i.field == "codigo"]
        assert [i.row for i in duplicate_issues] == [4, 5]
        assert duplicate_issues[0].message == "Código duplicado: 'A' (también en filas: 2, 5)"
        assert result.valid_rows == 2
        assert not result.is_valid

    def test_codes_are_trimmed_before_comparing(self, sample_mappings):
        result = validate_rows([_row("A"), _row(" A ")], sample_mappings, SYSTEM_FIELDS)

        assert result.duplicates == {"A": [2, 3]}


class TestIssueOrdering:
    """Tests for issue ordering and filtering."""

    def test_issues_sorted_by_row(self, sample_mappings):
        rows = [_row("A", price="abc"), _row("B", Imagen="nope"), _row("A")]

        result = validate_rows(rows, sample_mappings, SYSTEM_FIELDS)

        assert [i.row for i in result.issues] == sorted(i.row for i in result.issues)
        assert result.issues[-1].row == 4

    def test_filter_by_severity(self, sample_mappings):
        rows = [_row(price="abc"), _row("B", price="-1")]
        result = validate_rows(rows, sample_mappings, SYSTEM_FIELDS)

        assert len(filter_issues(result, Severity.ERROR)) == 1
        assert len(filter_issues(result, Severity.WARNING)) == 1
        assert len(filter_issues(result)) == 2

    def test_revalidation_gives_same_result(self, sample_mappings):
        rows = [_row("A"), _row("B", price="-1", Imagen="nope"), _row("A", price="abc"), _row(" A ")]

        first = validate_rows(rows, sample_mappings, SYSTEM_FIELDS)
        second = validate_rows(rows, sample_mappings, SYSTEM_FIELDS)

        assert first.error_count > 0
        assert first.warning_count == 2
        assert first.to_dict() == second.to_dict()
        assert rows[3]["Codigo"] == " A "


# ===================
# CELL EDIT TESTS
# ===================

class TestApplyCellEdits:
    """Tests for apply_cell_edits."""

    def test_edit_fixes_row_on_revalidation(self, sample_mappings):
        rows = [_row(price="abc")]

        fixed = apply_cell_edits(rows, {(2, "Precio"): "12"})
        result = validate_rows(fixed, sample_mappings, SYSTEM_FIELDS)

        assert result.is_valid
        assert rows[0]["Precio"] == "abc"

    def test_edit_outside_sheet_raises(self, sample_mappings):
        with pytest.raises(ValidationError) as exc_info:
            apply_cell_edits([_row()], {(3, "Precio"): "12"})

        assert exc_info.value.code == "EDIT_ROW_OUT_OF_RANGE"

    def test_header_row_cannot_be_edited(self):
        with pytest.raises(ValidationError):
            apply_cell_edits([_row()], {(1, "Precio"): "12"})
