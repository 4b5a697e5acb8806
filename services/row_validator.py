"""
Row validator for mapped spreadsheet rows.

Checks required fields, declared types and text lengths for every mapped row
and detects duplicate product codes. Problems come back as a result value; a
spreadsheet with errors is never an exception.

Row numbers are physical spreadsheet rows: the first data row is row 2.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional, Sequence
import structlog

from exceptions import ValidationError
from models.mapping import CODE_FIELD, ColumnMapping, FieldType, SystemField
from parsers.spreadsheet_reader import RawRow
from services.value_parsers import (
    cell_text,
    is_valid_url,
    parse_boolean,
    parse_price,
)
from utils.text_utils import truncate_for_display

logger = structlog.get_logger(__name__)

HEADER_ROW_OFFSET = 2  # 1-indexed rows plus the header row


class Severity(str, Enum):
    """Errors block the import; warnings are advisory."""
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class ValidationIssue:
    """Single problem found in one cell or row."""
    row: int
    column: str
    field: str
    message: str
    value: Optional[str]
    severity: Severity

    def to_dict(self) -> dict:
        return {
            "row": self.row,
            "column": self.column,
            "field": self.field,
            "message": self.message,
            "value": self.value,
            "severity": self.severity.value,
        }


@dataclass
class ValidationResult:
    """Outcome of validating every row of an upload."""
    total_rows: int = 0
    valid_rows: int = 0
    issues: list[ValidationIssue] = field(default_factory=list)
    duplicates: dict[str, list[int]] = field(default_factory=dict)

    @property
    def error_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == Severity.ERROR)

    @property
    def warning_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == Severity.WARNING)

    @property
    def is_valid(self) -> bool:
        """True if no blocking errors were found."""
        return self.error_count == 0

    def to_dict(self) -> dict:
        """Convert to dictionary for API response."""
        return {
            "is_valid": self.is_valid,
            "total_rows": self.total_rows,
            "valid_rows": self.valid_rows,
            "error_count": self.error_count,
            "warning_count": self.warning_count,
            "errors": [issue.to_dict() for issue in self.issues],
            "duplicates": self.duplicates,
        }


def _format_number(value: float) -> str:
    return str(int(value)) if value.is_integer() else str(value)


def _check_value(
    field: SystemField,
    column: str,
    value: str,
    row_number: int,
) -> list[ValidationIssue]:
    """Type and length checks for one non-empty mapped cell."""
    issues: list[ValidationIssue] = []

    def issue(message: str, severity: Severity, reported: Optional[str] = None) -> None:
        issues.append(ValidationIssue(
            row=row_number,
            column=column,
            field=field.key,
            message=message,
            value=value if reported is None else reported,
            severity=severity,
        ))

    if field.type == FieldType.NUMBER:
        parsed = parse_price(value)
        if parsed is None:
            issue(f"Valor no numérico: '{value}'", Severity.ERROR)
        elif parsed < 0 and "precio" in field.key:
            issue(f"Precio negativo: {_format_number(parsed)}", Severity.WARNING)

    elif field.type == FieldType.URL:
        if not is_valid_url(value):
            issue(f"URL inválida: '{value}'", Severity.WARNING)

    elif field.type == FieldType.BOOLEAN:
        if parse_boolean(value) is None:
            issue(f"Valor booleano no reconocido: '{value}'", Severity.WARNING)

    if field.max_length and len(value) > field.max_length:
        issue(
            f"Texto demasiado largo ({len(value)}/{field.max_length})",
            Severity.WARNING,
            reported=truncate_for_display(value),
        )

    return issues


def validate_rows(
    rows: Sequence[RawRow],
    mappings: Sequence[ColumnMapping],
    system_fields: Sequence[SystemField],
) -> ValidationResult:
    """
    Validate mapped rows.

    Args:
        rows: Parsed spreadsheet rows
        mappings: Field-to-column assignments
        system_fields: Template fields with their requirements

    Returns:
        ValidationResult with issues sorted by row number
    """
    field_to_column = {m.field_key: m.column for m in mappings if m.column}
    code_column = field_to_column.get(CODE_FIELD)

    issues: list[ValidationIssue] = []
    code_rows: dict[str, list[int]] = {}
    valid_rows = 0

    for index, row in enumerate(rows):
        row_number = index + HEADER_ROW_OFFSET
        row_has_error = False

        for field in system_fields:
            column = field_to_column.get(field.key)

            if not column:
                # Reported for every row and every unmapped required field
                if field.required:
                    issues.append(ValidationIssue(
                        row=row_number,
                        column=field.label,
                        field=field.key,
                        message="Campo requerido no mapeado",
                        value=None,
                        severity=Severity.ERROR,
                    ))
                    row_has_error = True
                continue

            value = cell_text(row.get(column))

            if not value:
                if field.required:
                    issues.append(ValidationIssue(
                        row=row_number,
                        column=column,
                        field=field.key,
                        message="Valor vacío en campo requerido",
                        value=value,
                        severity=Severity.ERROR,
                    ))
                    row_has_error = True
                continue

            cell_issues = _check_value(field, column, value, row_number)
            if any(i.severity == Severity.ERROR for i in cell_issues):
                row_has_error = True
            issues.extend(cell_issues)

        if code_column:
            code = cell_text(row.get(code_column))
            if code:
                code_rows.setdefault(code, []).append(row_number)

        if not row_has_error:
            valid_rows += 1

    duplicates: dict[str, list[int]] = {}
    for code, row_numbers in code_rows.items():
        if len(row_numbers) < 2:
            continue
        duplicates[code] = row_numbers
        for row_number in row_numbers[1:]:
            others = ", ".join(str(r) for r in row_numbers if r != row_number)
            issues.append(ValidationIssue(
                row=row_number,
                column=code_column or "Codigo",
                field=CODE_FIELD,
                message=f"Código duplicado: '{code}' (también en filas: {others})",
                value=code,
                severity=Severity.ERROR,
            ))
            valid_rows = max(0, valid_rows - 1)

    # Stable: issues of one row keep their discovery order
    issues.sort(key=lambda i: i.row)

    result = ValidationResult(
        total_rows=len(rows),
        valid_rows=valid_rows,
        issues=issues,
        duplicates=duplicates,
    )

    logger.info(
        "rows_validated",
        total_rows=result.total_rows,
        valid_rows=result.valid_rows,
        error_count=result.error_count,
        warning_count=result.warning_count,
        duplicate_codes=len(duplicates)
    )

    return result


def filter_issues(
    result: ValidationResult,
    severity: Optional[Severity] = None,
) -> list[ValidationIssue]:
    """Issues of one severity, or all of them."""
    if severity is None:
        return list(result.issues)
    return [i for i in result.issues if i.severity == severity]


def apply_cell_edits(
    rows: Sequence[RawRow],
    edits: Mapping[tuple[int, str], Optional[str]],
) -> list[RawRow]:
    """
    Return rows with operator corrections applied.

    Args:
        rows: Parsed rows (left untouched)
        edits: New cell values keyed by (physical row number, column)

    Returns:
        New row list; edited rows are copies, the rest are shared

    Raises:
        ValidationError: An edit points outside the sheet
    """
    updated = list(rows)
    for (row_number, column), value in edits.items():
        index = row_number - HEADER_ROW_OFFSET
        if index < 0 or index >= len(updated):
            raise ValidationError(
                code="EDIT_ROW_OUT_OF_RANGE",
                message=f"Row {row_number} is not part of the sheet",
                details={"row": row_number, "column": column}
            )
        updated[index] = {**updated[index], column: value}

    logger.debug("cell_edits_applied", edit_count=len(edits))
    return updated
