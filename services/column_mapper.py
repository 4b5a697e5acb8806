"""
Column mapper: match spreadsheet columns to system fields.

Auto-mapping is a greedy, first-come assignment in field declaration order.
Each spreadsheet column is claimed by at most one field; a later field never
takes a column back from an earlier one. The result is reproducible for the
same inputs.
"""

from typing import Iterable, Optional, Sequence
import structlog

from exceptions import DuplicateMappingError, UnknownFieldError
from models.mapping import ColumnMapping, MappingStats, SystemField
from utils.text_utils import normalize_header

logger = structlog.get_logger(__name__)

EXACT_MATCH_SCORE = 100.0
PARTIAL_MATCH_WEIGHT = 80.0
MIN_ACCEPT_SCORE = 50.0


def _match_score(column: str, label: str) -> float:
    """Containment score between two normalized names, 0 when unrelated."""
    if not column or not label:
        return 0.0
    if column in label or label in column:
        return min(len(column), len(label)) / max(len(column), len(label)) * PARTIAL_MATCH_WEIGHT
    return 0.0


def _best_column(
    field: SystemField,
    columns: Sequence[str],
    used: frozenset[str],
) -> Optional[str]:
    """Best unused column for one field, or None below the accept threshold."""
    field_label = normalize_header(field.label)
    field_key = normalize_header(field.key)

    best_match: Optional[str] = None
    best_score = 0.0

    for column in columns:
        if column in used:
            continue

        normalized = normalize_header(column)

        if normalized and normalized in (field_label, field_key):
            return column

        score = _match_score(normalized, field_label)
        if score > best_score:
            best_score = score
            best_match = column

    if best_match is not None and best_score >= MIN_ACCEPT_SCORE:
        return best_match
    return None


def auto_map(
    system_fields: Sequence[SystemField],
    columns: Sequence[str],
) -> list[ColumnMapping]:
    """
    Suggest a column for every system field.

    For each field in declaration order, an exact normalized match against the
    label or key wins immediately; otherwise the unused column with the best
    containment score is taken if it scores at least 50.

    Args:
        system_fields: Target fields, in declaration order
        columns: Spreadsheet header names, verbatim

    Returns:
        One ColumnMapping per system field, in the same order
    """
    used: frozenset[str] = frozenset()
    mappings: list[ColumnMapping] = []

    for field in system_fields:
        column = _best_column(field, columns, used)
        if column is not None:
            used = used | {column}
        mappings.append(ColumnMapping(field_key=field.key, column=column))

    logger.debug(
        "columns_auto_mapped",
        field_count=len(system_fields),
        mapped_count=len(used)
    )

    return mappings


def apply_manual_mapping(
    mappings: Sequence[ColumnMapping],
    field_key: str,
    column: Optional[str],
) -> list[ColumnMapping]:
    """
    Return a new mapping list with one field reassigned.

    Args:
        mappings: Current mappings
        field_key: System field to change
        column: Spreadsheet column, or None to unmap the field

    Raises:
        UnknownFieldError: No mapping exists for field_key
        DuplicateMappingError: Column already assigned to another field
    """
    if not any(m.field_key == field_key for m in mappings):
        raise UnknownFieldError(field_key)

    if column is not None:
        owners = [m.field_key for m in mappings if m.column == column and m.field_key != field_key]
        if owners:
            raise DuplicateMappingError(column, owners + [field_key])

    return [
        m.model_copy(update={"column": column}) if m.field_key == field_key else m
        for m in mappings
    ]


def clear_mappings(system_fields: Iterable[SystemField]) -> list[ColumnMapping]:
    """All fields unmapped."""
    return [ColumnMapping(field_key=field.key, column=None) for field in system_fields]


def find_duplicate_assignments(mappings: Iterable[ColumnMapping]) -> dict[str, list[str]]:
    """Columns assigned to more than one field, with the fields claiming them."""
    owners: dict[str, list[str]] = {}
    for mapping in mappings:
        if mapping.column is not None:
            owners.setdefault(mapping.column, []).append(mapping.field_key)
    return {column: fields for column, fields in owners.items() if len(fields) > 1}


def ensure_unique_assignments(mappings: Iterable[ColumnMapping]) -> None:
    """
    Reject a mapping set that assigns one column twice.

    Raises:
        DuplicateMappingError: For the first duplicated column found
    """
    duplicates = find_duplicate_assignments(mappings)
    if duplicates:
        column, fields = next(iter(duplicates.items()))
        raise DuplicateMappingError(column, fields)


def mapping_stats(
    mappings: Sequence[ColumnMapping],
    system_fields: Sequence[SystemField],
    columns: Sequence[str],
) -> MappingStats:
    """Counts of mapped fields and the columns nothing uses."""
    assigned = {m.field_key: m.column for m in mappings if m.column}
    required = [f for f in system_fields if f.required]
    used_columns = set(assigned.values())

    return MappingStats(
        required_mapped=sum(1 for f in required if f.key in assigned),
        required_total=len(required),
        total_mapped=len(assigned),
        unused_columns=[c for c in columns if c not in used_columns],
    )
