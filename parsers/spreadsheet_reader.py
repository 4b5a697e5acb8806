"""
Spreadsheet reader for catalog uploads.

Reads the first sheet of an uploaded workbook (or a CSV export of one) into a
column list and an ordered list of raw rows. Every cell comes out as text or
None; interpreting prices, booleans and URLs is left to the validator.
"""

from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
from typing import BinaryIO, Optional, Union
import structlog

import pandas as pd

from exceptions import (
    DecodeError,
    EmptyFileError,
    NoDataError,
    SpreadsheetParseError,
)

logger = structlog.get_logger(__name__)

RawRow = dict[str, Optional[str]]

SpreadsheetSource = Union[bytes, str, Path, BinaryIO]


@dataclass
class ParsedSheet:
    """Header row and data rows of the first sheet."""
    columns: list[str] = field(default_factory=list)
    rows: list[RawRow] = field(default_factory=list)

    @property
    def total_rows(self) -> int:
        return len(self.rows)

    def to_dict(self) -> dict:
        """Convert to dictionary for API response."""
        return {
            "columns": self.columns,
            "rows": self.rows,
            "total_rows": self.total_rows,
        }


def read_spreadsheet(
    file: SpreadsheetSource,
    filename: Optional[str] = None,
) -> ParsedSheet:
    """
    Parse an uploaded spreadsheet.

    Args:
        file: Raw bytes, a file path, or a binary file-like object
        filename: Original upload name; a ".csv" suffix selects the CSV reader

    Returns:
        ParsedSheet with verbatim header names and text-or-None cells

    Raises:
        EmptyFileError: File has no bytes or the workbook has no sheets
        NoDataError: No data rows below the header
        DecodeError: File contents could not be decoded
    """
    if filename is None and isinstance(file, (str, Path)):
        filename = str(file)

    buffer = _load_bytes(file)
    if not buffer:
        raise EmptyFileError(details={"filename": filename})

    is_csv = bool(filename) and filename.lower().endswith(".csv")

    logger.info(
        "parsing_spreadsheet",
        filename=filename,
        size_bytes=len(buffer),
        format="csv" if is_csv else "excel"
    )

    try:
        if is_csv:
            df = _read_csv(buffer)
        else:
            df = _read_first_sheet(buffer)
    except SpreadsheetParseError:
        raise
    except Exception as e:
        logger.error("spreadsheet_read_failed", filename=filename, error=str(e))
        raise DecodeError(str(e)) from e

    # Blank lines are not data rows
    df = df.dropna(how="all")

    if df.empty:
        raise NoDataError(details={"filename": filename})

    columns = [str(col) for col in df.columns]
    rows = [
        {column: _cell_to_text(value) for column, value in zip(columns, values)}
        for values in df.itertuples(index=False, name=None)
    ]

    logger.info(
        "spreadsheet_parsed",
        filename=filename,
        column_count=len(columns),
        row_count=len(rows)
    )

    return ParsedSheet(columns=columns, rows=rows)


def get_preview_rows(rows: list[RawRow], count: int = 5) -> list[dict[str, str]]:
    """First rows of the sheet with missing cells rendered as empty text."""
    return [
        {key: value if value is not None else "" for key, value in row.items()}
        for row in rows[:count]
    ]


# ===================
# HELPER FUNCTIONS
# ===================

def _load_bytes(file: SpreadsheetSource) -> bytes:
    """Read the whole upload into memory."""
    if isinstance(file, bytes):
        return file
    if isinstance(file, (str, Path)):
        try:
            return Path(file).read_bytes()
        except OSError as e:
            raise DecodeError(str(e)) from e
    return file.read()


def _read_first_sheet(buffer: bytes) -> pd.DataFrame:
    """Decode a workbook and parse its first sheet as text."""
    excel = pd.ExcelFile(BytesIO(buffer), engine="openpyxl")
    if not excel.sheet_names:
        raise EmptyFileError()

    return excel.parse(
        excel.sheet_names[0],
        header=0,
        dtype=str,
        keep_default_na=False,
        na_values=[""],
    )


def _read_csv(buffer: bytes) -> pd.DataFrame:
    """Decode a UTF-8 CSV file as text."""
    try:
        return pd.read_csv(
            BytesIO(buffer),
            dtype=str,
            keep_default_na=False,
            na_values=[""],
            encoding="utf-8-sig",
        )
    except pd.errors.EmptyDataError as e:
        raise NoDataError() from e


def _cell_to_text(value) -> Optional[str]:
    """Coerce a decoded cell to text, keeping missing cells as None."""
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    return str(value)
