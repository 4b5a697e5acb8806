"""
Spreadsheet parsers module.
"""

from parsers.spreadsheet_reader import (
    read_spreadsheet,
    get_preview_rows,
    ParsedSheet,
    RawRow,
)

__all__ = [
    "read_spreadsheet",
    "get_preview_rows",
    "ParsedSheet",
    "RawRow",
]
