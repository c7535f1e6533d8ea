"""Spreadsheet row extraction for checklist workbooks.

Reads the first worksheet of an ``.xlsx`` file with openpyxl and returns the
header line plus the ordered data lines.  Cells are trimmed and joined with
``" | "``; rows whose cells are all empty are skipped.  A header lacking any
of the expected checklist columns is reported as a warning, not an error.
"""

from __future__ import annotations

import logging
import pathlib

import openpyxl
from pydantic import BaseModel

from ingestkit_checklist.errors import ErrorCode, IngestError, SpreadsheetReadError
from ingestkit_checklist.prompts import EXPECTED_HEADER

logger = logging.getLogger("ingestkit_checklist")

CELL_SEPARATOR = " | "


class SheetRows(BaseModel):
    """Header and data lines from one worksheet."""

    sheet_name: str
    header: str
    data_rows: list[str]
    warnings: list[IngestError] = []


def _cell_text(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def check_header(header: str) -> list[IngestError]:
    """Compare *header* against the expected checklist columns.

    A column counts as present when some header cell contains its name,
    ignoring case.  Returns a single ``W_HEADER_MISMATCH`` warning naming the
    missing columns, or an empty list.
    """
    cells = [cell.strip().lower() for cell in header.split("|")]
    missing = [
        column
        for column in EXPECTED_HEADER.split("|")
        if not any(column.lower() in cell for cell in cells)
    ]
    if not missing:
        return []
    return [
        IngestError(
            code=ErrorCode.W_HEADER_MISMATCH,
            message=(
                f"Header row may not match expected format {EXPECTED_HEADER}; "
                f"missing: {', '.join(missing)}"
            ),
            stage="extract",
            recoverable=True,
        )
    ]


def extract_rows(file_path: str) -> SheetRows:
    """Extract header and data rows from the first sheet of *file_path*.

    Raises:
        FileNotFoundError: If *file_path* does not exist.
        SpreadsheetReadError: If the workbook cannot be opened
            (``E_PARSE_CORRUPT``) or holds no non-empty rows
            (``E_PARSE_EMPTY``).
    """
    path = pathlib.Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Excel file not found: {file_path}")

    try:
        wb = openpyxl.load_workbook(path, read_only=True, data_only=True)
    except Exception as exc:
        logger.error("openpyxl could not open file %s: %s", path.name, exc)
        raise SpreadsheetReadError(
            f"Invalid or corrupted Excel file: {exc}", code=ErrorCode.E_PARSE_CORRUPT
        ) from exc

    try:
        if not wb.sheetnames:
            raise SpreadsheetReadError(
                "Excel file contains no sheets", code=ErrorCode.E_PARSE_EMPTY
            )
        ws = wb[wb.sheetnames[0]]
        sheet_name = ws.title

        lines: list[str] = []
        for row in ws.iter_rows(values_only=True):
            cells = [_cell_text(value) for value in row]
            if not any(cells):
                continue
            while cells and not cells[-1]:
                cells.pop()
            lines.append(CELL_SEPARATOR.join(cells))
    finally:
        wb.close()

    if not lines:
        raise SpreadsheetReadError(
            "Excel sheet contains no data", code=ErrorCode.E_PARSE_EMPTY
        )

    logger.info(
        "Extracted %d data row(s) from sheet '%s' of %s.",
        len(lines) - 1,
        sheet_name,
        path.name,
    )
    warnings = check_header(lines[0])
    if warnings:
        logger.warning("Sheet '%s' header mismatch: %s", sheet_name, warnings[0].message)
    return SheetRows(
        sheet_name=sheet_name,
        header=lines[0],
        data_rows=lines[1:],
        warnings=warnings,
    )
