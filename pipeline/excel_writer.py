#!/usr/bin/env python3
"""
Excel report of parse results.

Writes one row per filename with the parsed fields, highlights rows the
classifier could not fully resolve and formats the sheet as a table.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo

from .elements import ParsedFilename

HighlightPredicate = Callable[[Sequence[Any]], bool]

REPORT_COLUMNS = (
    "filename",
    "anime_title",
    "episode_number",
    "episode_title",
    "release_group",
    "release_version",
    "anime_season",
    "anime_year",
    "anime_type",
    "video_resolution",
    "video_term",
    "audio_term",
    "source",
    "file_checksum",
    "file_extension",
)

MAX_COLUMN_WIDTH = 60


@dataclass(frozen=True)
class ExcelSheetData:
    """
    Describes a sheet to be written to the workbook.

    Attributes:
        name: Sheet/tab name.
        headers: Ordered list of column headers.
        rows: Row values already ordered to match headers.
        highlight_row: Optional predicate; matching rows are filled yellow.
        bold_columns: Header names whose cells are written in bold.
    """

    name: str
    headers: Sequence[str]
    rows: Sequence[Sequence[Any]]
    highlight_row: Optional[HighlightPredicate] = None
    bold_columns: Sequence[str] = ()


def is_unresolved(row: Sequence[Any]) -> bool:
    """A report row with no anime title or no episode number."""
    title = row[REPORT_COLUMNS.index("anime_title")]
    episode = row[REPORT_COLUMNS.index("episode_number")]
    return not title or not episode


def build_parse_report(records: Sequence[ParsedFilename], name: str = "Parse Results") -> ExcelSheetData:
    """
    Turn parse results into a sheet definition.

    Args:
        records: Parsed filenames, in input order
        name: Sheet name

    Returns:
        ExcelSheetData with one row per record
    """
    rows: List[List[str]] = []
    for record in records:
        values = record.to_dict()
        rows.append([values.get(column, "") or "" for column in REPORT_COLUMNS])
    return ExcelSheetData(
        name=name,
        headers=REPORT_COLUMNS,
        rows=rows,
        highlight_row=is_unresolved,
        bold_columns=("anime_title", "episode_number"),
    )


def _write_sheet(ws, sheet: ExcelSheetData) -> None:
    ws.title = sheet.name
    headers = list(sheet.headers)
    header_font = Font(bold=True)
    for col_idx, header in enumerate(headers, 1):
        ws.cell(row=1, column=col_idx, value=header).font = header_font

    yellow_fill = PatternFill(start_color="FFFF00", end_color="FFFF00", fill_type="solid")
    bold_font = Font(bold=True)
    bold_indexes = {headers.index(column) for column in sheet.bold_columns if column in headers}
    widths = [len(header) for header in headers]

    for row_idx, row in enumerate(sheet.rows, 2):
        highlight = sheet.highlight_row is not None and sheet.highlight_row(row)
        for col_idx, value in enumerate(row, 1):
            cell = ws.cell(row=row_idx, column=col_idx, value=value)
            if highlight:
                cell.fill = yellow_fill
            if (col_idx - 1) in bold_indexes:
                cell.font = bold_font
            if value is not None and col_idx <= len(widths):
                widths[col_idx - 1] = max(widths[col_idx - 1], len(str(value)))

    for col_idx, width in enumerate(widths, 1):
        ws.column_dimensions[get_column_letter(col_idx)].width = min(width + 2, MAX_COLUMN_WIDTH)

    if sheet.rows:
        data_range = f"A1:{get_column_letter(len(headers))}{len(sheet.rows) + 1}"
        table = Table(displayName=sheet.name.replace(" ", "") + "Table", ref=data_range)
        table.tableStyleInfo = TableStyleInfo(
            name="TableStyleMedium9",
            showFirstColumn=False,
            showLastColumn=False,
            showRowStripes=True,
            showColumnStripes=False,
        )
        ws.add_table(table)


def write_excel_workbook(output_path: Path | str, sheets: Sequence[ExcelSheetData]) -> Path:
    """
    Write a workbook consisting of the provided sheets.

    Args:
        output_path: Destination path for the workbook.
        sheets: Ordered sheet definitions to render.

    Returns:
        Path to the written workbook.
    """
    if not sheets:
        raise ValueError("At least one sheet must be provided to write a workbook.")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    wb = Workbook()
    for idx, sheet in enumerate(sheets):
        ws = wb.active if idx == 0 else wb.create_sheet()
        _write_sheet(ws, sheet)

    wb.save(output_path)
    return output_path
