#!/usr/bin/env python3
"""
Tests for the Excel report writer.
"""

from __future__ import annotations

import pytest
from openpyxl import load_workbook

from pipeline.elements import ParsedFilename
from pipeline.excel_writer import (
    REPORT_COLUMNS,
    ExcelSheetData,
    build_parse_report,
    is_unresolved,
    write_excel_workbook,
)


@pytest.fixture
def records():
    return [
        ParsedFilename(filename="[SubsPlease] Show - 01.mkv", anime_title="Show",
                       episode_number="01", release_group="SubsPlease", file_extension="mkv"),
        ParsedFilename(filename="junk.mkv", file_extension="mkv"),
    ]


def test_build_parse_report(records):
    sheet = build_parse_report(records)

    assert list(sheet.headers) == list(REPORT_COLUMNS)
    assert len(sheet.rows) == 2
    first = dict(zip(sheet.headers, sheet.rows[0]))
    assert first["anime_title"] == "Show"
    assert first["release_group"] == "SubsPlease"
    assert first["video_resolution"] == ""
    assert not is_unresolved(sheet.rows[0])
    assert is_unresolved(sheet.rows[1])


def test_workbook_highlights_unresolved_rows(tmp_path, records):
    output_path = tmp_path / "reports" / "out.xlsx"
    written = write_excel_workbook(output_path, [build_parse_report(records)])

    assert written == output_path
    wb = load_workbook(output_path)
    try:
        ws = wb["Parse Results"]
        assert ws.cell(row=1, column=1).value == "filename"
        assert ws.cell(row=1, column=1).font.bold is True
        assert ws.cell(row=2, column=2).value == "Show"
        assert ws.cell(row=2, column=2).font.bold is True
        assert ws.cell(row=2, column=1).fill.fgColor.rgb != "00FFFF00"
        assert ws.cell(row=3, column=1).fill.fgColor.rgb == "00FFFF00"
        assert len(ws.tables) == 1
    finally:
        wb.close()


def test_multiple_sheets(tmp_path):
    sheets = [
        ExcelSheetData(name="One", headers=["a"], rows=[[1]]),
        ExcelSheetData(name="Two", headers=["b"], rows=[]),
    ]
    output_path = write_excel_workbook(tmp_path / "multi.xlsx", sheets)

    wb = load_workbook(output_path)
    try:
        assert wb.sheetnames == ["One", "Two"]
        assert wb["One"].cell(row=2, column=1).value == 1
        assert len(wb["Two"].tables) == 0
    finally:
        wb.close()


def test_no_sheets_raises(tmp_path):
    with pytest.raises(ValueError):
        write_excel_workbook(tmp_path / "empty.xlsx", [])
