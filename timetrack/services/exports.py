from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone
from decimal import Decimal
from io import BytesIO
from zoneinfo import ZoneInfo

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from timetrack.services.reporting import HoursReport

ROW_HEADERS = [
    "Date",
    "Employee",
    "Project",
    "Start",
    "End",
    "Total hours",
    "Evening hours",
    "Night hours",
    "Notes",
]

HEADER_FILL = PatternFill(fill_type="solid", fgColor="1E3A8A")
SUMMARY_FILL = PatternFill(fill_type="solid", fgColor="E0E7FF")
ZEBRA_FILL = PatternFill(fill_type="solid", fgColor="F8FAFC")

HEADER_FONT = Font(bold=True, color="FFFFFF")
BOLD_FONT = Font(bold=True, color="0F172A")
TITLE_FONT = Font(bold=True, color="1E3A8A", size=14)

THIN_SIDE = Side(style="thin", color="CBD5E1")
THIN_BORDER = Border(left=THIN_SIDE, right=THIN_SIDE, top=THIN_SIDE, bottom=THIN_SIDE)
HOURS_FORMAT = "0.00"


def _local_hhmm(value: datetime, zone: ZoneInfo) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(zone).strftime("%H:%M")


def _style_header(ws: Worksheet, row: int) -> None:
    for cell in ws[row]:
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
        cell.border = THIN_BORDER


def _auto_width(ws: Worksheet) -> None:
    for column_cells in ws.iter_cols(min_row=1, max_row=ws.max_row, min_col=1, max_col=ws.max_column):
        max_len = 0
        col_letter = get_column_letter(column_cells[0].column)
        for cell in column_cells:
            if cell.coordinate in ws.merged_cells:
                continue
            value = "" if cell.value is None else str(cell.value)
            max_len = max(max_len, len(value))
        ws.column_dimensions[col_letter].width = min(max_len + 2, 45)


def _append_totals(ws: Worksheet, report: HoursReport) -> None:
    ws.append([])
    ws.append(["Totals", None, None, None, None, *_hours_cells(report.totals.as_dict().values()), None])
    summary_row = ws.max_row
    for cell in ws[summary_row]:
        cell.font = BOLD_FONT
        cell.fill = SUMMARY_FILL
        cell.border = THIN_BORDER
        if isinstance(cell.value, float):
            cell.number_format = HOURS_FORMAT


def _hours_cells(values: Iterable[Decimal]) -> list[float]:
    return [float(Decimal(value)) for value in values]


def build_report_xlsx_bytes(report: HoursReport, *, zone: ZoneInfo) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Approved hours"

    ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=len(ROW_HEADERS))
    title = ws.cell(row=1, column=1, value=f"Approved hours {report.start_date.isoformat()} - {report.end_date.isoformat()}")
    title.font = TITLE_FONT
    ws.append([])

    ws.append(ROW_HEADERS)
    header_row = ws.max_row
    _style_header(ws, header_row)

    for index, split in enumerate(report.rows):
        ws.append(
            [
                split.local_date.isoformat(),
                split.user.name if split.user is not None else str(split.user_id),
                split.project.name if split.project is not None else str(split.project_id),
                _local_hhmm(split.start_time, zone),
                _local_hhmm(split.end_time, zone),
                *_hours_cells([split.total_hours, split.evening_hours, split.night_hours]),
                split.notes or "",
            ]
        )
        for cell in ws[ws.max_row]:
            cell.border = THIN_BORDER
            if index % 2 == 1:
                cell.fill = ZEBRA_FILL
            if isinstance(cell.value, float):
                cell.number_format = HOURS_FORMAT

    _append_totals(ws, report)
    ws.freeze_panes = ws.cell(row=header_row + 1, column=1)
    _auto_width(ws)

    stream = BytesIO()
    wb.save(stream)
    return stream.getvalue()
