from datetime import date, datetime, timezone
from decimal import Decimal
from io import BytesIO
from types import SimpleNamespace
import unittest
from zoneinfo import ZoneInfo

from openpyxl import load_workbook

from timetrack.services.exports import ROW_HEADERS, build_report_xlsx_bytes
from timetrack.services.reporting import HoursReport, aggregate_report


def _split(**overrides):  # type: ignore[no-untyped-def]
    values = {
        "user_id": 3,
        "project_id": 4,
        "user": SimpleNamespace(name="Bob"),
        "project": SimpleNamespace(name="Warehouse"),
        "local_date": date(2026, 2, 10),
        "start_time": datetime(2026, 2, 10, 20, 0, tzinfo=timezone.utc),
        "end_time": datetime(2026, 2, 10, 22, 0, tzinfo=timezone.utc),
        "total_hours": Decimal("2.00"),
        "evening_hours": Decimal("0.00"),
        "night_hours": Decimal("2.00"),
        "notes": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class ReportExportTests(unittest.TestCase):
    def test_workbook_has_rows_and_totals(self) -> None:
        rows = [
            _split(),
            _split(
                user=None,
                local_date=date(2026, 2, 11),
                start_time=datetime(2026, 2, 10, 22, 0, tzinfo=timezone.utc),
                end_time=datetime(2026, 2, 11, 3, 0, tzinfo=timezone.utc),
                total_hours=Decimal("5.00"),
                night_hours=Decimal("5.00"),
                notes="late delivery",
            ),
        ]
        report = HoursReport(
            tenant_id="acme",
            start_date=date(2026, 2, 1),
            end_date=date(2026, 2, 28),
            user_id=None,
            totals=aggregate_report(rows),
            rows=rows,  # type: ignore[arg-type]
        )

        content = build_report_xlsx_bytes(report, zone=ZoneInfo("Europe/Helsinki"))
        ws = load_workbook(BytesIO(content)).active

        self.assertEqual([cell.value for cell in ws[3]], ROW_HEADERS)
        self.assertEqual(ws["A4"].value, "2026-02-10")
        self.assertEqual(ws["B4"].value, "Bob")
        self.assertEqual(ws["D4"].value, "22:00")
        self.assertEqual(ws["E4"].value, "00:00")
        self.assertEqual(ws["B5"].value, "3")
        self.assertEqual(ws["I5"].value, "late delivery")

        totals_row = ws.max_row
        self.assertEqual(ws.cell(row=totals_row, column=1).value, "Totals")
        self.assertEqual(ws.cell(row=totals_row, column=6).value, 7.0)
        self.assertEqual(ws.cell(row=totals_row, column=8).value, 7.0)


if __name__ == "__main__":
    unittest.main()
