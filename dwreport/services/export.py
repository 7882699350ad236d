# dwreport/services/export.py
import csv
import io
from typing import Iterable, Sequence
from urllib.parse import quote

from fastapi import Response

from dwreport.core import timeutils
from dwreport.schemas.report import GroupRow, ReportRow
from dwreport.services.reporting import effective_date, format_statuses

DETAILED_HEADER = [
    "Report Date", "Emp. ID", "Staff Name", "Designation", "Department",
    "T/N", "Work Description", "Start Time", "End Time", "Duration",
    "Status", "Related Party", "Internal Dept.", "Assigned By", "Remarks", "Submitted At",
]
GROUPED_HEADER = ["T/N", "Staff Name", "Designation", "Department", "Reports", "Total Duration", "Statuses"]
MY_REPORTS_HEADER = [
    "Report Date", "T/N", "Task Description", "Start", "End",
    "Status", "Related Party", "Internal Dept.", "Assigned By", "Remarks",
]

FILENAME_PREFIXES = {
    "detailed": "Daily_Reports",
    "grouped": "Daily_Reports_Grouped",
    "mine": "My_Reports",
}


def excel_safe_text(value) -> str:
    """Wraps a value as ="..." so spreadsheets keep it as literal text."""
    text = "" if value is None else str(value)
    return '="' + text.replace('"', '""') + '"'


def _cell(value) -> str:
    if value is None:
        return ""
    # rows end in a bare LF, so a lone CR would split the row on read
    return str(value).replace("\r\n", "\n").replace("\r", "\n")


def _party(row: ReportRow) -> str:
    return ", ".join(row.work_for_party)


def to_csv(table: Iterable[Sequence]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    for row in table:
        writer.writerow([_cell(value) for value in row])
    return buffer.getvalue() or "\n"


def detailed_table(rows: Iterable[ReportRow]) -> list[list]:
    table = [list(DETAILED_HEADER)]
    for r in rows:
        table.append([
            excel_safe_text(timeutils.to_display_date(effective_date(r))),
            r.employee_id or "",
            r.staff_name or "",
            r.staff_designation or "",
            r.staff_department or "",
            r.task_number if r.task_number is not None else "",
            r.task_description or "",
            timeutils.to_display_time(r.start_time),
            timeutils.to_display_time(r.end_time),
            timeutils.format_duration(timeutils.duration_minutes(r.start_time, r.end_time)),
            r.status or "",
            _party(r),
            r.related_department or "",
            r.assigned_by or "",
            r.remarks or "",
            excel_safe_text(timeutils.to_display_datetime(r.created_at)),
        ])
    return table


def grouped_table(groups: Iterable[GroupRow]) -> list[list]:
    table = [list(GROUPED_HEADER)]
    for position, g in enumerate(groups, start=1):
        table.append([
            position,
            g.name or "",
            g.designation or "",
            g.department or "",
            g.reports,
            timeutils.format_duration(g.minutes),
            format_statuses(g.statuses),
        ])
    return table


def my_reports_table(rows: Iterable[ReportRow]) -> list[list]:
    table = [list(MY_REPORTS_HEADER)]
    for r in rows:
        table.append([
            timeutils.to_display_date(effective_date(r)),
            r.task_number if r.task_number is not None else "",
            r.task_description or "",
            timeutils.to_display_time(r.start_time),
            timeutils.to_display_time(r.end_time),
            r.status or "",
            _party(r),
            r.related_department or "",
            r.assigned_by or "",
            r.remarks or "",
        ])
    return table


def export_filename(kind: str, date_from, date_to) -> str:
    prefix = FILENAME_PREFIXES[kind]
    return f"{prefix}_{timeutils.to_display_date(date_from)}_to_{timeutils.to_display_date(date_to)}.csv"


def csv_response(text: str, filename: str) -> Response:
    return Response(
        content=text.encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"},
    )
