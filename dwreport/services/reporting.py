# dwreport/services/reporting.py
"""
Row enrichment, task numbering and the filter/aggregation engine behind the
admin report table and the "My Reports" page.
"""
from datetime import date, datetime, timezone
from typing import Iterable, Mapping, Optional

from dwreport.core import timeutils
from dwreport.schemas.report import GroupRow, ReportRow, ReportView

ALL_DEPARTMENTS = "All"
UNKNOWN_STATUS = "Unknown"
TAG_SEPARATOR = ", "

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def split_tags(value) -> list[str]:
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return [str(tag).strip() for tag in value if str(tag).strip()]
    return [tag.strip() for tag in str(value).split(",") if tag.strip()]


def join_tags(tags: Iterable[str]) -> Optional[str]:
    joined = TAG_SEPARATOR.join(tag for tag in tags if tag)
    return joined or None


def _field(source, name):
    if source is None:
        return None
    if isinstance(source, Mapping):
        return source.get(name)
    return getattr(source, name, None)


def to_row(report, profile=None) -> ReportRow:
    """Builds a display row from a stored report and (optionally) its profile."""
    start = timeutils.parse_timestamp(_field(report, "start_time"))
    end = timeutils.parse_timestamp(_field(report, "end_time"))
    return ReportRow(
        id=str(_field(report, "id")),
        user_id=_field(report, "user_id"),
        work_date=timeutils.parse_date(_field(report, "work_date")) if _field(report, "work_date") else None,
        task_description=_field(report, "task_description"),
        start_time=start,
        end_time=end,
        status=_field(report, "status"),
        work_for_party=split_tags(_field(report, "work_for_party")),
        related_department=_field(report, "related_department"),
        assigned_by=_field(report, "assigned_by"),
        remarks=_field(report, "remarks"),
        created_at=timeutils.parse_timestamp(_field(report, "created_at")),
        employee_id=_field(profile, "employee_id"),
        staff_name=_field(profile, "name"),
        staff_designation=_field(profile, "designation"),
        staff_department=_field(profile, "department"),
        duration_minutes=timeutils.duration_minutes(start, end),
    )


def enrich_rows(reports: Iterable, profiles_by_id: Mapping) -> list[ReportRow]:
    """Joins reports with staff identity fields by `user_id`."""
    return [to_row(report, profiles_by_id.get(_field(report, "user_id"))) for report in reports]


def effective_date(row: ReportRow) -> Optional[date]:
    """The report's work date, or the date of its start time when missing."""
    if row.work_date is not None:
        return row.work_date
    return timeutils.local_date(row.start_time)


def _sequence_key(row: ReportRow):
    day = effective_date(row)
    start = timeutils.parse_timestamp(row.start_time)
    return (
        day.isoformat() if day else "",
        row.user_id or "",
        # missing start times sort first
        (0, _EPOCH) if start is None else (1, start),
    )


def sort_rows(rows: Iterable[ReportRow]) -> list[ReportRow]:
    return sorted(rows, key=_sequence_key)


def assign_task_numbers(rows: Iterable[ReportRow]) -> list[ReportRow]:
    counters: dict[tuple, int] = {}
    numbered = []
    for row in sort_rows(rows):
        key = (row.user_id, effective_date(row))
        counters[key] = counters.get(key, 0) + 1
        numbered.append(row.model_copy(update={"task_number": counters[key]}))
    return numbered


def filter_rows(
    rows: Iterable[ReportRow],
    name_or_employee_id: Optional[str] = None,
    department: Optional[str] = None,
) -> list[ReportRow]:
    filtered = list(rows)
    if department and department.strip() and department.strip() != ALL_DEPARTMENTS:
        wanted = department.strip().lower()
        filtered = [r for r in filtered if (r.staff_department or "").lower() == wanted]
    if name_or_employee_id and name_or_employee_id.strip():
        needle = name_or_employee_id.strip().lower()
        filtered = [
            r for r in filtered
            if needle in (r.staff_name or "").lower() or needle in (r.employee_id or "").lower()
        ]
    return filtered


def _status_bucket(status) -> str:
    text = (status or "").strip()
    return text or UNKNOWN_STATUS


def group_rows(rows: Iterable[ReportRow]) -> list[GroupRow]:
    """
    Per-staff summary: report count, total minutes and a status histogram.

    Rows without a user id are never merged; each becomes its own group.
    Groups are ordered by staff name, keeping first-seen order for ties.
    """
    groups: dict[str, GroupRow] = {}
    for row in rows:
        key = row.user_id or f"unknown-{row.id}"
        group = groups.get(key)
        if group is None:
            group = GroupRow(
                key=key,
                user_id=row.user_id,
                name=row.staff_name,
                designation=row.staff_designation,
                department=row.staff_department,
                employee_id=row.employee_id,
                statuses={},
                report_ids=[],
            )
            groups[key] = group
        group.reports += 1
        group.minutes += timeutils.duration_minutes(row.start_time, row.end_time)
        bucket = _status_bucket(row.status)
        group.statuses[bucket] = group.statuses.get(bucket, 0) + 1
        group.report_ids.append(row.id)
    return sorted(groups.values(), key=lambda g: (g.name or "").casefold())


def filter_and_aggregate(
    rows: Iterable[ReportRow],
    name_or_employee_id: Optional[str] = None,
    department: Optional[str] = None,
) -> ReportView:
    filtered = filter_rows(rows, name_or_employee_id, department)
    detailed = assign_task_numbers(filtered)
    return ReportView(detailed=detailed, grouped=group_rows(detailed))


def format_statuses(statuses: Mapping[str, int]) -> str:
    return " | ".join(f"{status}: {count}" for status, count in statuses.items())
