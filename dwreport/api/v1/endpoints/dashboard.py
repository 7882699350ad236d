# dwreport/api/v1/endpoints/dashboard.py
from enum import Enum
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from dwreport.api.v1.deps import DateRange, date_range
from dwreport.core.exceptions import StoreError
from dwreport.core.security import SessionContext, get_current_admin
from dwreport.db import session
from dwreport.db.queries import ReportRepository
from dwreport.schemas.report import ReportView
from dwreport.services import export, reporting

router = APIRouter()


class ExportView(str, Enum):
    DETAILED = "detailed"
    GROUPED = "grouped"


def build_report_view(
    db: Session,
    window: DateRange,
    name: Optional[str] = None,
    department: Optional[str] = None,
) -> ReportView:
    """Loads the window's reports and runs them through the filter/aggregation engine."""
    try:
        rows = ReportRepository(db).load_range(window.date_from, window.date_to)
    except StoreError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
    return reporting.filter_and_aggregate(rows, name_or_employee_id=name, department=department)


# --- API Endpoints ---

@router.get("/reports", response_model=ReportView)
def read_reports(
    admin: SessionContext = Depends(get_current_admin),
    window: DateRange = Depends(date_range),
    name: Optional[str] = None,
    department: Optional[str] = None,
    db: Session = Depends(session.get_db),
):
    """ Detailed and per-staff grouped views of all reports in the window. """
    return build_report_view(db, window, name, department)


@router.get("/reports/export")
def export_reports(
    admin: SessionContext = Depends(get_current_admin),
    window: DateRange = Depends(date_range),
    view: ExportView = ExportView.DETAILED,
    name: Optional[str] = None,
    department: Optional[str] = None,
    db: Session = Depends(session.get_db),
):
    """ The currently filtered view as a CSV download. """
    report_view = build_report_view(db, window, name, department)
    if view is ExportView.GROUPED:
        table = export.grouped_table(report_view.grouped)
    else:
        table = export.detailed_table(report_view.detailed)
    filename = export.export_filename(view.value, window.date_from, window.date_to)
    return export.csv_response(export.to_csv(table), filename)
