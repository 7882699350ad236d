# dwreport/api/v1/endpoints/reports.py
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from dwreport.api.v1.deps import DateRange, date_range
from dwreport.core.exceptions import StoreError
from dwreport.core.security import get_current_profile
from dwreport.db import session
from dwreport.db.queries import ReportRepository
from dwreport.schemas import report as report_schema
from dwreport.schemas import user as user_schema
from dwreport.services import export, reporting
from dwreport.services.report_form import ReportDraft

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED, response_model=report_schema.SubmissionResult)
def submit_reports(
    submission: report_schema.ReportSubmission,
    db: Session = Depends(session.get_db),
    profile: user_schema.Profile = Depends(get_current_profile),
):
    """
    Saves all work items of one day for the signed-in staff member as a single batch.
    """
    draft = ReportDraft.from_items(submission.work_date, [item.model_dump() for item in submission.items])
    saved = len(draft.items)
    if not draft.submit(ReportRepository(db), profile.id):
        if draft.form_errors or any(draft.errors.values()):
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=draft.error_report())
        # the items were valid, so the store rejected the batch
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=draft.message.text)
    logger.info("Saved %d report(s) for profile %s on %s", saved, profile.id, submission.work_date)
    return {"ok": True, "saved": saved, "message": draft.message.text}


def _my_rows(db: Session, profile_id: str, window: DateRange):
    try:
        rows = ReportRepository(db).load_range(window.date_from, window.date_to, user_id=profile_id, fallback=False)
    except StoreError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
    return reporting.assign_task_numbers(rows)


@router.get("/me", response_model=report_schema.MyReports)
def read_my_reports(
    profile: user_schema.Profile = Depends(get_current_profile),
    window: DateRange = Depends(date_range),
    db: Session = Depends(session.get_db),
):
    """ Reports of the signed-in staff member with their task numbers. """
    return {"reports": _my_rows(db, profile.id, window)}


@router.get("/me/export")
def export_my_reports(
    profile: user_schema.Profile = Depends(get_current_profile),
    window: DateRange = Depends(date_range),
    db: Session = Depends(session.get_db),
):
    rows = _my_rows(db, profile.id, window)
    text = export.to_csv(export.my_reports_table(rows))
    return export.csv_response(text, export.export_filename("mine", window.date_from, window.date_to))
