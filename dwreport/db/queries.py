# dwreport/db/queries.py
import logging
from contextlib import contextmanager
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from dwreport.core.exceptions import StoreError
from dwreport.db import models
from dwreport.schemas.report import ReportRow
from dwreport.services.reporting import to_row

logger = logging.getLogger(__name__)


def _store_message(exc: SQLAlchemyError) -> str:
    return str(getattr(exc, "orig", None) or exc)


@contextmanager
def store_call(db: Session, action: str):
    """Rolls back and re-raises any SQLAlchemy failure as a StoreError."""
    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        message = _store_message(exc)
        logger.warning("Store error while %s: %s", action, message)
        raise StoreError(message) from exc


# --- Profiles ---

def list_profiles(db: Session) -> list[models.Profile]:
    with store_call(db, "listing profiles"):
        return db.query(models.Profile).order_by(models.Profile.name.asc().nullsfirst()).all()


def get_profile(db: Session, profile_id: str) -> Optional[models.Profile]:
    with store_call(db, "loading a profile"):
        return db.query(models.Profile).filter(models.Profile.id == profile_id).first()


def get_profile_by_auth_id(db: Session, auth_user_id: str) -> Optional[models.Profile]:
    with store_call(db, "loading a session profile"):
        return db.query(models.Profile).filter(models.Profile.auth_user_id == auth_user_id).first()


def upsert_profile(db: Session, auth_user_id: str, **fields) -> models.Profile:
    """Inserts or updates the profile linked to `auth_user_id`."""
    with store_call(db, "saving a profile"):
        profile = db.query(models.Profile).filter(models.Profile.auth_user_id == auth_user_id).first()
        if profile is None:
            profile = models.Profile(auth_user_id=auth_user_id)
            db.add(profile)
        for name, value in fields.items():
            setattr(profile, name, value)
        db.commit()
        db.refresh(profile)
        return profile


def update_profile(db: Session, profile: models.Profile, changes: dict) -> models.Profile:
    with store_call(db, "updating a profile"):
        for name, value in changes.items():
            setattr(profile, name, value)
        db.commit()
        db.refresh(profile)
        return profile


# --- Reports ---

class ReportRepository:
    def __init__(self, db: Session):
        self.db = db

    def insert_reports(self, rows: list[dict]) -> int:
        """Inserts all rows in one transaction; nothing is kept if any row fails."""
        with store_call(self.db, "inserting reports"):
            self.db.add_all([models.WorkReport(**row) for row in rows])
            self.db.commit()
        return len(rows)

    def _query(self):
        return self.db.query(models.WorkReport).options(joinedload(models.WorkReport.owner))

    def _rows(self, reports) -> list[ReportRow]:
        return [to_row(report, report.owner) for report in reports]

    def by_work_date(self, date_from: date, date_to: date, user_id: Optional[str] = None) -> list[ReportRow]:
        with store_call(self.db, "loading reports"):
            query = self._query().filter(
                models.WorkReport.work_date >= date_from,
                models.WorkReport.work_date <= date_to,
            )
            if user_id is not None:
                query = query.filter(models.WorkReport.user_id == user_id)
            reports = query.order_by(
                models.WorkReport.work_date.asc().nullsfirst(),
                models.WorkReport.start_time.asc().nullsfirst(),
            ).all()
        return self._rows(reports)

    def by_start_time(self, date_from: date, date_to: date, user_id: Optional[str] = None) -> list[ReportRow]:
        start = datetime.combine(date_from, time.min, tzinfo=timezone.utc)
        end = datetime.combine(date_to + timedelta(days=1), time.min, tzinfo=timezone.utc)
        with store_call(self.db, "loading reports by start time"):
            query = self._query().filter(
                models.WorkReport.start_time >= start,
                models.WorkReport.start_time < end,
            )
            if user_id is not None:
                query = query.filter(models.WorkReport.user_id == user_id)
            reports = query.order_by(models.WorkReport.start_time.asc()).all()
        return self._rows(reports)

    def load_range(self, date_from: date, date_to: date, user_id: Optional[str] = None,
                   fallback: bool = True) -> list[ReportRow]:
        """
        Reports whose work date falls in the range. When that finds nothing and
        `fallback` is set, rows are matched on their start time instead so
        legacy rows without a work date still show up.
        """
        rows = self.by_work_date(date_from, date_to, user_id)
        if not rows and fallback:
            rows = self.by_start_time(date_from, date_to, user_id)
        return rows
