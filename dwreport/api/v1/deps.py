# dwreport/api/v1/deps.py
from dataclasses import dataclass
from datetime import date
from typing import Optional

from fastapi import HTTPException, status

from dwreport.core import timeutils


@dataclass
class DateRange:
    date_from: date
    date_to: date


def date_range(date_from: Optional[date] = None, date_to: Optional[date] = None) -> DateRange:
    """Query-string date window; both ends default to today."""
    today = timeutils.local_today()
    window = DateRange(date_from=date_from or today, date_to=date_to or today)
    if window.date_from > window.date_to:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="date_from must not be after date_to")
    return window
