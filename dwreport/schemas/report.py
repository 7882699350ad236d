# dwreport/schemas/report.py
from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class ReportRow(BaseModel):
    """A work report joined with the display fields of its staff profile."""
    id: str
    user_id: Optional[str] = None
    work_date: Optional[date] = None
    task_description: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    status: Optional[str] = None
    work_for_party: List[str] = []
    related_department: Optional[str] = None
    assigned_by: Optional[str] = None
    remarks: Optional[str] = None
    created_at: Optional[datetime] = None
    employee_id: Optional[str] = None
    staff_name: Optional[str] = None
    staff_designation: Optional[str] = None
    staff_department: Optional[str] = None
    task_number: Optional[int] = None
    duration_minutes: int = 0


class GroupRow(BaseModel):
    key: str
    user_id: Optional[str] = None
    name: Optional[str] = None
    designation: Optional[str] = None
    department: Optional[str] = None
    employee_id: Optional[str] = None
    reports: int = 0
    minutes: int = 0
    statuses: Dict[str, int] = {}
    report_ids: List[str] = []


class ReportView(BaseModel):
    detailed: List[ReportRow] = []
    grouped: List[GroupRow] = []


class MyReports(BaseModel):
    reports: List[ReportRow]


class WorkItemIn(BaseModel):
    task_description: str = ""
    start_time: str = ""
    end_time: str = ""
    status: str = ""
    related_department: str = ""
    work_for_party: List[str] = []
    assigned_by: str = ""
    remarks: str = ""


class ReportSubmission(BaseModel):
    work_date: date
    items: List[WorkItemIn] = Field(min_length=1)


class SubmissionResult(BaseModel):
    ok: bool
    saved: int
    message: str
