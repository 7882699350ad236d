# dwreport/db/models.py
import uuid

from sqlalchemy import (
    Boolean, CheckConstraint, Column, Date, DateTime, ForeignKey, String, Text, func,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

REPORT_STATUSES = ("Complete", "Pending", "In-Progress")


def _uuid() -> str:
    return str(uuid.uuid4())


class Profile(Base):
    __tablename__ = "profiles"
    id = Column(String(36), primary_key=True, default=_uuid)
    auth_user_id = Column(String(36), unique=True, nullable=False, index=True)
    email = Column(String(255), nullable=True, index=True)
    name = Column(String(100), nullable=True)
    employee_id = Column(String(50), nullable=True)
    department = Column(String(100), nullable=True)
    designation = Column(String(100), nullable=True)
    role = Column(String(20), nullable=False, default="staff")
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    __table_args__ = ( CheckConstraint("role IN ('admin', 'staff')"), )
    reports = relationship("WorkReport", back_populates="owner")


class WorkReport(Base):
    __tablename__ = "reports"
    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=True, index=True)
    work_date = Column(Date, nullable=True, index=True)
    task_description = Column(Text, nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(20), nullable=False)
    work_for_party = Column(Text, nullable=True)
    related_department = Column(String(100), nullable=True)
    assigned_by = Column(String(100), nullable=True)
    remarks = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    __table_args__ = (
        CheckConstraint("status IN ('Complete', 'Pending', 'In-Progress')"),
        CheckConstraint("end_time > start_time"),
        CheckConstraint("length(task_description) > 0"),
    )
    owner = relationship("Profile", back_populates="reports")
