# dwreport/services/report_form.py
"""
State and validation for the daily report entry form.

One draft covers one staff member on one date and holds an ordered list of
work items. Each item is validated on its own; the form can only be
submitted when every item is free of errors.
"""
import logging
import re
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Optional, Protocol

from dwreport.core import timeutils
from dwreport.core.exceptions import DomainError
from dwreport.services.reporting import join_tags

logger = logging.getLogger(__name__)

STATUSES = ("Complete", "Pending", "In-Progress")
TAG_DELIMITER = ","

MESSAGES = {
    "task_description": "Task description is required.",
    "related_department": "Internal department is required.",
    "status": "Status is required.",
    "start_time": "Start time is required.",
    "end_time": "End time is required.",
    "duration": "End time must be after start time.",
}
FIX_ERRORS = "Please fix the highlighted errors."
FUTURE_DATE = "Report date cannot be in the future."

# Error keys recomputed when a field changes. Both clock fields own the
# duration check since it depends on the pair.
_OWNED_ERRORS = {
    "task_description": ("task_description",),
    "related_department": ("related_department",),
    "status": ("status",),
    "start_time": ("start_time", "duration"),
    "end_time": ("end_time", "duration"),
}


class ReportStore(Protocol):
    def insert_reports(self, rows: list[dict]) -> int: ...


@dataclass
class WorkItemDraft:
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    task_description: str = ""
    start_time: str = ""
    end_time: str = ""
    status: str = ""
    related_department: str = ""
    party_tags: list[str] = field(default_factory=list)
    tag_input: str = ""
    assigned_by: str = ""
    remarks: str = ""


@dataclass
class FormMessage:
    kind: str  # "ok" | "err"
    text: str


def validate_item(report_date, item: WorkItemDraft) -> dict[str, str]:
    errors = {}
    if not item.task_description.strip():
        errors["task_description"] = MESSAGES["task_description"]
    if not item.related_department:
        errors["related_department"] = MESSAGES["related_department"]
    if not item.status:
        errors["status"] = MESSAGES["status"]
    elif item.status not in STATUSES:
        errors["status"] = f"Status must be one of {', '.join(STATUSES)}."
    if not item.start_time:
        errors["start_time"] = MESSAGES["start_time"]
    if not item.end_time:
        errors["end_time"] = MESSAGES["end_time"]
    if item.start_time and item.end_time:
        start = timeutils.combine_local(report_date, item.start_time)
        end = timeutils.combine_local(report_date, item.end_time)
        if timeutils.duration_minutes(start, end) <= 0:
            errors["duration"] = MESSAGES["duration"]
    return errors


def add_tag(tags: list[str], raw: str) -> list[str]:
    tag = re.sub(r"\s+", " ", raw or "").strip()
    if not tag or any(t.lower() == tag.lower() for t in tags):
        return list(tags)
    return [*tags, tag]


class ReportDraft:
    def __init__(self, report_date: date, today: Optional[Callable[[], date]] = None):
        self.report_date = report_date
        self.items: list[WorkItemDraft] = [WorkItemDraft()]
        self.errors: dict[str, dict[str, str]] = {}
        self.form_errors: list[str] = []
        self.message: Optional[FormMessage] = None
        self._today = today or timeutils.local_today

    # ---- items ----

    def item(self, item_id: str) -> WorkItemDraft:
        for item in self.items:
            if item.id == item_id:
                return item
        raise KeyError(item_id)

    def add_item(self) -> WorkItemDraft:
        item = WorkItemDraft()
        self.items.append(item)
        self.errors[item.id] = {}
        return item

    def remove_item(self, item_id: str) -> None:
        if len(self.items) <= 1:
            return
        self.items = [i for i in self.items if i.id != item_id]
        self.errors.pop(item_id, None)

    def update_item(self, item_id: str, **changes) -> dict[str, str]:
        """Applies edits to one item and re-checks only the touched fields."""
        item = self.item(item_id)
        for name, value in changes.items():
            if not hasattr(item, name) or name == "id":
                raise AttributeError(f"unknown work item field {name!r}")
            setattr(item, name, value)

        fresh = validate_item(self.report_date, item)
        current = dict(self.errors.get(item_id, {}))
        for name in changes:
            for key in _OWNED_ERRORS.get(name, ()):
                if key in fresh:
                    current[key] = fresh[key]
                else:
                    current.pop(key, None)
        self.errors[item_id] = current
        return current

    # ---- tags ----

    def set_tag_input(self, item_id: str, text: str) -> None:
        """Typing into the tag box; a trailing delimiter commits the tag."""
        item = self.item(item_id)
        if text.endswith(TAG_DELIMITER):
            item.party_tags = add_tag(item.party_tags, text[: -len(TAG_DELIMITER)])
            item.tag_input = ""
        else:
            item.tag_input = text

    def commit_tag(self, item_id: str, raw: Optional[str] = None) -> None:
        """Enter key or focus loss: commit whatever is pending."""
        item = self.item(item_id)
        item.party_tags = add_tag(item.party_tags, item.tag_input if raw is None else raw)
        item.tag_input = ""

    def remove_tag(self, item_id: str, index: int) -> None:
        item = self.item(item_id)
        item.party_tags = [t for i, t in enumerate(item.party_tags) if i != index]

    # ---- validation ----

    def _date_errors(self) -> list[str]:
        if self.report_date is None:
            return ["Report date is required."]
        if self.report_date > self._today():
            return [FUTURE_DATE]
        return []

    @property
    def can_submit(self) -> bool:
        if self._date_errors():
            return False
        return all(not validate_item(self.report_date, item) for item in self.items)

    def validate_all(self) -> bool:
        self.errors = {item.id: validate_item(self.report_date, item) for item in self.items}
        self.form_errors = self._date_errors()
        return not self.form_errors and not any(self.errors.values())

    # ---- submission ----

    def build_payload(self, user_id: str) -> list[dict]:
        rows = []
        for item in self.items:
            # pending chip text counts as a committed tag
            tags = add_tag(item.party_tags, item.tag_input) if item.tag_input.strip() else item.party_tags
            rows.append({
                "user_id": user_id,
                "work_date": self.report_date,
                "task_description": item.task_description.strip(),
                "start_time": timeutils.combine_local(self.report_date, item.start_time),
                "end_time": timeutils.combine_local(self.report_date, item.end_time),
                "status": item.status,
                "work_for_party": join_tags(tags),
                "related_department": item.related_department or None,
                "assigned_by": item.assigned_by.strip() or None,
                "remarks": item.remarks.strip() or None,
            })
        return rows

    def reset(self) -> None:
        self.items = [WorkItemDraft()]
        self.errors = {}
        self.form_errors = []

    def submit(self, store: ReportStore, user_id: str) -> bool:
        """
        Inserts every item as one batch. Any failure fails the whole batch and
        leaves the items in place so the user can retry.
        """
        self.message = None
        if not self.validate_all():
            self.message = FormMessage("err", self.form_errors[0] if self.form_errors else FIX_ERRORS)
            return False

        count = len(self.items)
        try:
            store.insert_reports(self.build_payload(user_id))
        except DomainError as exc:
            logger.warning("Report batch for %s on %s failed: %s", user_id, self.report_date, exc.message)
            self.message = FormMessage("err", exc.message)
            return False

        self.reset()
        self.message = FormMessage("ok", f"Saved {count} task(s).")
        return True

    @classmethod
    def from_items(cls, report_date: date, items: list[dict], **kwargs) -> "ReportDraft":
        draft = cls(report_date, **kwargs)
        draft.items = [
            WorkItemDraft(
                task_description=data.get("task_description") or "",
                start_time=data.get("start_time") or "",
                end_time=data.get("end_time") or "",
                status=data.get("status") or "",
                related_department=data.get("related_department") or "",
                party_tags=_dedupe(data.get("work_for_party") or []),
                assigned_by=data.get("assigned_by") or "",
                remarks=data.get("remarks") or "",
            )
            for data in items
        ] or [WorkItemDraft()]
        return draft

    def error_report(self) -> dict:
        return {
            "message": self.message.text if self.message else FIX_ERRORS,
            "form": list(self.form_errors),
            "items": {
                str(index): self.errors[item.id]
                for index, item in enumerate(self.items)
                if self.errors.get(item.id)
            },
        }


def _dedupe(tags) -> list[str]:
    result: list[str] = []
    for tag in tags:
        result = add_tag(result, str(tag))
    return result
