from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from civic_reports.core.enums import ReportStatus, UserRole
from civic_reports.core.errors import InvalidStateError, ValidationError
from civic_reports.services import access
from civic_reports.utils.mongo import utcnow

SUBMITTED = ReportStatus.submitted.value
ASSIGNED = ReportStatus.assigned.value
IN_PROGRESS = ReportStatus.in_progress.value
RESOLVED = ReportStatus.resolved.value
CLOSED = ReportStatus.closed.value
REJECTED = ReportStatus.rejected.value

ALLOWED_TRANSITIONS = {
    SUBMITTED: [ASSIGNED, IN_PROGRESS, REJECTED],
    ASSIGNED: [IN_PROGRESS, RESOLVED, REJECTED],
    IN_PROGRESS: [RESOLVED, REJECTED],
    RESOLVED: [CLOSED, IN_PROGRESS, REJECTED],
    CLOSED: [RESOLVED],
    REJECTED: [],
}

UNASSIGNABLE = {CLOSED, REJECTED}
CITIZEN_EDITABLE_FIELDS = ("title", "description", "priority")
COMMENT_MAX = 1000


def get_allowed_next(state: str) -> List[str]:
    return ALLOWED_TRANSITIONS.get(state, [])


def validate_transition(current: str, target: str) -> None:
    if target == current:
        return
    if target not in get_allowed_next(current):
        raise InvalidStateError(
            f"Invalid transition: {current} -> {target}. Allowed next: {get_allowed_next(current)}"
        )


def _set(updates: Dict[str, dict], now: datetime) -> dict:
    sets = updates.setdefault("$set", {})
    sets["updated_at"] = now
    return sets


def assign(report: dict, staff: dict, now: Optional[datetime] = None) -> Dict[str, dict]:
    """
    Point the report at `staff`. The first assignment stamps assigned_at and
    moves a Submitted report to Assigned; later re-assignments only swap the
    assignee.
    """
    now = now or utcnow()
    if staff.get("role") != UserRole.staff.value:
        raise ValidationError("Invalid staff member")
    if report.get("status") in UNASSIGNABLE:
        raise InvalidStateError(f"Cannot assign a report that is {report.get('status')}")

    updates: Dict[str, dict] = {}
    sets = _set(updates, now)
    sets["assigned_staff_id"] = staff["_id"]
    if not report.get("assigned_at"):
        sets["assigned_at"] = now
    if report.get("status") == SUBMITTED:
        sets["status"] = ASSIGNED
    return updates


def set_status(
    report: dict,
    actor: dict,
    new_status: str,
    resolution_details: Optional[str] = None,
    estimated_date: Optional[datetime] = None,
    *,
    restrict_to_assignee: bool = True,
    now: Optional[datetime] = None,
) -> Dict[str, dict]:
    now = now or utcnow()
    access.ensure_can_change_status(report, actor, restrict_to_assignee)
    validate_transition(report.get("status"), new_status)
    # Assigned only ever comes from assign(), which also records who and when
    if new_status == ASSIGNED and new_status != report.get("status") and not report.get("assigned_staff_id"):
        raise InvalidStateError("Assign a staff member to move a report to Assigned")

    updates: Dict[str, dict] = {}
    sets = _set(updates, now)
    sets["status"] = new_status
    if new_status == RESOLVED and not report.get("resolved_at"):
        sets["resolved_at"] = now
        sets["actual_resolution_date"] = now
    if resolution_details:
        sets["resolution_details"] = resolution_details
    if estimated_date:
        sets["estimated_resolution_date"] = estimated_date
    return updates


def add_comment(report: dict, actor: dict, text: Optional[str], now: Optional[datetime] = None) -> Dict[str, dict]:
    now = now or utcnow()
    access.ensure_staff(actor)
    text = (text or "").strip()
    if not text or len(text) > COMMENT_MAX:
        raise ValidationError(f"Comment must be between 1 and {COMMENT_MAX} characters")

    updates: Dict[str, dict] = {}
    _set(updates, now)
    updates["$push"] = {
        "staff_comments": {"staff_id": actor["_id"], "comment": text, "created_at": now}
    }
    return updates


def submit_feedback(
    report: dict,
    actor: dict,
    rating: int,
    comment: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, dict]:
    now = now or utcnow()
    access.ensure_owner(report, actor, "provide feedback on")
    if report.get("status") != RESOLVED:
        raise InvalidStateError("Feedback can only be provided on resolved reports")

    updates: Dict[str, dict] = {}
    sets = _set(updates, now)
    sets["citizen_feedback"] = {"rating": int(rating), "comment": comment, "submitted_at": now}
    return updates


def citizen_update(report: dict, actor: dict, fields: dict, now: Optional[datetime] = None) -> Dict[str, dict]:
    now = now or utcnow()
    access.ensure_owner(report, actor, "update")
    if report.get("status") != SUBMITTED:
        raise InvalidStateError("Cannot update report that is already being processed")

    patch = {k: v for k, v in fields.items() if k in CITIZEN_EDITABLE_FIELDS and v is not None}
    if not patch:
        raise ValidationError("No fields to update")

    updates: Dict[str, dict] = {}
    sets = _set(updates, now)
    sets.update(patch)
    return updates


def check_delete(report: dict, actor: dict) -> None:
    if access.is_staff(actor):
        return
    access.ensure_owner(report, actor, "delete")
    if report.get("status") != SUBMITTED:
        raise InvalidStateError("Cannot delete report that is already being processed")
