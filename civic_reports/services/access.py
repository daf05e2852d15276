"""
Who may see and touch which report.

Read scopes are returned as Mongo filter fragments so the query builder can
merge them; single-report checks raise the domain errors directly.
"""
from __future__ import annotations

from typing import Optional

from civic_reports.core.enums import STAFF_ROLES, UserRole
from civic_reports.core.errors import AuthorizationError, NotFoundError


def is_staff(actor: Optional[dict]) -> bool:
    return bool(actor) and actor.get("role") in STAFF_ROLES


def is_admin(actor: Optional[dict]) -> bool:
    return bool(actor) and actor.get("role") == UserRole.admin.value


def is_owner(report: dict, actor: Optional[dict]) -> bool:
    return bool(actor) and report.get("citizen_id") == actor.get("_id")


def read_scope(actor: Optional[dict], mine: Optional[bool] = None, assigned: bool = False) -> dict:
    """
    Filter fragment restricting a report listing to what `actor` may see.

    - anonymous: public reports only
    - citizen: own reports (any visibility) unless mine=False, then public reports
    - staff/admin: everything, or only reports assigned to them with assigned=True
    """
    if not actor:
        return {"is_public": True}

    if is_staff(actor):
        if assigned:
            return {"assigned_staff_id": actor["_id"]}
        return {}

    if mine is False:
        return {"is_public": True}
    return {"citizen_id": actor["_id"]}


def can_read(report: dict, actor: Optional[dict]) -> bool:
    return bool(report.get("is_public", True)) or is_owner(report, actor) or is_staff(actor)


def ensure_readable(report: Optional[dict], actor: Optional[dict]) -> dict:
    # private reports of other people look exactly like missing ones
    if report is None or not can_read(report, actor):
        raise NotFoundError("Report not found")
    return report


def ensure_owner(report: dict, actor: dict, action: str) -> None:
    if not is_owner(report, actor):
        raise AuthorizationError(f"Not authorized to {action} this report")


def ensure_staff(actor: dict) -> None:
    if not is_staff(actor):
        raise AuthorizationError("Staff privileges required")


def ensure_can_change_status(report: dict, actor: dict, restrict_to_assignee: bool = True) -> None:
    """Assigned staff member or an admin; other staff only when the restriction is off."""
    ensure_staff(actor)
    if is_admin(actor) or not restrict_to_assignee:
        return
    if report.get("assigned_staff_id") != actor.get("_id"):
        raise AuthorizationError("Only the assigned staff member can update this report")


def wants_community_view(report: dict, actor: Optional[dict]) -> bool:
    return not (is_owner(report, actor) or is_staff(actor))
