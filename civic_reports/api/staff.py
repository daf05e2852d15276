from typing import Optional

from fastapi import APIRouter, Depends

from civic_reports.api.deps import get_report_service
from civic_reports.core.enums import UserRole
from civic_reports.core.security import require_role
from civic_reports.schemas.report import AssignIn, CommentIn, StatusIn
from civic_reports.services.dashboard_service import staff_dashboard
from civic_reports.services.reports_service import ReportService

router = APIRouter(prefix="/staff", tags=["Staff"])

staff_only = require_role(UserRole.staff, UserRole.admin)


@router.get("/dashboard")
async def dashboard(
    user: dict = Depends(staff_only),
    service: ReportService = Depends(get_report_service),
):
    return {"success": True, "data": await staff_dashboard(service, user)}


# =========================
# Assign (explicit staffId, or self-assign when omitted)
# =========================
@router.put("/reports/{report_id}/assign")
async def assign_report(
    report_id: str,
    body: Optional[AssignIn] = None,
    user: dict = Depends(staff_only),
    service: ReportService = Depends(get_report_service),
):
    doc = await service.assign(report_id, user, body.staff_id if body else None)
    return {
        "success": True,
        "message": "Report assigned successfully",
        "report": await service.present(doc, user),
    }


@router.put("/reports/{report_id}/status")
async def update_status(
    report_id: str,
    body: StatusIn,
    user: dict = Depends(staff_only),
    service: ReportService = Depends(get_report_service),
):
    doc = await service.set_status(
        report_id,
        user,
        body.status,
        body.resolution_details,
        body.estimated_resolution_date,
    )
    return {
        "success": True,
        "message": "Report status updated successfully",
        "report": await service.present(doc, user),
    }


@router.post("/reports/{report_id}/comment")
async def add_comment(
    report_id: str,
    body: CommentIn,
    user: dict = Depends(staff_only),
    service: ReportService = Depends(get_report_service),
):
    doc = await service.add_comment(report_id, user, body.comment)
    return {
        "success": True,
        "message": "Comment added successfully",
        "report": await service.present(doc, user),
    }
