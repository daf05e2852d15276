from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Header, Query, Response, UploadFile, status

from civic_reports.api.deps import get_report_service
from civic_reports.core.enums import UserRole
from civic_reports.core.security import get_current_user, get_optional_user, require_role
from civic_reports.schemas.report import FeedbackIn, ReportFilters, ReportUpdate
from civic_reports.services.reports_service import ReportService

router = APIRouter(prefix="/reports", tags=["Reports"])


# =========================
# Create Report (multipart, photos optional)
# =========================
@router.post("", status_code=status.HTTP_201_CREATED)
async def create_report(
    response: Response,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    priority: Optional[str] = Form(None),
    longitude: Optional[str] = Form(None),
    latitude: Optional[str] = Form(None),
    address: Optional[str] = Form(None),
    is_public: Optional[str] = Form(None, alias="isPublic"),
    photos: List[UploadFile] = File(default=[]),
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
    user: dict = Depends(require_role(UserRole.citizen)),
    service: ReportService = Depends(get_report_service),
):
    form = {
        "title": title,
        "description": description,
        "category": category,
        "priority": priority,
        "longitude": longitude,
        "latitude": latitude,
        "address": address or None,
        "isPublic": is_public,
    }
    form = {k: v for k, v in form.items() if v is not None}

    doc, created = await service.create(user, form, photos, idempotency_key)
    if not created:
        response.status_code = status.HTTP_200_OK

    return {
        "success": True,
        "message": "Report submitted successfully" if created else "Report already submitted",
        "report": await service.present(doc, user),
    }


# =========================
# List Reports
# =========================
@router.get("")
async def list_reports(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    category: Optional[str] = Query(None),
    status_: Optional[str] = Query(None, alias="status"),
    priority: Optional[int] = Query(None, ge=1, le=5),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    longitude: Optional[float] = Query(None),
    latitude: Optional[float] = Query(None),
    radius: Optional[float] = Query(None, gt=0),
    mine: Optional[bool] = Query(None),
    assigned: bool = Query(False),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    q: Optional[str] = Query(None, max_length=200),
    user: Optional[dict] = Depends(get_optional_user),
    service: ReportService = Depends(get_report_service),
):
    settings = service.settings
    limit = min(limit or settings.default_page_size, settings.max_page_size)

    criteria = ReportFilters(
        category=category,
        status=status_,
        priority=priority,
        start_date=start_date,
        end_date=end_date,
        longitude=longitude,
        latitude=latitude,
        radius=radius,
        q=q,
        sort_by=sort_by,
    )
    result = await service.list(user, criteria, page, limit, mine=mine, assigned=assigned)
    return {"success": True, **result}


# =========================
# Single Report
# =========================
@router.get("/{report_id}")
async def get_report(
    report_id: str,
    user: Optional[dict] = Depends(get_optional_user),
    service: ReportService = Depends(get_report_service),
):
    doc = await service.get(report_id, user)
    return {"success": True, "report": await service.present(doc, user)}


# =========================
# Update Report (owner, ONLY Submitted)
# =========================
@router.put("/{report_id}")
async def update_report(
    report_id: str,
    body: ReportUpdate,
    user: dict = Depends(get_current_user),
    service: ReportService = Depends(get_report_service),
):
    doc = await service.citizen_update(report_id, user, body.model_dump(exclude_unset=True))
    return {
        "success": True,
        "message": "Report updated successfully",
        "report": await service.present(doc, user),
    }


# =========================
# Delete Report
# =========================
@router.delete("/{report_id}")
async def delete_report(
    report_id: str,
    user: dict = Depends(get_current_user),
    service: ReportService = Depends(get_report_service),
):
    await service.delete(report_id, user)
    return {"success": True, "message": "Report deleted successfully"}


# =========================
# Feedback (owner, ONLY Resolved)
# =========================
@router.post("/{report_id}/feedback")
async def submit_feedback(
    report_id: str,
    body: FeedbackIn,
    user: dict = Depends(get_current_user),
    service: ReportService = Depends(get_report_service),
):
    doc = await service.submit_feedback(report_id, user, body.rating, body.comment)
    return {
        "success": True,
        "message": "Feedback submitted successfully",
        "report": await service.present(doc, user),
    }
