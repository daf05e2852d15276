from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from civic_reports.api.deps import get_audit_service, get_user_repo
from civic_reports.core.enums import UserRole
from civic_reports.core.errors import ValidationError
from civic_reports.core.security import require_role
from civic_reports.mapper.users_mapper import to_user_out
from civic_reports.repositories.user_repository import UserRepository
from civic_reports.schemas.user import StaffCreate
from civic_reports.services import users_service
from civic_reports.services.audit_service import AuditService

router = APIRouter(prefix="/admin", tags=["Admin"])

admin_only = require_role(UserRole.admin)


@router.post("/users", status_code=status.HTTP_201_CREATED)
async def create_user(
    body: StaffCreate,
    admin: dict = Depends(admin_only),
    repo: UserRepository = Depends(get_user_repo),
    audit: AuditService = Depends(get_audit_service),
):
    if body.role == UserRole.citizen.value:
        raise ValidationError("Citizens register themselves through /auth/register")

    u = await users_service.create_user(repo, body, role=body.role, department=body.department)

    await audit.record(
        "user.create",
        admin,
        {"type": "user", "id": str(u["_id"])},
        f"{u['role']} account created ({u['email']})",
        {"role": u["role"], "department": u.get("department")},
    )
    return {"success": True, "message": "User created successfully", "user": to_user_out(u)}


@router.get("/users")
async def list_users(
    role: Optional[UserRole] = Query(None),
    q: Optional[str] = Query(None, max_length=100),
    admin: dict = Depends(admin_only),
    repo: UserRepository = Depends(get_user_repo),
):
    rows = await repo.list(role=role.value if role else None, q=q)
    return {"success": True, "count": len(rows), "users": [to_user_out(u) for u in rows]}


@router.patch("/users/{user_id}/active")
async def toggle_active(
    user_id: str,
    admin: dict = Depends(admin_only),
    repo: UserRepository = Depends(get_user_repo),
    audit: AuditService = Depends(get_audit_service),
):
    u = await users_service.toggle_user_active(repo, user_id, admin)

    await audit.record(
        "user.toggle_active",
        admin,
        {"type": "user", "id": user_id},
        f"User {u['email']} {'activated' if u['is_active'] else 'deactivated'}",
        {"is_active": u["is_active"]},
    )
    return {"success": True, "user": to_user_out(u)}


@router.get("/audit")
async def list_audit(
    limit: int = Query(100, ge=1, le=500),
    type_: Optional[str] = Query(None, alias="type"),
    entity_id: Optional[str] = Query(None, alias="entityId"),
    admin: dict = Depends(admin_only),
    audit: AuditService = Depends(get_audit_service),
):
    return {"success": True, "data": await audit.list_logs(limit, type_=type_, entity_id=entity_id)}
