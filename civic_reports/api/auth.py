from fastapi import APIRouter, Depends, status

from civic_reports.api.deps import get_audit_service, get_user_repo
from civic_reports.core.config import Settings
from civic_reports.core.security import create_access_token, get_current_user
from civic_reports.db.session import get_app_settings
from civic_reports.mapper.users_mapper import to_user_out
from civic_reports.repositories.user_repository import UserRepository
from civic_reports.schemas.user import LoginRequest, PasswordChange, ProfileUpdate, UserCreate
from civic_reports.services import users_service
from civic_reports.services.audit_service import AuditService

router = APIRouter(prefix="/auth", tags=["Auth"])


def _with_token(settings: Settings, user: dict, message: str) -> dict:
    return {
        "success": True,
        "message": message,
        "user": to_user_out(user),
        "token": create_access_token(settings, str(user["_id"]), user["role"]),
    }


# =========================
# Register - citizens only, staff/admin accounts come from /admin/users
# =========================
@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    body: UserCreate,
    repo: UserRepository = Depends(get_user_repo),
    audit: AuditService = Depends(get_audit_service),
    settings: Settings = Depends(get_app_settings),
):
    u = await users_service.create_user(repo, body)

    await audit.record(
        "user.register",
        u,
        {"type": "user", "id": str(u["_id"])},
        f"New user registered ({u['email']})",
        {"role": u["role"]},
    )
    return _with_token(settings, u, "User registered successfully")


# =========================
# Login
# =========================
@router.post("/login")
async def login(
    body: LoginRequest,
    repo: UserRepository = Depends(get_user_repo),
    audit: AuditService = Depends(get_audit_service),
    settings: Settings = Depends(get_app_settings),
):
    u = await users_service.login(repo, body.email, body.password)

    await audit.record(
        "user.login",
        u,
        {"type": "user", "id": str(u["_id"])},
        f"User logged in ({u['email']})",
    )
    return _with_token(settings, u, "Login successful")


@router.get("/me")
async def me(user: dict = Depends(get_current_user)):
    return {"success": True, "user": to_user_out(user)}


@router.put("/profile")
async def update_profile(
    body: ProfileUpdate,
    user: dict = Depends(get_current_user),
    repo: UserRepository = Depends(get_user_repo),
):
    doc = await users_service.update_profile(repo, user, body)
    return {"success": True, "message": "Profile updated successfully", "user": to_user_out(doc)}


@router.put("/change-password")
async def change_password(
    body: PasswordChange,
    user: dict = Depends(get_current_user),
    repo: UserRepository = Depends(get_user_repo),
    audit: AuditService = Depends(get_audit_service),
):
    await users_service.change_password(repo, user, body.current_password, body.new_password)
    await audit.record("user.change_password", user, {"type": "user", "id": str(user["_id"])}, "Password changed")
    return {"success": True, "message": "Password changed successfully"}
