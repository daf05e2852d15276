from __future__ import annotations

import logging
import random
import time

from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from civic_reports.core.enums import UserRole
from civic_reports.core.errors import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from civic_reports.core.security import hash_password, verify_password
from civic_reports.models.user import Address, UserDocument
from civic_reports.repositories.user_repository import UserRepository, normalize_email
from civic_reports.utils.mongo import utcnow

logger = logging.getLogger(__name__)


# -------------------------
# Helpers
# -------------------------
def _phone_norm(phone: str | None) -> str | None:
    if not phone:
        return None
    p = phone.strip()
    return p if p else None


def make_staff_id() -> str:
    return f"STAFF{int(time.time() * 1000)}{random.randint(0, 999)}"


def _address_doc(address) -> dict:
    if address is None:
        return Address().model_dump()
    data = {k: v for k, v in address.model_dump().items() if v is not None}
    return Address(**data).model_dump()


# -------------------------
# Users CRUD
# -------------------------
async def create_user(repo: UserRepository, body, role: str = UserRole.citizen.value, department: str | None = None) -> dict:
    now = utcnow()
    email = normalize_email(body.email)

    # prevent duplicates (works even without unique index)
    if await repo.get_by_email(email):
        raise ConflictError("Email already exists")

    try:
        user = UserDocument(
            name=body.name,
            email=email,
            password_hash=hash_password(body.password),
            role=role,
            phone=_phone_norm(body.phone),
            address=_address_doc(body.address),
            department=department,
            staff_id=make_staff_id() if role == UserRole.staff.value else None,
            created_at=now,
            updated_at=now,
        )
    except ValueError as exc:
        raise ValidationError(str(exc))

    try:
        doc = await repo.insert(user.to_mongo())
    except DuplicateKeyError:
        raise ConflictError("Email already exists")

    logger.info("User created: %s (%s)", email, role)
    return doc


async def get_user(repo: UserRepository, user_id: str) -> dict:
    if not ObjectId.is_valid(user_id):
        raise NotFoundError("User not found")
    doc = await repo.get(ObjectId(user_id))
    if not doc:
        raise NotFoundError("User not found")
    return doc


async def update_profile(repo: UserRepository, user: dict, body) -> dict:
    patch = body.model_dump(exclude_unset=True)
    update_doc: dict = {}

    if patch.get("name") is not None:
        update_doc["name"] = patch["name"]

    if "phone" in patch:
        update_doc["phone"] = _phone_norm(patch.get("phone"))

    if body.address is not None:
        current = user.get("address") or {}
        incoming = {k: v for k, v in body.address.model_dump().items() if v is not None}
        update_doc["address"] = Address(**{**current, **incoming}).model_dump()

    if not update_doc:
        raise ValidationError("No fields to update")

    return await repo.update(user["_id"], update_doc)


async def change_password(repo: UserRepository, user: dict, current_password: str, new_password: str) -> None:
    full = await repo.get(user["_id"])
    if not verify_password(current_password, full.get("password_hash", "")):
        raise AuthenticationError("Current password is incorrect")
    await repo.update(user["_id"], {"password_hash": hash_password(new_password)})


async def toggle_user_active(repo: UserRepository, user_id: str, acting_admin: dict) -> dict:
    doc = await get_user(repo, user_id)
    if doc["_id"] == acting_admin["_id"]:
        raise ValidationError("Admins cannot deactivate themselves")
    return await repo.update(doc["_id"], {"is_active": not doc.get("is_active", True)})


# -------------------------
# Auth helpers
# -------------------------
async def login(repo: UserRepository, email: str, password: str) -> dict:
    doc = await repo.get_by_email(email)
    if not doc or not verify_password(password, doc.get("password_hash", "")):
        raise AuthenticationError("Invalid credentials")

    if not doc.get("is_active", True):
        raise AuthorizationError("Account disabled")

    return await repo.update(doc["_id"], {"last_login": utcnow()})
