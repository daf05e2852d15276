from pydantic import EmailStr, Field
from typing import Optional

from civic_reports.core.enums import Department, UserRole
from civic_reports.models.common import CivicBaseModel

PHONE_PATTERN = r"^\+?[1-9]\d{0,15}$"


class AddressIn(CivicBaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = Field(None, alias="postalCode")
    country: Optional[str] = None


# -------------------------
# Requests (INPUT)
# -------------------------

class UserCreate(CivicBaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    address: Optional[AddressIn] = None


class StaffCreate(UserCreate):
    """Admin-only: create staff or admin accounts."""

    role: UserRole = UserRole.staff.value
    department: Optional[Department] = None


class LoginRequest(CivicBaseModel):
    email: EmailStr
    password: str


class ProfileUpdate(CivicBaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    address: Optional[AddressIn] = None


class PasswordChange(CivicBaseModel):
    current_password: str = Field(..., alias="currentPassword")
    new_password: str = Field(..., alias="newPassword", min_length=6)
