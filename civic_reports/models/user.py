from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field, model_validator

from civic_reports.core.enums import Department, UserRole
from civic_reports.models.common import CivicBaseModel


class Address(CivicBaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: str = "India"


class UserDocument(CivicBaseModel):
    """Shape of a document in the `users` collection."""

    name: str = Field(..., min_length=1, max_length=100)
    email: str
    password_hash: str
    role: UserRole = UserRole.citizen.value
    phone: Optional[str] = None
    address: Address = Field(default_factory=Address)

    # staff only
    department: Optional[Department] = None
    staff_id: Optional[str] = None

    is_active: bool = True
    last_login: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="after")
    def staff_needs_department(self):
        if self.role == UserRole.staff.value and not self.department:
            raise ValueError("department is required for staff")
        return self

    def to_mongo(self) -> dict:
        doc = self.model_dump(mode="python")
        # sparse unique index: the key must be absent, not null
        if not doc.get("staff_id"):
            doc.pop("staff_id", None)
        if not doc.get("department"):
            doc.pop("department", None)
        return doc
