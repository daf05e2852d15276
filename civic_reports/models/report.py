from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from civic_reports.core.enums import ReportCategory, ReportStatus
from civic_reports.models.common import CivicBaseModel, PyObjectId


class GeoPoint(CivicBaseModel):
    type: str = Field("Point", pattern="^Point$")
    coordinates: List[float]
    address: Optional[str] = Field(None, max_length=500)

    @field_validator("coordinates")
    @classmethod
    def lon_lat_in_range(cls, v: List[float]) -> List[float]:
        if len(v) != 2:
            raise ValueError("coordinates must be [longitude, latitude]")
        lon, lat = v
        if not -180 <= lon <= 180:
            raise ValueError("longitude must be between -180 and 180")
        if not -90 <= lat <= 90:
            raise ValueError("latitude must be between -90 and 90")
        return v


class Photo(CivicBaseModel):
    filename: str
    original_name: Optional[str] = None
    mimetype: str
    size: int
    url: str
    uploaded_at: datetime


class StaffComment(CivicBaseModel):
    staff_id: PyObjectId
    comment: str = Field(..., min_length=1, max_length=1000)
    created_at: datetime


class CitizenFeedback(CivicBaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=500)
    submitted_at: datetime


class ReportDocument(CivicBaseModel):
    """Shape of a document in the `reports` collection."""

    report_id: str
    title: str = Field(..., min_length=5, max_length=200)
    description: str = Field(..., min_length=10, max_length=2000)
    category: ReportCategory
    priority: int = Field(..., ge=1, le=5)
    status: ReportStatus = ReportStatus.submitted.value
    location: GeoPoint

    citizen_id: PyObjectId
    assigned_staff_id: Optional[PyObjectId] = None
    assigned_at: Optional[datetime] = None

    photos: List[Photo] = Field(default_factory=list)
    staff_comments: List[StaffComment] = Field(default_factory=list)
    citizen_feedback: Optional[CitizenFeedback] = None

    resolved_at: Optional[datetime] = None
    actual_resolution_date: Optional[datetime] = None
    resolution_details: Optional[str] = Field(None, max_length=1000)
    estimated_resolution_date: Optional[datetime] = None

    is_public: bool = True
    idempotency_key: Optional[str] = None
    version: int = 0

    created_at: datetime
    updated_at: datetime

    def to_mongo(self) -> dict:
        return self.model_dump(mode="python")
