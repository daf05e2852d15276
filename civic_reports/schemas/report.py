from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from civic_reports.core.enums import ReportCategory, ReportStatus
from civic_reports.models.common import CivicBaseModel, PyObjectId


class ReportCreate(CivicBaseModel):
    title: str = Field(..., min_length=5, max_length=200)
    description: str = Field(..., min_length=10, max_length=2000)
    category: ReportCategory
    priority: int = Field(..., ge=1, le=5)
    longitude: float = Field(..., ge=-180, le=180)
    latitude: float = Field(..., ge=-90, le=90)
    address: Optional[str] = Field(None, max_length=500)
    is_public: bool = Field(True, alias="isPublic")


class ReportUpdate(CivicBaseModel):
    title: Optional[str] = Field(None, min_length=5, max_length=200)
    description: Optional[str] = Field(None, min_length=10, max_length=2000)
    priority: Optional[int] = Field(None, ge=1, le=5)


class FeedbackIn(CivicBaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=500)


class AssignIn(CivicBaseModel):
    staff_id: Optional[PyObjectId] = Field(None, alias="staffId")


class StatusIn(CivicBaseModel):
    status: ReportStatus
    resolution_details: Optional[str] = Field(None, alias="resolutionDetails", max_length=1000)
    estimated_resolution_date: Optional[datetime] = Field(None, alias="estimatedResolutionDate")


class CommentIn(CivicBaseModel):
    # bounds are checked by the lifecycle so the message matches other write paths
    comment: str


class ReportFilters(BaseModel):
    """Raw list filters as they arrive on the query string."""

    category: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[int] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    longitude: Optional[float] = None
    latitude: Optional[float] = None
    radius: Optional[float] = None
    q: Optional[str] = None
    sort_by: Optional[str] = None
