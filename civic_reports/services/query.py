from __future__ import annotations

import math
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from civic_reports.core.enums import ReportCategory, ReportStatus
from civic_reports.core.errors import ValidationError
from civic_reports.schemas.report import ReportFilters

EARTH_RADIUS_M = 6378100.0

# API name -> stored field
SORTABLE_FIELDS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "priority": "priority",
    "status": "status",
    "category": "category",
    "title": "title",
    "reportId": "report_id",
}
DEFAULT_SORT = "createdAt:desc"


def parse_date(value: str, *, end_of_day: bool = False) -> datetime:
    """
    ISO date or datetime -> naive UTC. A bare date used as an upper bound
    covers that whole day.
    """
    raw = (value or "").strip()
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"Invalid date: {value!r}")

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    if end_of_day and len(raw) == 10:
        parsed = parsed + timedelta(days=1) - timedelta(microseconds=1)
    return parsed


def parse_sort(sort_by: Optional[str]) -> List[Tuple[str, int]]:
    """`field:asc|desc` -> pymongo sort list, with _id as a stable tiebreak."""
    field, _, direction = (sort_by or DEFAULT_SORT).partition(":")
    field = field.strip()
    direction = (direction or "asc").strip().lower()

    if field not in SORTABLE_FIELDS:
        raise ValidationError(f"Cannot sort by '{field}'. Allowed: {sorted(SORTABLE_FIELDS)}")
    if direction not in ("asc", "desc"):
        raise ValidationError("Sort direction must be 'asc' or 'desc'")

    order = -1 if direction == "desc" else 1
    return [(SORTABLE_FIELDS[field], order), ("_id", order)]


def near_filter(longitude: Optional[float], latitude: Optional[float], radius: Optional[float], default_radius: float) -> Optional[dict]:
    """
    Radius filter around a point. $geoWithin (unlike $near) is allowed in
    count_documents and leaves ordering to the requested sort.
    """
    if longitude is None and latitude is None:
        if radius is not None:
            raise ValidationError("radius needs longitude and latitude")
        return None
    if longitude is None or latitude is None:
        raise ValidationError("Both longitude and latitude are required for a nearby search")
    if not -180 <= longitude <= 180 or not -90 <= latitude <= 90:
        raise ValidationError("Invalid coordinates")

    radius = default_radius if radius is None else radius
    if radius <= 0:
        raise ValidationError("radius must be positive")

    return {
        "$geoWithin": {
            "$centerSphere": [[longitude, latitude], radius / EARTH_RADIUS_M]
        }
    }


def build_report_filter(criteria: ReportFilters, scope: Dict[str, Any], default_radius: float = 5000) -> Dict[str, Any]:
    filt: Dict[str, Any] = {}

    if criteria.category:
        if criteria.category not in {c.value for c in ReportCategory}:
            raise ValidationError(f"Unknown category '{criteria.category}'")
        filt["category"] = criteria.category

    if criteria.status:
        if criteria.status not in {s.value for s in ReportStatus}:
            raise ValidationError(f"Unknown status '{criteria.status}'")
        filt["status"] = criteria.status

    if criteria.priority is not None:
        filt["priority"] = criteria.priority

    if criteria.start_date or criteria.end_date:
        created: Dict[str, Any] = {}
        if criteria.start_date:
            created["$gte"] = parse_date(criteria.start_date)
        if criteria.end_date:
            created["$lte"] = parse_date(criteria.end_date, end_of_day=True)
        if "$gte" in created and "$lte" in created and created["$gte"] > created["$lte"]:
            raise ValidationError("startDate must not be after endDate")
        filt["created_at"] = created

    near = near_filter(criteria.longitude, criteria.latitude, criteria.radius, default_radius)
    if near:
        filt["location"] = near

    if criteria.q and criteria.q.strip():
        pattern = re.escape(criteria.q.strip())
        filt["$or"] = [
            {field: {"$regex": pattern, "$options": "i"}}
            for field in ("title", "description", "category", "report_id")
        ]

    # scope goes last so no user supplied criterion can widen it
    filt.update(scope)
    return filt


def page_window(page: int, limit: int) -> Tuple[int, int]:
    if page < 1:
        raise ValidationError("page must be >= 1")
    if limit < 1:
        raise ValidationError("limit must be >= 1")
    return (page - 1) * limit, limit


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0
