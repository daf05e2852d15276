from __future__ import annotations

import re
from typing import Dict, Optional

from civic_reports.mapper.users_mapper import to_user_ref
from civic_reports.utils.mongo import oid_str, serialize_mongo

_DIGITS = re.compile(r"\d")
_SPACES = re.compile(r"\s{2,}")


def anonymize_address(address: Optional[str]) -> Optional[str]:
    """Community view of an address: house numbers and pin codes removed."""
    if not address:
        return address
    stripped = _DIGITS.sub("", address)
    stripped = _SPACES.sub(" ", stripped)
    return stripped.strip(" ,") or None


def _photo_out(p: dict) -> dict:
    return {
        "filename": p.get("filename"),
        "originalName": p.get("original_name"),
        "mimetype": p.get("mimetype"),
        "size": p.get("size"),
        "url": p.get("url"),
        "uploadedAt": p.get("uploaded_at"),
    }


def _feedback_out(fb: Optional[dict]) -> Optional[dict]:
    if not fb:
        return None
    return {
        "rating": fb.get("rating"),
        "comment": fb.get("comment"),
        "submittedAt": fb.get("submitted_at"),
    }


def to_report_out(
    doc: dict,
    users: Optional[Dict[str, dict]] = None,
    *,
    community: bool = False,
) -> dict:
    """
    Serialize a report document for the API.

    `users` maps str(user _id) -> user document and is used to denormalize
    owner / assignee / comment author display fields. With `community=True`
    the owner's identity is left out and the address digits are stripped;
    the stored document is never touched.
    """
    users = users or {}
    location = doc.get("location") or {}
    coords = location.get("coordinates") or [None, None]
    address = location.get("address")

    citizen_id = oid_str(doc.get("citizen_id"))
    staff_id = oid_str(doc.get("assigned_staff_id"))

    out = {
        "id": oid_str(doc["_id"]),
        "reportId": doc.get("report_id"),
        "title": doc.get("title"),
        "description": doc.get("description"),
        "category": doc.get("category"),
        "priority": doc.get("priority"),
        "status": doc.get("status"),
        "location": {
            "type": "Point",
            "coordinates": coords,
            "address": anonymize_address(address) if community else address,
        },
        "longitude": coords[0],
        "latitude": coords[1],
        "photos": [_photo_out(p) for p in doc.get("photos") or []],
        "assignedStaffId": staff_id,
        "assignedStaff": to_user_ref(users.get(staff_id)) if staff_id else None,
        "assignedAt": doc.get("assigned_at"),
        "staffComments": [
            {
                "staffId": oid_str(c.get("staff_id")),
                "staff": to_user_ref(users.get(oid_str(c.get("staff_id")))),
                "comment": c.get("comment"),
                "createdAt": c.get("created_at"),
            }
            for c in doc.get("staff_comments") or []
        ],
        "citizenFeedback": _feedback_out(doc.get("citizen_feedback")),
        "resolvedAt": doc.get("resolved_at"),
        "actualResolutionDate": doc.get("actual_resolution_date"),
        "resolutionDetails": doc.get("resolution_details"),
        "estimatedResolutionDate": doc.get("estimated_resolution_date"),
        "isPublic": doc.get("is_public", True),
        "version": doc.get("version", 0),
        "createdAt": doc.get("created_at"),
        "updatedAt": doc.get("updated_at"),
    }

    if not community:
        out["citizenId"] = citizen_id
        out["citizen"] = to_user_ref(users.get(citizen_id), with_email=True)

    return serialize_mongo(out)


def referenced_user_ids(docs) -> set:
    """Every user id a list of report documents points at."""
    ids = set()
    for d in docs:
        if d.get("citizen_id"):
            ids.add(d["citizen_id"])
        if d.get("assigned_staff_id"):
            ids.add(d["assigned_staff_id"])
        for c in d.get("staff_comments") or []:
            if c.get("staff_id"):
                ids.add(c["staff_id"])
    return ids
