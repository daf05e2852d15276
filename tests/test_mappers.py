from datetime import datetime

from bson import ObjectId

from civic_reports.mapper.reports_mapper import anonymize_address, referenced_user_ids, to_report_out
from civic_reports.mapper.users_mapper import to_user_out


def test_anonymize_address():
    assert anonymize_address("12 MG Road, Bengaluru 560001") == "MG Road, Bengaluru"
    assert anonymize_address("Flat 4B, 221 Baker Street") == "Flat B, Baker Street"
    assert anonymize_address("1234") is None
    assert anonymize_address(None) is None


def test_report_out_is_camel_case_and_json_safe():
    citizen, staff = ObjectId(), ObjectId()
    now = datetime(2026, 5, 1, 8, 30)
    doc = {
        "_id": ObjectId(),
        "report_id": "RPT-2026-00009",
        "title": "Water leak near school",
        "status": "Assigned",
        "location": {"type": "Point", "coordinates": [77.1, 12.2], "address": "3 School Lane"},
        "citizen_id": citizen,
        "assigned_staff_id": staff,
        "assigned_at": now,
        "staff_comments": [{"staff_id": staff, "comment": "On it", "created_at": now}],
        "created_at": now,
        "updated_at": now,
    }
    users = {
        str(citizen): {"_id": citizen, "name": "Ravi", "email": "ravi@citymail.org"},
        str(staff): {"_id": staff, "name": "Asha", "staff_id": "STAFF1", "department": "water"},
    }

    out = to_report_out(doc, users)
    assert out["reportId"] == "RPT-2026-00009"
    assert out["longitude"] == 77.1 and out["latitude"] == 12.2
    assert out["assignedAt"] == "2026-05-01T08:30:00"
    assert out["citizen"] == {"id": str(citizen), "name": "Ravi", "email": "ravi@citymail.org"}
    assert out["assignedStaff"]["staffId"] == "STAFF1"
    assert out["staffComments"][0]["staff"]["name"] == "Asha"

    community = to_report_out(doc, users, community=True)
    assert "citizen" not in community and "citizenId" not in community
    assert community["location"]["address"] == "School Lane"

    assert referenced_user_ids([doc]) == {citizen, staff}


def test_user_out_never_leaks_password():
    out = to_user_out({"_id": ObjectId(), "name": "A", "email": "a@citymail.org", "password_hash": "x", "role": "citizen"})
    assert "password_hash" not in out and "passwordHash" not in out
    assert "staffId" not in out
