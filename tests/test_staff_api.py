from civic_reports.core.enums import ReportStatus


def assign(client, report, headers, staff_id=None):
    body = {"staffId": str(staff_id)} if staff_id else None
    return client.put(f"/staff/reports/{report['id']}/assign", json=body, headers=headers)


def set_status(client, report, headers, status, **extra):
    return client.put(f"/staff/reports/{report['id']}/status", json={"status": status, **extra}, headers=headers)


# -------------------------
# Assignment
# -------------------------
def test_self_assignment_moves_report_to_assigned(client, make_user, create_report):
    _, citizen = make_user("citizen")
    staff, staff_headers = make_user("staff")
    report = create_report(citizen)

    r = assign(client, report, staff_headers)
    assert r.status_code == 200
    out = r.json()["report"]
    assert out["status"] == "Assigned"
    assert out["assignedStaffId"] == str(staff["_id"])
    assert out["assignedStaff"]["staffId"] == staff["staff_id"]
    assert out["assignedAt"]


def test_reassignment_keeps_first_assigned_at(client, make_user, create_report):
    _, citizen = make_user("citizen")
    _, first_staff = make_user("staff")
    second, _ = make_user("staff")
    _, admin = make_user("admin")
    report = create_report(citizen)

    first = assign(client, report, first_staff).json()["report"]
    again = assign(client, report, admin, staff_id=second["_id"]).json()["report"]

    assert again["assignedStaffId"] == str(second["_id"])
    assert again["assignedAt"] == first["assignedAt"]
    assert again["status"] == "Assigned"


def test_admin_must_name_the_staff_member(client, make_user, create_report):
    _, citizen = make_user("citizen")
    _, admin = make_user("admin")
    report = create_report(citizen)

    assert assign(client, report, admin).status_code == 400


def test_assign_to_non_staff_or_unknown_user(client, make_user, create_report):
    citizen_doc, citizen = make_user("citizen")
    _, admin = make_user("admin")
    report = create_report(citizen)

    assert assign(client, report, admin, staff_id=citizen_doc["_id"]).status_code == 400
    assert assign(client, report, admin, staff_id="0123456789abcdef01234567").status_code == 404


def test_assign_to_deactivated_staff(client, make_user, create_report):
    _, citizen = make_user("citizen")
    inactive, _ = make_user("staff", is_active=False)
    _, admin = make_user("admin")
    report = create_report(citizen)

    r = assign(client, report, admin, staff_id=inactive["_id"])
    assert r.status_code == 400
    assert r.json()["message"] == "Invalid staff member"


def test_rejected_report_cannot_be_assigned(client, make_user, create_report):
    _, citizen = make_user("citizen")
    staff, _ = make_user("staff")
    _, admin = make_user("admin")
    report = create_report(citizen)

    assert set_status(client, report, admin, "Rejected").status_code == 200
    assert assign(client, report, admin, staff_id=staff["_id"]).status_code == 400


def test_citizens_cannot_reach_staff_routes(client, make_user, create_report):
    _, citizen = make_user("citizen")
    report = create_report(citizen)

    assert assign(client, report, citizen).status_code == 403
    assert client.get("/staff/dashboard", headers=citizen).status_code == 403
    assert client.get("/staff/dashboard").status_code == 401


# -------------------------
# Status
# -------------------------
def test_resolved_at_survives_close_and_reopen(client, make_user, create_report):
    _, citizen = make_user("citizen")
    _, staff = make_user("staff")
    report = create_report(citizen)
    assign(client, report, staff)

    assert set_status(client, report, staff, "In Progress").status_code == 200
    resolved = set_status(client, report, staff, "Resolved", resolutionDetails="Pothole filled").json()["report"]
    assert resolved["resolvedAt"]
    assert resolved["actualResolutionDate"] == resolved["resolvedAt"]
    assert resolved["resolutionDetails"] == "Pothole filled"

    assert set_status(client, report, staff, "Closed").status_code == 200
    reopened = set_status(client, report, staff, "Resolved").json()["report"]
    assert reopened["status"] == "Resolved"
    assert reopened["resolvedAt"] == resolved["resolvedAt"]


def test_invalid_transition_is_400(client, make_user, create_report):
    _, citizen = make_user("citizen")
    _, admin = make_user("admin")
    report = create_report(citizen)

    r = set_status(client, report, admin, "Closed")
    assert r.status_code == 400
    assert "Allowed next" in r.json()["message"]


def test_status_alone_cannot_move_report_to_assigned(client, make_user, create_report):
    _, citizen = make_user("citizen")
    _, admin = make_user("admin")
    report = create_report(citizen)

    r = set_status(client, report, admin, "Assigned")
    assert r.status_code == 400
    fresh = client.get(f"/reports/{report['id']}", headers=admin).json()["report"]
    assert fresh["status"] == "Submitted"
    assert fresh["assignedStaffId"] is None


def test_unknown_status_is_400(client, make_user, create_report):
    _, citizen = make_user("citizen")
    _, admin = make_user("admin")
    report = create_report(citizen)

    assert set_status(client, report, admin, "Done").status_code == 400


def test_only_assignee_or_admin_changes_status(client, make_user, create_report):
    _, citizen = make_user("citizen")
    _, assignee = make_user("staff")
    _, bystander = make_user("staff")
    _, admin = make_user("admin")
    report = create_report(citizen)
    assign(client, report, assignee)

    assert set_status(client, report, bystander, "In Progress").status_code == 403
    assert set_status(client, report, admin, "In Progress").status_code == 200


def test_status_change_bumps_version_and_is_audited(client, make_user, create_report):
    _, citizen = make_user("citizen")
    _, staff = make_user("staff")
    _, admin = make_user("admin")
    report = create_report(citizen)
    assign(client, report, staff)

    out = set_status(client, report, staff, "In Progress").json()["report"]
    assert out["version"] == 2

    events = client.get("/admin/audit", headers=admin).json()["data"]
    status_events = [e for e in events if e["type"] == "report.status_update"]
    assert status_events[0]["meta"] == {"from": "Assigned", "to": "In Progress"}
    assert status_events[0]["entity"] == {"type": "report", "id": report["reportId"]}


# -------------------------
# Comments
# -------------------------
def test_comments_are_appended_with_author(client, make_user, create_report):
    _, citizen = make_user("citizen")
    staff, staff_headers = make_user("staff", name="Asha Rao")
    report = create_report(citizen)
    url = f"/staff/reports/{report['id']}/comment"

    client.post(url, json={"comment": "Site inspected"}, headers=staff_headers)
    r = client.post(url, json={"comment": "Crew scheduled for Monday"}, headers=staff_headers)

    comments = r.json()["report"]["staffComments"]
    assert [c["comment"] for c in comments] == ["Site inspected", "Crew scheduled for Monday"]
    assert comments[0]["staffId"] == str(staff["_id"])
    assert comments[0]["staff"]["name"] == "Asha Rao"


def test_blank_comment_is_400(client, make_user, create_report):
    _, citizen = make_user("citizen")
    _, staff = make_user("staff")
    report = create_report(citizen)

    r = client.post(f"/staff/reports/{report['id']}/comment", json={"comment": "   "}, headers=staff)
    assert r.status_code == 400


# -------------------------
# Dashboard
# -------------------------
def test_dashboard(client, make_user, create_report):
    _, citizen = make_user("citizen")
    _, staff_headers = make_user("staff")
    mine = create_report(citizen, title="Assigned pothole report")
    waiting = create_report(citizen, title="Waiting pothole report")
    assign(client, mine, staff_headers)

    r = client.get("/staff/dashboard", headers=staff_headers)
    assert r.status_code == 200
    data = r.json()["data"]

    assert set(data["statusCounts"]) == {s.value for s in ReportStatus}
    assert data["statusCounts"]["Assigned"] == 1
    assert data["statusCounts"]["Submitted"] == 0
    assert data["totals"]["all"] == 2
    assert data["totals"]["byStatus"]["Submitted"] == 1
    assert [x["id"] for x in data["assignedReports"]] == [mine["id"]]
    assert [x["id"] for x in data["recentActivity"]] == [mine["id"]]
    assert [x["id"] for x in data["unassignedQueue"]] == [waiting["id"]]
