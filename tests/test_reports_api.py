import asyncio
import io
import re

from PIL import Image


def png_bytes(size=(40, 30)):
    buf = io.BytesIO()
    Image.new("RGB", size, color=(10, 120, 40)).save(buf, format="PNG")
    return buf.getvalue()


# -------------------------
# Create
# -------------------------
def test_create_report_defaults(client, make_user, create_report):
    citizen, headers = make_user("citizen")
    report = create_report(headers)

    assert re.fullmatch(r"RPT-\d{4}-\d{5}", report["reportId"])
    assert report["status"] == "Submitted"
    assert report["isPublic"] is True
    assert report["assignedStaff"] is None
    assert report["assignedAt"] is None
    assert report["version"] == 0
    assert report["citizenId"] == str(citizen["_id"])
    assert report["location"]["coordinates"] == [77.5946, 12.9716]
    assert report["category"] == "Pothole"
    assert report["priority"] == 3


def test_report_ids_follow_the_counter(make_user, create_report):
    _, headers = make_user("citizen")
    first = create_report(headers)["reportId"]
    second = create_report(headers)["reportId"]

    assert int(second.rsplit("-", 1)[1]) == int(first.rsplit("-", 1)[1]) + 1


def test_create_requires_citizen(client, make_user):
    _, staff_headers = make_user("staff")
    form = {"title": "Broken street light", "description": "Light has been out for a week now", "category": "Light", "priority": "2", "longitude": "77.6", "latitude": "12.9"}

    assert client.post("/reports", data=form).status_code == 401
    assert client.post("/reports", data=form, headers=staff_headers).status_code == 403


def test_create_validation_error_envelope(client, make_user):
    _, headers = make_user("citizen")
    r = client.post("/reports", data={"title": "Hi", "category": "Pothole"}, headers=headers)

    assert r.status_code == 400
    body = r.json()
    assert body["success"] is False
    fields = {e["field"] for e in body["errors"]}
    assert {"title", "description", "priority"} <= fields


def test_create_private_report(make_user, create_report):
    _, headers = make_user("citizen")
    assert create_report(headers, isPublic="false")["isPublic"] is False


def test_idempotency_key_replays_first_report(client, mongo, make_user, report_form):
    _, headers = make_user("citizen")
    headers = {**headers, "Idempotency-Key": "abc-123"}

    first = client.post("/reports", data=report_form, headers=headers)
    again = client.post("/reports", data=report_form, headers=headers)

    assert first.status_code == 201
    assert again.status_code == 200
    assert again.json()["report"]["id"] == first.json()["report"]["id"]
    assert asyncio.run(mongo.reports.count_documents({})) == 1


def test_create_with_photo_is_normalized(make_user, create_report, settings):
    _, headers = make_user("citizen")
    report = create_report(headers, files=[("photos", ("street.png", png_bytes(), "image/png"))])

    assert len(report["photos"]) == 1
    photo = report["photos"][0]
    assert photo["mimetype"] == "image/webp"
    assert photo["originalName"] == "street.png"
    assert photo["url"] == f"/uploads/{photo['filename']}"
    assert (settings.upload_dir / photo["filename"]).exists()
    assert list(settings.staging_dir.iterdir()) == []


def test_bad_photo_rejects_whole_report(client, mongo, make_user, settings, report_form):
    _, headers = make_user("citizen")
    files = [
        ("photos", ("ok.png", png_bytes(), "image/png")),
        ("photos", ("notes.txt", b"not an image", "text/plain")),
    ]
    r = client.post("/reports", data=report_form, files=files, headers=headers)

    assert r.status_code == 400
    assert asyncio.run(mongo.reports.count_documents({})) == 0
    assert list(settings.staging_dir.iterdir()) == []


# -------------------------
# Read
# -------------------------
def test_get_by_report_id_or_object_id(client, make_user, create_report):
    _, headers = make_user("citizen")
    report = create_report(headers)

    for ident in (report["reportId"], report["id"]):
        r = client.get(f"/reports/{ident}", headers=headers)
        assert r.status_code == 200
        assert r.json()["report"]["id"] == report["id"]


def test_unknown_report_is_404(client):
    r = client.get("/reports/RPT-1999-00001")
    assert r.status_code == 404
    assert r.json() == {"success": False, "message": "Report not found"}


def test_private_report_is_hidden_from_others(client, make_user, create_report):
    _, owner = make_user("citizen")
    _, other = make_user("citizen")
    _, staff = make_user("staff")
    report = create_report(owner, isPublic="false")
    url = f"/reports/{report['id']}"

    assert client.get(url).status_code == 404
    assert client.get(url, headers=other).status_code == 404
    assert client.get(url, headers=owner).status_code == 200
    assert client.get(url, headers=staff).status_code == 200


def test_community_view_hides_owner_and_house_number(client, make_user, create_report):
    _, owner = make_user("citizen")
    _, other = make_user("citizen")
    report = create_report(owner)

    seen = client.get(f"/reports/{report['id']}", headers=other).json()["report"]
    assert "citizenId" not in seen
    assert "citizen" not in seen
    assert seen["location"]["address"] == "MG Road, Bengaluru"

    own = client.get(f"/reports/{report['id']}", headers=owner).json()["report"]
    assert own["location"]["address"] == "12 MG Road, Bengaluru 560001"
    assert own["citizen"]["email"]


def test_broken_token_is_rejected_even_on_public_routes(client):
    r = client.get("/reports", headers={"Authorization": "Bearer not-a-token"})
    assert r.status_code == 401


# -------------------------
# List
# -------------------------
def test_anonymous_list_shows_public_reports_only(client, make_user, create_report):
    _, headers = make_user("citizen")
    create_report(headers)
    create_report(headers, isPublic="false")

    body = client.get("/reports").json()
    assert body["total"] == 1
    assert all(r["isPublic"] for r in body["reports"])


def test_citizen_list_defaults_to_own_reports(client, make_user, create_report):
    _, mine = make_user("citizen")
    _, other = make_user("citizen")
    create_report(mine, isPublic="false")
    create_report(other)

    assert client.get("/reports", headers=mine).json()["total"] == 1
    # mine=false switches to the public feed
    public = client.get("/reports", params={"mine": "false"}, headers=mine).json()
    assert public["total"] == 1
    assert "citizenId" not in public["reports"][0]


def test_pagination_defaults(client, make_user, create_report):
    _, headers = make_user("citizen")
    for _ in range(12):
        create_report(headers)

    first = client.get("/reports").json()
    assert first["count"] == 10
    assert first["total"] == 12
    assert first["pages"] == 2
    assert first["currentPage"] == 1

    second = client.get("/reports", params={"page": 2}).json()
    assert second["count"] == 2
    assert not {r["id"] for r in first["reports"]} & {r["id"] for r in second["reports"]}


def test_limit_is_clamped(client, settings):
    r = client.get("/reports", params={"limit": settings.max_page_size + 50})
    assert r.status_code == 200


def test_filter_search_and_sort(client, make_user, create_report):
    _, headers = make_user("citizen")
    create_report(headers, title="Overflowing garbage bin", category="Waste", priority="5")
    create_report(headers, title="Street light flickering", category="Light", priority="1")
    create_report(headers, title="Garbage dumped on footpath", category="Waste", priority="2")

    waste = client.get("/reports", params={"category": "Waste", "sortBy": "priority:asc"}).json()
    assert [r["priority"] for r in waste["reports"]] == [2, 5]

    found = client.get("/reports", params={"q": "garbage"}).json()
    assert found["total"] == 2

    by_status = client.get("/reports", params={"status": "In Progress"}).json()
    assert by_status["total"] == 0


def test_invalid_filters_are_400(client):
    assert client.get("/reports", params={"status": "Done"}).status_code == 400
    assert client.get("/reports", params={"sortBy": "password_hash"}).status_code == 400
    assert client.get("/reports", params={"longitude": 77.5}).status_code == 400
    assert client.get("/reports", params={"page": 0}).status_code == 400


# -------------------------
# Citizen writes
# -------------------------
def test_citizen_update_while_submitted(client, make_user, create_report):
    _, headers = make_user("citizen")
    report = create_report(headers)

    r = client.put(f"/reports/{report['id']}", json={"title": "Deep pothole on Main Street"}, headers=headers)
    assert r.status_code == 200
    updated = r.json()["report"]
    assert updated["title"] == "Deep pothole on Main Street"
    assert updated["version"] == 1


def test_citizen_update_rejected_once_assigned(client, make_user, create_report):
    _, citizen = make_user("citizen")
    _, staff = make_user("staff")
    report = create_report(citizen)
    client.put(f"/staff/reports/{report['id']}/assign", headers=staff)

    r = client.put(f"/reports/{report['id']}", json={"priority": 5}, headers=citizen)
    assert r.status_code == 400
    assert r.json()["success"] is False


def test_only_owner_updates(client, make_user, create_report):
    _, owner = make_user("citizen")
    _, other = make_user("citizen")
    report = create_report(owner)

    r = client.put(f"/reports/{report['id']}", json={"priority": 1}, headers=other)
    assert r.status_code == 403


def test_delete_own_submitted_report(client, make_user, create_report, settings):
    _, headers = make_user("citizen")
    report = create_report(headers, files=[("photos", ("a.png", png_bytes(), "image/png"))])
    filename = report["photos"][0]["filename"]

    assert client.delete(f"/reports/{report['id']}", headers=headers).status_code == 200
    assert client.get(f"/reports/{report['id']}", headers=headers).status_code == 404
    assert not (settings.upload_dir / filename).exists()


def test_citizen_cannot_delete_once_assigned(client, make_user, create_report):
    _, citizen = make_user("citizen")
    _, staff = make_user("staff")
    report = create_report(citizen)
    client.put(f"/staff/reports/{report['id']}/assign", headers=staff)

    r = client.delete(f"/reports/{report['id']}", headers=citizen)
    assert r.status_code == 400
    assert client.get(f"/reports/{report['id']}", headers=citizen).json()["report"]["status"] == "Assigned"


def test_staff_delete_in_progress_report_removes_photos(client, make_user, create_report, settings):
    _, citizen = make_user("citizen")
    _, staff = make_user("staff")
    report = create_report(citizen, files=[("photos", ("a.png", png_bytes(), "image/png"))])
    filename = report["photos"][0]["filename"]
    client.put(f"/staff/reports/{report['id']}/assign", headers=staff)
    client.put(f"/staff/reports/{report['id']}/status", json={"status": "In Progress"}, headers=staff)

    assert client.delete(f"/reports/{report['id']}", headers=staff).status_code == 200
    assert client.get(f"/reports/{report['id']}", headers=staff).status_code == 404
    assert not (settings.upload_dir / filename).exists()


def test_feedback_only_after_resolution(client, make_user, create_report):
    _, citizen = make_user("citizen")
    _, staff = make_user("staff")
    report = create_report(citizen)
    url = f"/reports/{report['id']}/feedback"

    assert client.post(url, json={"rating": 4}, headers=citizen).status_code == 400

    client.put(f"/staff/reports/{report['id']}/assign", headers=staff)
    client.put(f"/staff/reports/{report['id']}/status", json={"status": "Resolved"}, headers=staff)

    assert client.post(url, json={"rating": 9}, headers=citizen).status_code == 400
    r = client.post(url, json={"rating": 5, "comment": "Fixed in two days"}, headers=citizen)
    assert r.status_code == 200
    feedback = r.json()["report"]["citizenFeedback"]
    assert feedback["rating"] == 5
    assert feedback["comment"] == "Fixed in two days"
    assert feedback["submittedAt"]
