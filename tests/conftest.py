import asyncio

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from civic_reports.core.config import Settings
from civic_reports.core.security import create_access_token, hash_password
from civic_reports.db.mongo import Mongo
from civic_reports.main import create_app
from civic_reports.services.users_service import make_staff_id
from civic_reports.utils.mongo import utcnow

PASSWORD = "secret123"

REPORT_FORM = {
    "title": "Pothole on Main Street",
    "description": "Large pothole next to the bus stop, dangerous for bikes",
    "category": "Pothole",
    "priority": "3",
    "longitude": "77.5946",
    "latitude": "12.9716",
    "address": "12 MG Road, Bengaluru 560001",
}


@pytest.fixture
def settings(tmp_path):
    return Settings(
        upload_dir=tmp_path / "uploads",
        ensure_indexes=False,
        jwt_secret="test-secret",
        log_level="WARNING",
    )


@pytest.fixture
def mongo():
    return Mongo.from_client(AsyncMongoMockClient(), "civic_reports_test")


@pytest.fixture
def client(settings, mongo):
    return TestClient(create_app(settings=settings, mongo=mongo))


@pytest.fixture
def make_user(mongo, settings):
    """Insert a user straight into the db and return (doc, auth headers)."""

    def _make(role="citizen", email=None, department=None, is_active=True, name=None):
        now = utcnow()
        doc = {
            "_id": ObjectId(),
            "name": name or f"{role.title()} User",
            "email": email or f"{role}-{ObjectId()}@citymail.org",
            "password_hash": hash_password(PASSWORD),
            "role": role,
            "phone": None,
            "address": {"street": None, "city": "Bengaluru", "state": None, "postal_code": None, "country": "India"},
            "is_active": is_active,
            "last_login": None,
            "created_at": now,
            "updated_at": now,
        }
        if role == "staff":
            doc["department"] = department or "public_works"
            doc["staff_id"] = make_staff_id()

        asyncio.run(mongo.users.insert_one(doc))
        token = create_access_token(settings, str(doc["_id"]), role)
        return doc, {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture
def create_report(client):
    def _create(headers, files=None, **overrides):
        data = {**REPORT_FORM, **overrides}
        r = client.post("/reports", data=data, files=files, headers=headers)
        assert r.status_code == 201, r.text
        return r.json()["report"]

    return _create


@pytest.fixture
def report_form():
    return dict(REPORT_FORM)
