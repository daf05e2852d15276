from datetime import datetime

from civic_reports.core.enums import UserRole
from civic_reports.models.user import UserDocument


def test_documents_store_plain_trimmed_values():
    now = datetime(2026, 5, 1, 8, 30)
    doc = UserDocument(
        name="  Asha Nair ",
        email="asha@citymail.org",
        password_hash="x",
        role=UserRole.staff,
        department="sanitation",
        staff_id="STAFF1",
        created_at=now,
        updated_at=now,
    ).to_mongo()

    assert doc["name"] == "Asha Nair"
    assert doc["role"] == "staff" and type(doc["role"]) is str
    assert doc["department"] == "sanitation" and type(doc["department"]) is str
