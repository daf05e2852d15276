from civic_reports.utils.mongo import oid_str, serialize_mongo


def to_user_out(doc: dict) -> dict:
    """
    Normalize ALL user documents (citizen / staff / admin)
    into ONE stable API shape. The password hash never leaves this function.
    """
    address = doc.get("address") or {}

    out = {
        "id": oid_str(doc["_id"]),
        "name": doc.get("name", ""),
        "email": doc.get("email"),
        "phone": doc.get("phone"),
        "address": {
            "street": address.get("street"),
            "city": address.get("city"),
            "state": address.get("state"),
            "postalCode": address.get("postal_code"),
            "country": address.get("country"),
        },
        "role": doc.get("role", "citizen"),
        "isActive": doc.get("is_active", True),
        "lastLogin": doc.get("last_login"),
        "createdAt": doc.get("created_at"),
        "updatedAt": doc.get("updated_at"),
    }

    # staff-only attributes
    if doc.get("role") == "staff":
        out["department"] = doc.get("department")
        out["staffId"] = doc.get("staff_id")

    return serialize_mongo(out)


def to_user_ref(doc: dict | None, *, with_email: bool = False) -> dict | None:
    """Small display reference used when embedding users inside reports."""
    if not doc:
        return None
    ref = {"id": oid_str(doc["_id"]), "name": doc.get("name", "")}
    if with_email:
        ref["email"] = doc.get("email")
    if doc.get("staff_id"):
        ref["staffId"] = doc["staff_id"]
    if doc.get("department"):
        ref["department"] = doc["department"]
    return ref
