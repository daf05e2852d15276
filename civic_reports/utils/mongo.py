from datetime import datetime, timezone

from bson import ObjectId


def utcnow() -> datetime:
    # naive UTC, which is what pymongo hands back by default
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_oid(x) -> ObjectId | None:
    if isinstance(x, ObjectId):
        return x
    if not x:
        return None
    x = str(x).strip()
    if not ObjectId.is_valid(x):
        return None
    return ObjectId(x)


def oid_str(x) -> str | None:
    if x is None:
        return None
    return str(x)


def serialize_mongo(obj):
    """
    Recursively convert MongoDB objects to JSON-safe values
    """
    if isinstance(obj, ObjectId):
        return str(obj)

    if isinstance(obj, datetime):
        return obj.isoformat()

    if isinstance(obj, list):
        return [serialize_mongo(i) for i in obj]

    if isinstance(obj, dict):
        return {k: serialize_mongo(v) for k, v in obj.items()}

    return obj
