from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId

from civic_reports.utils.mongo import utcnow


def normalize_email(email: str) -> str:
    return (email or "").lower().strip()


class UserRepository:
    def __init__(self, col):
        self.col = col

    async def get(self, user_id: ObjectId) -> Optional[Dict[str, Any]]:
        return await self.col.find_one({"_id": user_id})

    async def get_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return await self.col.find_one({"email": normalize_email(email)})

    async def get_by_ids(self, ids: Iterable[ObjectId]) -> Dict[str, dict]:
        obj_ids = [ObjectId(x) for x in ids if x]
        if not obj_ids:
            return {}

        cursor = self.col.find(
            {"_id": {"$in": obj_ids}},
            {"name": 1, "email": 1, "role": 1, "staff_id": 1, "department": 1},
        )

        users = {}
        async for u in cursor:
            users[str(u["_id"])] = u
        return users

    async def insert(self, doc: dict) -> dict:
        res = await self.col.insert_one(doc)
        doc["_id"] = res.inserted_id
        return doc

    async def update(self, user_id: ObjectId, fields: dict) -> Optional[dict]:
        fields = dict(fields)
        fields["updated_at"] = utcnow()
        await self.col.update_one({"_id": user_id}, {"$set": fields})
        return await self.get(user_id)

    async def list(self, role: str | None = None, q: str | None = None, limit: int = 200) -> List[dict]:
        filt: dict = {}
        if role:
            filt["role"] = role
        if q:
            pattern = re.escape(q)
            filt["$or"] = [
                {"name": {"$regex": pattern, "$options": "i"}},
                {"email": {"$regex": pattern, "$options": "i"}},
                {"staff_id": {"$regex": pattern, "$options": "i"}},
            ]
        return await self.col.find(filt).sort("created_at", -1).to_list(length=limit)
