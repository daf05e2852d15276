from typing import Optional

from civic_reports.utils.mongo import serialize_mongo


class AuditRepository:
    def __init__(self, collection):
        self.collection = collection

    async def list(self, limit: int = 100, type_: Optional[str] = None, entity_id: Optional[str] = None):
        """Newest first; optionally only one event type or one entity's history."""
        filt = {}
        if type_:
            filt["type"] = type_
        if entity_id:
            filt["entity.id"] = entity_id

        events = []
        async for doc in self.collection.find(filt).sort([("time", -1), ("_id", -1)]).limit(limit):
            doc["id"] = str(doc.pop("_id"))
            events.append(serialize_mongo(doc))
        return events

    async def create(self, event: dict):
        await self.collection.insert_one(event)
