from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from pymongo import ReturnDocument

from civic_reports.core.errors import ConflictError
from civic_reports.utils.mongo import parse_oid


class ReportRepository:
    def __init__(self, reports_col, counters_col):
        self.col = reports_col
        self.counters = counters_col

    async def find(self, ident: str) -> Optional[Dict[str, Any]]:
        """Look a report up by Mongo _id or by its human readable report_id."""
        oid = parse_oid(ident)
        if oid is not None:
            doc = await self.col.find_one({"_id": oid})
            if doc:
                return doc
        return await self.col.find_one({"report_id": ident})

    async def find_by_idempotency_key(self, citizen_id: ObjectId, key: str) -> Optional[Dict[str, Any]]:
        return await self.col.find_one({"citizen_id": citizen_id, "idempotency_key": key})

    async def next_seq_for_year(self, year: int) -> int:
        """
        Atomic counter per year:
        counters: { _id: "reports_2026", seq: 4 }
        """
        doc = await self.counters.find_one_and_update(
            {"_id": f"reports_{year}"},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return int(doc["seq"])

    async def sync_counter_to_latest(self, prefix: str, year: int) -> int:
        """
        Self-healing:
        if the counter is behind existing reports, move it to the latest seq in the DB.
        """
        last = await self.col.find_one(
            {"report_id": {"$regex": f"^{prefix}-{year}-"}},
            sort=[("report_id", -1)],
        )
        max_seq = 0
        if last and last.get("report_id"):
            try:
                max_seq = int(last["report_id"].split("-")[-1])
            except ValueError:
                max_seq = 0

        await self.counters.update_one(
            {"_id": f"reports_{year}"},
            {"$set": {"seq": max_seq}},
            upsert=True,
        )
        return max_seq

    async def insert(self, document: Dict[str, Any]) -> Dict[str, Any]:
        result = await self.col.insert_one(document)
        document["_id"] = result.inserted_id
        return document

    async def apply(self, report: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
        """
        Conditional write against the version the caller read. A concurrent
        writer that got there first bumps the version and this call fails.
        """
        update = dict(update)
        inc = dict(update.get("$inc") or {})
        inc["version"] = 1
        update["$inc"] = inc

        doc = await self.col.find_one_and_update(
            {"_id": report["_id"], "version": report.get("version")},
            update,
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            raise ConflictError("Report was modified by someone else, reload and try again")
        return doc

    async def delete(self, report: Dict[str, Any]) -> bool:
        res = await self.col.delete_one({"_id": report["_id"], "version": report.get("version")})
        if res.deleted_count != 1:
            raise ConflictError("Report was modified by someone else, reload and try again")
        return True

    async def search(
        self,
        filters: Dict[str, Any],
        sort: List[Tuple[str, int]],
        skip: int,
        limit: int,
    ) -> Tuple[List[Dict[str, Any]], int]:
        cursor = self.col.find(filters).sort(sort).skip(skip).limit(limit)
        rows = await cursor.to_list(length=limit)
        total = await self.col.count_documents(filters)
        return rows, total

    async def status_counts(self, match: Dict[str, Any]) -> Dict[str, int]:
        pipeline = [
            {"$match": match},
            {"$group": {"_id": "$status", "count": {"$sum": 1}}},
        ]
        rows = await self.col.aggregate(pipeline).to_list(length=None)
        return {row["_id"]: row["count"] for row in rows}

    async def latest(self, filters: Dict[str, Any], sort_field: str, limit: int) -> List[Dict[str, Any]]:
        return await self.col.find(filters).sort([(sort_field, -1), ("_id", -1)]).to_list(length=limit)
