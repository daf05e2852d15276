from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from fastapi import UploadFile
from pydantic import ValidationError as PydanticValidationError
from pymongo.errors import DuplicateKeyError

from civic_reports.core.config import Settings
from civic_reports.core.errors import AppError, NotFoundError, ValidationError, pydantic_errors
from civic_reports.mapper.reports_mapper import referenced_user_ids, to_report_out
from civic_reports.models.report import GeoPoint, ReportDocument
from civic_reports.repositories.report_repository import ReportRepository
from civic_reports.repositories.user_repository import UserRepository
from civic_reports.schemas.report import ReportCreate, ReportFilters
from civic_reports.services import access, lifecycle, query
from civic_reports.services.audit_service import AuditService
from civic_reports.services.storage import PhotoStorage
from civic_reports.utils.mongo import parse_oid, utcnow

logger = logging.getLogger(__name__)

ID_RETRIES = 12


class ReportService:
    def __init__(
        self,
        reports: ReportRepository,
        users: UserRepository,
        storage: PhotoStorage,
        audit: AuditService,
        settings: Settings,
    ):
        self.reports = reports
        self.users = users
        self.storage = storage
        self.audit = audit
        self.settings = settings

    # -------------------------
    # Helpers
    # -------------------------
    def _make_report_id(self, year: int, seq: int) -> str:
        return f"{self.settings.report_id_prefix}-{year}-{seq:05d}"

    async def present_many(self, docs: Sequence[dict], actor: Optional[dict]) -> List[dict]:
        users = await self.users.get_by_ids(referenced_user_ids(docs))
        return [
            to_report_out(d, users, community=access.wants_community_view(d, actor))
            for d in docs
        ]

    async def present(self, doc: dict, actor: Optional[dict]) -> dict:
        return (await self.present_many([doc], actor))[0]

    async def _load(self, ident: str, actor: Optional[dict]) -> dict:
        return access.ensure_readable(await self.reports.find(ident), actor)

    def _entity(self, report: dict) -> dict:
        return {"type": "report", "id": report.get("report_id")}

    # -------------------------
    # Create
    # -------------------------
    async def create(
        self,
        actor: dict,
        form: dict,
        photos: Sequence[UploadFile] = (),
        idempotency_key: Optional[str] = None,
    ) -> tuple[dict, bool]:
        """Returns (report, created). A replayed idempotency key returns the first report."""
        try:
            body = ReportCreate(**form)
        except PydanticValidationError as exc:
            raise ValidationError("Validation failed", pydantic_errors(exc))

        if idempotency_key:
            existing = await self.reports.find_by_idempotency_key(actor["_id"], idempotency_key)
            if existing:
                logger.info("Idempotent replay of %s for key %s", existing["report_id"], idempotency_key)
                return existing, False

        staged = await self.storage.stage(photos)
        try:
            doc, created = await self._insert(actor, body, staged, idempotency_key)
        except Exception:
            self.storage.discard(staged)
            raise

        if not created:
            # a concurrent request with the same key won the insert
            self.storage.discard(staged)
            logger.info("Idempotent replay of %s for key %s", doc["report_id"], idempotency_key)
            return doc, False

        self.storage.promote(staged)
        logger.info("New report created: %s by %s", doc["report_id"], actor.get("email"))

        await self.audit.record(
            "report.create",
            actor,
            self._entity(doc),
            f"Report created: {doc['report_id']}",
            {"category": doc["category"], "priority": doc["priority"], "photos": len(staged)},
        )
        return doc, True

    async def _insert(
        self, actor: dict, body: ReportCreate, photos: List[dict], idempotency_key: Optional[str]
    ) -> tuple[dict, bool]:
        """
        Insert with a fresh report id, retrying on id collisions.

        A collision on (citizen_id, idempotency_key) means another request
        with the same key got there first; that report is returned instead.
        """
        now = utcnow()
        year = now.year

        for attempt in range(ID_RETRIES):
            seq = await self.reports.next_seq_for_year(year)
            try:
                doc = ReportDocument(
                    report_id=self._make_report_id(year, seq),
                    title=body.title,
                    description=body.description,
                    category=body.category,
                    priority=body.priority,
                    location=GeoPoint(coordinates=[body.longitude, body.latitude], address=body.address),
                    citizen_id=actor["_id"],
                    photos=photos,
                    is_public=body.is_public,
                    idempotency_key=idempotency_key,
                    created_at=now,
                    updated_at=now,
                ).to_mongo()
            except PydanticValidationError as exc:
                raise ValidationError("Validation failed", pydantic_errors(exc))

            try:
                return await self.reports.insert(doc), True
            except DuplicateKeyError as exc:
                key_pattern = (exc.details or {}).get("keyPattern") or {}
                if idempotency_key and "idempotency_key" in key_pattern:
                    existing = await self.reports.find_by_idempotency_key(actor["_id"], idempotency_key)
                    if existing:
                        return existing, False
                    raise
                if attempt == 0:
                    await self.reports.sync_counter_to_latest(self.settings.report_id_prefix, year)
                continue

        raise AppError("Failed to generate unique report id after retries")

    # -------------------------
    # Read
    # -------------------------
    async def get(self, ident: str, actor: Optional[dict]) -> dict:
        return await self._load(ident, actor)

    async def list(
        self,
        actor: Optional[dict],
        criteria: ReportFilters,
        page: int,
        limit: int,
        mine: Optional[bool] = None,
        assigned: bool = False,
    ) -> dict:
        scope = access.read_scope(actor, mine=mine, assigned=assigned)
        filters = query.build_report_filter(criteria, scope, self.settings.nearby_default_radius_m)
        sort = query.parse_sort(criteria.sort_by)
        skip, limit = query.page_window(page, limit)

        rows, total = await self.reports.search(filters, sort, skip, limit)
        reports = await self.present_many(rows, actor)
        return {
            "count": len(reports),
            "total": total,
            "pages": query.total_pages(total, limit),
            "currentPage": page,
            "reports": reports,
        }

    # -------------------------
    # Citizen writes
    # -------------------------
    async def citizen_update(self, ident: str, actor: dict, fields: dict) -> dict:
        report = await self._load(ident, actor)
        updates = lifecycle.citizen_update(report, actor, fields)
        doc = await self.reports.apply(report, updates)

        changes = {
            k: {"from": report.get(k), "to": v}
            for k, v in updates["$set"].items()
            if k != "updated_at" and report.get(k) != v
        }
        logger.info("Report updated by citizen: %s", doc["report_id"])
        await self.audit.record("report.update", actor, self._entity(doc), f"Report updated: {doc['report_id']}", {"changes": changes})
        return doc

    async def delete(self, ident: str, actor: dict) -> None:
        report = await self._load(ident, actor)
        lifecycle.check_delete(report, actor)

        await self.reports.delete(report)
        self.storage.delete_photos(report.get("photos") or [])

        logger.info("Report deleted: %s by %s", report["report_id"], actor.get("email"))
        await self.audit.record(
            "report.delete",
            actor,
            self._entity(report),
            f"Report deleted: {report['report_id']}",
            {"snapshot": {"status": report.get("status"), "category": report.get("category")}},
        )

    async def submit_feedback(self, ident: str, actor: dict, rating: int, comment: Optional[str]) -> dict:
        report = await self._load(ident, actor)
        doc = await self.reports.apply(report, lifecycle.submit_feedback(report, actor, rating, comment))

        logger.info("Feedback submitted for report: %s", doc["report_id"])
        await self.audit.record("report.feedback", actor, self._entity(doc), "Citizen feedback submitted", {"rating": rating})
        return doc

    # -------------------------
    # Staff writes
    # -------------------------
    async def assign(self, ident: str, actor: dict, staff_id=None) -> dict:
        access.ensure_staff(actor)
        report = await self._load(ident, actor)

        if staff_id is not None:
            staff = await self.users.get(parse_oid(staff_id))
            if not staff:
                raise NotFoundError("Staff member not found")
            if not staff.get("is_active", True):
                raise ValidationError("Invalid staff member")
        elif access.is_admin(actor):
            raise ValidationError("staffId is required when an admin assigns a report")
        else:
            staff = actor

        doc = await self.reports.apply(report, lifecycle.assign(report, staff))

        logger.info("Report %s assigned to staff %s", doc["report_id"], staff.get("staff_id") or staff["_id"])
        await self.audit.record(
            "report.assign",
            actor,
            self._entity(doc),
            f"Report assigned: {doc['report_id']}",
            {"staff_id": str(staff["_id"]), "previous": str(report.get("assigned_staff_id") or "")},
        )
        return doc

    async def set_status(self, ident: str, actor: dict, new_status: str, resolution_details=None, estimated_date=None) -> dict:
        report = await self._load(ident, actor)
        updates = lifecycle.set_status(
            report,
            actor,
            new_status,
            resolution_details,
            estimated_date,
            restrict_to_assignee=self.settings.restrict_status_to_assignee,
        )
        doc = await self.reports.apply(report, updates)

        logger.info("Report %s status %s -> %s by %s", doc["report_id"], report.get("status"), new_status, actor.get("email"))
        await self.audit.record(
            "report.status_update",
            actor,
            self._entity(doc),
            f"Status changed {report.get('status')} -> {new_status}",
            {"from": report.get("status"), "to": new_status},
        )
        return doc

    async def add_comment(self, ident: str, actor: dict, text: str) -> dict:
        report = await self._load(ident, actor)
        doc = await self.reports.apply(report, lifecycle.add_comment(report, actor, text))

        logger.info("Comment added to report %s by %s", doc["report_id"], actor.get("email"))
        await self.audit.record("report.comment", actor, self._entity(doc), "Staff comment added")
        return doc
