from civic_reports.repositories.audit_repository import AuditRepository
from civic_reports.utils.mongo import oid_str, utcnow


def actor_ref(user: dict | None) -> dict:
    if not user:
        return {"role": "anonymous"}
    return {"role": user.get("role"), "id": oid_str(user.get("_id")), "email": user.get("email")}


class AuditService:
    def __init__(self, repo: AuditRepository):
        self.repo = repo

    async def list_logs(self, limit: int = 100, type_: str | None = None, entity_id: str | None = None):
        return await self.repo.list(limit, type_=type_, entity_id=entity_id)

    async def log_event(self, event: dict):
        await self.repo.create(event)

    async def record(self, type_: str, actor: dict | None, entity: dict, message: str, meta: dict | None = None):
        await self.log_event({
            "time": utcnow(),
            "type": type_,
            "actor": actor_ref(actor),
            "entity": entity,
            "message": message,
            "meta": meta or {},
        })
