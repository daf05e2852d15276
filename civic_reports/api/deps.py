from fastapi import Depends

from civic_reports.core.config import Settings
from civic_reports.db.mongo import Mongo
from civic_reports.db.session import get_app_settings, get_db
from civic_reports.repositories.audit_repository import AuditRepository
from civic_reports.repositories.report_repository import ReportRepository
from civic_reports.repositories.user_repository import UserRepository
from civic_reports.services.audit_service import AuditService
from civic_reports.services.reports_service import ReportService
from civic_reports.services.storage import PhotoStorage


def get_user_repo(mongo: Mongo = Depends(get_db)) -> UserRepository:
    return UserRepository(mongo.users)


def get_audit_service(mongo: Mongo = Depends(get_db)) -> AuditService:
    return AuditService(AuditRepository(mongo.audit_logs))


def get_report_service(
    mongo: Mongo = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    audit: AuditService = Depends(get_audit_service),
) -> ReportService:
    return ReportService(
        reports=ReportRepository(mongo.reports, mongo.counters),
        users=UserRepository(mongo.users),
        storage=PhotoStorage(settings),
        audit=audit,
        settings=settings,
    )
