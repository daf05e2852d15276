from civic_reports.core.enums import ReportStatus
from civic_reports.services.reports_service import ReportService


async def staff_dashboard(service: ReportService, actor: dict) -> dict:
    """
    Workload of the acting staff member plus global totals for triage.
    """
    me = actor["_id"]
    repo = service.reports

    mine = await repo.status_counts({"assigned_staff_id": me})
    overall = await repo.status_counts({})

    # every status shows up, even with zero reports
    status_counts = {s.value: mine.get(s.value, 0) for s in ReportStatus}
    totals = {s.value: overall.get(s.value, 0) for s in ReportStatus}

    assigned = await repo.latest({"assigned_staff_id": me}, "created_at", 10)
    recent = await repo.latest(
        {"$or": [{"assigned_staff_id": me}, {"staff_comments.staff_id": me}]},
        "updated_at",
        5,
    )
    unassigned = await repo.latest(
        {"assigned_staff_id": None, "status": ReportStatus.submitted.value},
        "created_at",
        10,
    )

    return {
        "statusCounts": status_counts,
        "totals": {"all": sum(totals.values()), "byStatus": totals},
        "assignedReports": await service.present_many(assigned, actor),
        "recentActivity": await service.present_many(recent, actor),
        "unassignedQueue": await service.present_many(unassigned, actor),
    }
