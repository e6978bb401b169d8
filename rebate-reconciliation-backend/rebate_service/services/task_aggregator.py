"""Projects upstream collaboration records into rebate tasks."""
from __future__ import annotations

from typing import Iterable, List

from rebate_service.config import UPSTREAM_VOCABULARY
from rebate_service.models.db.enums import CollaborationStatus, TalentSource
from rebate_service.models.schemas.collaborations import CollaborationRecord, Project
from rebate_service.models.schemas.rebates import RebateTask


def is_rebate_eligible(record: CollaborationRecord) -> bool:
    """Wild talent, published, and a positive receivable rebate."""
    return (
        record.talent_source == TalentSource.WILD_TALENT.value
        and record.status == CollaborationStatus.PUBLISHED.value
        and record.rebate_receivable is not None
        and record.rebate_receivable > 0
    )


def aggregate_rebate_tasks(
    records: Iterable[CollaborationRecord],
    projects: Iterable[Project],
) -> List[RebateTask]:
    """Build the full task list. Input order is preserved; nothing is re-sorted."""
    project_names = {p.id: p.name for p in projects}
    tasks: List[RebateTask] = []
    for record in records:
        if not is_rebate_eligible(record):
            continue
        tasks.append(
            RebateTask(
                id=record.id,
                project_id=record.project_id,
                project_name=project_names.get(record.project_id or "", UPSTREAM_VOCABULARY["unknown_project"]),
                talent_id=record.talent_id,
                talent_name=record.talent_name or UPSTREAM_VOCABULARY["unknown_talent"],
                talent_source=record.talent_source,
                publish_date=record.publish_date,
                receivable=float(record.rebate_receivable or 0),
                actual_rebate=record.actual_rebate,
                recovery_date=record.recovery_date,
                discrepancy_reason=record.discrepancy_reason,
                discrepancy_reason_updated_at=record.discrepancy_reason_updated_at,
                evidence_urls=list(record.evidence_urls),
            )
        )
    return tasks


__all__ = ["is_rebate_eligible", "aggregate_rebate_tasks"]
