"""Single-task recovery commands: save and delete.

Validation runs entirely before the first upstream call, so a rejected save
never mutates anything. Deleting a recovery is two ordered, non-transactional
phases: best-effort blob cleanup, then clearing the record regardless of how
the cleanup went.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from rebate_service.exceptions import RebateValidationError, StorageCleanupError, TaskNotFoundError
from rebate_service.integrations.base import BlobStore, CollaborationSource
from rebate_service.models.db.enums import RecoveryState, ValidationCode
from rebate_service.models.schemas.rebates import RebateTask
from rebate_service.services.recovery_classifier import classify, has_discrepancy
from rebate_service.services.session import RebateSession
from rebate_service.utils import get_logger, log_business_event
from rebate_service.utils.money import parse_amount

logger = get_logger(__name__)


@dataclass
class ValidatedRecovery:
    amount: Optional[float]
    recovery_date: Optional[str]
    reason: Optional[str]
    has_discrepancy: bool


def validate_recovery_input(
    task: RebateTask,
    amount: Any,
    recovery_date: Optional[str],
    reason: Optional[str],
) -> ValidatedRecovery:
    """Check a recovery entry against the task. Raises RebateValidationError.

    Checks, in order: amount and date supplied together, amount numeric,
    reason present on discrepancy, evidence present on discrepancy.
    """
    amount_supplied = amount is not None and not (isinstance(amount, str) and not amount.strip())
    date_value = (recovery_date or "").strip() or None

    if amount_supplied != (date_value is not None):
        raise RebateValidationError(
            ValidationCode.INVALID_INPUT,
            "Recovered amount and recovery date must be supplied together",
        )
    try:
        parsed = parse_amount(amount)
    except ValueError:
        raise RebateValidationError(ValidationCode.INVALID_INPUT, "Recovered amount is not a valid number")

    reason_value = (reason or "").strip() or None
    discrepancy = has_discrepancy(parsed, task.receivable)
    if discrepancy and reason_value is None:
        raise RebateValidationError(
            ValidationCode.MISSING_REASON,
            "Recovered amount differs from the receivable; a discrepancy reason is required",
        )
    if discrepancy and not task.evidence_urls:
        raise RebateValidationError(
            ValidationCode.MISSING_EVIDENCE,
            "Recovered amount differs from the receivable; upload payment evidence before saving",
        )
    return ValidatedRecovery(
        amount=parsed,
        recovery_date=date_value,
        reason=reason_value,
        has_discrepancy=discrepancy,
    )


def require_task(session: RebateSession, task_id: str) -> RebateTask:
    task = session.get_task(task_id)
    if task is None:
        raise TaskNotFoundError(task_id)
    return task


async def delete_blobs_settled(
    blobs: BlobStore,
    urls: List[str],
    project_id: Optional[str],
) -> List[StorageCleanupError]:
    """Delete every URL concurrently; one failure never stops the others."""
    if not urls:
        return []
    results = await asyncio.gather(
        *(blobs.delete(url, project_id) for url in urls),
        return_exceptions=True,
    )
    failures: List[StorageCleanupError] = []
    for url, result in zip(urls, results):
        if isinstance(result, Exception):
            failure = StorageCleanupError(url, str(result))
            failures.append(failure)
            logger.warning(
                "Evidence blob cleanup failed; blob may be orphaned",
                url=url,
                project_id=project_id,
                error=str(result),
            )
    return failures


class RecoveryCommandProcessor:
    """Validates and applies save/delete for one task."""

    def __init__(self, collaborations: CollaborationSource, blobs: BlobStore):
        self.collaborations = collaborations
        self.blobs = blobs

    async def save_recovery(
        self,
        session: RebateSession,
        task_id: str,
        amount: Any = None,
        recovery_date: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Persist a recovery entry. The caller reloads the task list afterwards."""
        task = require_task(session, task_id)
        validated = validate_recovery_input(task, amount, recovery_date, reason)

        patch: Dict[str, Any] = {
            "actual_rebate": validated.amount,
            "recovery_date": validated.recovery_date,
            "discrepancy_reason": validated.reason,
            "evidence_urls": list(task.evidence_urls),
        }
        await self.collaborations.patch_collaboration(task_id, patch)

        logger.info(
            "Recovery saved",
            task_id=task_id,
            amount=validated.amount,
            has_discrepancy=validated.has_discrepancy,
        )
        log_business_event(
            event_type="recovery_saved",
            details={
                "task_id": task_id,
                "project_id": task.project_id,
                "receivable": task.receivable,
                "amount": validated.amount,
                "has_discrepancy": validated.has_discrepancy,
                "evidence_count": len(task.evidence_urls),
            },
            client_id=session.client_id,
        )
        return patch

    async def delete_recovery(self, session: RebateSession, task_id: str) -> bool:
        """Clear a recovery record and its evidence.

        Returns False (no-op) when the task has nothing recovered. Blob cleanup
        failures are logged and do not prevent clearing the record.
        """
        task = require_task(session, task_id)
        if classify(task) == RecoveryState.NOT_RECOVERED:
            logger.info("Delete recovery skipped; task not recovered", task_id=task_id)
            return False

        urls = list(task.evidence_urls)
        failures = await delete_blobs_settled(self.blobs, urls, task.project_id)

        await self.collaborations.patch_collaboration(
            task_id,
            {
                "actual_rebate": None,
                "recovery_date": None,
                "discrepancy_reason": None,
                "evidence_urls": [],
            },
        )
        log_business_event(
            event_type="recovery_deleted",
            details={
                "task_id": task_id,
                "project_id": task.project_id,
                "evidence_deleted": len(urls) - len(failures),
                "evidence_cleanup_failures": len(failures),
            },
            client_id=session.client_id,
        )
        return True


__all__ = [
    "ValidatedRecovery",
    "validate_recovery_input",
    "require_task",
    "delete_blobs_settled",
    "RecoveryCommandProcessor",
]
