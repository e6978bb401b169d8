"""Batch mode, selection and full-recovery orchestration.

A full recovery sets the recovered amount to exactly the receivable, today's
date and no reason, which makes the task RecoveredMatched by construction.
Inside a batch every eligible task gets exactly one outcome; a failed write
is counted, logged and never aborts the remaining items.
"""
from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from rebate_service.config import BATCH_SETTINGS
from rebate_service.exceptions import RebateValidationError
from rebate_service.integrations.base import CollaborationSource
from rebate_service.models.db.enums import BatchMode, ValidationCode
from rebate_service.models.schemas.rebates import RebateTask
from rebate_service.services.recovery_classifier import is_pending
from rebate_service.services.recovery_commands import require_task
from rebate_service.services.session import RebateSession
from rebate_service.utils import get_logger, log_business_event, log_performance
from rebate_service.utils.money import round_money
from rebate_service.utils.time import elapsed_ms, today_iso

logger = get_logger(__name__)

NOTHING_TO_RECOVER = "Nothing to recover: no selected task is pending"


@dataclass
class BatchPreview:
    eligible_count: int
    total_amount: float
    recovery_date: str


@dataclass
class BatchRecoveryOutcome:
    success_count: int = 0
    failed_count: int = 0
    nothing_to_recover: bool = False

    @property
    def processed(self) -> int:
        return self.success_count + self.failed_count

    @property
    def message(self) -> str:
        if self.nothing_to_recover:
            return NOTHING_TO_RECOVER
        if self.failed_count == 0:
            return f"Recovered {self.success_count} record(s)"
        return f"Done: {self.success_count} succeeded, {self.failed_count} failed"


def full_recovery_patch(task: RebateTask, recovery_date: str) -> Dict[str, Any]:
    return {
        "actual_rebate": task.receivable,
        "recovery_date": recovery_date,
        "discrepancy_reason": None,
        "evidence_urls": list(task.evidence_urls),
    }


class BatchRecoveryOrchestrator:
    """Selection management plus bulk and quick full recovery."""

    def __init__(self, collaborations: CollaborationSource, max_concurrency: Optional[int] = None):
        self.collaborations = collaborations
        self.max_concurrency = max(1, int(max_concurrency or BATCH_SETTINGS["max_concurrency"]))

    # ----------------------------- mode & selection ----------------------------- #

    def enter_batch_mode(self, session: RebateSession) -> None:
        session.batch_mode = BatchMode.ON

    def exit_batch_mode(self, session: RebateSession) -> None:
        # Selection is kept; only clear_selection empties it.
        session.batch_mode = BatchMode.OFF

    def toggle_selection(self, session: RebateSession, task_id: str) -> bool:
        """Flip one id in the selection. Returns the new selected state."""
        if task_id in session.selected_ids:
            session.selected_ids.discard(task_id)
            return False
        session.selected_ids.add(task_id)
        return True

    def select_all_eligible(self, session: RebateSession) -> List[str]:
        """Replace the selection with the pending tasks of the current page only."""
        window = session.page_window()
        ids = [t.id for t in window.tasks if is_pending(t)]
        session.selected_ids = set(ids)
        return ids

    def clear_selection(self, session: RebateSession) -> None:
        session.selected_ids.clear()

    # -------------------------------- recovery -------------------------------- #

    def eligible_tasks(self, session: RebateSession, selection: Optional[Iterable[str]] = None) -> List[RebateTask]:
        """Selected tasks that are still pending. Unknown ids are dropped."""
        wanted = set(session.selected_ids if selection is None else selection)
        return [t for t in session.tasks if t.id in wanted and is_pending(t)]

    def preview(self, session: RebateSession, selection: Optional[Iterable[str]] = None) -> BatchPreview:
        tasks = self.eligible_tasks(session, selection)
        return BatchPreview(
            eligible_count=len(tasks),
            total_amount=round_money(sum(t.receivable for t in tasks)),
            recovery_date=today_iso(),
        )

    async def _recover_one(self, task: RebateTask, recovery_date: str, semaphore: asyncio.Semaphore) -> bool:
        async with semaphore:
            try:
                await self.collaborations.patch_collaboration(task.id, full_recovery_patch(task, recovery_date))
                return True
            except Exception as e:
                logger.error(
                    "Batch full recovery failed for task",
                    task_id=task.id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                return False

    async def batch_full_recovery(
        self,
        session: RebateSession,
        selection: Optional[Iterable[str]] = None,
    ) -> BatchRecoveryOutcome:
        """Fully recover every selected pending task.

        An empty eligible set reports nothing_to_recover and changes nothing.
        Otherwise batch mode is switched off once all items have an outcome;
        the caller reloads.
        """
        tasks = self.eligible_tasks(session, selection)
        if not tasks:
            logger.info("Batch full recovery skipped; nothing to recover", client_id=session.client_id)
            return BatchRecoveryOutcome(nothing_to_recover=True)

        start = time.perf_counter()
        recovery_date = today_iso()
        semaphore = asyncio.Semaphore(self.max_concurrency)
        results = await asyncio.gather(
            *(self._recover_one(task, recovery_date, semaphore) for task in tasks)
        )
        outcome = BatchRecoveryOutcome(
            success_count=sum(1 for ok in results if ok),
            failed_count=sum(1 for ok in results if not ok),
        )
        session.batch_mode = BatchMode.OFF

        failed_ids = [task.id for task, ok in zip(tasks, results) if not ok]
        log_business_event(
            event_type="batch_recovery_completed",
            details={
                "eligible_count": len(tasks),
                "success_count": outcome.success_count,
                "failed_count": outcome.failed_count,
                "failed_task_ids": failed_ids or None,
                "recovery_date": recovery_date,
            },
            client_id=session.client_id,
        )
        log_performance(
            operation="batch_full_recovery",
            duration_ms=elapsed_ms(start),
            additional_data={"items": len(tasks), "max_concurrency": self.max_concurrency},
        )
        return outcome

    async def quick_full_recovery(self, session: RebateSession, task_id: str) -> Dict[str, Any]:
        """Single-task full recovery; remote failures propagate to the caller."""
        task = require_task(session, task_id)
        if not is_pending(task):
            raise RebateValidationError(ValidationCode.ALREADY_RECOVERED, f"Task {task_id} is already recovered")
        patch = full_recovery_patch(task, today_iso())
        await self.collaborations.patch_collaboration(task_id, patch)
        log_business_event(
            event_type="quick_recovery_completed",
            details={"task_id": task_id, "amount": task.receivable},
            client_id=session.client_id,
        )
        return patch


__all__ = [
    "NOTHING_TO_RECOVER",
    "BatchPreview",
    "BatchRecoveryOutcome",
    "full_recovery_patch",
    "BatchRecoveryOrchestrator",
]
