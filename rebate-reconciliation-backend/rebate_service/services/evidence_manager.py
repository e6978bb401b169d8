"""Proof-of-payment evidence: append uploads, remove single screenshots.

Every mutation writes the task's entire evidence array back upstream.
"""
from __future__ import annotations

import asyncio
from typing import List, Optional, Sequence

from rebate_service.config import REBATE_SETTINGS
from rebate_service.exceptions import RebateValidationError, RemoteError
from rebate_service.integrations.base import BlobStore, CollaborationSource, EvidenceFile
from rebate_service.models.db.enums import ValidationCode
from rebate_service.services.recovery_commands import delete_blobs_settled, require_task
from rebate_service.services.session import RebateSession
from rebate_service.utils import get_logger, log_business_event

logger = get_logger(__name__)


class EvidenceManager:
    def __init__(self, collaborations: CollaborationSource, blobs: BlobStore, max_evidence: Optional[int] = None):
        self.collaborations = collaborations
        self.blobs = blobs
        self.max_evidence = int(max_evidence or REBATE_SETTINGS["max_evidence"])

    async def add_evidence(self, session: RebateSession, task_id: str, files: Sequence[EvidenceFile]) -> List[str]:
        """Upload files concurrently and append their URLs in the given file order.

        If any upload fails nothing is written; URLs that did upload are
        cleaned up best-effort and RemoteError is raised.
        """
        task = require_task(session, task_id)
        if not files:
            raise RebateValidationError(ValidationCode.INVALID_INPUT, "No evidence files supplied")
        current = list(task.evidence_urls)
        if len(current) + len(files) > self.max_evidence:
            remaining = max(0, self.max_evidence - len(current))
            raise RebateValidationError(
                ValidationCode.EVIDENCE_LIMIT,
                f"At most {self.max_evidence} evidence files per task; {remaining} more allowed",
            )

        # gather returns results in argument order, whatever order uploads finish in
        results = await asyncio.gather(
            *(self.blobs.upload(f) for f in files),
            return_exceptions=True,
        )
        failed = [(f.filename, r) for f, r in zip(files, results) if isinstance(r, BaseException)]
        if failed:
            uploaded = [r for r in results if isinstance(r, str)]
            logger.error(
                "Evidence upload failed",
                task_id=task_id,
                failed_files=[name for name, _ in failed],
                error=str(failed[0][1]),
            )
            await delete_blobs_settled(self.blobs, uploaded, task.project_id)
            raise RemoteError("upload_evidence", f"{len(failed)} of {len(files)} uploads failed")

        new_urls = [str(r) for r in results]
        updated = current + new_urls
        await self.collaborations.patch_collaboration(task_id, {"evidence_urls": updated})

        log_business_event(
            event_type="evidence_added",
            details={"task_id": task_id, "added": len(new_urls), "evidence_count": len(updated)},
            client_id=session.client_id,
        )
        return updated

    async def remove_evidence(self, session: RebateSession, task_id: str, index: int) -> List[str]:
        """Remove one screenshot by position.

        The blob delete is attempted first; its failure is logged and the array
        write-back proceeds regardless.
        """
        task = require_task(session, task_id)
        current = list(task.evidence_urls)
        if index < 0 or index >= len(current):
            raise RebateValidationError(ValidationCode.INVALID_INPUT, f"No evidence at position {index}")

        url = current[index]
        cleanup_failures = await delete_blobs_settled(self.blobs, [url], task.project_id)

        updated = current[:index] + current[index + 1:]
        await self.collaborations.patch_collaboration(task_id, {"evidence_urls": updated})

        log_business_event(
            event_type="evidence_removed",
            details={
                "task_id": task_id,
                "url": url,
                "blob_deleted": not cleanup_failures,
                "evidence_count": len(updated),
            },
            client_id=session.client_id,
        )
        return updated


__all__ = ["EvidenceManager"]
