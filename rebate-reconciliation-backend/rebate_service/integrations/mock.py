"""
In-memory upstream integrations (MOCK IMPLEMENTATION).

Used for local development (``INTEGRATIONS_MODE=mock``) and by the test
suite. Behaviour mirrors the real upstream closely enough for the rebate
services: patches merge into the stored record, the reason timestamp is
stamped when the reason changes, and uploads return stable URLs.

Failures can be injected deterministically (per collaboration id / blob URL /
filename) or randomly via MOCK_FAILURE_RATE; upload latency can be set per
filename to exercise completion-order independence.
"""
from __future__ import annotations

import asyncio
import random
from typing import Any, Dict, Iterable, List, Optional

from rebate_service.config import MOCK_FAILURE_RATE
from rebate_service.exceptions import RemoteError
from rebate_service.integrations.base import BlobStore, CollaborationSource, EvidenceFile, ProjectLookup
from rebate_service.models.schemas.collaborations import CollaborationRecord, Project
from rebate_service.utils import get_logger
from rebate_service.utils.time import utc_now

logger = get_logger(__name__)


class InMemoryCollaborationSource(CollaborationSource, ProjectLookup):
    """Collaboration records and projects held in process memory."""

    def __init__(
        self,
        records: Iterable[CollaborationRecord | Dict[str, Any]] = (),
        projects: Iterable[Project | Dict[str, Any]] = (),
        *,
        failure_rate: Optional[float] = None,
    ):
        self._records: Dict[str, CollaborationRecord] = {}
        for raw in records:
            record = raw if isinstance(raw, CollaborationRecord) else CollaborationRecord.model_validate(raw)
            self._records[record.id] = record
        self._projects: List[Project] = [
            p if isinstance(p, Project) else Project.model_validate(p) for p in projects
        ]
        self.failure_rate = MOCK_FAILURE_RATE if failure_rate is None else failure_rate
        self.fail_patch_ids: set[str] = set()
        self.fail_reads = False
        self.patch_calls: List[tuple[str, Dict[str, Any]]] = []

    def _maybe_fail(self, operation: str) -> None:
        if self.failure_rate and random.random() < self.failure_rate:
            logger.warning("Simulated upstream failure", operation=operation)
            raise RemoteError(operation, "simulated upstream failure", 503)

    def add(self, record: CollaborationRecord | Dict[str, Any]) -> CollaborationRecord:
        rec = record if isinstance(record, CollaborationRecord) else CollaborationRecord.model_validate(record)
        self._records[rec.id] = rec
        return rec

    def record(self, collaboration_id: str) -> CollaborationRecord:
        return self._records[collaboration_id]

    async def list_collaborations(self) -> List[CollaborationRecord]:
        await asyncio.sleep(0)
        if self.fail_reads:
            raise RemoteError("list_collaborations", "simulated read failure", 503)
        self._maybe_fail("list_collaborations")
        return [r.model_copy(deep=True) for r in self._records.values()]

    async def get_collaboration(self, collaboration_id: str) -> Optional[CollaborationRecord]:
        await asyncio.sleep(0)
        if self.fail_reads:
            raise RemoteError("get_collaboration", "simulated read failure", 503)
        record = self._records.get(collaboration_id)
        return record.model_copy(deep=True) if record else None

    async def patch_collaboration(self, collaboration_id: str, fields: Dict[str, Any]) -> None:
        await asyncio.sleep(0)
        if collaboration_id in self.fail_patch_ids:
            raise RemoteError("patch_collaboration", f"simulated failure for {collaboration_id}", 500)
        self._maybe_fail("patch_collaboration")
        record = self._records.get(collaboration_id)
        if record is None:
            raise RemoteError("patch_collaboration", f"collaboration {collaboration_id} not found", 404)
        update = dict(fields)
        if "evidence_urls" in update:
            update["evidence_urls"] = list(update["evidence_urls"] or [])
        if "discrepancy_reason" in update and update["discrepancy_reason"] != record.discrepancy_reason:
            update["discrepancy_reason_updated_at"] = utc_now() if update["discrepancy_reason"] else None
        self._records[collaboration_id] = record.model_copy(update=update)
        self.patch_calls.append((collaboration_id, dict(fields)))

    async def list_projects(self) -> List[Project]:
        await asyncio.sleep(0)
        if self.fail_reads:
            raise RemoteError("list_projects", "simulated read failure", 503)
        return list(self._projects)


class InMemoryBlobStore(BlobStore):
    """Blob store keeping uploaded bytes in a dict keyed by URL."""

    def __init__(self, base_url: str = "https://blobs.mock/evidence", *, failure_rate: Optional[float] = None):
        self.base_url = base_url.rstrip("/")
        self.blobs: Dict[str, bytes] = {}
        self.failure_rate = MOCK_FAILURE_RATE if failure_rate is None else failure_rate
        self.upload_delays: Dict[str, float] = {}
        self.fail_upload_names: set[str] = set()
        self.fail_delete_urls: set[str] = set()
        self.completed_uploads: List[str] = []
        self.delete_calls: List[str] = []
        self._counter = 0

    async def upload(self, file: EvidenceFile) -> str:
        self._counter += 1
        sequence = self._counter
        await asyncio.sleep(self.upload_delays.get(file.filename, 0))
        if file.filename in self.fail_upload_names:
            raise RemoteError("upload_evidence", f"simulated failure for {file.filename}", 500)
        if self.failure_rate and random.random() < self.failure_rate:
            raise RemoteError("upload_evidence", "simulated upstream failure", 503)
        url = f"{self.base_url}/{sequence}-{file.filename}"
        self.blobs[url] = file.content
        self.completed_uploads.append(file.filename)
        return url

    async def delete(self, url: str, project_id: Optional[str] = None) -> None:
        await asyncio.sleep(0)
        self.delete_calls.append(url)
        if url in self.fail_delete_urls:
            raise RemoteError("delete_evidence", f"simulated failure for {url}", 500)
        self.blobs.pop(url, None)


__all__ = ["InMemoryCollaborationSource", "InMemoryBlobStore"]
