"""Abstract boundaries for the upstream systems the rebate services consume.

* CollaborationSource: list / read-one / partial-patch of collaboration records
* ProjectLookup: project id -> name (display join only)
* BlobStore: evidence screenshot upload / delete

Every method is a coroutine; callers treat each call as a suspension point.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from rebate_service.models.schemas.collaborations import CollaborationRecord, Project


@dataclass(frozen=True)
class EvidenceFile:
    """An uploaded proof-of-payment screenshot awaiting blob storage."""
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


class CollaborationSource(ABC):
    @abstractmethod
    async def list_collaborations(self) -> List[CollaborationRecord]:
        """Return every collaboration record visible to the operator."""

    @abstractmethod
    async def get_collaboration(self, collaboration_id: str) -> Optional[CollaborationRecord]:
        """Return a single record, or None if it does not exist."""

    @abstractmethod
    async def patch_collaboration(self, collaboration_id: str, fields: Dict[str, Any]) -> None:
        """Partially update a record. ``fields`` uses service-level (snake_case) names."""


class ProjectLookup(ABC):
    @abstractmethod
    async def list_projects(self) -> List[Project]:
        """Return id/name pairs for every project."""


class BlobStore(ABC):
    @abstractmethod
    async def upload(self, file: EvidenceFile) -> str:
        """Store a file and return its public URL."""

    @abstractmethod
    async def delete(self, url: str, project_id: Optional[str] = None) -> None:
        """Delete a previously uploaded file."""


@dataclass
class Integrations:
    """Bundle of upstream clients handed to the controllers."""
    collaborations: CollaborationSource
    projects: ProjectLookup
    blobs: BlobStore

    async def close(self) -> None:
        for client in {id(c): c for c in (self.collaborations, self.projects, self.blobs)}.values():
            closer = getattr(client, "close", None)
            if closer is not None:
                await closer()


__all__ = [
    "EvidenceFile",
    "CollaborationSource",
    "ProjectLookup",
    "BlobStore",
    "Integrations",
]
