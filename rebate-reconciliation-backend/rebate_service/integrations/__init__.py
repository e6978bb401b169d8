"""
Integrations package initialization.
Exports the upstream boundaries and builds the configured client bundle.
"""
from rebate_service.config import INTEGRATIONS_MODE
from rebate_service.utils import get_logger

from .base import BlobStore, CollaborationSource, EvidenceFile, Integrations, ProjectLookup
from .blob_store import HttpBlobStore
from .collaboration_api import CollaborationApiClient
from .mock import InMemoryBlobStore, InMemoryCollaborationSource

logger = get_logger(__name__)


def create_integrations(mode: str | None = None) -> Integrations:
    """Build upstream clients for the configured mode ('http' or 'mock')."""
    selected = (mode or INTEGRATIONS_MODE).lower()
    if selected == "mock":
        source = InMemoryCollaborationSource()
        logger.warning("Using in-memory mock integrations")
        return Integrations(collaborations=source, projects=source, blobs=InMemoryBlobStore())
    if selected != "http":
        raise ValueError(f"Unknown integrations mode: {selected}")
    client = CollaborationApiClient()
    return Integrations(collaborations=client, projects=client, blobs=HttpBlobStore())


__all__ = [
    "BlobStore",
    "CollaborationSource",
    "EvidenceFile",
    "Integrations",
    "ProjectLookup",
    "HttpBlobStore",
    "CollaborationApiClient",
    "InMemoryBlobStore",
    "InMemoryCollaborationSource",
    "create_integrations",
]
