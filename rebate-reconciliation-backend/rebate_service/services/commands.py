"""Typed dashboard commands routed through RebateController.dispatch."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional

from rebate_service.integrations.base import EvidenceFile
from rebate_service.models.db.enums import StatusClass


@dataclass(frozen=True)
class Reload:
    pass


@dataclass(frozen=True)
class SetFilter:
    project_id: Optional[str] = None
    status: Optional[StatusClass] = None
    talent_name: Optional[str] = None


@dataclass(frozen=True)
class ResetFilters:
    pass


@dataclass(frozen=True)
class SetPage:
    page: int


@dataclass(frozen=True)
class SetItemsPerPage:
    items_per_page: int


@dataclass(frozen=True)
class EnterBatchMode:
    pass


@dataclass(frozen=True)
class ExitBatchMode:
    pass


@dataclass(frozen=True)
class ToggleSelection:
    task_id: str


@dataclass(frozen=True)
class SelectAllEligible:
    pass


@dataclass(frozen=True)
class ClearSelection:
    pass


@dataclass(frozen=True)
class SaveRecovery:
    task_id: str
    amount: Any = None
    recovery_date: Optional[str] = None
    reason: Optional[str] = None


@dataclass(frozen=True)
class DeleteRecovery:
    task_id: str
    confirmed: bool = False


@dataclass(frozen=True)
class BatchFullRecovery:
    confirmed: bool = False
    # None means the session selection
    selection: Optional[tuple[str, ...]] = None


@dataclass(frozen=True)
class QuickFullRecovery:
    task_id: str


@dataclass(frozen=True)
class AddEvidence:
    task_id: str
    files: List[EvidenceFile] = field(default_factory=list)


@dataclass(frozen=True)
class RemoveEvidence:
    task_id: str
    index: int
    confirmed: bool = False


__all__ = [
    "Reload",
    "SetFilter",
    "ResetFilters",
    "SetPage",
    "SetItemsPerPage",
    "EnterBatchMode",
    "ExitBatchMode",
    "ToggleSelection",
    "SelectAllEligible",
    "ClearSelection",
    "SaveRecovery",
    "DeleteRecovery",
    "BatchFullRecovery",
    "QuickFullRecovery",
    "AddEvidence",
    "RemoveEvidence",
]
