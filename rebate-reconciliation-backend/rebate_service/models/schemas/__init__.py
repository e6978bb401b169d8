from .base import ResponseBase
from .collaborations import CollaborationRecord, Project, to_upstream_patch
from .rebates import (
    RebateTask,
    RebateTaskRead,
    FilterUpdate,
    PageUpdate,
    ItemsPerPageUpdate,
    SelectionToggle,
    SaveRecoveryRequest,
    ConfirmedAction,
    TaskPage,
    DashboardRead,
    BatchPreviewRead,
    BatchRecoveryRead,
    SessionRead,
)

__all__ = [
    # Base
    "ResponseBase",

    # Upstream
    "CollaborationRecord",
    "Project",
    "to_upstream_patch",

    # Rebates
    "RebateTask",
    "RebateTaskRead",
    "FilterUpdate",
    "PageUpdate",
    "ItemsPerPageUpdate",
    "SelectionToggle",
    "SaveRecoveryRequest",
    "ConfirmedAction",
    "TaskPage",
    "DashboardRead",
    "BatchPreviewRead",
    "BatchRecoveryRead",
    "SessionRead",
]
