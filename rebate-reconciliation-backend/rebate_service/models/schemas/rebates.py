"""
Pydantic schemas for rebate tasks and the dashboard API.
"""
from datetime import datetime
from typing import List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field

from rebate_service.models.db.enums import StatusClass
from .collaborations import RawAmount

class RebateTask(BaseModel):
    """
    Derived, ephemeral view of a collaboration that owes a rebate.
    Rebuilt in full on every reload; never persisted.
    """
    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: Optional[str] = None
    project_name: str
    talent_id: Optional[str] = None
    talent_name: str
    talent_source: str
    publish_date: Optional[str] = None
    receivable: float
    actual_rebate: RawAmount = None
    recovery_date: Optional[str] = None
    discrepancy_reason: Optional[str] = None
    discrepancy_reason_updated_at: Optional[datetime] = None
    evidence_urls: List[str] = Field(default_factory=list)

class RebateTaskRead(RebateTask):
    """Task as returned to the dashboard, with its derived recovery state."""
    recovery_state: str = Field(description="NotRecovered, RecoveredMatched or RecoveredWithDiscrepancy")

# ------------------------------ Requests ------------------------------ #

class FilterUpdate(BaseModel):
    """Filter criteria; missing/empty fields mean 'all'."""
    project_id: Optional[str] = Field(None, description="Exact project id, or null/'all' for every project")
    status: Optional[StatusClass] = Field(None, description="pending, recovered or discrepancy")
    talent_name: Optional[str] = Field(None, max_length=200, description="Case-insensitive substring")

class PageUpdate(BaseModel):
    page: int = Field(ge=1)

class ItemsPerPageUpdate(BaseModel):
    items_per_page: int = Field(ge=1, le=200)

class SelectionToggle(BaseModel):
    task_id: str = Field(min_length=1)

class SaveRecoveryRequest(BaseModel):
    """
    Recovery entry from the details panel.

    ``amount`` is accepted as text so that non-numeric input can be rejected
    with INVALID_INPUT by the command processor rather than by request parsing.
    """
    amount: Union[float, str, None] = None
    recovery_date: Optional[str] = None
    reason: Optional[str] = Field(None, max_length=2000)

class ConfirmedAction(BaseModel):
    confirmed: bool = Field(False, description="Destructive/bulk actions require explicit confirmation")

# ------------------------------ Responses ------------------------------ #

class TaskPage(BaseModel):
    tasks: List[RebateTaskRead]
    page: int
    total_pages: int
    total_count: int

class DashboardRead(BaseModel):
    total_receivable: float
    total_recovered: float
    recovery_rate: float
    todo_count: int

class BatchPreviewRead(BaseModel):
    eligible_count: int
    total_amount: float
    recovery_date: str

class BatchRecoveryRead(BaseModel):
    success_count: int
    failed_count: int
    nothing_to_recover: bool
    message: str

class SessionRead(BaseModel):
    client_id: str
    project_id: Optional[str]
    status: Optional[str]
    talent_name: Optional[str]
    current_page: int
    items_per_page: int
    batch_mode: str
    selected_task_ids: List[str]
    stale: bool = False
