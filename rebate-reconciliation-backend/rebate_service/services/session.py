"""Explicit per-client dashboard session state.

One RebateSession is owned by one controller and passed by reference into
each command handler. It holds the last full load (projects + tasks), the
filter criteria, the pagination cursor and the batch selection.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from rebate_service.config import REBATE_SETTINGS
from rebate_service.models.db.enums import BatchMode, StatusClass
from rebate_service.models.schemas.collaborations import Project
from rebate_service.models.schemas.rebates import RebateTask
from rebate_service.services.task_filters import FilterCriteria, PageResult, apply_filters, paginate


def default_filters() -> FilterCriteria:
    status = REBATE_SETTINGS.get("default_status_filter") or None
    return FilterCriteria(status=StatusClass(status) if status else None)


@dataclass
class RebateSession:
    client_id: str
    items_per_page: int = int(REBATE_SETTINGS["default_items_per_page"])
    current_page: int = 1
    filters: FilterCriteria = field(default_factory=default_filters)
    batch_mode: BatchMode = BatchMode.OFF
    selected_ids: set[str] = field(default_factory=set)
    projects: List[Project] = field(default_factory=list)
    tasks: List[RebateTask] = field(default_factory=list)
    loaded: bool = False
    # True when the last reload after a successful write failed
    stale: bool = False
    task_index: Dict[str, RebateTask] = field(default_factory=dict, repr=False)

    def replace_tasks(self, projects: List[Project], tasks: List[RebateTask]) -> None:
        self.projects = projects
        self.tasks = tasks
        self.task_index = {t.id: t for t in tasks}
        self.loaded = True
        self.stale = False

    def get_task(self, task_id: str) -> Optional[RebateTask]:
        return self.task_index.get(task_id)

    def update_task(self, task: RebateTask) -> None:
        """Swap one refreshed task in place, keeping list order."""
        self.tasks = [task if t.id == task.id else t for t in self.tasks]
        self.task_index[task.id] = task

    def filtered_tasks(self) -> List[RebateTask]:
        return apply_filters(self.tasks, self.filters)

    def page_window(self) -> PageResult:
        """Current page of the filtered set; writes the clamped page back."""
        result = paginate(self.filtered_tasks(), self.current_page, self.items_per_page)
        self.current_page = result.page
        return result

    @property
    def in_batch_mode(self) -> bool:
        return self.batch_mode == BatchMode.ON


__all__ = ["RebateSession", "default_filters"]
