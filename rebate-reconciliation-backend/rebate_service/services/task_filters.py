"""Filter & pagination over the aggregated task list.

Filtering never re-sorts: tasks keep upstream order. The filtered (not
paginated) set is what the dashboard summarises.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

from rebate_service.models.db.enums import StatusClass
from rebate_service.models.schemas.rebates import RebateTask
from rebate_service.services.recovery_classifier import STATUS_CLASS_STATES, classify

ALL_PROJECTS = "all"


@dataclass
class FilterCriteria:
    project_id: Optional[str] = None
    status: Optional[StatusClass] = None
    talent_name: Optional[str] = None

    def normalized(self) -> "FilterCriteria":
        project = (self.project_id or "").strip()
        name = (self.talent_name or "").strip()
        return FilterCriteria(
            project_id=None if project in ("", ALL_PROJECTS) else project,
            status=StatusClass(self.status) if self.status else None,
            talent_name=name or None,
        )


@dataclass
class PageResult:
    tasks: List[RebateTask]
    page: int
    total_pages: int
    total_count: int


def apply_filters(tasks: Sequence[RebateTask], criteria: FilterCriteria) -> List[RebateTask]:
    c = criteria.normalized()
    wanted_state = STATUS_CLASS_STATES[c.status] if c.status else None
    needle = c.talent_name.lower() if c.talent_name else None

    result: List[RebateTask] = []
    for task in tasks:
        if c.project_id is not None and task.project_id != c.project_id:
            continue
        if wanted_state is not None and classify(task) != wanted_state:
            continue
        if needle is not None and needle not in task.talent_name.lower():
            continue
        result.append(task)
    return result


def total_pages(total_count: int, items_per_page: int) -> int:
    """Number of pages; an empty list still has one (empty) page."""
    return max(1, math.ceil(total_count / max(1, items_per_page)))


def clamp_page(page: int, total_count: int, items_per_page: int) -> int:
    return min(max(1, page), total_pages(total_count, items_per_page))


def paginate(tasks: Sequence[RebateTask], page: int, items_per_page: int) -> PageResult:
    """Slice one page window; ``page`` is clamped into the valid range."""
    count = len(tasks)
    current = clamp_page(page, count, items_per_page)
    start = (current - 1) * items_per_page
    return PageResult(
        tasks=list(tasks[start:start + items_per_page]),
        page=current,
        total_pages=total_pages(count, items_per_page),
        total_count=count,
    )


__all__ = [
    "ALL_PROJECTS",
    "FilterCriteria",
    "PageResult",
    "apply_filters",
    "total_pages",
    "clamp_page",
    "paginate",
]
