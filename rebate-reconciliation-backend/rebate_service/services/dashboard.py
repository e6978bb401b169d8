"""Dashboard summary fold over the filtered task set."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Iterable

from rebate_service.models.schemas.rebates import RebateTask
from rebate_service.utils.money import round_money, safe_div, to_amount


@dataclass
class DashboardSummary:
    total_receivable: float
    total_recovered: float
    recovery_rate: float
    todo_count: int

    def as_dict(self) -> dict:
        return asdict(self)


def compute_dashboard(tasks: Iterable[RebateTask]) -> DashboardSummary:
    """Totals over the filtered (pre-pagination) tasks.

    recovery_rate is recovered / receivable as a fraction, 0.0 when nothing is
    receivable.
    """
    total_receivable = 0.0
    total_recovered = 0.0
    todo = 0
    for task in tasks:
        total_receivable += task.receivable
        amount = to_amount(task.actual_rebate)
        if amount is None:
            todo += 1
        else:
            total_recovered += amount
    return DashboardSummary(
        total_receivable=round_money(total_receivable),
        total_recovered=round_money(total_recovered),
        recovery_rate=safe_div(total_recovered, total_receivable),
        todo_count=todo,
    )


__all__ = ["DashboardSummary", "compute_dashboard"]
