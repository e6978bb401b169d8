"""Recovery state classification.

The settlement state of a rebate task is always derived from its source
fields (actual vs. receivable) and never stored, so it cannot drift from the
record it describes.
"""
from __future__ import annotations

from typing import Any, Optional, Protocol

from rebate_service.config import RECOVERY_TOLERANCE
from rebate_service.models.db.enums import RecoveryState, StatusClass
from rebate_service.utils.money import to_amount


class _Recoverable(Protocol):
    receivable: float
    actual_rebate: Any


_FLOAT_EPSILON = 1e-9

STATUS_CLASS_STATES: dict[StatusClass, RecoveryState] = {
    StatusClass.PENDING: RecoveryState.NOT_RECOVERED,
    StatusClass.RECOVERED: RecoveryState.RECOVERED_MATCHED,
    StatusClass.DISCREPANCY: RecoveryState.RECOVERED_WITH_DISCREPANCY,
}


def has_discrepancy(amount: Optional[float], receivable: float) -> bool:
    """True when a recovered amount differs from the receivable beyond tolerance."""
    if amount is None:
        return False
    # Epsilon absorbs binary float noise at the 0.01 boundary (1000.00 vs 999.99)
    return abs(amount - receivable) > RECOVERY_TOLERANCE + _FLOAT_EPSILON


def classify(task: _Recoverable) -> RecoveryState:
    """Derive the settlement state of a task.

    NotRecovered if nothing (numeric) was recovered, RecoveredMatched when the
    recovered amount is within tolerance of the receivable, otherwise
    RecoveredWithDiscrepancy.
    """
    amount = to_amount(task.actual_rebate)
    if amount is None:
        return RecoveryState.NOT_RECOVERED
    if has_discrepancy(amount, task.receivable):
        return RecoveryState.RECOVERED_WITH_DISCREPANCY
    return RecoveryState.RECOVERED_MATCHED


def is_pending(task: _Recoverable) -> bool:
    return classify(task) == RecoveryState.NOT_RECOVERED


__all__ = ["STATUS_CLASS_STATES", "has_discrepancy", "classify", "is_pending"]
