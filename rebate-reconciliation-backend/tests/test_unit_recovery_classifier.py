from types import SimpleNamespace

import pytest

from rebate_service.models.db.enums import RecoveryState
from rebate_service.services.recovery_classifier import classify, has_discrepancy, is_pending


def _task(receivable, actual):
    return SimpleNamespace(receivable=receivable, actual_rebate=actual)


def test_null_actual_is_not_recovered():
    assert classify(_task(1000.0, None)) == RecoveryState.NOT_RECOVERED
    assert is_pending(_task(1000.0, None))


@pytest.mark.parametrize("actual", [1000.0, 999.99, 1000.01, "1000.00"])
def test_within_tolerance_is_matched(actual):
    # 0.01 either side is still a match; string amounts from upstream count
    assert classify(_task(1000.0, actual)) == RecoveryState.RECOVERED_MATCHED


@pytest.mark.parametrize("actual", [999.98, 1000.02, 950.0, 0])
def test_beyond_tolerance_is_discrepancy(actual):
    assert classify(_task(1000.0, actual)) == RecoveryState.RECOVERED_WITH_DISCREPANCY


def test_zero_recovered_is_still_recovered():
    # 0 is a numeric amount, not a missing one
    assert classify(_task(500.0, 0)) == RecoveryState.RECOVERED_WITH_DISCREPANCY
    assert not is_pending(_task(500.0, 0))


def test_non_numeric_actual_is_not_recovered():
    assert classify(_task(1000.0, "n/a")) == RecoveryState.NOT_RECOVERED
    assert classify(_task(1000.0, "")) == RecoveryState.NOT_RECOVERED


def test_has_discrepancy_boundaries():
    assert has_discrepancy(None, 100.0) is False
    assert has_discrepancy(100.011, 100.0) is True
    assert has_discrepancy(100.01, 100.0) is False
