import math

import pytest

from rebate_service.utils.money import parse_amount, round_money, safe_div, to_amount


def test_to_amount_is_lenient():
    assert to_amount(12) == 12.0
    assert to_amount(" 12.5 ") == 12.5
    assert to_amount("abc") is None
    assert to_amount(True) is None
    assert to_amount(float("nan")) is None
    assert to_amount(float("inf")) is None
    assert to_amount(None) is None


def test_parse_amount_blank_means_not_supplied():
    assert parse_amount(None) is None
    assert parse_amount("   ") is None
    assert parse_amount("950") == 950.0


@pytest.mark.parametrize("value", ["abc", "12,5", "nan", [], {}])
def test_parse_amount_rejects_non_numeric(value):
    with pytest.raises(ValueError):
        parse_amount(value)


def test_safe_div_never_nan():
    assert safe_div(10, 0) == 0.0
    assert not math.isnan(safe_div(0.0, 0.0))
    assert safe_div(1, 4) == 0.25
    assert round_money(0.1 + 0.2) == 0.3
