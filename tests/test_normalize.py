import math
from decimal import Decimal

import pytest

from swing_dashboard.trading.models import ActivityType
from swing_dashboard.trading.normalize import (
    coerce_number,
    normalize_activities,
    parse_number,
    partition_activities,
)


@pytest.mark.parametrize("raw, expected", [
    (12.5, 12.5),
    (3, 3.0),
    (Decimal("1.25"), 1.25),
    ("42", 42.0),
    ("  7.5 ", 7.5),
    ("$1,234.50", 1234.5),
    ("-3.2", -3.2),
])
def test_parse_number_accepts_numbers_and_decimal_strings(raw, expected):
    parsed = parse_number(raw)
    assert parsed.ok
    assert parsed.value == pytest.approx(expected)


@pytest.mark.parametrize("raw", [
    None, "", "abc", "1.2.3", "nan", "inf", math.inf, math.nan, True, [1],
    Decimal("NaN"), Decimal("sNaN"), Decimal("Infinity"), 10 ** 400,
])
def test_parse_number_falls_back_to_zero(raw):
    parsed = parse_number(raw)
    assert not parsed.ok
    assert parsed.value == 0.0


def test_coerce_number_returns_plain_float():
    assert coerce_number("1,000") == 1000.0
    assert coerce_number("garbage") == 0.0


def test_normalize_activities_coerces_numeric_fields_only(activity):
    raw = activity(quantity="10", unit_price="$100.50", fee="oops", amount=None, symbol="MSFT")
    [norm] = normalize_activities([raw])
    assert norm.quantity == 10.0
    assert norm.unit_price == 100.5
    assert norm.fee == 0.0
    assert norm.amount == 0.0
    assert norm.symbol == "MSFT"
    assert norm.id == raw.id
    # input is untouched
    assert raw.quantity == "10"


def test_partition_groups_by_symbol_and_drops_other_types(activity):
    acts = [
        activity(id="1", symbol="AAPL", activity_type="BUY"),
        activity(id="2", symbol="MSFT", activity_type=ActivityType.SELL),
        activity(id="3", symbol="AAPL", activity_type="DIVIDEND"),
        activity(id="4", symbol="AAPL", activity_type="SPLIT"),
        activity(id="5", symbol="AAPL", activity_type="sell"),
    ]
    parts = partition_activities(acts)
    assert [a.id for a in parts.trading["AAPL"]] == ["1", "5"]
    assert [a.id for a in parts.trading["MSFT"]] == ["2"]
    assert [a.id for a in parts.dividends["AAPL"]] == ["3"]
    assert parts.symbols == ["AAPL", "MSFT"]
