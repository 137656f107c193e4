import math
from datetime import date, datetime

import pytest

from swing_dashboard.trading.models import ClosedTrade, OpenPosition, PeriodGranularity
from swing_dashboard.trading.performance import (
    LONG_HOLD_BUCKET,
    PerformanceCalculator,
    holding_period_bucket,
    period_key,
    profit_factor,
)


def _trade(id, exit_date, pl, symbol="AAPL", days=5, ret=0.0, currency="USD", account="Brokerage"):
    return ClosedTrade(
        id=id, symbol=symbol, asset_name=None,
        entry_date=exit_date, exit_date=exit_date,
        quantity=1.0, entry_price=100.0, exit_price=100.0 + pl,
        total_fees=0.0, total_dividends=0.0,
        realized_pl=pl, return_percent=ret, holding_period_days=days,
        account_id="acct-1", account_name=account, currency=currency,
        buy_activity_id="b", sell_activity_id="s",
    )


def _position(unrealized_pl, currency="USD"):
    return OpenPosition(
        id="p1", symbol="AAPL", asset_name=None, quantity=1.0, average_cost=100.0,
        current_price=100.0 + unrealized_pl, market_value=100.0 + unrealized_pl,
        unrealized_pl=unrealized_pl, unrealized_return_percent=unrealized_pl / 100.0,
        total_dividends=0.0, days_open=3, open_date=datetime(2024, 1, 1),
        account_id="acct-1", account_name="Brokerage", currency=currency,
        activity_ids=("b1",),
    )


def test_profit_factor_edge_cases():
    assert profit_factor(100.0, 0.0) == math.inf
    assert profit_factor(0.0, 0.0) == 0.0
    assert profit_factor(150.0, 50.0) == pytest.approx(3.0)


def test_metrics_on_empty_trades():
    metrics = PerformanceCalculator().calculate_metrics([], "USD")
    assert metrics.total_trades == 0
    assert metrics.win_rate == 0.0
    assert metrics.profit_factor == 0.0
    assert metrics.expectancy == 0.0
    assert metrics.average_holding_days == 0.0


def test_metrics_mixed_trades():
    trades = [
        _trade("t1", datetime(2024, 1, 2), 100.0, days=2),
        _trade("t2", datetime(2024, 1, 3), 50.0, days=4),
        _trade("t3", datetime(2024, 1, 4), -50.0, days=6),
        _trade("t4", datetime(2024, 1, 5), 0.0, days=8),
    ]
    metrics = PerformanceCalculator(trades).calculate_metrics([_position(25.0)], "USD")
    assert metrics.total_realized_pl == pytest.approx(100.0)
    assert metrics.total_unrealized_pl == pytest.approx(25.0)
    assert metrics.total_pl == pytest.approx(125.0)
    # breakeven trade counts toward the total but is neither a win nor a loss
    assert metrics.win_rate == pytest.approx(0.5)
    assert metrics.profit_factor == pytest.approx(3.0)
    assert metrics.average_win == pytest.approx(75.0)
    assert metrics.average_loss == pytest.approx(50.0)
    assert metrics.expectancy == pytest.approx(0.5 * 75.0 - 0.5 * 50.0)
    assert metrics.open_positions == 1
    assert metrics.average_holding_days == pytest.approx(5.0)


def test_metrics_all_winners_profit_factor_is_infinite():
    metrics = PerformanceCalculator([_trade("t1", datetime(2024, 1, 2), 10.0)]).calculate_metrics([], "USD")
    assert metrics.profit_factor == math.inf


def test_metrics_convert_currencies():
    trades = [_trade("t1", datetime(2024, 1, 2), 100.0, currency="CAD")]
    metrics = PerformanceCalculator(trades).calculate_metrics(
        [_position(40.0, currency="EUR")], "USD", {"USD": 1.0, "CAD": 0.75},
    )
    assert metrics.total_realized_pl == pytest.approx(75.0)
    # EUR has no rate: 1:1
    assert metrics.total_unrealized_pl == pytest.approx(40.0)


def test_equity_curve_one_point_per_trade_in_exit_order():
    trades = [
        _trade("t2", datetime(2024, 1, 3), -20.0),
        _trade("t1", datetime(2024, 1, 2), 50.0),
        _trade("t3", datetime(2024, 1, 3), 10.0),
    ]
    curve = PerformanceCalculator(trades).calculate_equity_curve("USD")
    assert [p.date for p in curve] == ["2024-01-02", "2024-01-03", "2024-01-03"]
    assert [p.cumulative_realized_pl for p in curve] == [
        pytest.approx(50.0), pytest.approx(30.0), pytest.approx(40.0),
    ]
    assert all(p.cumulative_total_pl == p.cumulative_realized_pl for p in curve)


@pytest.mark.parametrize("value, granularity, expected", [
    (date(2024, 3, 5), "daily", "2024-03-05"),
    (date(2024, 3, 5), "monthly", "2024-03"),
    (date(2024, 3, 5), "quarterly", "2024-Q1"),
    (date(2024, 11, 30), "quarterly", "2024-Q4"),
    (date(2024, 3, 5), "yearly", "2024"),
    (date(2024, 3, 5), "weekly", "2024-W10"),
    # Dec 30 2024 belongs to ISO week 1 of 2025
    (date(2024, 12, 30), "weekly", "2025-W01"),
    (date(2024, 3, 5), "bogus", "2024-03-05"),
])
def test_period_keys(value, granularity, expected):
    assert period_key(value, granularity) == expected


def test_period_pl_groups_and_sorts():
    trades = [
        _trade("t1", datetime(2024, 2, 10), 30.0),
        _trade("t2", datetime(2024, 1, 5), -10.0),
        _trade("t3", datetime(2024, 2, 20), 20.0),
        _trade("t4", datetime(2024, 2, 21), 0.0),
    ]
    rows = PerformanceCalculator(trades).calculate_period_pl(PeriodGranularity.MONTHLY, "USD")
    assert [r.date for r in rows] == ["2024-01", "2024-02"]
    jan, feb = rows
    assert jan.realized_pl == pytest.approx(-10.0)
    assert (jan.win_count, jan.loss_count, jan.trade_count) == (0, 1, 1)
    assert feb.realized_pl == pytest.approx(50.0)
    assert (feb.win_count, feb.loss_count, feb.trade_count) == (2, 0, 3)
    assert feb.unrealized_pl == 0.0
    assert feb.total_pl == feb.realized_pl


def test_realized_pl_for_period_is_inclusive_by_day():
    trades = [
        _trade("t1", datetime(2024, 1, 1, 9, 30), 10.0),
        _trade("t2", datetime(2024, 1, 31, 23, 59), 20.0),
        _trade("t3", datetime(2024, 2, 1), 40.0),
    ]
    calc = PerformanceCalculator(trades)
    assert calc.calculate_realized_pl_for_period(date(2024, 1, 1), date(2024, 1, 31)) == pytest.approx(30.0)


@pytest.mark.parametrize("days, label", [
    (0, "Intraday"), (1, "Intraday"), (2, "1-7 days"), (7, "1-7 days"),
    (8, "1-4 weeks"), (31, "1-3 months"), (120, "3-6 months"),
    (365, "6-12 months"), (366, LONG_HOLD_BUCKET),
])
def test_holding_period_buckets(days, label):
    assert holding_period_bucket(days) == label


def test_distribution_buckets():
    trades = [
        # 2024-01-01 is a Monday
        _trade("t1", datetime(2024, 1, 1), 10.0, symbol="AAPL", ret=0.10, days=3),
        _trade("t2", datetime(2024, 1, 1), -4.0, symbol="AAPL", ret=-0.02, days=40),
        _trade("t3", datetime(2024, 1, 5), 6.0, symbol="MSFT", ret=0.06, days=3, account="IRA"),
    ]
    dist = PerformanceCalculator(trades).calculate_distribution()

    aapl = dist.by_symbol["AAPL"]
    assert aapl.pl == pytest.approx(6.0)
    assert aapl.count == 2
    assert aapl.return_percent == pytest.approx(0.04)

    assert set(dist.by_weekday) == {"Monday", "Friday"}
    assert dist.by_weekday["Monday"].count == 2
    assert dist.by_holding_period["1-7 days"].count == 2
    assert dist.by_holding_period["1-3 months"].pl == pytest.approx(-4.0)
    assert dist.by_account["IRA"].pl == pytest.approx(6.0)


def test_calendar_for_leap_year():
    trades = [
        _trade("t1", datetime(2024, 2, 29, 15, 0), 25.0),
        _trade("t2", datetime(2024, 2, 29, 16, 0), -5.0),
        _trade("t3", datetime(2023, 12, 29), 99.0),
    ]
    months = PerformanceCalculator(trades).calculate_calendar(2024, today=date(2024, 2, 10))
    assert len(months) == 12
    feb = months[1]
    assert (feb.year, feb.month) == (2024, 2)
    assert len(feb.days) == 29
    assert feb.monthly_pl == pytest.approx(20.0)
    assert feb.total_trades == 2

    leap_day = feb.days[28]
    assert leap_day.date == "2024-02-29"
    assert leap_day.realized_pl == pytest.approx(20.0)
    assert leap_day.trade_count == 2

    assert all(d.is_current_month for d in feb.days)
    assert not any(d.is_current_month for d in months[0].days)
    assert [d.date for m in months for d in m.days if d.is_today] == ["2024-02-10"]
    assert sum(m.total_trades for m in months) == 2


def test_calendar_other_year_has_no_today():
    months = PerformanceCalculator().calculate_calendar(2023, today=datetime(2024, 5, 1, 12, 0))
    assert len(months[1].days) == 28
    assert not any(d.is_today or d.is_current_month for m in months for d in m.days)


def test_metrics_to_dict_keys():
    payload = PerformanceCalculator([_trade("t1", datetime(2024, 1, 2), 10.0)]).calculate_metrics([], "USD").to_dict()
    assert payload["totalRealizedPL"] == pytest.approx(10.0)
    assert payload["winRate"] == 1.0
    assert payload["totalTrades"] == 1
    assert payload["currency"] == "USD"
    assert set(payload) == {
        "totalRealizedPL", "totalUnrealizedPL", "totalPL", "winRate", "profitFactor",
        "averageWin", "averageLoss", "expectancy", "totalTrades", "openPositions",
        "averageHoldingDays", "currency",
    }
