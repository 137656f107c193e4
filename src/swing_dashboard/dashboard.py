"""Assemble everything a swing-trading dashboard shows from raw activities.

Open positions are always the full current book; period filtering only
applies to closed trades and the historical series built from them. Total
P&L therefore combines period realized P&L with all unrealized P&L.
"""
from __future__ import annotations

import enum
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime

from dateutil.relativedelta import relativedelta

from swing_dashboard.config import Settings
from swing_dashboard.trading.currency import ExchangeRate, build_fx_rate_map, missing_currencies
from swing_dashboard.trading.matcher import match_trades
from swing_dashboard.trading.models import (
    Activity,
    CalendarMonth,
    ClosedTrade,
    EquityPoint,
    LotMethod,
    MatchOptions,
    OpenPosition,
    PeriodGranularity,
    PeriodPL,
    SwingMetrics,
    TradeDistribution,
)
from swing_dashboard.trading.performance import PerformanceCalculator, as_day
from swing_dashboard.trading.revalue import MarketQuote, revalue_open_positions

logger = logging.getLogger(__name__)


class DashboardPeriod(enum.Enum):
    ONE_MONTH = "1M"
    THREE_MONTHS = "3M"
    SIX_MONTHS = "6M"
    YEAR_TO_DATE = "YTD"
    ONE_YEAR = "1Y"
    ALL = "ALL"

    @classmethod
    def parse(cls, value: DashboardPeriod | str | None) -> DashboardPeriod:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return cls.ALL


_LOOKBACK: dict[DashboardPeriod, relativedelta] = {
    DashboardPeriod.ONE_MONTH: relativedelta(months=1),
    DashboardPeriod.THREE_MONTHS: relativedelta(months=3),
    DashboardPeriod.SIX_MONTHS: relativedelta(months=6),
    DashboardPeriod.ONE_YEAR: relativedelta(years=1),
}


def chart_granularity(period: DashboardPeriod) -> PeriodGranularity:
    if period is DashboardPeriod.ONE_MONTH:
        return PeriodGranularity.DAILY
    if period is DashboardPeriod.THREE_MONTHS:
        return PeriodGranularity.WEEKLY
    return PeriodGranularity.MONTHLY


def period_window(period: DashboardPeriod, today: date) -> tuple[date, date] | None:
    """Inclusive (start, end) days for ``period``; None means no filtering."""
    if period is DashboardPeriod.ALL:
        return None
    if period is DashboardPeriod.YEAR_TO_DATE:
        return date(today.year, 1, 1), today
    return today - _LOOKBACK[period], today


def filter_trades_by_window(
    trades: Iterable[ClosedTrade],
    window: tuple[date, date] | None,
) -> list[ClosedTrade]:
    if window is None:
        return list(trades)
    start, end = window
    return [t for t in trades if start <= as_day(t.exit_date) <= end]


@dataclass(frozen=True)
class DashboardPreferences:
    selected_activity_ids: frozenset[str] = frozenset()
    include_swing_tag: bool = False
    lot_method: LotMethod = LotMethod.FIFO
    include_fees: bool = True
    include_dividends: bool = True

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        selected_activity_ids: Iterable[str] = (),
        include_swing_tag: bool = False,
    ) -> DashboardPreferences:
        return cls(
            selected_activity_ids=frozenset(selected_activity_ids),
            include_swing_tag=include_swing_tag,
            lot_method=settings.lot_method,
            include_fees=settings.include_fees,
            include_dividends=settings.include_dividends,
        )

    def match_options(self) -> MatchOptions:
        return MatchOptions(
            lot_method=self.lot_method,
            include_fees=self.include_fees,
            include_dividends=self.include_dividends,
        )


def select_activities(
    activities: Iterable[Activity],
    preferences: DashboardPreferences,
) -> list[Activity]:
    return [
        a for a in activities
        if a.id in preferences.selected_activity_ids
        or (preferences.include_swing_tag and a.has_swing_tag)
    ]


@dataclass(frozen=True)
class SwingDashboard:
    metrics: SwingMetrics
    closed_trades: list[ClosedTrade]
    open_positions: list[OpenPosition]
    unmatched_sells: list[Activity]
    equity_curve: list[EquityPoint]
    period_pl: list[PeriodPL]
    granularity: PeriodGranularity
    distribution: TradeDistribution
    calendar: list[CalendarMonth]
    currency: str


def _warn_missing_rates(
    trades: list[ClosedTrade],
    positions: list[OpenPosition],
    fx_rates: Mapping[str, float],
    reporting_currency: str,
) -> None:
    currencies = [t.currency for t in trades] + [p.currency for p in positions]
    for currency in missing_currencies(currencies, fx_rates):
        logger.warning("No FX rate for %s -> %s, converting 1:1", currency, reporting_currency)


def build_swing_dashboard(
    activities: Iterable[Activity],
    preferences: DashboardPreferences,
    reporting_currency: str,
    exchange_rates: Iterable[ExchangeRate] = (),
    quotes: Iterable[MarketQuote] | Mapping[str, MarketQuote] = (),
    period: DashboardPeriod | str = DashboardPeriod.ALL,
    now: datetime | None = None,
) -> SwingDashboard:
    period = DashboardPeriod.parse(period)
    today = as_day(now) if now is not None else date.today()

    # Match on every selected activity; the period only filters the output
    selected = select_activities(activities, preferences)
    matched = match_trades(selected, preferences.match_options(), now=now)

    fx_rates = build_fx_rate_map(exchange_rates, reporting_currency)
    _warn_missing_rates(matched.closed_trades, matched.open_positions, fx_rates, reporting_currency)

    open_positions = revalue_open_positions(matched.open_positions, quotes)
    period_trades = filter_trades_by_window(matched.closed_trades, period_window(period, today))

    calculator = PerformanceCalculator(period_trades)
    granularity = chart_granularity(period)

    return SwingDashboard(
        metrics=calculator.calculate_metrics(open_positions, reporting_currency, fx_rates),
        closed_trades=period_trades,
        open_positions=open_positions,
        unmatched_sells=matched.unmatched_sells,
        equity_curve=calculator.calculate_equity_curve(reporting_currency, fx_rates),
        period_pl=calculator.calculate_period_pl(granularity, reporting_currency, fx_rates),
        granularity=granularity,
        distribution=calculator.calculate_distribution(fx_rates),
        calendar=calculator.calculate_calendar(today.year, fx_rates, today=today),
        currency=reporting_currency,
    )
