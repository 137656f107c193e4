from __future__ import annotations

import calendar
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime

from swing_dashboard.trading.currency import make_converter
from swing_dashboard.trading.models import (
    CalendarDay,
    CalendarMonth,
    ClosedTrade,
    DistributionEntry,
    EquityPoint,
    OpenPosition,
    PeriodGranularity,
    PeriodPL,
    SwingMetrics,
    TradeDistribution,
)

# (upper bound in days, label); anything longer is "1+ years"
HOLDING_PERIOD_BUCKETS: tuple[tuple[int, str], ...] = (
    (1, "Intraday"),
    (7, "1-7 days"),
    (30, "1-4 weeks"),
    (90, "1-3 months"),
    (180, "3-6 months"),
    (365, "6-12 months"),
)
LONG_HOLD_BUCKET = "1+ years"

# Fixed English names so keys don't depend on the process locale
WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def as_day(value: date) -> date:
    return value.date() if isinstance(value, datetime) else value


def day_key(value: date) -> str:
    return value.strftime("%Y-%m-%d")


def period_key(value: date, granularity: PeriodGranularity | str) -> str:
    """Bucket key for ``value``; keys sort lexicographically in time order."""
    granularity = PeriodGranularity.parse(granularity)
    if granularity is PeriodGranularity.WEEKLY:
        iso_year, iso_week, _ = value.isocalendar()
        return f"{iso_year}-W{iso_week:02d}"
    if granularity is PeriodGranularity.MONTHLY:
        return value.strftime("%Y-%m")
    if granularity is PeriodGranularity.QUARTERLY:
        return f"{value.year}-Q{(value.month - 1) // 3 + 1}"
    if granularity is PeriodGranularity.YEARLY:
        return f"{value.year:04d}"
    return day_key(value)


def holding_period_bucket(days: int) -> str:
    for upper, label in HOLDING_PERIOD_BUCKETS:
        if days <= upper:
            return label
    return LONG_HOLD_BUCKET


def profit_factor(gross_profit: float, gross_loss: float) -> float:
    if gross_loss == 0:
        return math.inf if gross_profit > 0 else 0.0
    return gross_profit / gross_loss


def expectancy(win_rate: float, average_win: float, average_loss: float) -> float:
    return win_rate * average_win - (1 - win_rate) * average_loss


@dataclass
class _Bucket:
    pl: float = 0.0
    count: int = 0
    return_sum: float = 0.0

    def add(self, pl: float, return_percent: float) -> None:
        self.pl += pl
        self.count += 1
        self.return_sum += return_percent

    def entry(self) -> DistributionEntry:
        mean_return = self.return_sum / self.count if self.count else 0.0
        return DistributionEntry(pl=self.pl, count=self.count, return_percent=mean_return)


def _finish(buckets: dict[str, _Bucket]) -> dict[str, DistributionEntry]:
    return {key: bucket.entry() for key, bucket in buckets.items()}


class PerformanceCalculator:
    """Analytics over a fixed set of closed trades.

    Every method converts amounts into the reporting currency with the
    given FX map ({currency: rate_to_reporting}; missing currencies convert
    1:1) and returns a freshly built result.
    """

    def __init__(self, closed_trades: Iterable[ClosedTrade] = ()) -> None:
        self._trades: tuple[ClosedTrade, ...] = tuple(closed_trades)

    @property
    def closed_trades(self) -> tuple[ClosedTrade, ...]:
        return self._trades

    def calculate_metrics(
        self,
        open_positions: Iterable[OpenPosition],
        currency: str,
        fx_rates: Mapping[str, float] | None = None,
    ) -> SwingMetrics:
        convert = make_converter(fx_rates)
        positions = list(open_positions)

        total_realized = sum(convert(t.realized_pl, t.currency) for t in self._trades)
        total_unrealized = sum(convert(p.unrealized_pl, p.currency) for p in positions)

        winners = [t for t in self._trades if t.realized_pl > 0]
        losers = [t for t in self._trades if t.realized_pl < 0]
        total = len(self._trades)
        win_rate = len(winners) / total if total else 0.0

        gross_profit = sum(convert(t.realized_pl, t.currency) for t in winners)
        gross_loss = abs(sum(convert(t.realized_pl, t.currency) for t in losers))
        average_win = gross_profit / len(winners) if winners else 0.0
        average_loss = gross_loss / len(losers) if losers else 0.0

        average_holding = (
            sum(t.holding_period_days for t in self._trades) / total if total else 0.0
        )

        return SwingMetrics(
            total_realized_pl=total_realized,
            total_unrealized_pl=total_unrealized,
            total_pl=total_realized + total_unrealized,
            win_rate=win_rate,
            profit_factor=profit_factor(gross_profit, gross_loss),
            average_win=average_win,
            average_loss=average_loss,
            expectancy=expectancy(win_rate, average_win, average_loss),
            total_trades=total,
            open_positions=len(positions),
            average_holding_days=average_holding,
            currency=currency,
        )

    def calculate_equity_curve(
        self,
        currency: str,
        fx_rates: Mapping[str, float] | None = None,
    ) -> list[EquityPoint]:
        """Running realized P&L, one point per trade in exit order."""
        convert = make_converter(fx_rates)
        points: list[EquityPoint] = []
        cumulative = 0.0
        for trade in sorted(self._trades, key=lambda t: t.exit_date):
            cumulative += convert(trade.realized_pl, trade.currency)
            points.append(EquityPoint(
                date=day_key(trade.exit_date),
                cumulative_realized_pl=cumulative,
                cumulative_total_pl=cumulative,
                currency=currency,
            ))
        return points

    def calculate_period_pl(
        self,
        granularity: PeriodGranularity | str,
        currency: str,
        fx_rates: Mapping[str, float] | None = None,
    ) -> list[PeriodPL]:
        granularity = PeriodGranularity.parse(granularity)
        convert = make_converter(fx_rates)

        buckets: dict[str, dict[str, float]] = {}
        for trade in self._trades:
            key = period_key(trade.exit_date, granularity)
            bucket = buckets.setdefault(key, {"pl": 0.0, "trades": 0, "wins": 0, "losses": 0})
            bucket["pl"] += convert(trade.realized_pl, trade.currency)
            bucket["trades"] += 1
            if trade.realized_pl > 0:
                bucket["wins"] += 1
            elif trade.realized_pl < 0:
                bucket["losses"] += 1

        return [
            PeriodPL(
                date=key,
                period=granularity,
                realized_pl=b["pl"],
                unrealized_pl=0.0,
                total_pl=b["pl"],
                trade_count=b["trades"],
                win_count=b["wins"],
                loss_count=b["losses"],
                currency=currency,
            )
            for key, b in sorted(buckets.items())
        ]

    def calculate_realized_pl_for_period(
        self,
        start: date,
        end: date,
        fx_rates: Mapping[str, float] | None = None,
    ) -> float:
        """Converted realized P&L of trades exiting between start and end, whole days inclusive."""
        convert = make_converter(fx_rates)
        start_day, end_day = as_day(start), as_day(end)
        return sum(
            convert(t.realized_pl, t.currency)
            for t in self._trades
            if start_day <= as_day(t.exit_date) <= end_day
        )

    def calculate_distribution(self, fx_rates: Mapping[str, float] | None = None) -> TradeDistribution:
        convert = make_converter(fx_rates)
        by_symbol: dict[str, _Bucket] = {}
        by_weekday: dict[str, _Bucket] = {}
        by_holding: dict[str, _Bucket] = {}
        by_account: dict[str, _Bucket] = {}

        for trade in self._trades:
            pl = convert(trade.realized_pl, trade.currency)
            keys = (
                (by_symbol, trade.symbol),
                (by_weekday, WEEKDAY_NAMES[trade.exit_date.weekday()]),
                (by_holding, holding_period_bucket(trade.holding_period_days)),
                (by_account, trade.account_name),
            )
            for buckets, key in keys:
                buckets.setdefault(key, _Bucket()).add(pl, trade.return_percent)

        return TradeDistribution(
            by_symbol=_finish(by_symbol),
            by_weekday=_finish(by_weekday),
            by_holding_period=_finish(by_holding),
            by_account=_finish(by_account),
        )

    def calculate_calendar(
        self,
        year: int,
        fx_rates: Mapping[str, float] | None = None,
        today: date | None = None,
    ) -> list[CalendarMonth]:
        """Twelve months of daily realized P&L for ``year``.

        is_today / is_current_month are flagged against the wall clock unless
        ``today`` is given.
        """
        convert = make_converter(fx_rates)
        today = date.today() if today is None else as_day(today)

        by_day: dict[str, list[float]] = {}
        for trade in self._trades:
            totals = by_day.setdefault(day_key(trade.exit_date), [0.0, 0])
            totals[0] += convert(trade.realized_pl, trade.currency)
            totals[1] += 1

        today_key = day_key(today)
        months: list[CalendarMonth] = []
        for month in range(1, 13):
            is_current_month = year == today.year and month == today.month
            days: list[CalendarDay] = []
            monthly_pl = 0.0
            monthly_trades = 0
            for day in range(1, calendar.monthrange(year, month)[1] + 1):
                key = day_key(date(year, month, day))
                pl, count = by_day.get(key, (0.0, 0))
                monthly_pl += pl
                monthly_trades += count
                days.append(CalendarDay(
                    date=key,
                    realized_pl=pl,
                    # no portfolio value to measure against
                    return_percent=0.0,
                    trade_count=count,
                    is_today=key == today_key,
                    is_current_month=is_current_month,
                ))
            months.append(CalendarMonth(
                year=year,
                month=month,
                monthly_pl=monthly_pl,
                monthly_return_percent=0.0,
                total_trades=monthly_trades,
                days=days,
            ))
        return months
