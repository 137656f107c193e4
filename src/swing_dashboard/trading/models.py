from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime


class ActivityType(enum.Enum):
    BUY = "BUY"
    SELL = "SELL"
    DIVIDEND = "DIVIDEND"

    @classmethod
    def parse(cls, value: ActivityType | str | None) -> ActivityType | None:
        """Return the matching member, or None for types the engine ignores."""
        if isinstance(value, cls):
            return value
        if value is None:
            return None
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return None


class LotMethod(enum.Enum):
    FIFO = "FIFO"
    LIFO = "LIFO"
    AVERAGE = "AVERAGE"

    @classmethod
    def parse(cls, value: LotMethod | str | None) -> LotMethod:
        """Unrecognized methods fall back to FIFO."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return cls.FIFO


class PeriodGranularity(enum.Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"

    @classmethod
    def parse(cls, value: PeriodGranularity | str | None) -> PeriodGranularity:
        """Unrecognized granularities fall back to daily."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.DAILY


@dataclass(frozen=True)
class Activity:
    id: str
    symbol: str
    account_id: str
    account_name: str
    activity_type: ActivityType | str
    date: datetime
    # Raw feeds deliver these as decimal strings; normalize_activities()
    # turns them into floats before matching.
    quantity: float | str | None
    unit_price: float | str | None
    fee: float | str | None
    amount: float | str | None
    currency: str
    asset_name: str | None = None
    has_swing_tag: bool = False


@dataclass(frozen=True)
class MatchOptions:
    """Lot matching configuration.

    lot_method:        FIFO (default), LIFO or AVERAGE
    include_fees:      allocate buy/sell fees to each match (default True)
    include_dividends: allocate dividends paid while the lot was held (default True)
    """
    lot_method: LotMethod = LotMethod.FIFO
    include_fees: bool = True
    include_dividends: bool = True


@dataclass(frozen=True)
class ClosedTrade:
    id: str
    symbol: str
    asset_name: str | None
    entry_date: datetime
    exit_date: datetime
    quantity: float
    entry_price: float
    exit_price: float
    total_fees: float
    total_dividends: float
    realized_pl: float
    return_percent: float
    holding_period_days: int
    account_id: str
    account_name: str
    currency: str
    buy_activity_id: str
    sell_activity_id: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "assetName": self.asset_name,
            "entryDate": self.entry_date.isoformat(),
            "exitDate": self.exit_date.isoformat(),
            "quantity": self.quantity,
            "entryPrice": self.entry_price,
            "exitPrice": self.exit_price,
            "totalFees": self.total_fees,
            "totalDividends": self.total_dividends,
            "realizedPL": self.realized_pl,
            "returnPercent": self.return_percent,
            "holdingPeriodDays": self.holding_period_days,
            "accountId": self.account_id,
            "accountName": self.account_name,
            "currency": self.currency,
            "buyActivityId": self.buy_activity_id,
            "sellActivityId": self.sell_activity_id,
        }


@dataclass(frozen=True)
class OpenPosition:
    id: str
    symbol: str
    asset_name: str | None
    quantity: float
    average_cost: float
    current_price: float
    market_value: float
    unrealized_pl: float
    unrealized_return_percent: float
    total_dividends: float
    days_open: int
    open_date: datetime
    account_id: str
    account_name: str
    currency: str
    activity_ids: tuple[str, ...]

    @property
    def cost_basis(self) -> float:
        return self.average_cost * self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "assetName": self.asset_name,
            "quantity": self.quantity,
            "averageCost": self.average_cost,
            "currentPrice": self.current_price,
            "marketValue": self.market_value,
            "unrealizedPL": self.unrealized_pl,
            "unrealizedReturnPercent": self.unrealized_return_percent,
            "totalDividends": self.total_dividends,
            "daysOpen": self.days_open,
            "openDate": self.open_date.isoformat(),
            "accountId": self.account_id,
            "accountName": self.account_name,
            "currency": self.currency,
            "activityIds": list(self.activity_ids),
        }


@dataclass(frozen=True)
class MatchResult:
    closed_trades: list[ClosedTrade] = field(default_factory=list)
    open_positions: list[OpenPosition] = field(default_factory=list)
    unmatched_buys: list[Activity] = field(default_factory=list)
    unmatched_sells: list[Activity] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "closedTrades": [t.to_dict() for t in self.closed_trades],
            "openPositions": [p.to_dict() for p in self.open_positions],
            "unmatchedBuys": [a.id for a in self.unmatched_buys],
            "unmatchedSells": [
                {"id": a.id, "symbol": a.symbol, "quantity": a.quantity}
                for a in self.unmatched_sells
            ],
        }


# --- Derived analytics -------------------------------------------------------

@dataclass(frozen=True)
class SwingMetrics:
    total_realized_pl: float
    total_unrealized_pl: float
    total_pl: float
    win_rate: float  # fraction of winning trades, 0..1
    profit_factor: float
    average_win: float
    average_loss: float
    expectancy: float
    total_trades: int
    open_positions: int
    average_holding_days: float
    currency: str

    def to_dict(self) -> dict:
        return {
            "totalRealizedPL": self.total_realized_pl,
            "totalUnrealizedPL": self.total_unrealized_pl,
            "totalPL": self.total_pl,
            "winRate": self.win_rate,
            "profitFactor": self.profit_factor,
            "averageWin": self.average_win,
            "averageLoss": self.average_loss,
            "expectancy": self.expectancy,
            "totalTrades": self.total_trades,
            "openPositions": self.open_positions,
            "averageHoldingDays": self.average_holding_days,
            "currency": self.currency,
        }


@dataclass(frozen=True)
class EquityPoint:
    date: str
    cumulative_realized_pl: float
    cumulative_total_pl: float
    currency: str


@dataclass(frozen=True)
class PeriodPL:
    date: str
    period: PeriodGranularity
    realized_pl: float
    unrealized_pl: float
    total_pl: float
    trade_count: int
    win_count: int
    loss_count: int
    currency: str


@dataclass(frozen=True)
class DistributionEntry:
    pl: float
    count: int
    return_percent: float  # mean of per-trade return_percent


@dataclass(frozen=True)
class TradeDistribution:
    by_symbol: dict[str, DistributionEntry]
    by_weekday: dict[str, DistributionEntry]
    by_holding_period: dict[str, DistributionEntry]
    by_account: dict[str, DistributionEntry]


@dataclass(frozen=True)
class CalendarDay:
    date: str
    realized_pl: float
    return_percent: float
    trade_count: int
    is_today: bool
    is_current_month: bool


@dataclass(frozen=True)
class CalendarMonth:
    year: int
    month: int
    monthly_pl: float
    monthly_return_percent: float
    total_trades: int
    days: list[CalendarDay]
