from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import datetime

from swing_dashboard.trading.lots import (
    QUANTITY_EPSILON,
    LotPool,
    LotSlice,
    OpenLot,
    SequentialIdGenerator,
    make_lot_pool,
)
from swing_dashboard.trading.models import (
    Activity,
    ActivityType,
    ClosedTrade,
    LotMethod,
    MatchOptions,
    MatchResult,
    OpenPosition,
)
from swing_dashboard.trading.normalize import normalize_activities, partition_activities

logger = logging.getLogger(__name__)

IdGenerator = Callable[..., str]


def _resolve_now(now: datetime | None, reference: datetime) -> datetime:
    # Match the awareness of the activity dates so comparisons don't raise
    if now is None:
        return datetime.now(tz=reference.tzinfo)
    if (now.tzinfo is None) != (reference.tzinfo is None):
        return now.replace(tzinfo=reference.tzinfo)
    return now


def _accrue_dividends(
    pool: LotPool,
    pending: deque[Activity],
    until: datetime,
    inclusive: bool,
    symbol: str,
) -> None:
    """Credit pending dividends dated before ``until`` (or on it, if inclusive)."""
    while pending and (pending[0].date <= until if inclusive else pending[0].date < until):
        dividend = pending.popleft()
        if not pool.accrue(dividend):
            logger.debug("Dividend %s for %s paid while no shares were held", dividend.id, symbol)


def _closed_trade(
    piece: LotSlice,
    sell: Activity,
    symbol: str,
    options: MatchOptions,
    ids: IdGenerator,
) -> ClosedTrade:
    buy = piece.buy_activity
    quantity = piece.quantity

    if options.include_fees:
        total_fees = piece.buy_fee + sell.fee * quantity / sell.quantity
    else:
        total_fees = 0.0

    total_dividends = piece.dividend_income if options.include_dividends else 0.0

    cost_basis = piece.entry_price * quantity
    realized_pl = (sell.unit_price - piece.entry_price) * quantity - total_fees + total_dividends

    return ClosedTrade(
        id=ids(*piece.id_parts, sell.id),
        symbol=symbol,
        asset_name=buy.asset_name or sell.asset_name,
        entry_date=piece.entry_date,
        exit_date=sell.date,
        quantity=quantity,
        entry_price=piece.entry_price,
        exit_price=sell.unit_price,
        total_fees=total_fees,
        total_dividends=total_dividends,
        realized_pl=realized_pl,
        return_percent=realized_pl / cost_basis if cost_basis > 0 else 0.0,
        holding_period_days=(sell.date - piece.entry_date).days,
        account_id=buy.account_id,
        account_name=buy.account_name,
        currency=buy.currency,
        buy_activity_id=buy.id,
        sell_activity_id=sell.id,
    )


def _open_position(
    open_lot: OpenLot,
    symbol: str,
    options: MatchOptions,
    ids: IdGenerator,
    as_of: datetime,
) -> OpenPosition:
    ref = open_lot.reference_activity
    total_dividends = open_lot.dividend_income if options.include_dividends else 0.0

    # Valued at cost until revalue_open_positions() applies a market quote
    current_price = open_lot.average_cost
    market_value = current_price * open_lot.quantity
    cost_basis = open_lot.average_cost * open_lot.quantity
    unrealized_pl = market_value - cost_basis + total_dividends

    return OpenPosition(
        id=ids(*open_lot.id_parts),
        symbol=symbol,
        asset_name=ref.asset_name,
        quantity=open_lot.quantity,
        average_cost=open_lot.average_cost,
        current_price=current_price,
        market_value=market_value,
        unrealized_pl=unrealized_pl,
        unrealized_return_percent=unrealized_pl / cost_basis if cost_basis > 0 else 0.0,
        total_dividends=total_dividends,
        days_open=(as_of - open_lot.open_date).days,
        open_date=open_lot.open_date,
        account_id=ref.account_id,
        account_name=ref.account_name,
        currency=ref.currency,
        activity_ids=open_lot.activity_ids,
    )


def match_symbol(
    symbol: str,
    activities: list[Activity],
    dividends: list[Activity],
    options: MatchOptions,
    ids: IdGenerator,
    now: datetime | None = None,
) -> MatchResult:
    """Replay one symbol's normalized BUY/SELL activities against a lot pool.

    Dividends are credited to the shares held on their date as the replay
    reaches it: a BUY dated the same day as a dividend receives it, and so
    does a SELL dated that day.
    """
    # sorted() is stable: same-date activities keep their input order
    ordered = sorted(activities, key=lambda a: a.date)
    pending = deque(sorted(dividends, key=lambda a: a.date))
    pool: LotPool = make_lot_pool(LotMethod.parse(options.lot_method))

    result = MatchResult()
    for activity in ordered:
        tx_type = ActivityType.parse(activity.activity_type)

        if tx_type is ActivityType.BUY:
            _accrue_dividends(pool, pending, activity.date, inclusive=False, symbol=symbol)
            if activity.quantity <= 0:
                result.unmatched_buys.append(activity)
                continue
            pool.add(activity)

        elif tx_type is ActivityType.SELL:
            _accrue_dividends(pool, pending, activity.date, inclusive=True, symbol=symbol)
            if activity.quantity <= 0:
                logger.debug("Skipping SELL %s for %s with no quantity", activity.id, symbol)
                continue
            slices = pool.consume(activity.quantity)
            for piece in slices:
                result.closed_trades.append(_closed_trade(piece, activity, symbol, options, ids))

            short = activity.quantity - sum(piece.quantity for piece in slices)
            if short > QUANTITY_EPSILON:
                logger.warning(
                    "Insufficient lots for SELL %s: %s %s, short %.6f shares",
                    activity.id, activity.account_id, symbol, short,
                )
                result.unmatched_sells.append(replace(activity, quantity=short))

    if ordered:
        as_of = _resolve_now(now, ordered[-1].date)
        _accrue_dividends(pool, pending, as_of, inclusive=True, symbol=symbol)
        for open_lot in pool.open_lots():
            result.open_positions.append(_open_position(open_lot, symbol, options, ids, as_of))

    return result


def match_trades(
    activities: Iterable[Activity],
    options: MatchOptions | None = None,
    id_generator: IdGenerator | None = None,
    now: datetime | None = None,
) -> MatchResult:
    """Match buys against sells per symbol into closed trades and open positions.

    Never raises on bad data: unparsable numbers count as zero, zero-quantity
    buys land in ``unmatched_buys`` and sell quantity with no lot left to
    consume lands in ``unmatched_sells``. ``now`` bounds dividends and
    ``days_open`` for open positions; it defaults to the wall clock. A naive
    ``now`` against timezone-aware activity dates is read as wall time in the
    activities' zone, not converted.
    """
    options = options or MatchOptions()
    ids = id_generator or SequentialIdGenerator()
    partitioned = partition_activities(normalize_activities(activities))

    closed_trades: list[ClosedTrade] = []
    open_positions: list[OpenPosition] = []
    unmatched_buys: list[Activity] = []
    unmatched_sells: list[Activity] = []

    for symbol, symbol_activities in partitioned.trading.items():
        dividends = partitioned.dividends.get(symbol, [])
        result = match_symbol(symbol, symbol_activities, dividends, options, ids, now)
        logger.debug(
            "%s: %d closed, %d open, %d unmatched sells",
            symbol, len(result.closed_trades), len(result.open_positions),
            len(result.unmatched_sells),
        )
        closed_trades.extend(result.closed_trades)
        open_positions.extend(result.open_positions)
        unmatched_buys.extend(result.unmatched_buys)
        unmatched_sells.extend(result.unmatched_sells)

    return MatchResult(
        closed_trades=closed_trades,
        open_positions=open_positions,
        unmatched_buys=unmatched_buys,
        unmatched_sells=unmatched_sells,
    )


class TradeMatcher:
    """Holds a MatchOptions so hosts can match repeatedly with one configuration.

    Each call gets a fresh id generator, so repeated calls on the same input
    produce identical results.
    """

    def __init__(
        self,
        options: MatchOptions | None = None,
        id_generator_factory: Callable[[], IdGenerator] = SequentialIdGenerator,
    ) -> None:
        self.options = options or MatchOptions()
        self._id_generator_factory = id_generator_factory

    def match_trades(self, activities: Iterable[Activity], now: datetime | None = None) -> MatchResult:
        return match_trades(activities, self.options, self._id_generator_factory(), now)
