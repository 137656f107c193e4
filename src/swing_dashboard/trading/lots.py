from __future__ import annotations

import itertools
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime

from swing_dashboard.trading.models import Activity, LotMethod

# Quantities at or below this are treated as fully consumed (float dust).
QUANTITY_EPSILON = 1e-9


class SequentialIdGenerator:
    """Deterministic ids: the contributing ids joined with a per-run counter.

    >>> ids = SequentialIdGenerator()
    >>> ids("buy-1", "sell-1")
    'buy-1-sell-1-1'
    """

    def __init__(self, start: int = 1) -> None:
        self._counter = itertools.count(start)

    def __call__(self, *parts: str) -> str:
        return "-".join([*parts, str(next(self._counter))])


def _take_share(balance: float, matched: float, remaining: float) -> float:
    """Portion of ``balance`` that goes with ``matched`` out of ``remaining`` shares."""
    if remaining <= QUANTITY_EPSILON:
        return balance
    return balance * min(matched / remaining, 1.0)


@dataclass
class Lot:
    source_activity: Activity
    remaining_quantity: float
    original_quantity: float
    allocated_dividends: list[Activity] = field(default_factory=list)
    # Dividend income accrued while held and not yet handed to a slice
    dividend_balance: float = 0.0


@dataclass
class AverageLot:
    total_quantity: float
    remaining_quantity: float
    cost_basis_total: float
    average_price: float
    contributing_activities: list[Activity] = field(default_factory=list)
    allocated_dividends: list[Activity] = field(default_factory=list)
    # Buy fees and dividends not yet handed to a slice; each slice takes its
    # fraction of remaining_quantity.
    fee_balance: float = 0.0
    dividend_balance: float = 0.0

    @property
    def open_date(self) -> datetime:
        return min(a.date for a in self.contributing_activities)

    def merge(self, activity: Activity) -> None:
        """Fold a BUY into the pool at a weighted-average price."""
        new_remaining = self.remaining_quantity + activity.quantity
        new_cost = self.average_price * self.remaining_quantity + activity.unit_price * activity.quantity
        self.total_quantity += activity.quantity
        self.remaining_quantity = new_remaining
        self.cost_basis_total = new_cost
        self.average_price = new_cost / new_remaining if new_remaining else 0.0
        self.fee_balance += activity.fee
        self.contributing_activities.append(activity)


@dataclass(frozen=True)
class LotSlice:
    """One consumption of buy quantity by a sell.

    buy_fee and dividend_income are the slice's shares before the
    include_fees / include_dividends switches are applied.
    """
    quantity: float
    entry_price: float
    entry_date: datetime
    buy_activity: Activity
    buy_fee: float
    dividend_income: float
    id_parts: tuple[str, ...]


@dataclass(frozen=True)
class OpenLot:
    """Unconsumed buy quantity left in a pool at end of stream."""
    quantity: float
    average_cost: float
    open_date: datetime
    reference_activity: Activity
    activity_ids: tuple[str, ...]
    dividend_income: float
    id_parts: tuple[str, ...]


class LotPool(ABC):
    """Per-symbol buy inventory that sells are matched against."""

    @abstractmethod
    def add(self, activity: Activity) -> None:
        ...

    @abstractmethod
    def accrue(self, dividend: Activity) -> bool:
        """Credit a dividend to the shares held right now.

        Returns False when nothing is held, in which case the dividend is
        not attributed to any lot.
        """

    @abstractmethod
    def consume(self, quantity: float) -> list[LotSlice]:
        """Match up to ``quantity``; the returned slices may cover less."""

    @abstractmethod
    def open_lots(self) -> list[OpenLot]:
        ...


class QueueLotPool(LotPool):
    """FIFO takes from the head of the queue, LIFO from the tail."""

    def __init__(self, lifo: bool = False) -> None:
        self._lifo = lifo
        self._lots: deque[Lot] = deque()

    def add(self, activity: Activity) -> None:
        self._lots.append(Lot(
            source_activity=activity,
            remaining_quantity=activity.quantity,
            original_quantity=activity.quantity,
        ))

    def accrue(self, dividend: Activity) -> bool:
        held = sum(lot.remaining_quantity for lot in self._lots)
        if held <= QUANTITY_EPSILON:
            return False
        # Split by shares held on the dividend date
        for lot in self._lots:
            lot.dividend_balance += dividend.amount * lot.remaining_quantity / held
            lot.allocated_dividends.append(dividend)
        return True

    def consume(self, quantity: float) -> list[LotSlice]:
        slices: list[LotSlice] = []
        remaining = quantity
        while remaining > QUANTITY_EPSILON and self._lots:
            lot = self._lots[-1] if self._lifo else self._lots[0]
            buy = lot.source_activity
            matched = min(remaining, lot.remaining_quantity)
            dividend_income = _take_share(lot.dividend_balance, matched, lot.remaining_quantity)

            slices.append(LotSlice(
                quantity=matched,
                entry_price=buy.unit_price,
                entry_date=buy.date,
                buy_activity=buy,
                buy_fee=buy.fee * matched / buy.quantity,
                dividend_income=dividend_income,
                id_parts=(buy.id,),
            ))

            lot.dividend_balance -= dividend_income
            lot.remaining_quantity -= matched
            remaining -= matched
            if lot.remaining_quantity <= QUANTITY_EPSILON:
                if self._lifo:
                    self._lots.pop()
                else:
                    self._lots.popleft()
        return slices

    def open_lots(self) -> list[OpenLot]:
        return [
            OpenLot(
                quantity=lot.remaining_quantity,
                average_cost=lot.source_activity.unit_price,
                open_date=lot.source_activity.date,
                reference_activity=lot.source_activity,
                activity_ids=(lot.source_activity.id,),
                dividend_income=lot.dividend_balance,
                id_parts=(lot.source_activity.id, "open"),
            )
            for lot in self._lots
            if lot.remaining_quantity > QUANTITY_EPSILON
        ]


class AverageLotPool(LotPool):
    """All buys pooled into one weighted-average holding.

    The holding resets once fully sold; the next BUY starts a fresh one.
    """

    def __init__(self) -> None:
        self._lot: AverageLot | None = None

    @property
    def lot(self) -> AverageLot | None:
        return self._lot

    def add(self, activity: Activity) -> None:
        if self._lot is None:
            self._lot = AverageLot(
                total_quantity=activity.quantity,
                remaining_quantity=activity.quantity,
                cost_basis_total=activity.unit_price * activity.quantity,
                average_price=activity.unit_price,
                contributing_activities=[activity],
                fee_balance=activity.fee,
            )
        else:
            self._lot.merge(activity)

    def accrue(self, dividend: Activity) -> bool:
        lot = self._lot
        if lot is None or lot.remaining_quantity <= QUANTITY_EPSILON:
            return False
        lot.dividend_balance += dividend.amount
        lot.allocated_dividends.append(dividend)
        return True

    def consume(self, quantity: float) -> list[LotSlice]:
        lot = self._lot
        if lot is None or lot.remaining_quantity <= QUANTITY_EPSILON:
            return []

        matched = min(quantity, lot.remaining_quantity)
        first, latest = lot.contributing_activities[0], lot.contributing_activities[-1]
        buy_fee = _take_share(lot.fee_balance, matched, lot.remaining_quantity)
        dividend_income = _take_share(lot.dividend_balance, matched, lot.remaining_quantity)
        # Average price is unchanged by a sell
        result = LotSlice(
            quantity=matched,
            entry_price=lot.average_price,
            entry_date=lot.open_date,
            buy_activity=latest,
            buy_fee=buy_fee,
            dividend_income=dividend_income,
            id_parts=("avg", first.id),
        )

        lot.fee_balance -= buy_fee
        lot.dividend_balance -= dividend_income
        lot.remaining_quantity -= matched
        lot.cost_basis_total = lot.average_price * lot.remaining_quantity
        if lot.remaining_quantity <= QUANTITY_EPSILON:
            self._lot = None
        return [result]

    def open_lots(self) -> list[OpenLot]:
        lot = self._lot
        if lot is None or lot.remaining_quantity <= QUANTITY_EPSILON:
            return []
        return [OpenLot(
            quantity=lot.remaining_quantity,
            average_cost=lot.average_price,
            open_date=lot.open_date,
            reference_activity=lot.contributing_activities[-1],
            activity_ids=tuple(a.id for a in lot.contributing_activities),
            dividend_income=lot.dividend_balance,
            id_parts=("avg-open", lot.contributing_activities[0].id),
        )]


def make_lot_pool(method: LotMethod) -> LotPool:
    if method is LotMethod.AVERAGE:
        return AverageLotPool()
    return QueueLotPool(lifo=method is LotMethod.LIFO)
