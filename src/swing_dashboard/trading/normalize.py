from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from decimal import Decimal

from swing_dashboard.trading.models import Activity, ActivityType


@dataclass(frozen=True)
class ParsedNumber:
    """Result of parsing a numeric field: ``ok`` is False when it fell back to zero."""
    value: float
    ok: bool

    @classmethod
    def zero(cls) -> ParsedNumber:
        return cls(0.0, False)


def parse_number(raw: object) -> ParsedNumber:
    """Parse a quantity/price/fee/amount that may be a number or a decimal string.

    Strings may carry a currency sign and thousands separators ('$1,234.50').
    Anything unparsable, non-finite, or of another type parses to zero.
    """
    if isinstance(raw, bool) or raw is None:
        return ParsedNumber.zero()
    if isinstance(raw, Decimal) and not raw.is_finite():
        # float() raises on signaling NaN
        return ParsedNumber.zero()
    if isinstance(raw, (int, float, Decimal)):
        try:
            value = float(raw)
        except OverflowError:
            return ParsedNumber.zero()
        return ParsedNumber(value, True) if math.isfinite(value) else ParsedNumber.zero()
    if isinstance(raw, str):
        text = raw.strip().replace("$", "").replace(",", "")
        if not text:
            return ParsedNumber.zero()
        try:
            value = float(text)
        except ValueError:
            return ParsedNumber.zero()
        return ParsedNumber(value, True) if math.isfinite(value) else ParsedNumber.zero()
    return ParsedNumber.zero()


def coerce_number(raw: object) -> float:
    return parse_number(raw).value


def normalize_activity(activity: Activity) -> Activity:
    return replace(
        activity,
        quantity=coerce_number(activity.quantity),
        unit_price=coerce_number(activity.unit_price),
        fee=coerce_number(activity.fee),
        amount=coerce_number(activity.amount),
    )


def normalize_activities(activities) -> list[Activity]:
    """Coerce the numeric fields of every activity; other fields are untouched."""
    return [normalize_activity(a) for a in activities]


@dataclass(frozen=True)
class PartitionedActivities:
    trading: dict[str, list[Activity]] = field(default_factory=dict)
    dividends: dict[str, list[Activity]] = field(default_factory=dict)

    @property
    def symbols(self) -> list[str]:
        """Symbols with trading activity, in first-seen order."""
        return list(self.trading)


def partition_activities(activities) -> PartitionedActivities:
    """Split BUY/SELL from DIVIDEND activities, each grouped by symbol.

    Activities of any other type are dropped.
    """
    trading: dict[str, list[Activity]] = {}
    dividends: dict[str, list[Activity]] = {}
    for activity in activities:
        tx_type = ActivityType.parse(activity.activity_type)
        if tx_type in (ActivityType.BUY, ActivityType.SELL):
            trading.setdefault(activity.symbol, []).append(activity)
        elif tx_type is ActivityType.DIVIDEND:
            dividends.setdefault(activity.symbol, []).append(activity)
    return PartitionedActivities(trading=trading, dividends=dividends)
