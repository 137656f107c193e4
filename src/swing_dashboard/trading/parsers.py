from __future__ import annotations

import io
import logging
from datetime import datetime
from pathlib import Path

import pandas as pd

from swing_dashboard.trading.models import Activity, ActivityType

logger = logging.getLogger(__name__)

# Canonical column -> accepted header spellings
_COLUMNS: dict[str, tuple[str, ...]] = {
    "id": ("id", "Id", "ID"),
    "date": ("date", "Date"),
    "symbol": ("symbol", "assetSymbol", "Symbol"),
    "activity_type": ("activityType", "activity_type", "Type"),
    "quantity": ("quantity", "Quantity"),
    "unit_price": ("unitPrice", "unit_price", "Price"),
    "fee": ("fee", "Fee"),
    "amount": ("amount", "Amount"),
    "currency": ("currency", "Currency"),
    "account_id": ("accountId", "account_id"),
    "account_name": ("accountName", "account_name"),
}
_OPTIONAL_COLUMNS: dict[str, tuple[str, ...]] = {
    "asset_name": ("assetName", "asset_name"),
    "has_swing_tag": ("hasSwingTag", "has_swing_tag"),
}

_TRUE_STRINGS = {"true", "1", "yes", "y"}


def _col(row, *names: str) -> str:
    """Read the first matching column name from a row, return stripped string."""
    for name in names:
        val = row.get(name)
        if val is not None:
            s = str(val).strip()
            if s and s != "nan":
                return s
    return ""


def _parse_date(val: str) -> datetime:
    return pd.to_datetime(val, utc=True).to_pydatetime()


def _check_columns(columns) -> None:
    present = set(columns)
    missing = [
        canonical for canonical, names in _COLUMNS.items()
        if not present.intersection(names)
    ]
    if missing:
        raise ValueError(f"Activity CSV is missing required columns: {', '.join(missing)}")


def parse_activity_csv(file_path: Path | str | io.StringIO) -> list[Activity]:
    """Parse an activity export into Activity records.

    Numeric columns are left as the raw strings from the file; the matcher's
    normalizer coerces them (unparsable -> 0). Dates are read as UTC.
    Rows whose activity type is not BUY/SELL/DIVIDEND are skipped.
    """
    df = pd.read_csv(file_path, dtype=str)
    df.columns = df.columns.str.strip()
    _check_columns(df.columns)

    activities: list[Activity] = []
    skipped: dict[str, int] = {}

    for index, row in df.iterrows():
        raw_type = _col(row, *_COLUMNS["activity_type"])
        tx_type = ActivityType.parse(raw_type)
        if tx_type is None:
            skipped[raw_type] = skipped.get(raw_type, 0) + 1
            continue

        date_str = _col(row, *_COLUMNS["date"])
        if not date_str:
            logger.warning("Row %d has no date, skipping", index)
            continue

        activities.append(Activity(
            id=_col(row, *_COLUMNS["id"]) or f"row-{index}",
            symbol=_col(row, *_COLUMNS["symbol"]),
            account_id=_col(row, *_COLUMNS["account_id"]),
            account_name=_col(row, *_COLUMNS["account_name"]),
            activity_type=tx_type,
            date=_parse_date(date_str),
            quantity=_col(row, *_COLUMNS["quantity"]),
            unit_price=_col(row, *_COLUMNS["unit_price"]),
            fee=_col(row, *_COLUMNS["fee"]),
            amount=_col(row, *_COLUMNS["amount"]),
            currency=_col(row, *_COLUMNS["currency"]),
            asset_name=_col(row, *_OPTIONAL_COLUMNS["asset_name"]) or None,
            has_swing_tag=_col(row, *_OPTIONAL_COLUMNS["has_swing_tag"]).lower() in _TRUE_STRINGS,
        ))

    if skipped:
        logger.warning(
            "Skipped activity types: %s",
            ", ".join(f"{t or '<blank>'} x{n}" for t, n in sorted(skipped.items())),
        )

    return activities
