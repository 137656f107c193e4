import io
import logging
from datetime import datetime, timezone

import pytest

from swing_dashboard.trading.matcher import match_trades
from swing_dashboard.trading.models import ActivityType
from swing_dashboard.trading.parsers import parse_activity_csv

CSV = """\
id,date,symbol,activityType,quantity,unitPrice,fee,amount,currency,accountId,accountName,assetName,hasSwingTag
b1,2024-01-15,AAPL,BUY,10,100.00,1.00,,USD,acct-1,Brokerage,Apple Inc.,true
d1,2024-01-20,AAPL,DIVIDEND,,,,"$2.50",USD,acct-1,Brokerage,Apple Inc.,
x1,2024-01-21,AAPL,SPLIT,2,,,,USD,acct-1,Brokerage,,
,2024-01-25,AAPL,sell,10,"1,10.00",oops,,USD,acct-1,Brokerage,,false
"""


def test_parse_activity_csv():
    acts = parse_activity_csv(io.StringIO(CSV))
    assert [a.id for a in acts] == ["b1", "d1", "row-3"]

    buy = acts[0]
    assert buy.activity_type is ActivityType.BUY
    assert buy.date == datetime(2024, 1, 15, tzinfo=timezone.utc)
    # numbers are left raw for the normalizer
    assert buy.quantity == "10"
    assert buy.asset_name == "Apple Inc."
    assert buy.has_swing_tag is True

    sell = acts[2]
    assert sell.activity_type is ActivityType.SELL
    assert sell.asset_name is None
    assert sell.has_swing_tag is False


def test_skipped_types_are_logged(caplog):
    with caplog.at_level(logging.WARNING, logger="swing_dashboard.trading.parsers"):
        parse_activity_csv(io.StringIO(CSV))
    assert "Skipped activity types: SPLIT x1" in caplog.text


def test_rows_without_date_are_skipped(caplog):
    text = (
        "id,date,symbol,activityType,quantity,unitPrice,fee,amount,currency,accountId,accountName\n"
        "b1,,AAPL,BUY,10,100,0,0,USD,acct-1,Brokerage\n"
    )
    with caplog.at_level(logging.WARNING):
        assert parse_activity_csv(io.StringIO(text)) == []
    assert "has no date" in caplog.text


def test_missing_required_columns_raises():
    with pytest.raises(ValueError, match="unitPrice|unit_price"):
        parse_activity_csv(io.StringIO("id,date,symbol,activityType\nb1,2024-01-15,AAPL,BUY\n"))


def test_parsed_rows_feed_the_matcher():
    acts = parse_activity_csv(io.StringIO(CSV))
    result = match_trades(acts, now=datetime(2024, 2, 1, tzinfo=timezone.utc))
    [trade] = result.closed_trades
    # "1,10.00" strips to 110; fee "oops" counts as zero
    assert trade.exit_price == pytest.approx(110.0)
    assert trade.total_fees == pytest.approx(1.0)
    assert trade.total_dividends == pytest.approx(2.5)
    assert trade.realized_pl == pytest.approx(100.0 - 1.0 + 2.5)
