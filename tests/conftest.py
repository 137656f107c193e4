from datetime import datetime

import pytest

from swing_dashboard.trading.models import Activity


def make_activity(**kwargs) -> Activity:
    """Build an Activity with sensible defaults; kwargs override any field."""
    defaults = dict(
        id="a1",
        symbol="AAPL",
        account_id="acct-1",
        account_name="Brokerage",
        activity_type="BUY",
        date=datetime(2024, 1, 15),
        quantity=10.0,
        unit_price=100.0,
        fee=0.0,
        amount=0.0,
        currency="USD",
    )
    defaults.update(kwargs)
    return Activity(**defaults)


@pytest.fixture
def activity():
    return make_activity


@pytest.fixture
def round_trip():
    """Buy 10 @ $100 on Jan 15, sell 10 @ $110 on Jan 25."""
    return [
        make_activity(id="b1", activity_type="BUY", date=datetime(2024, 1, 15),
                      quantity=10, unit_price=100),
        make_activity(id="s1", activity_type="SELL", date=datetime(2024, 1, 25),
                      quantity=10, unit_price=110),
    ]
