"""Print a swing-trading report for an activity CSV export.

Usage: python scripts/swing_report.py activities.csv [PERIOD] [--json]
PERIOD is one of 1M, 3M, 6M, YTD, 1Y, ALL (default from SWING_DEFAULT_PERIOD).
--json prints metrics, closed trades and open positions as JSON instead of tables.
Every activity in the file is treated as selected. Open positions stay at
cost since no market quotes are supplied.
"""
import json
import logging
import sys

from swing_dashboard.config import Settings
from swing_dashboard.dashboard import DashboardPreferences, build_swing_dashboard
from swing_dashboard.trading.parsers import parse_activity_csv

logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

args = [a for a in sys.argv[1:] if a != "--json"]
as_json = "--json" in sys.argv[1:]

settings = Settings()
csv_path = args[0]
period = args[1] if len(args) > 1 else settings.default_period

activities = parse_activity_csv(csv_path)
prefs = DashboardPreferences.from_settings(settings, selected_activity_ids=[a.id for a in activities])
board = build_swing_dashboard(activities, prefs, settings.reporting_currency, period=period)

if as_json:
    print(json.dumps({
        "metrics": board.metrics.to_dict(),
        "closedTrades": [t.to_dict() for t in board.closed_trades],
        "openPositions": [p.to_dict() for p in board.open_positions],
    }, indent=2))
    sys.exit(0)

m = board.metrics
print(f"=== {len(activities)} activities, lot method {settings.lot_method.value}, period {period} ===")
print(f"  Realized P/L:   {m.total_realized_pl:>12,.2f} {m.currency}")
print(f"  Unrealized P/L: {m.total_unrealized_pl:>12,.2f} {m.currency}")
print(f"  Trades: {m.total_trades}  win rate {m.win_rate*100:.1f}%  profit factor {m.profit_factor:.2f}")
print(f"  Avg win {m.average_win:,.2f}  avg loss {m.average_loss:,.2f}  expectancy {m.expectancy:,.2f}")
print(f"  Avg holding {m.average_holding_days:.1f} days")

print("\n=== Closed trades ===")
for t in board.closed_trades:
    print(f"  {t.exit_date:%Y-%m-%d} {t.symbol:<10} {t.quantity:>10,.2f} "
          f"{t.entry_price:>10,.2f} -> {t.exit_price:>10,.2f}  "
          f"fees={t.total_fees:>7,.2f}  div={t.total_dividends:>7,.2f}  "
          f"P/L={t.realized_pl:>11,.2f} ({t.return_percent*100:>6.2f}%)")

print("\n=== Open positions ===")
for p in board.open_positions:
    print(f"  {p.symbol:<10} {p.quantity:>10,.2f} @ {p.average_cost:>10,.2f}  "
          f"opened {p.open_date:%Y-%m-%d} ({p.days_open}d)  div={p.total_dividends:,.2f}")

if board.unmatched_sells:
    print("\n=== Unmatched sells ===")
    for a in board.unmatched_sells:
        print(f"  {a.id} {a.symbol} {a.quantity:,.4f}")

print(f"\n=== P/L by {board.granularity.value} period ===")
for row in board.period_pl:
    print(f"  {row.date:<10} {row.realized_pl:>12,.2f}  trades={row.trade_count} "
          f"W/L={row.win_count}/{row.loss_count}")
