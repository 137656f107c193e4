from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace

from swing_dashboard.trading.models import OpenPosition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarketQuote:
    """A market price supplied by the host.

    ``fx_rate`` converts ``price`` from ``currency`` into the position's
    currency when the two differ.
    """
    symbol: str
    price: float | None
    currency: str | None = None
    fx_rate: float | None = None


def base_symbol(symbol: str) -> str:
    """'SHOP.TO' -> 'SHOP'."""
    return symbol.split(".")[0]


def find_quote(symbol: str, quotes: Mapping[str, MarketQuote]) -> MarketQuote | None:
    """Exact symbol first, then a quote sharing the exchange-less base symbol."""
    if symbol in quotes:
        return quotes[symbol]
    base = base_symbol(symbol)
    for quote_symbol, quote in quotes.items():
        if base_symbol(quote_symbol) == base:
            return quote
    return None


def quote_price_in(quote: MarketQuote, currency: str) -> float:
    if quote.currency and quote.currency != currency and quote.fx_rate:
        return quote.price * quote.fx_rate
    return quote.price


def revalue_position(position: OpenPosition, price: float) -> OpenPosition:
    market_value = price * position.quantity
    cost_basis = position.cost_basis
    unrealized_pl = market_value - cost_basis + position.total_dividends
    return replace(
        position,
        current_price=price,
        market_value=market_value,
        unrealized_pl=unrealized_pl,
        unrealized_return_percent=unrealized_pl / cost_basis if cost_basis > 0 else 0.0,
    )


def revalue_open_positions(
    positions: Iterable[OpenPosition],
    quotes: Iterable[MarketQuote] | Mapping[str, MarketQuote],
) -> list[OpenPosition]:
    """Mark open positions to market; positions without a usable quote keep cost valuation."""
    if not isinstance(quotes, Mapping):
        quotes = {q.symbol: q for q in quotes}

    revalued: list[OpenPosition] = []
    for position in positions:
        quote = find_quote(position.symbol, quotes)
        if quote is None or quote.price is None or quote.price <= 0:
            logger.debug("No market price for %s; keeping cost valuation", position.symbol)
            revalued.append(position)
            continue
        revalued.append(revalue_position(position, quote_price_in(quote, position.currency)))
    return revalued
