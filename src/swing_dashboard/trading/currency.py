from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass

Converter = Callable[[float, str], float]


@dataclass(frozen=True)
class ExchangeRate:
    from_currency: str
    to_currency: str
    rate: float


def rate_for(fx_rates: Mapping[str, float] | None, currency: str) -> float:
    """Rate from ``currency`` to the reporting currency.

    A missing (or zero) rate means no conversion: 1.0.
    """
    if not fx_rates:
        return 1.0
    return fx_rates.get(currency) or 1.0


def convert_amount(amount: float, currency: str, fx_rates: Mapping[str, float] | None) -> float:
    return amount * rate_for(fx_rates, currency)


def make_converter(fx_rates: Mapping[str, float] | None) -> Converter:
    rates = dict(fx_rates or {})
    return lambda amount, currency: convert_amount(amount, currency, rates)


def build_fx_rate_map(
    exchange_rates: Iterable[ExchangeRate],
    reporting_currency: str,
) -> dict[str, float]:
    """Build {currency: rate_to_reporting} from a list of pairwise quotes.

    Direct quotes (X -> reporting) are used as is; inverse quotes
    (reporting -> X) are inverted. The reporting currency maps to 1.
    """
    fx_rates: dict[str, float] = {reporting_currency: 1.0}
    for rate in exchange_rates:
        if rate.to_currency == reporting_currency:
            fx_rates[rate.from_currency] = rate.rate
        elif rate.from_currency == reporting_currency:
            fx_rates[rate.to_currency] = 1.0 / rate.rate if rate.rate > 0 else 1.0
    return fx_rates


def missing_currencies(currencies: Iterable[str], fx_rates: Mapping[str, float]) -> list[str]:
    """Currencies with no entry in ``fx_rates`` (these convert 1:1)."""
    return sorted({c for c in currencies if c and c not in fx_rates})
