import pytest

from swing_dashboard.trading.currency import (
    ExchangeRate,
    build_fx_rate_map,
    convert_amount,
    make_converter,
    missing_currencies,
    rate_for,
)


def test_reporting_currency_maps_to_one():
    assert build_fx_rate_map([], "USD") == {"USD": 1.0}


def test_direct_and_inverse_rates():
    rates = build_fx_rate_map(
        [
            ExchangeRate("CAD", "USD", 0.75),
            ExchangeRate("USD", "EUR", 0.8),
            ExchangeRate("GBP", "JPY", 190.0),  # unrelated pair is ignored
        ],
        "USD",
    )
    assert rates["CAD"] == pytest.approx(0.75)
    assert rates["EUR"] == pytest.approx(1.25)
    assert "GBP" not in rates


def test_non_positive_inverse_rate_treated_as_one():
    rates = build_fx_rate_map([ExchangeRate("USD", "EUR", 0.0)], "USD")
    assert rates["EUR"] == 1.0


def test_missing_rate_converts_one_to_one():
    assert rate_for({"CAD": 0.75}, "EUR") == 1.0
    assert rate_for(None, "EUR") == 1.0
    assert convert_amount(100.0, "EUR", {"CAD": 0.75}) == 100.0


def test_converter_applies_rate():
    convert = make_converter({"CAD": 0.75})
    assert convert(200.0, "CAD") == pytest.approx(150.0)
    assert convert(200.0, "USD") == 200.0


def test_missing_currencies_sorted_and_unique():
    assert missing_currencies(["EUR", "CAD", "EUR", "USD", ""], {"USD": 1.0}) == ["CAD", "EUR"]
