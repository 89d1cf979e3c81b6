from datetime import date

import pytest

from salesledger.backend.aggregator.formatting import (
    format_currency,
    format_display_date,
    format_full_date,
    group_indian,
)


@pytest.mark.parametrize(
    "amount, expected",
    [
        (0, "₹0"),
        (None, "₹0"),
        (999, "₹999"),
        (5000, "₹5,000"),
        (100000, "₹1,00,000"),
        (12345678, "₹1,23,45,678"),
        (2500.5, "₹2,501"),
        (2500.49, "₹2,500"),
        (-500, "-₹500"),
    ],
)
def test_format_currency(amount, expected):
    assert format_currency(amount) == expected


def test_format_currency_custom_symbol():
    assert format_currency(1500, symbol="Rs.") == "Rs.1,500"


def test_group_indian_short_values_unchanged():
    assert group_indian("12") == "12"
    assert group_indian("1234") == "1,234"


def test_date_formats():
    day = date(2024, 3, 15)
    assert format_display_date(day) == "15/03/2024"
    assert format_full_date(day) == "Friday, 15 March 2024"


@pytest.mark.parametrize("amount", [float("inf"), float("-inf"), float("nan")])
def test_format_currency_non_finite_is_zero(amount):
    assert format_currency(amount) == "₹0"
