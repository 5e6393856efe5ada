from decimal import Decimal

import pytest

from app.errors import ValidationError
from app.pricing import parse_display_price


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("$24.99", 2499),
        ("₹1,499.00", 149900),
        ("USD 10", 1000),
        ("0.015", 2),
        (24.99, 2499),
        (7, 700),
        (Decimal("3.335"), 334),
    ],
)
def test_parse_display_price(raw, expected):
    assert parse_display_price(raw) == expected


@pytest.mark.parametrize("raw", ["", "free", "$0.00", "-5", "0.004", None, True, "1.2.3"])
def test_parse_display_price_rejects_non_positive_or_garbage(raw):
    with pytest.raises(ValidationError):
        parse_display_price(raw)
