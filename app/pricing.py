"""Conversion of display prices (``"$24.99"``) into integer minor units."""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

from app.errors import ValidationError

_NON_NUMERIC = re.compile(r"[^0-9.\-]+")

PriceInput = Union[str, int, float, Decimal]


def parse_display_price(value: PriceInput) -> int:
    """Return ``value`` expressed in minor currency units.

    Every character other than digits, ``.`` and ``-`` is stripped before the
    amount is multiplied by 100 and rounded half-up. Anything that does not
    yield a positive amount raises :class:`ValidationError`.
    """

    if isinstance(value, bool) or value is None:
        raise ValidationError("Invalid price value")
    if isinstance(value, (int, float, Decimal)):
        raw = str(value)
    else:
        raw = _NON_NUMERIC.sub("", str(value))
    try:
        amount = Decimal(raw)
    except InvalidOperation as exc:
        raise ValidationError("Invalid price value") from exc
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("Invalid price value")
    minor = (amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    if minor <= 0:
        raise ValidationError("Invalid price value")
    return int(minor)
