"""
Fixed-point money helpers.

Amounts are carried as integer paise inside the engine and converted to
two-place ``Decimal`` rupees only when a breakdown is presented.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

from payroll_engine.core.errors import ValidationError


PAISE_PER_RUPEE = 100
TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")

Amount = Union[int, float, str, Decimal]


def _q(value: Decimal) -> Decimal:
    return value.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def rupees(value: Amount) -> int:
    """Whole or fractional rupees to paise, for table literals."""
    return to_paise(value)


def to_paise(value: Amount, *, field: str = "amount") -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a decimal amount, got bool", field=field)
    try:
        # floats go through str() so 0.1 stays 0.1
        amount = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{field} must be a decimal amount", field=field)
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite amount", field=field)
    if amount < 0:
        raise ValidationError(f"{field} must be non-negative", field=field)
    return int(_q(amount) * PAISE_PER_RUPEE)


def from_paise(paise: int) -> Decimal:
    return _q(Decimal(paise) / PAISE_PER_RUPEE)


def apply_rate(paise: int, rate: Decimal) -> int:
    """``paise * rate`` rounded half-up to the nearest paisa."""
    return int((Decimal(paise) * rate).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def divide(paise: int, divisor: int) -> int:
    return int((Decimal(paise) / Decimal(divisor)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def require_paise(value: object, field: str) -> int:
    """Guard for the statutory calculators: non-negative integer paise only."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer amount in paise", field=field)
    if value < 0:
        raise ValidationError(f"{field} must be non-negative", field=field)
    return value
