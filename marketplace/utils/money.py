"""Amount parsing: strict for writes, lenient for aggregates."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from marketplace.core.errors import InputValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
# Numeric(10, 2) holds at most eight integer digits.
MAX_AMOUNT = Decimal("100000000")


def parse_amount(value: Any, field: str) -> Decimal:
    """Return ``value`` as a non-negative Decimal or raise a validation error."""
    if value is None or isinstance(value, bool):
        raise InputValidationError(f"{field} is required and must be numeric")
    try:
        amount = Decimal(str(value))
    except InvalidOperation as exc:
        raise InputValidationError(f"{field} must be numeric") from exc
    if not amount.is_finite():
        raise InputValidationError(f"{field} must be numeric")
    if amount < 0:
        raise InputValidationError(f"{field} must be >= 0")
    if amount >= MAX_AMOUNT:
        raise InputValidationError(f"{field} must be less than {MAX_AMOUNT}")
    try:
        return amount.quantize(CENT)
    except InvalidOperation as exc:
        raise InputValidationError(f"{field} must be numeric") from exc


def as_amount(value: Any) -> Decimal:
    """Best-effort conversion used by aggregates; anything unusable counts as zero."""
    if value is None or isinstance(value, bool):
        return ZERO
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        return ZERO
    if not amount.is_finite() or abs(amount) >= MAX_AMOUNT:
        return ZERO
    return amount
