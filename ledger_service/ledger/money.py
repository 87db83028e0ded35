"""
Fixed-point money helpers.

Amounts are `Decimal` values with two fractional digits. Floats coming from
JSON bodies are converted through `str()` so that `60.1` stays `60.1`.
"""

import uuid
from decimal import Decimal, InvalidOperation

from ledger_service.errors import ValidationError

MONEY_QUANTUM = Decimal('0.01')
# largest value a Numeric(12, 2) column holds
MAX_AMOUNT = Decimal('9999999999.99')


def to_money(value):
    """Quantize an already-trusted numeric value to two decimal places."""
    return Decimal(value).quantize(MONEY_QUANTUM)


def parse_amount(value, field='amount'):
    """
    Parse a transfer amount from user input.

    Accepts ints, floats, Decimals and numeric strings. Rejects booleans,
    non-finite values, zero or negative amounts and anything with more than
    two fractional digits.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f'{field} must be a number')

    if isinstance(value, float):
        value = str(value)

    try:
        amount = Decimal(value.strip() if isinstance(value, str) else value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f'{field} must be a number')

    if not amount.is_finite():
        raise ValidationError(f'{field} must be finite')
    if amount <= 0:
        raise ValidationError(f'{field} must be greater than zero')
    if amount > MAX_AMOUNT:
        raise ValidationError(f'{field} must not exceed {MAX_AMOUNT}')
    if amount != amount.quantize(MONEY_QUANTUM):
        raise ValidationError(f'{field} must have at most two decimal places')

    return amount.quantize(MONEY_QUANTUM)


def parse_user_id(value, field='user_id'):
    if isinstance(value, uuid.UUID):
        return value
    if not isinstance(value, str):
        raise ValidationError(f'{field} must be a string')
    try:
        return uuid.UUID(value)
    except ValueError:
        raise ValidationError(f'{field} is not a valid id')
