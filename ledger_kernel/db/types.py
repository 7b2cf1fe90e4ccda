"""
Module: ledger_kernel.db.types
Responsibility: Annotated type aliases and helper functions for monetary
    columns and values.  Centralizes precision and rounding so that every
    model, helper and service uses identical definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/ and by the modules layer.  MUST NOT import from those layers.

Invariants enforced:
    - No floats anywhere.  ``to_money`` refuses ``float`` input outright.
    - ``round_money`` is the only rounding function for monetary values;
      amounts are kept to centavos (2 decimal places, ROUND_HALF_UP).

Failure modes:
    - InvalidAmountError when a value cannot be read as a decimal amount.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated

from sqlalchemy import Numeric

from ledger_kernel.exceptions import InvalidAmountError

# Monetary amount, stored to centavos
Money = Annotated[Decimal, Numeric(18, 2)]

# Percentage rates (e.g. annual interest 12.5000)
Rate = Annotated[Decimal, Numeric(9, 4)]

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP
ZERO = Decimal("0")


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the given number of decimal places.

    Preconditions: value is a Decimal.
    Postconditions: Returns value quantized with the given rounding mode.
    """
    quantize_str = "0." + "0" * decimal_places
    return value.quantize(Decimal(quantize_str), rounding=rounding)


def to_money(value: Decimal | int | str | None, field: str = "amount") -> Decimal:
    """
    Coerce a caller-supplied amount into a rounded Decimal.

    ``None`` reads as zero, matching how optional payslip fields are
    treated.  Floats are rejected; use ``Decimal("...")`` or a string.

    Raises:
        InvalidAmountError: for floats and unparseable values.
    """
    if value is None:
        return round_money(ZERO)
    if isinstance(value, float):
        raise InvalidAmountError(field, value, "must be a Decimal, int or str, not float")
    if isinstance(value, Decimal):
        return round_money(value)
    try:
        return round_money(Decimal(value))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountError(field, value, "is not a number") from None
