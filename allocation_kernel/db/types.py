"""
Module: allocation_kernel.db.types
Responsibility: Column type constants and helpers for quantity and value
    columns.  Centralizes precision and rounding so every model and service
    uses identical definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/ and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - No floats anywhere.  Quantities and values are Decimal with explicit
      precision; comparisons are exact.
    - round_value() is the ONLY sanctioned rounding function for allocation
      values (half-up, 2 places by default).
    - fits_quantity_column() decides whether a Decimal survives a round trip
      through QUANTITY_TYPE unchanged.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext

from sqlalchemy import Numeric, String

# Quantity and value columns: 38 digits total, 9 decimal places
QUANTITY_PRECISION = 38
QUANTITY_SCALE = 9
QUANTITY_TYPE = Numeric(QUANTITY_PRECISION, QUANTITY_SCALE)

# Exact product of two column values; wider than any Numeric(38, 9) operand pair
_ARITHMETIC_PRECISION = 2 * QUANTITY_PRECISION + 2

# Scope / link kind discriminators
KIND_TYPE = String(32)

# External document reference (contract, authorization, commitment, invoice)
DOCUMENT_REF_TYPE = String(100)

# Free-text notes on an allocation record
NOTES_MAX_LENGTH = 1000
NOTES_TYPE = String(NOTES_MAX_LENGTH)

VALUE_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP


def to_decimal(value: Decimal | str | int) -> Decimal:
    """
    Convert a caller-supplied number to Decimal.

    Floats are rejected: their binary representation would leak rounding
    drift into running totals.

    Raises:
        ValueError: If value is a float or not a parseable number.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or isinstance(value, float):
        raise ValueError(f"Expected Decimal, str or int, got {type(value).__name__}")
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValueError(f"Not a decimal number: {value!r}") from e


def fits_quantity_column(value: Decimal) -> bool:
    """
    True when ``value`` is stored by QUANTITY_TYPE without rounding.

    Trailing zeros do not count against the scale: ``1.0000000000`` fits,
    ``0.0000000001`` does not.
    """
    if not value.is_finite():
        return False
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, len(value.as_tuple().digits))
        exponent = value.normalize().as_tuple().exponent
    if exponent < -QUANTITY_SCALE:
        return False
    return value.adjusted() < QUANTITY_PRECISION - QUANTITY_SCALE


def multiply_exact(a: Decimal, b: Decimal) -> Decimal:
    """Product of two column values without context rounding."""
    with localcontext() as ctx:
        ctx.prec = _ARITHMETIC_PRECISION
        return a * b


def round_value(
    value: Decimal,
    decimal_places: int = VALUE_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round an allocation value to the given decimal places.

    The quantize runs with enough precision for every digit of the result,
    so large values round instead of raising InvalidOperation.

    Args:
        value: The Decimal value to round.
        decimal_places: Number of decimal places to round to.
        rounding: Rounding mode (default: ROUND_HALF_UP).

    Returns:
        Rounded Decimal value.
    """
    quantize_str = "0." + "0" * decimal_places if decimal_places > 0 else "1"
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() + decimal_places + 2)
        return value.quantize(Decimal(quantize_str), rounding=rounding)
