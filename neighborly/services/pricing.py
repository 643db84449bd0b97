"""Price parsing and escrow split calculation."""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from neighborly.errors import InvalidInput

CENTS = Decimal('1')
MAX_PRICE = Decimal('999999.99')


def parse_price(value, field='price', places=4):
    """Parse a client-supplied amount into a Decimal.

    Accepts ints, floats and numeric strings. Booleans, anything
    non-finite, amounts above MAX_PRICE and amounts with more than
    ``places`` decimal places are rejected with InvalidInput.
    """
    if value is None or isinstance(value, bool):
        raise InvalidInput(f'{field} must be a number')
    try:
        # str() first so 0.1 stays 0.1 instead of its binary expansion
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidInput(f'{field} must be a number')
    if not amount.is_finite():
        raise InvalidInput(f'{field} must be a number')
    if abs(amount) > MAX_PRICE:
        raise InvalidInput(f'{field} must be at most {MAX_PRICE}')
    if amount.normalize().as_tuple().exponent < -places:
        raise InvalidInput(f'{field} must have at most {places} decimal places')
    return amount


def to_cents(amount):
    """Dollars to integer cents, rounding half-up on fractional cents."""
    return int((Decimal(amount) * 100).quantize(CENTS, rounding=ROUND_HALF_UP))


def calculate_fees(price, fee_percent):
    """Split a task price into (total_cents, fee_cents, helper_cents).

    Rounding happens once, on the fee, so fee + helper always equals the total.

    >>> calculate_fees(Decimal('30'), Decimal('15'))
    (3000, 450, 2550)
    """
    total_cents = to_cents(price)
    fee_cents = int((Decimal(total_cents) * Decimal(fee_percent) / 100).quantize(CENTS, rounding=ROUND_HALF_UP))
    helper_cents = total_cents - fee_cents
    return total_cents, fee_cents, helper_cents
