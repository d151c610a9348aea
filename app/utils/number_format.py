"""Amount parsing utilities."""
import re
from decimal import Decimal, InvalidOperation

AMOUNT_PATTERN = re.compile(r"^\d+(?:\.\d+)?$")


def parse_amount(value) -> Decimal:
    """
    Parse a monetary amount (e.g., 1234.56) to Decimal.

    Rules:
    - Accepts Decimal, int, float or a string with a dot decimal separator
    - No thousands separators
    - No negatives

    Raises:
        ValueError: if the value is invalid or empty.
    """
    if value is None or isinstance(value, bool):
        raise ValueError('Invalid amount. Use 1234.56')

    if isinstance(value, Decimal):
        decimal_value = value
    elif isinstance(value, (int, float)):
        decimal_value = Decimal(str(value))
    else:
        cleaned = str(value).strip()
        if cleaned.startswith('-'):
            raise ValueError('Amount cannot be negative')
        if not AMOUNT_PATTERN.match(cleaned):
            raise ValueError('Invalid amount. Use 1234.56')
        try:
            decimal_value = Decimal(cleaned)
        except (InvalidOperation, ValueError):
            raise ValueError('Invalid amount. Use 1234.56')

    if not decimal_value.is_finite():
        raise ValueError('Invalid amount. Use 1234.56')

    if decimal_value < 0:
        raise ValueError('Amount cannot be negative')

    return decimal_value


def format_amount(value) -> str:
    """Render a Decimal amount as a plain string (no exponent)."""
    if value is None:
        return None
    return format(Decimal(value), 'f')
