"""Money helpers: parsing to Decimal and Rupiah display formatting."""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

ZERO = Decimal('0')


def to_decimal(value, default: Decimal = None) -> Decimal:
    """
    Convert a JSON/form value to Decimal without passing through float text.

    Floats coming from backend JSON are converted via str() so 0.1 stays 0.1.
    Raises ValueError for unparsable input unless a default is given.
    """
    if value is None or value == '':
        if default is not None:
            return default
        raise ValueError('Amount is required.')
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError('Amount must be a number.')
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        if default is not None:
            return default
        raise ValueError(f'Invalid amount: {value!r}')
    if not result.is_finite():
        raise ValueError(f'Invalid amount: {value!r}')
    return result


def format_rupiah(amount, symbol: str = 'Rp') -> str:
    """
    Display formatting only: whole Rupiah, dot thousands separator.

        >>> format_rupiah(Decimal('111000'))
        'Rp 111.000'
        >>> format_rupiah(Decimal('-500.5'))
        '-Rp 501'
    """
    value = to_decimal(amount, ZERO).quantize(Decimal('1'), rounding=ROUND_HALF_UP)
    sign = '-' if value < 0 else ''
    digits = f'{abs(int(value)):,}'.replace(',', '.')
    return f'{sign}{symbol} {digits}'


def money_str(amount: Decimal) -> str:
    """Serialise a Decimal for JSON: no exponent, no trailing zeros (50000.00 → "50000")."""
    if amount == amount.to_integral_value():
        return format(amount.quantize(Decimal(1)), 'f')
    return format(amount.normalize(), 'f')
