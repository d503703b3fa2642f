"""
Utilidades de formateo.
Montos, slugs y números en estilo argentino.
"""
import re
import unicodedata
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union, Optional

CENTS = Decimal('0.01')

_NON_WORD = re.compile(r'[^\w\s-]')
_SPACES = re.compile(r'\s+')
_DASHES = re.compile(r'-+')


def quantize_money(value: Union[int, float, Decimal, str]) -> Decimal:
    """Round a monetary amount to cents (half-up)."""
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def money(value: Union[int, float, Decimal, None]) -> Optional[float]:
    """Monetary amount as a JSON-friendly float rounded to cents."""
    if value is None:
        return None
    return float(quantize_money(value))


def money_ar(value: Union[int, float, Decimal, str, None]) -> str:
    """
    Formatea un monto en estilo argentino con dos decimales.

    Examples:
        money_ar(1500) -> "$1.500,00"
        money_ar(Decimal('35.5')) -> "$35,50"
        money_ar(None) -> "-"
    """
    if value is None or value == "":
        return "-"
    try:
        num = quantize_money(value)
    except (InvalidOperation, ValueError, TypeError):
        return "-"

    sign = '-' if num < 0 else ''
    integer_part, decimal_part = f"{abs(num):.2f}".split('.')
    reversed_int = integer_part[::-1]
    groups = [reversed_int[i:i+3] for i in range(0, len(reversed_int), 3)]
    return f"{sign}${'.'.join(groups)[::-1]},{decimal_part}"


def generate_slug(text: str) -> str:
    """
    Genera slug desde un string.

    Lowercase, accents stripped, punctuation removed, whitespace runs become
    a single dash: "Café Molido 500g" -> "cafe-molido-500g".
    """
    value = unicodedata.normalize('NFD', (text or '').lower())
    value = ''.join(ch for ch in value if unicodedata.category(ch) != 'Mn')
    value = _NON_WORD.sub('', value)
    value = _SPACES.sub('-', value.strip())
    value = _DASHES.sub('-', value)
    return value.strip('-')
