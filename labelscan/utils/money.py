"""
Money helpers for grocery receipt amounts.

Amounts are Decimal end to end; floats only appear at the display edge.
Both "1,234.56" and "1.234,56" grouping styles are understood.
"""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Optional

CENTS = Decimal('0.01')

# Anything above this on a grocery receipt line is an OCR misread
MAX_RECEIPT_AMOUNT = Decimal('100000')

_CURRENCY = re.compile(r'[$£€¥]|\b(?:USD|CAD|EUR|GBP|AUD)\b', re.IGNORECASE)


class MoneyFormat(Enum):
    """Decimal separator conventions."""
    US = "US"  # 1,234.56
    EUROPEAN = "EUROPEAN"  # 1.234,56
    AUTO = "AUTO"


def detect_money_format(amount_str: str) -> MoneyFormat:
    """
    Guess the separator convention from the string itself.

    A trailing ",dd" or a dot that precedes the last comma means European;
    everything else is read as US.
    """
    if re.search(r',\d{2}$', amount_str):
        return MoneyFormat.EUROPEAN
    if '.' in amount_str and ',' in amount_str and amount_str.index('.') < amount_str.rindex(','):
        return MoneyFormat.EUROPEAN
    return MoneyFormat.US


def parse_money(
    amount_str: Optional[str],
    format_hint: MoneyFormat = MoneyFormat.AUTO,
) -> Optional[Decimal]:
    """
    Parse a receipt amount.

    Args:
        amount_str: Text such as "$4.99", "4,99 EUR" or "12"
        format_hint: Separator convention, AUTO to detect

    Returns:
        Decimal rounded to cents, or None if the text is not a sane amount

    Examples:
        >>> parse_money("$1,234.56")
        Decimal('1234.56')
        >>> parse_money("4,99")
        Decimal('4.99')
    """
    if not amount_str:
        return None

    cleaned = _CURRENCY.sub('', amount_str).replace(' ', '').strip()
    if not cleaned:
        return None

    style = format_hint if format_hint != MoneyFormat.AUTO else detect_money_format(cleaned)
    if style == MoneyFormat.EUROPEAN:
        cleaned = cleaned.replace('.', '').replace(',', '.')
    else:
        cleaned = cleaned.replace(',', '')

    try:
        amount = Decimal(cleaned)
    except (InvalidOperation, ValueError):
        return None

    if not amount.is_finite() or amount < 0 or amount > MAX_RECEIPT_AMOUNT:
        return None

    return quantize_cents(amount)


def quantize_cents(amount: Decimal) -> Decimal:
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def format_money(amount: Optional[Decimal], symbol: str = '$') -> str:
    """
    Format for display.

    >>> format_money(Decimal('1234.5'))
    '$1,234.50'
    """
    if amount is None:
        return 'N/A'
    return f"{symbol}{quantize_cents(amount):,}"
