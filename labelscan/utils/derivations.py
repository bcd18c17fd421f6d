"""
Derived-value helpers shared by the extractors.

All functions are pure: "now" is always passed in by the caller.
"""

import calendar
from datetime import date, timedelta
from typing import Optional

from .normalize import normalize_nutrition

# 1 g of salt carries 0.4 g of sodium
SODIUM_FRACTION_OF_SALT = 0.4

# Earliest year a parsed date may carry before it is pushed into the next century
CENTURY_PIVOT_YEAR = 1970
MAX_YEARS_AHEAD = 50

SERVING_UNIT_ALIASES = {
    'g': 'g', 'grams': 'g', 'gram': 'g',
    'mg': 'mg', 'milligrams': 'mg', 'milligram': 'mg',
    'oz': 'oz', 'ounces': 'oz', 'ounce': 'oz',
    'ml': 'ml', 'milliliters': 'ml', 'milliliter': 'ml', 'millilitres': 'ml',
    'cup': 'cup', 'cups': 'cup',
    'tbsp': 'tbsp', 'tablespoon': 'tbsp', 'tablespoons': 'tbsp',
    'tsp': 'tsp', 'teaspoon': 'tsp', 'teaspoons': 'tsp',
    'piece': 'piece', 'pieces': 'piece', 'pcs': 'piece',
    'slice': 'slice', 'slices': 'slice',
}

# Nutrition text is matched after OCR substitution, so "grams" arrives as "GRAM5"
_NORMALIZED_UNIT_ALIASES = {
    normalize_nutrition(alias): unit for alias, unit in SERVING_UNIT_ALIASES.items()
}


def parse_number(token: Optional[str]) -> Optional[float]:
    """Convert a numeric token to float, returning None if it isn't one."""
    if token is None:
        return None
    try:
        return float(token)
    except (TypeError, ValueError):
        return None


def canonical_unit(unit: Optional[str]) -> Optional[str]:
    """
    Canonicalize a serving-size unit.

    Accepts raw ("grams") and normalized ("GRAM5") spellings. Unknown units
    pass through lowercased.

    Examples:
        >>> canonical_unit("grams")
        'g'
        >>> canonical_unit("TAB1E5P00N5")
        'tbsp'
    """
    if unit is None:
        return None
    key = unit.strip()
    if not key:
        return None
    if key.lower() in SERVING_UNIT_ALIASES:
        return SERVING_UNIT_ALIASES[key.lower()]
    normalized = normalize_nutrition(key)
    if normalized in _NORMALIZED_UNIT_ALIASES:
        return _NORMALIZED_UNIT_ALIASES[normalized]
    return key.lower()


def salt_to_sodium_mg(salt_g: float) -> float:
    """
    Convert a salt quantity in grams to sodium in milligrams.

    >>> salt_to_sodium_mg(1.0)
    400.0
    """
    return salt_g * 1000 * SODIUM_FRACTION_OF_SALT


def resolve_century(year: int, today: date) -> int:
    """
    Fix up years from short or misread year tokens.

    Years before 1970 are moved into the 2000s; years more than 50 years
    past today's year are moved back a century.
    """
    if year < CENTURY_PIVOT_YEAR:
        return year + 100
    if year > today.year + MAX_YEARS_AHEAD:
        return year - 100
    return year


def expand_year(token: str, today: date) -> int:
    """
    Turn a 2- or 4-digit year token into a full year.

    Two-digit tokens are read as 19yy and then century-resolved, so with
    today in 2025 "25" becomes 2025 and "80" stays 1980.
    """
    year = int(token)
    if len(token) <= 2:
        year += 1900
    return resolve_century(year, today)


def decode_julian(token: str, today: date) -> Optional[date]:
    """
    Decode a 4-digit packaging Julian code "YDDD".

    Y is the last digit of the year (resolved within today's decade), DDD the
    day of year (1-366). Day 366 of a non-leap year rolls into January 1st of
    the following year.

    >>> decode_julian("1045", date(2025, 6, 1))
    datetime.date(2021, 2, 14)
    """
    if len(token) != 4 or not token.isdigit():
        return None

    year_digit = int(token[0])
    day_of_year = int(token[1:])
    if day_of_year < 1 or day_of_year > 366:
        return None

    year = (today.year // 10) * 10 + year_digit
    return date(year, 1, 1) + timedelta(days=day_of_year - 1)


def add_months(d: date, months: int) -> date:
    """Shift a date by whole months, clamping the day to the target month's length."""
    month_index = d.month - 1 + months
    year = d.year + month_index // 12
    month = month_index % 12 + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def add_years(d: date, years: int) -> date:
    """Shift a date by whole years (Feb 29 becomes Feb 28 in non-leap years)."""
    return add_months(d, years * 12)
