"""
Plausibility windows.

A structurally valid parse can still be implausible (a "best by" date four
years ago, 90000 calories per serving). These checks drop such values; they
never raise and never clamp.
"""

from datetime import date
from typing import Dict, Optional, Tuple

from .derivations import add_months, add_years

# Inclusive per-field ranges. Fields not listed (vitamins A, C, D, serving
# information) are not range-checked.
NUTRITION_RANGES: Dict[str, Tuple[float, float]] = {
    'calories': (0.0, 10000.0),
    'total_fat': (0.0, 500.0),
    'saturated_fat': (0.0, 200.0),
    'trans_fat': (0.0, 100.0),
    'cholesterol': (0.0, 2000.0),
    'sodium': (0.0, 10000.0),
    'total_carbohydrates': (0.0, 500.0),
    'dietary_fiber': (0.0, 100.0),
    'total_sugars': (0.0, 200.0),
    'added_sugars': (0.0, 200.0),
    'protein': (0.0, 500.0),
    'calcium': (0.0, 5000.0),
    'iron': (0.0, 100.0),
    'potassium': (0.0, 10000.0),
}


def expiration_window(
    today: date,
    max_past_months: int = 6,
    max_future_years: int = 10
) -> Tuple[date, date]:
    """Return the (earliest, latest) exclusive bounds for an expiration date."""
    return add_months(today, -max_past_months), add_years(today, max_future_years)


def is_plausible_expiration(
    value: date,
    today: date,
    max_past_months: int = 6,
    max_future_years: int = 10
) -> bool:
    """
    Check that a date could be a printed expiration date.

    Rejects dates more than max_past_months before today or
    max_future_years after it.

    Args:
        value: Candidate date
        today: Reference "now"
        max_past_months: How far back an expired product may be scanned
        max_future_years: Longest shelf life accepted

    Returns:
        True if earliest < value < latest
    """
    earliest, latest = expiration_window(today, max_past_months, max_future_years)
    return earliest < value < latest


def validate_nutrient(field: str, value: Optional[float]) -> Optional[float]:
    """
    Drop out-of-range nutrient values.

    Returns:
        value if it lies in the field's range (or the field has no range),
        otherwise None
    """
    if value is None:
        return None
    bounds = NUTRITION_RANGES.get(field)
    if bounds is None:
        return value
    low, high = bounds
    if low <= value <= high:
        return value
    return None
