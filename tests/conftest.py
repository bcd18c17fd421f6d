"""
Shared fixtures.

"Today" is pinned so that plausibility windows and two-digit years resolve
the same way on every run.
"""

from datetime import date

import pytest

from labelscan.services.expiration import ExpirationDateParser
from labelscan.services.nutrition import NutritionParser
from labelscan.services.receipt import ReceiptParser
from labelscan.services.session import SessionManager
from labelscan.services.shopping import ShoppingListParser

TODAY = date(2024, 12, 1)


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def date_parser():
    return ExpirationDateParser(clock=lambda: TODAY)


@pytest.fixture
def nutrition_parser():
    return NutritionParser()


@pytest.fixture
def shopping_parser():
    return ShoppingListParser()


@pytest.fixture
def receipt_parser():
    return ReceiptParser()


@pytest.fixture
def session_manager():
    manager = SessionManager(clock=lambda: TODAY, debounce_ms=50)
    yield manager
    manager.close_all()
