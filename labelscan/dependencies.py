"""
Shared service instances for the API routers.

Parsers are stateless after construction and safe to share. The session
manager holds the in-memory session registry for the process.
"""

from labelscan.services.expiration import ExpirationDateParser
from labelscan.services.nutrition import NutritionParser
from labelscan.services.receipt import ReceiptParser
from labelscan.services.session import SessionManager
from labelscan.services.shopping import ShoppingListParser

_date_parser = ExpirationDateParser()
_nutrition_parser = NutritionParser()
_shopping_parser = ShoppingListParser()
_receipt_parser = ReceiptParser()
_session_manager = SessionManager()


def get_date_parser() -> ExpirationDateParser:
    return _date_parser


def get_nutrition_parser() -> NutritionParser:
    return _nutrition_parser


def get_shopping_parser() -> ShoppingListParser:
    return _shopping_parser


def get_receipt_parser() -> ReceiptParser:
    return _receipt_parser


def get_session_manager() -> SessionManager:
    return _session_manager
