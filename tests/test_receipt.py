"""
Tests for local receipt parsing and money helpers.
"""

from datetime import date
from decimal import Decimal

import pytest

from labelscan.services.receipt import parse_receipt_date
from labelscan.utils.money import MoneyFormat, detect_money_format, format_money, parse_money

RECEIPT = """FRESH MART
123 Main St
03/14/2024
BANANAS 1.29
MILK 2% 3.49
COUPON 0.50-
SUBTOTAL 4.28
TAX 0.34
TOTAL 4.62
CASH 10.00
CHANGE 5.38
"""


class TestReceiptParser:

    def test_totals(self, receipt_parser):
        data = receipt_parser.parse_receipt(RECEIPT)
        assert data.total == Decimal('4.62')
        assert data.tax == Decimal('0.34')
        assert data.subtotal == Decimal('4.28')

    def test_store_and_date(self, receipt_parser):
        data = receipt_parser.parse_receipt(RECEIPT)
        assert data.store_name == "FRESH MART"
        assert data.receipt_date == "03/14/2024"
        assert data.purchase_date == date(2024, 3, 14)

    def test_line_items(self, receipt_parser):
        data = receipt_parser.parse_receipt(RECEIPT)
        assert [i.description for i in data.items] == ["BANANAS", "MILK 2%", "COUPON"]
        assert [i.is_discount for i in data.items] == [False, False, True]
        assert data.items[0].total_price == Decimal('1.29')
        assert data.items[0].confidence == 0.5

    def test_local_parse_is_low_confidence(self, receipt_parser):
        assert receipt_parser.parse_receipt(RECEIPT).confidence == 0.4

    def test_missing_tax_leaves_subtotal_empty(self, receipt_parser):
        data = receipt_parser.parse_receipt("SHOP\nTOTAL $12.00")
        assert data.total == Decimal('12.00')
        assert data.tax is None
        assert data.subtotal is None

    def test_empty(self, receipt_parser):
        data = receipt_parser.parse_receipt("")
        assert data.confidence == 0.0
        assert data.items == []

    def test_long_store_name_truncated(self, receipt_parser):
        data = receipt_parser.parse_receipt("X" * 80 + "\nTOTAL 1.00")
        assert len(data.store_name) == 50


class TestReceiptDate:

    @pytest.mark.parametrize("text, expected", [
        ("2024-03-14", date(2024, 3, 14)),
        ("03/14/2024", date(2024, 3, 14)),
        ("14/03/2024", date(2024, 3, 14)),
        ("3/5/24", date(2024, 3, 5)),
        ("03-05-24", date(2024, 3, 5)),
    ])
    def test_formats(self, text, expected):
        assert parse_receipt_date(text) == expected

    @pytest.mark.parametrize("text", [None, "", "garbage"])
    def test_unreadable(self, text):
        assert parse_receipt_date(text) is None


class TestMoney:

    @pytest.mark.parametrize("text, expected", [
        ("$1,234.56", Decimal('1234.56')),
        ("4,99", Decimal('4.99')),
        ("4,99 EUR", Decimal('4.99')),
        ("1.234,56", Decimal('1234.56')),
        ("12", Decimal('12.00')),
        ("0.005", Decimal('0.01')),
    ])
    def test_parse(self, text, expected):
        assert parse_money(text) == expected

    @pytest.mark.parametrize("text", [None, "", "abc", "-5.00", "200000"])
    def test_rejects(self, text):
        assert parse_money(text) is None

    def test_format_hint_overrides_detection(self):
        assert parse_money("1,234", MoneyFormat.US) == Decimal('1234.00')
        assert parse_money("1,234", MoneyFormat.EUROPEAN) == Decimal('1.23')

    def test_detect(self):
        assert detect_money_format("1.234,56") == MoneyFormat.EUROPEAN
        assert detect_money_format("1,234.56") == MoneyFormat.US

    def test_format(self):
        assert format_money(Decimal('1234.5')) == '$1,234.50'
        assert format_money(None) == 'N/A'
