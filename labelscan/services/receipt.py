"""
Local receipt parser for grocery receipts.

Reads the store name, total, tax, purchase date and priced line items from
OCR text without any remote service. Results are deliberately
low-confidence; callers are expected to show them for review.
"""

import re
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from labelscan.utils.money import parse_money
from labelscan.utils.patterns import PatternRule, RuleDomain, first_match, rule_table

logger = logging.getLogger(__name__)

MAX_STORE_NAME_LENGTH = 50
LINE_ITEM_CONFIDENCE = 0.5
LOCAL_PARSE_CONFIDENCE = 0.4

RECEIPT_DATE_FORMATS = [
    '%Y-%m-%d',
    '%m/%d/%Y',
    '%m-%d-%Y',
    '%d/%m/%Y',
    '%m/%d/%y',
    '%m-%d-%y',
]

NON_ITEM_WORDS = re.compile(r'total|tax|subtotal|change|cash|credit', re.IGNORECASE)
LINE_ITEM_PATTERN = re.compile(r'(.+?)\s+\$?(\d+\.\d{2})(-?)\s*$')


@dataclass
class ReceiptLineItem:
    description: str
    total_price: Decimal
    quantity: float = 1.0
    unit_price: Optional[Decimal] = None
    is_discount: bool = False
    is_tax: bool = False
    confidence: float = LINE_ITEM_CONFIDENCE


@dataclass
class ReceiptData:
    """Everything read from one receipt. Amounts are Decimal."""
    store_name: Optional[str] = None
    receipt_date: Optional[str] = None
    subtotal: Optional[Decimal] = None
    tax: Optional[Decimal] = None
    total: Optional[Decimal] = None
    items: List[ReceiptLineItem] = field(default_factory=list)
    confidence: float = LOCAL_PARSE_CONFIDENCE

    @property
    def purchase_date(self) -> Optional[date]:
        return parse_receipt_date(self.receipt_date)


def parse_receipt_date(date_string: Optional[str]) -> Optional[date]:
    """
    Resolve a receipt date string, trying each known layout in turn.

    >>> parse_receipt_date("03/14/2024")
    datetime.date(2024, 3, 14)
    """
    if not date_string or not date_string.strip():
        return None

    for fmt in RECEIPT_DATE_FORMATS:
        try:
            return datetime.strptime(date_string.strip(), fmt).date()
        except ValueError:
            continue
    return None


class ReceiptParser:
    """Pattern-based fallback parser for receipt text."""

    def __init__(self):
        self._init_patterns()

    def _init_patterns(self):
        def amount(match: re.Match) -> Optional[Decimal]:
            return parse_money(match.group(1))

        self.total_patterns = rule_table(
            PatternRule(
                id='total',
                domain=RuleDomain.RECEIPT,
                pattern=r'(?<!SUB )\b(?:GRAND\s+TOTAL|TOTAL|AMOUNT\s+DUE)[:\s]*\$?(\d+\.?\d*)',
                parse=amount,
                base_confidence=LOCAL_PARSE_CONFIDENCE,
                example='TOTAL $23.47',
                notes='Word boundary keeps SUBTOTAL out',
            ),
        )
        self.tax_patterns = rule_table(
            PatternRule(
                id='tax',
                domain=RuleDomain.RECEIPT,
                pattern=r'\b(?:SALES\s+TAX|TAX)[:\s]*\$?(\d+\.?\d*)',
                parse=amount,
                base_confidence=LOCAL_PARSE_CONFIDENCE,
                example='Sales Tax 1.52',
            ),
        )
        self.date_patterns = rule_table(
            PatternRule(
                id='receipt_date',
                domain=RuleDomain.RECEIPT,
                pattern=r'(\d{1,2}[/-]\d{1,2}[/-]\d{2,4})',
                parse=lambda m: m.group(1),
                base_confidence=LOCAL_PARSE_CONFIDENCE,
                case_sensitive=True,
                example='03/14/2024',
            ),
        )

    def extract_store_name(self, lines: List[str]) -> Optional[str]:
        if not lines:
            return None
        return lines[0].strip()[:MAX_STORE_NAME_LENGTH]

    def extract_line_items(self, lines: List[str]) -> List[ReceiptLineItem]:
        """
        Lines ending in a price ("BANANAS  1.29") become items; total, tax and
        payment lines are skipped. A trailing minus ("COUPON 1.00-") marks a
        discount.
        """
        items = []
        for line in lines:
            match = LINE_ITEM_PATTERN.search(line)
            if match is None:
                continue

            description = match.group(1).strip()
            if NON_ITEM_WORDS.search(description):
                continue

            price = parse_money(match.group(2))
            if price is None:
                continue

            items.append(ReceiptLineItem(
                description=description,
                total_price=price,
                unit_price=price,
                is_discount=bool(match.group(3)),
            ))
        return items

    def parse_receipt(self, text: str) -> ReceiptData:
        """
        Parse receipt text.

        Args:
            text: OCR text of the whole receipt

        Returns:
            ReceiptData; fields that could not be read are None
        """
        if not text or not text.strip():
            return ReceiptData(confidence=0.0)

        lines = [line for line in text.splitlines() if line.strip()]

        total = first_match(text, self.total_patterns)
        tax = first_match(text, self.tax_patterns)
        receipt_date = first_match(text, self.date_patterns)

        data = ReceiptData(
            store_name=self.extract_store_name(lines),
            receipt_date=receipt_date.value if receipt_date else None,
            total=total.value if total else None,
            tax=tax.value if tax else None,
            items=self.extract_line_items(lines),
        )
        if data.total is not None and data.tax is not None:
            data.subtotal = data.total - data.tax

        logger.debug("Parsed receipt locally", extra={
            "store_name": data.store_name,
            "total": str(data.total) if data.total is not None else None,
            "items": len(data.items),
        })
        return data
