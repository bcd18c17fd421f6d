"""
Shopping list parser for spoken (or typed) utterances.

"add two gallons of milk and a dozen eggs" ->
    [2 gal Milk, 1 Dozen eggs]
"""

import re
import logging
from typing import Iterable, List, Optional

from labelscan.utils.candidates import Candidate, ShoppingItem
from labelscan.utils.normalize import normalize_voice
from labelscan.utils.patterns import PatternRule, RuleDomain, first_match, rule_table

logger = logging.getLogger(__name__)

QUANTITY_WORDS = {
    'a': 1.0, 'an': 1.0, 'one': 1.0,
    'two': 2.0, 'three': 3.0, 'four': 4.0, 'five': 5.0, 'six': 6.0,
    'seven': 7.0, 'eight': 8.0, 'nine': 9.0, 'ten': 10.0,
    'eleven': 11.0, 'twelve': 12.0, 'dozen': 12.0,
    'half': 0.5, 'quarter': 0.25,
    'couple': 2.0, 'few': 3.0, 'several': 4.0, 'some': 2.0,
}

SEPARATORS = ['and', 'also', 'plus', 'with', 'then']

FILLER_PREFIXES = [
    'add', 'get', 'buy', 'need', 'want', 'put',
    'i need', 'i want', 'we need', 'we want',
    'please add', 'please get', 'can you add', 'could you add',
]

_NUMBER_RE = re.compile(r'\d+(?:\.\d+)?')
_SEPARATOR_RE = re.compile(r'\s*,\s*|\s*\b(?:' + '|'.join(SEPARATORS) + r')\b\s*')
_FILLER_RE = re.compile(
    r'^(?:' + '|'.join(re.escape(p) for p in sorted(FILLER_PREFIXES, key=len, reverse=True)) + r')\b\s*'
)


def _unit(rule_id: str, forms: str, unit: str) -> PatternRule:
    return PatternRule(
        id=rule_id,
        domain=RuleDomain.UNIT,
        pattern=r'^(?:' + forms + r')$',
        parse=lambda m: unit,
        base_confidence=1.0,
        format=unit,
    )


UNIT_RULES = rule_table(
    _unit('pound', r'pounds?|lbs?', 'lb'),
    _unit('ounce', r'ounces?|oz', 'oz'),
    _unit('gram', r'grams?', 'g'),
    _unit('kilogram', r'kilograms?|kg', 'kg'),
    _unit('gallon', r'gallons?|gal', 'gal'),
    _unit('liter', r'liters?|litres?', 'L'),
    _unit('milliliter', r'milliliters?|ml', 'ml'),
    _unit('cup', r'cups?', 'cup'),
    _unit('tablespoon', r'tablespoons?|tbsp', 'tbsp'),
    _unit('teaspoon', r'teaspoons?|tsp', 'tsp'),
    _unit('pack', r'packs?|packages?', 'pack'),
    _unit('box', r'box(?:es)?', 'box'),
    _unit('bag', r'bags?', 'bag'),
    _unit('can', r'cans?', 'can'),
    _unit('jar', r'jars?', 'jar'),
    _unit('bottle', r'bottles?', 'bottle'),
    _unit('bunch', r'bunch(?:es)?', 'bunch'),
    _unit('loaf', r'loaf|loaves', 'loaf'),
    _unit('slice', r'slices?', 'slice'),
    _unit('piece', r'pieces?', 'piece'),
)

# How much of the item was spelled out; more structure, more confidence
ITEM_SHAPES = [
    ('qty_unit_name', 0.9),
    ('qty_name', 0.8),
    ('unit_name', 0.75),
    ('name', 0.6),
]
SHAPE_CONFIDENCE = dict(ITEM_SHAPES)
SHAPE_ORDER = {shape: index for index, (shape, _) in enumerate(ITEM_SHAPES)}


def match_unit(word: str) -> Optional[str]:
    candidate = first_match(word, UNIT_RULES)
    return candidate.value if candidate else None


def _parse_quantity_word(word: str) -> Optional[float]:
    if _NUMBER_RE.fullmatch(word):
        return float(word)
    return QUANTITY_WORDS.get(word)


class ShoppingListParser:
    """Turns a shopping-list utterance into item candidates."""

    def strip_filler(self, text: str) -> str:
        """Remove one leading filler phrase ("please add", "i need", ...)."""
        return _FILLER_RE.sub('', text, count=1).strip()

    def split_items(self, text: str) -> List[str]:
        return [part.strip() for part in _SEPARATOR_RE.split(text) if part and part.strip()]

    def parse_item(self, text: str) -> Optional[Candidate]:
        """
        Parse one item phrase such as "two gallons of milk".

        A quantity is only read from the first word. The first word that
        names a unit becomes the unit (an "of" right after it is skipped);
        everything else is the item name.

        Returns:
            Candidate whose value is a ShoppingItem, or None if no name remains
        """
        words = text.split()
        if not words:
            return None

        quantity = 1.0
        has_quantity = False
        unit = None
        name_words = []
        i = 0

        while i < len(words):
            word = words[i]

            if i == 0:
                value = _parse_quantity_word(word)
                if value is not None:
                    quantity = value
                    has_quantity = True
                    i += 1
                    continue

            if word == 'half' and i == 1 and words[0] == 'one':
                quantity = 1.5
                i += 1
                continue

            if word == 'and' and words[i + 1:i + 3] == ['a', 'half']:
                quantity += 0.5
                i += 3
                continue

            if unit is None:
                matched = match_unit(word)
                if matched is not None:
                    unit = matched
                    i += 1
                    if i < len(words) and words[i] == 'of':
                        i += 1
                    continue

            name_words.append(word)
            i += 1

        if not name_words:
            return None

        name = ' '.join(name_words)
        name = name[0].upper() + name[1:]

        if has_quantity and unit:
            shape = 'qty_unit_name'
        elif has_quantity:
            shape = 'qty_name'
        elif unit:
            shape = 'unit_name'
        else:
            shape = 'name'

        return Candidate(
            value=ShoppingItem(name=name, quantity=quantity, unit=unit, raw_text=text),
            original_text=text,
            confidence=SHAPE_CONFIDENCE[shape],
            rule_id='voice_item',
            format_used=shape,
            rule_order=SHAPE_ORDER[shape],
        )

    def parse_shopping_utterance(self, text: str) -> List[Candidate]:
        """
        Parse a whole utterance into item candidates, in spoken order.

        Args:
            text: Transcribed speech, e.g. "please add 2 lbs of apples and bread"

        Returns:
            List of Candidates (value: ShoppingItem); empty for blank input
        """
        if not text or not text.strip():
            return []

        cleaned = self.strip_filler(normalize_voice(text))
        items = []
        for part in self.split_items(cleaned):
            candidate = self.parse_item(part)
            if candidate is None:
                logger.debug("Dropped item without a name", extra={"text": part})
                continue
            items.append(candidate)

        logger.debug("Parsed shopping utterance", extra={"items": len(items)})
        return items

    @staticmethod
    def format_items_for_display(items: Iterable) -> str:
        """One "2 gal Milk" line per item; accepts ShoppingItems or their Candidates."""
        lines = []
        for item in items:
            if isinstance(item, Candidate):
                item = item.value
            lines.append(item.display())
        return '\n'.join(lines)
