"""
Tests for spoken shopping list parsing.
"""

import pytest

from labelscan.services.shopping import ShoppingListParser, match_unit
from labelscan.utils.candidates import ShoppingItem


def _items(parser, text):
    return [c.value for c in parser.parse_shopping_utterance(text)]


class TestSingleItems:

    def test_quantity_unit_name(self, shopping_parser):
        candidates = shopping_parser.parse_shopping_utterance("add two gallons of milk")
        assert len(candidates) == 1
        item = candidates[0].value
        assert (item.name, item.quantity, item.unit) == ("Milk", 2.0, "gal")
        assert candidates[0].confidence == 0.9
        assert candidates[0].format_used == 'qty_unit_name'

    def test_digits(self, shopping_parser):
        item = _items(shopping_parser, "3 cans of soup")[0]
        assert (item.name, item.quantity, item.unit) == ("Soup", 3.0, "can")

    def test_one_and_a_half(self, shopping_parser):
        item = _items(shopping_parser, "one half gallon of milk")[0]
        assert item.quantity == 1.5
        assert item.unit == "gal"

    def test_and_a_half_in_single_phrase(self, shopping_parser):
        candidate = shopping_parser.parse_item("two and a half pounds of beef")
        assert candidate.value == ShoppingItem("Beef", 2.5, "lb", "two and a half pounds of beef")

    def test_dozen_is_part_of_name(self, shopping_parser):
        item = _items(shopping_parser, "a dozen eggs")[0]
        assert item.quantity == 1.0
        assert item.name == "Dozen eggs"

    def test_name_only(self, shopping_parser):
        candidate = shopping_parser.parse_shopping_utterance("bananas")[0]
        assert candidate.value.quantity == 1.0
        assert candidate.value.unit is None
        assert candidate.confidence == 0.6

    def test_unit_without_quantity(self, shopping_parser):
        candidate = shopping_parser.parse_shopping_utterance("bag of rice")[0]
        assert candidate.value.unit == "bag"
        assert candidate.format_used == 'unit_name'

    def test_no_name_dropped(self, shopping_parser):
        assert shopping_parser.parse_shopping_utterance("add two") == []

    @pytest.mark.parametrize("text", ["", "   "])
    def test_blank(self, shopping_parser, text):
        assert shopping_parser.parse_shopping_utterance(text) == []


class TestSplitting:

    def test_and(self, shopping_parser):
        items = _items(shopping_parser, "please get 2 lbs of apples and bread")
        assert [(i.name, i.quantity, i.unit) for i in items] == [
            ("Apples", 2.0, "lb"),
            ("Bread", 1.0, None),
        ]

    def test_commas(self, shopping_parser):
        items = _items(shopping_parser, "I need eggs, butter, and cheese")
        assert [i.name for i in items] == ["Eggs", "Butter", "Cheese"]

    def test_then(self, shopping_parser):
        items = _items(shopping_parser, "three cans of soup then a box of cereal")
        assert [(i.name, i.unit) for i in items] == [("Soup", "can"), ("Cereal", "box")]

    def test_separator_inside_word(self, shopping_parser):
        assert [i.name for i in _items(shopping_parser, "sandwich bread")] == ["Sandwich bread"]

    def test_filler_inside_word(self, shopping_parser):
        assert [i.name for i in _items(shopping_parser, "addison's cookies")] == ["Addison's cookies"]

    def test_strip_filler_once(self, shopping_parser):
        assert shopping_parser.strip_filler("please add add milk") == "add milk"


class TestUnits:

    @pytest.mark.parametrize("word, unit", [
        ("pounds", "lb"),
        ("lb", "lb"),
        ("litres", "L"),
        ("boxes", "box"),
        ("loaves", "loaf"),
        ("packages", "pack"),
    ])
    def test_match_unit(self, word, unit):
        assert match_unit(word) == unit

    def test_not_a_unit(self):
        assert match_unit("milk") is None


class TestDisplay:

    def test_format_items(self, shopping_parser):
        candidates = shopping_parser.parse_shopping_utterance("add two gallons of milk and a loaf of bread")
        assert ShoppingListParser.format_items_for_display(candidates) == "2 gal Milk\n1 loaf Bread"

    def test_format_plain_items(self):
        items = [ShoppingItem("Milk", 2.0, "gal"), ShoppingItem("Eggs")]
        assert ShoppingListParser.format_items_for_display(items) == "2 gal Milk\n1 Eggs"
