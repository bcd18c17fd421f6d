"""
Tests for the rule table, the candidate extractor and ranking.
"""

import re
from datetime import date

from labelscan.utils.candidates import Candidate, ShoppingItem, clamp_confidence
from labelscan.utils.patterns import PatternRule, RuleDomain, find_all, first_match, rule_table
from labelscan.utils.scoring import rank_candidates, select_best_candidate, select_top_candidates


def _month_rule(rule_id, pattern, confidence=0.5):
    return PatternRule(
        id=rule_id,
        domain=RuleDomain.DATE,
        pattern=pattern,
        parse=lambda m: date(2024, int(m.group(1)), 1),
        base_confidence=confidence,
    )


class TestRuleTable:

    def test_order_is_stamped(self):
        table = rule_table(_month_rule('a', r'(\d+)'), _month_rule('b', r'(\d+)'))
        assert [rule.order for rule in table] == [0, 1]

    def test_case_insensitive_by_default(self):
        rule = _month_rule('a', r'm(\d+)')
        assert rule.compiled.flags & re.IGNORECASE

    def test_case_sensitive_rule(self):
        rule = PatternRule('a', RuleDomain.DATE, r'M(\d+)', lambda m: m.group(1), case_sensitive=True)
        assert rule.compiled.search("m3") is None

    def test_format_label_falls_back_to_id(self):
        assert _month_rule('month_only', r'(\d+)').format_label == 'month_only'


class TestFirstMatch:
    """The first rule that both matches and parses wins."""

    def test_parse_error_falls_through(self):
        rules = rule_table(
            _month_rule('month_word', r'MONTH (\d+)', 0.9),
            _month_rule('any_number', r'N(\d+)', 0.5),
        )
        candidate = first_match("MONTH 13 N4", rules)
        assert candidate.rule_id == 'any_number'
        assert candidate.value == date(2024, 4, 1)

    def test_only_first_occurrence_per_rule(self):
        rules = rule_table(_month_rule('month_word', r'MONTH (\d+)'))
        assert first_match("MONTH 13 MONTH 4", rules) is None

    def test_boost_is_capped(self):
        rules = rule_table(_month_rule('month_word', r'MONTH (\d+)', 0.95))
        candidate = first_match("MONTH 3", rules, boost=0.1)
        assert candidate.confidence == 1.0

    def test_span_and_original_text(self):
        rules = rule_table(_month_rule('month_word', r'MONTH (\d+)'))
        candidate = first_match("xx MONTH 3", rules)
        assert candidate.original_text == "MONTH 3"
        assert candidate.span == (3, 10)

    def test_empty_text(self):
        assert first_match("", rule_table(_month_rule('a', r'(\d+)'))) is None


class TestFindAll:

    def test_deduplicates_by_value(self):
        rules = rule_table(_month_rule('first', r'A(\d+)'), _month_rule('second', r'B(\d+)'))
        found = find_all("A5 A5 B5 B7", rules)
        assert [c.value.month for c in found] == [5, 7]
        assert found[0].rule_id == 'first'

    def test_accept_filter_applies_before_dedup(self):
        rules = rule_table(_month_rule('first', r'A(\d+)'))
        found = find_all("A2 A3 A4", rules, accept=lambda value: value.month != 3)
        assert [c.value.month for c in found] == [2, 4]

    def test_custom_key(self):
        rules = rule_table(_month_rule('first', r'A(\d+)'))
        found = find_all("A2 A3", rules, key=lambda value: value.year)
        assert len(found) == 1


class TestRanking:

    def _candidate(self, confidence, order, value='x'):
        return Candidate(value=value, original_text='', confidence=confidence,
                         rule_id=f'r{order}', format_used='', rule_order=order)

    def test_confidence_then_rule_order(self):
        ranked = rank_candidates([
            self._candidate(0.8, 2, 'c'),
            self._candidate(0.9, 5, 'a'),
            self._candidate(0.8, 1, 'b'),
        ])
        assert [c.value for c in ranked] == ['a', 'b', 'c']

    def test_ties_keep_input_order(self):
        ranked = rank_candidates([self._candidate(0.5, 0, 'first'), self._candidate(0.5, 0, 'second')])
        assert [c.value for c in ranked] == ['first', 'second']

    def test_top_candidates(self):
        candidates = [self._candidate(c / 10, 0, c) for c in range(6)]
        assert [c.value for c in select_top_candidates(candidates)] == [5, 4, 3]

    def test_best_with_minimum(self):
        candidates = [self._candidate(0.4, 0)]
        assert select_best_candidate(candidates, min_confidence=0.5) is None
        assert select_best_candidate(candidates).confidence == 0.4
        assert select_best_candidate([]) is None


class TestCandidate:

    def test_confidence_clamped(self):
        candidate = Candidate(value=1, original_text='', confidence=1.7, rule_id='r', format_used='')
        assert candidate.confidence == 1.0
        assert candidate.with_confidence(-0.2).confidence == 0.0
        assert clamp_confidence(0.25) == 0.25

    def test_boosted(self):
        candidate = Candidate(value=1, original_text='', confidence=0.5, rule_id='r', format_used='')
        assert candidate.boosted(0.1).confidence == 0.6

    def test_shopping_item_display(self):
        assert ShoppingItem("Milk", 2.0, "gal").display() == "2 gal Milk"
        assert ShoppingItem("Sugar", 0.5, "cup").display() == "0.5 cup Sugar"
        assert ShoppingItem("Bread").display() == "1 Bread"
