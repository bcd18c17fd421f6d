"""
Tests for expiration date extraction.

The shared parser fixture pins today to 2024-12-01, so the plausible window
runs from 2024-06-01 to 2034-12-01 (both exclusive).
"""

from datetime import date, timedelta

import pytest

from labelscan.services.expiration import ExpirationDateParser
from labelscan.utils.validation import is_plausible_expiration


class TestPrefixedDates:
    """Dates that follow an EXP / BEST BY style prefix get a confidence boost."""

    def test_best_by_us_date(self, date_parser):
        candidate = date_parser.extract_date("BEST BY 12/25/2024")
        assert candidate.value == date(2024, 12, 25)
        assert candidate.format_used == 'MM/dd/yyyy'
        assert candidate.rule_id == 'us_numeric'
        assert candidate.confidence == 1.0

    def test_lowercase_and_ocr_noise(self, date_parser):
        candidate = date_parser.extract_date("best by 12/2O/2O25")
        assert candidate.value == date(2025, 12, 20)

    def test_exp_short_year_resolves_century(self):
        parser = ExpirationDateParser(clock=lambda: date(2025, 6, 15))
        candidate = parser.extract_date("EXP 06/30/25")
        assert candidate.value == date(2025, 6, 30)
        assert candidate.confidence == pytest.approx(0.95)

    def test_unprefixed_date_keeps_base_confidence(self, date_parser):
        candidate = date_parser.extract_date("12/25/2024")
        assert candidate.confidence == pytest.approx(0.9)

    @pytest.mark.parametrize("text, expected, rule_id", [
        ("EXP-12/25/2024", date(2024, 12, 25), 'us_numeric'),
        ("EXP.12/25/2024", date(2024, 12, 25), 'us_numeric'),
        ("BB-25.12.2024", date(2024, 12, 25), 'eu_dotted'),
        ("EXP.2025-03-14", date(2025, 3, 14), 'iso'),
    ])
    def test_date_glued_to_prefix_by_separator(self, date_parser, text, expected, rule_id):
        candidate = date_parser.extract_date(text)
        assert candidate is not None
        assert candidate.value == expected
        assert candidate.rule_id == rule_id
        assert candidate.confidence == 1.0


class TestDateFormats:
    """One representative per supported layout, read without a prefix."""

    @pytest.mark.parametrize("text, expected, rule_id, confidence", [
        ("12/25/24", date(2024, 12, 25), 'us_numeric_short_year', 0.85),
        ("25/12/2024", date(2024, 12, 25), 'eu_numeric', 0.9),
        ("25/12/24", date(2024, 12, 25), 'eu_numeric_short_year', 0.8),
        ("2025-03-14", date(2025, 3, 14), 'iso', 0.95),
        ("25 DEC 2024", date(2024, 12, 25), 'day_month_abbr_year', 0.95),
        ("25 Dec 24", date(2024, 12, 25), 'day_month_abbr_short_year', 0.9),
        ("Oct 15, 2025", date(2025, 10, 15), 'month_abbr_day_year', 0.95),
        ("DEC 25, 24", date(2024, 12, 25), 'month_abbr_day_short_year', 0.9),
        ("JUN 2025", date(2025, 6, 1), 'month_abbr_year', 0.85),
        ("July 4, 2025", date(2025, 7, 4), 'month_name_day_year', 0.95),
        ("4 July 2025", date(2025, 7, 4), 'day_month_name_year', 0.95),
        ("20250314", date(2025, 3, 14), 'compact_iso', 0.7),
        ("031425", date(2025, 3, 14), 'compact_us', 0.65),
        ("251231", date(2025, 12, 31), 'compact_year_first', 0.6),
        ("5045", date(2025, 2, 14), 'julian', 0.6),
        ("12/2025", date(2025, 12, 1), 'month_year', 0.8),
        ("06/25", date(2025, 6, 1), 'month_short_year', 0.7),
        ("25.12.2024", date(2024, 12, 25), 'eu_dotted', 0.9),
        ("25.12.24", date(2024, 12, 25), 'eu_dotted_short_year', 0.85),
    ])
    def test_format(self, date_parser, text, expected, rule_id, confidence):
        candidate = date_parser.extract_date(text)
        assert candidate is not None
        assert candidate.value == expected
        assert candidate.rule_id == rule_id
        assert candidate.confidence == pytest.approx(confidence)

    def test_iso_not_read_as_short_year(self, date_parser):
        # "2024-12-25" must not be picked apart as 24-12-25
        candidate = date_parser.extract_date("2024-12-25")
        assert candidate.rule_id == 'iso'
        assert candidate.value == date(2024, 12, 25)

    def test_rule_table_order(self, date_parser):
        assert [rule.order for rule in date_parser.date_patterns] == list(range(len(date_parser.date_patterns)))


class TestPlausibility:

    def test_old_date_rejected(self, date_parser):
        assert date_parser.extract_date("EXP 01/15/2020") is None

    def test_far_future_rejected(self, date_parser):
        assert date_parser.extract_date("EXP 01/15/2040") is None

    @pytest.mark.parametrize("value, expected", [
        (date(2024, 11, 15), False),  # 7 months back
        (date(2024, 12, 15), False),  # exactly 6 months back
        (date(2025, 1, 15), True),    # 5 months back
        (date(2035, 6, 14), True),
        (date(2035, 6, 15), False),   # exactly 10 years ahead
        (date(2036, 6, 15), False),
    ])
    def test_window_is_exclusive(self, value, expected):
        assert is_plausible_expiration(value, date(2025, 6, 15)) is expected

    def test_custom_window(self):
        parser = ExpirationDateParser(clock=lambda: date(2024, 12, 1), max_past_months=1)
        assert parser.extract_date("EXP 09/15/2024") is None


class TestNoDate:

    @pytest.mark.parametrize("text", ["", "   ", "NET WT 16 OZ", "INGREDIENTS: SUGAR, SALT"])
    def test_returns_none(self, date_parser, text):
        assert date_parser.extract_date(text) is None

    def test_find_all_empty(self, date_parser):
        assert date_parser.find_all_dates("") == []


class TestFindAllDates:

    def test_every_plausible_date(self, date_parser):
        found = date_parser.find_all_dates("MFG 11/20/2024 EXP 12/25/2025")
        assert [c.value for c in found] == [date(2024, 11, 20), date(2025, 12, 25)]
        assert all(c.rule_id == 'us_numeric' for c in found)

    def test_one_candidate_per_day(self, date_parser):
        found = date_parser.find_all_dates("EXP 12/25/2024 BEST BY 12-25-2024")
        assert len(found) == 1

    def test_implausible_dates_dropped(self, date_parser):
        found = date_parser.find_all_dates("PACKED 01/02/2019 USE BY 12/25/2024")
        assert [c.value for c in found] == [date(2024, 12, 25)]


class TestFormatting:

    def test_format_date(self):
        assert ExpirationDateParser.format_date(date(2024, 12, 25)) == "Dec 25, 2024"
        assert ExpirationDateParser.format_date(date(2024, 12, 25), include_year=False) == "Dec 25"

    def test_days_until_expiration(self, date_parser, today):
        assert date_parser.days_until_expiration(date(2024, 12, 25)) == 24
        assert date_parser.days_until_expiration(today - timedelta(days=3)) == -3

    @pytest.mark.parametrize("offset, text", [
        (-3, "Expired 3 days ago"),
        (-1, "Expired 1 day ago"),
        (0, "Expires today"),
        (1, "Expires tomorrow"),
        (5, "Expires in 5 days"),
        (10, "Expires in 1 week"),
        (20, "Expires in 2 weeks"),
        (45, "Expires in 1 month"),
        (90, "Expires in 3 months"),
        (400, "Expires in 1 year"),
        (800, "Expires in 2 years"),
    ])
    def test_status_text(self, date_parser, today, offset, text):
        assert date_parser.expiration_status_text(today + timedelta(days=offset)) == text

    def test_manual_candidate(self, date_parser):
        candidate = date_parser.manual_candidate(date(2025, 1, 31))
        assert candidate.confidence == 1.0
        assert candidate.format_used == 'manual'
        assert candidate.original_text == "Manual entry"
