"""
Expiration date parser for text read off product packaging.
"""

import re
import logging
from dataclasses import replace
from datetime import date
from typing import Callable, List, Optional

from labelscan.config import settings
from labelscan.utils.candidates import Candidate
from labelscan.utils.derivations import decode_julian, expand_year
from labelscan.utils.normalize import normalize_label
from labelscan.utils.patterns import PatternRule, RuleDomain, first_match, find_all, rule_table
from labelscan.utils.scoring import select_best_candidate
from labelscan.utils.validation import is_plausible_expiration

logger = logging.getLogger(__name__)

MONTH_ABBREVIATIONS = ['JAN', 'FEB', 'MAR', 'APR', 'MAY', 'JUN',
                       'JUL', 'AUG', 'SEP', 'OCT', 'NOV', 'DEC']
MONTH_NAMES = ['JANUARY', 'FEBRUARY', 'MARCH', 'APRIL', 'MAY', 'JUNE', 'JULY',
               'AUGUST', 'SEPTEMBER', 'OCTOBER', 'NOVEMBER', 'DECEMBER']

# Month tokens as they appear after normalization ("OCT" reads as "0CT")
MONTH_LOOKUP = {
    normalize_label(name): index + 1
    for names in (MONTH_ABBREVIATIONS, MONTH_NAMES)
    for index, name in enumerate(names)
}

_MON = '(' + '|'.join(normalize_label(m) for m in MONTH_ABBREVIATIONS) + ')'
_MONTH = '(' + '|'.join(normalize_label(m) for m in MONTH_NAMES) + ')'

# A numeric date must not be glued to a longer digit run or another date part
_START = r'(?<!\d)(?<!\d[/.\-])'
_END = r'(?![\d]|[/.\-]\d)'

DATE_PREFIXES = [
    "EXP", "EXPIRES", "EXPIRY", "EXP DATE", "EXPIRATION",
    "BEST BY", "BEST BEFORE", "BB", "BEST IF USED BY",
    "USE BY", "USE BEFORE", "SELL BY",
    "BEST WHEN USED BY", "FRESHEST BY",
    "PACKED ON", "PACK DATE", "MFG", "MFD",
    "PRODUCTION", "PROD",
]


class ExpirationDateParser:
    """Extracts confidence-scored expiration dates from OCR text."""

    def __init__(
        self,
        clock: Optional[Callable[[], date]] = None,
        prefix_boost: Optional[float] = None,
        prefix_window: Optional[int] = None,
        max_past_months: Optional[int] = None,
        max_future_years: Optional[int] = None,
    ):
        """
        Args:
            clock: Returns "today"; defaults to date.today
            prefix_boost: Confidence added when a date follows an EXP/BEST BY prefix
            prefix_window: How many characters after a prefix are searched
            max_past_months: Plausibility window into the past
            max_future_years: Plausibility window into the future
        """
        self._clock = clock or date.today
        self.prefix_boost = settings.PREFIX_CONFIDENCE_BOOST if prefix_boost is None else prefix_boost
        self.prefix_window = settings.PREFIX_SEARCH_WINDOW if prefix_window is None else prefix_window
        self.max_past_months = (
            settings.EXPIRY_MAX_PAST_MONTHS if max_past_months is None else max_past_months
        )
        self.max_future_years = (
            settings.EXPIRY_MAX_FUTURE_YEARS if max_future_years is None else max_future_years
        )
        self.date_prefixes = [normalize_label(p) for p in DATE_PREFIXES]
        self._init_patterns()

    def today(self) -> date:
        return self._clock()

    def _init_patterns(self):
        """Initialize date rules, most specific/likely first."""

        def numeric(m_group, d_group, y_group):
            def parse(match: re.Match) -> date:
                year = expand_year(match.group(y_group), self.today())
                return date(year, int(match.group(m_group)), int(match.group(d_group)))
            return parse

        def named(m_group, d_group, y_group):
            def parse(match: re.Match) -> date:
                year = expand_year(match.group(y_group), self.today())
                month = MONTH_LOOKUP[match.group(m_group).upper()]
                day = int(match.group(d_group)) if d_group else 1
                return date(year, month, day)
            return parse

        def month_year(match: re.Match) -> date:
            return date(expand_year(match.group(2), self.today()), int(match.group(1)), 1)

        def julian(match: re.Match) -> Optional[date]:
            return decode_julian(match.group(0), self.today())

        self.date_patterns = rule_table(
            # US formats (MM/DD/YYYY, MM-DD-YYYY)
            PatternRule(
                id='us_numeric',
                domain=RuleDomain.DATE,
                pattern=_START + r'(\d{1,2})[/\-](\d{1,2})[/\-](\d{4})' + _END,
                parse=numeric(1, 2, 3),
                base_confidence=0.9,
                case_sensitive=True,
                format='MM/dd/yyyy',
                example='12/25/2024',
            ),
            PatternRule(
                id='us_numeric_short_year',
                domain=RuleDomain.DATE,
                pattern=_START + r'(\d{1,2})[/\-](\d{1,2})[/\-](\d{2})' + _END,
                parse=numeric(1, 2, 3),
                base_confidence=0.85,
                case_sensitive=True,
                format='MM/dd/yy',
                example='12/25/24',
            ),
            # European formats (DD/MM/YYYY); only reached when the US reading is invalid
            PatternRule(
                id='eu_numeric',
                domain=RuleDomain.DATE,
                pattern=_START + r'(\d{2})[/\-](\d{2})[/\-](\d{4})' + _END,
                parse=numeric(2, 1, 3),
                base_confidence=0.9,
                case_sensitive=True,
                format='dd/MM/yyyy',
                example='25/12/2024',
            ),
            PatternRule(
                id='eu_numeric_short_year',
                domain=RuleDomain.DATE,
                pattern=_START + r'(\d{2})[/\-](\d{2})[/\-](\d{2})' + _END,
                parse=numeric(2, 1, 3),
                base_confidence=0.8,
                case_sensitive=True,
                format='dd/MM/yy',
                example='25/12/24',
            ),
            PatternRule(
                id='iso',
                domain=RuleDomain.DATE,
                pattern=_START + r'(\d{4})[/\-](\d{2})[/\-](\d{2})' + _END,
                parse=lambda m: date(expand_year(m.group(1), self.today()), int(m.group(2)), int(m.group(3))),
                base_confidence=0.95,
                case_sensitive=True,
                format='yyyy-MM-dd',
                example='2024-12-25',
            ),
            # Month name formats
            PatternRule(
                id='day_month_abbr_year',
                domain=RuleDomain.DATE,
                pattern=r'(\d{1,2})\s+' + _MON + r'\s+(\d{4})' + _END,
                parse=named(2, 1, 3),
                base_confidence=0.95,
                format='dd MMM yyyy',
                example='25 DEC 2024',
            ),
            PatternRule(
                id='day_month_abbr_short_year',
                domain=RuleDomain.DATE,
                pattern=r'(\d{1,2})\s+' + _MON + r'\s+(\d{2})' + _END,
                parse=named(2, 1, 3),
                base_confidence=0.9,
                format='dd MMM yy',
                example='25 DEC 24',
            ),
            PatternRule(
                id='month_abbr_day_year',
                domain=RuleDomain.DATE,
                pattern=r'\b' + _MON + r'\s+(\d{1,2}),?\s+(\d{4})' + _END,
                parse=named(1, 2, 3),
                base_confidence=0.95,
                format='MMM dd, yyyy',
                example='DEC 25, 2024',
            ),
            PatternRule(
                id='month_abbr_day_short_year',
                domain=RuleDomain.DATE,
                pattern=r'\b' + _MON + r'\s+(\d{1,2}),?\s+(\d{2})' + _END,
                parse=named(1, 2, 3),
                base_confidence=0.9,
                format='MMM dd, yy',
                example='DEC 25, 24',
            ),
            PatternRule(
                id='month_abbr_year',
                domain=RuleDomain.DATE,
                pattern=r'\b' + _MON + r'\s+(\d{4})' + _END,
                parse=named(1, None, 2),
                base_confidence=0.85,
                format='MMM yyyy',
                example='DEC 2024',
                notes='Resolves to the first of the month',
            ),
            # Full month names
            PatternRule(
                id='month_name_day_year',
                domain=RuleDomain.DATE,
                pattern=r'\b' + _MONTH + r'\s+(\d{1,2}),?\s+(\d{4})' + _END,
                parse=named(1, 2, 3),
                base_confidence=0.95,
                format='MMMM dd, yyyy',
                example='DECEMBER 25, 2024',
            ),
            PatternRule(
                id='day_month_name_year',
                domain=RuleDomain.DATE,
                pattern=r'(\d{1,2})\s+' + _MONTH + r'\s+(\d{4})' + _END,
                parse=named(2, 1, 3),
                base_confidence=0.95,
                format='dd MMMM yyyy',
                example='25 DECEMBER 2024',
            ),
            # Compact formats (YYYYMMDD, MMDDYY, YYMMDD)
            PatternRule(
                id='compact_iso',
                domain=RuleDomain.DATE,
                pattern=r'(?<!\d)(\d{4})(\d{2})(\d{2})(?!\d)',
                parse=lambda m: date(expand_year(m.group(1), self.today()), int(m.group(2)), int(m.group(3))),
                base_confidence=0.7,
                case_sensitive=True,
                format='yyyyMMdd',
                example='20241225',
            ),
            PatternRule(
                id='compact_us',
                domain=RuleDomain.DATE,
                pattern=r'(?<!\d)(\d{2})(\d{2})(\d{2})(?!\d)',
                parse=numeric(1, 2, 3),
                base_confidence=0.65,
                case_sensitive=True,
                format='MMddyy',
                example='122524',
            ),
            PatternRule(
                id='compact_year_first',
                domain=RuleDomain.DATE,
                pattern=r'(?<!\d)(\d{2})(\d{2})(\d{2})(?!\d)',
                parse=numeric(2, 3, 1),
                base_confidence=0.6,
                case_sensitive=True,
                format='yyMMdd',
                example='241225',
            ),
            # Julian date (YDDD: last digit of year, day of year)
            PatternRule(
                id='julian',
                domain=RuleDomain.DATE,
                pattern=_START + r'([0-9])([0-3][0-9][0-9])' + _END,
                parse=julian,
                base_confidence=0.6,
                case_sensitive=True,
                format='julian',
                example='4360',
            ),
            # Month/Year only
            PatternRule(
                id='month_year',
                domain=RuleDomain.DATE,
                pattern=_START + r'(\d{1,2})[/\-](\d{4})' + _END,
                parse=month_year,
                base_confidence=0.8,
                case_sensitive=True,
                format='MM/yyyy',
                example='12/2024',
            ),
            PatternRule(
                id='month_short_year',
                domain=RuleDomain.DATE,
                pattern=_START + r'(\d{1,2})[/\-](\d{2})' + _END,
                parse=month_year,
                base_confidence=0.7,
                case_sensitive=True,
                format='MM/yy',
                example='12/24',
            ),
            # Day.Month.Year (European dot separator)
            PatternRule(
                id='eu_dotted',
                domain=RuleDomain.DATE,
                pattern=_START + r'(\d{1,2})\.(\d{1,2})\.(\d{4})' + _END,
                parse=numeric(2, 1, 3),
                base_confidence=0.9,
                case_sensitive=True,
                format='dd.MM.yyyy',
                example='25.12.2024',
            ),
            PatternRule(
                id='eu_dotted_short_year',
                domain=RuleDomain.DATE,
                pattern=_START + r'(\d{1,2})\.(\d{1,2})\.(\d{2})' + _END,
                parse=numeric(2, 1, 3),
                base_confidence=0.85,
                case_sensitive=True,
                format='dd.MM.yy',
                example='25.12.24',
            ),
            # With time of day (lot/production stamps)
            PatternRule(
                id='us_numeric_with_time',
                domain=RuleDomain.DATE,
                pattern=_START + r'(\d{1,2})[/\-](\d{1,2})[/\-](\d{4})\s+\d{1,2}:\d{2}',
                parse=numeric(1, 2, 3),
                base_confidence=0.95,
                case_sensitive=True,
                format='MM/dd/yyyy HH:mm',
                example='12/25/2024 14:30',
            ),
        )

    def is_plausible(self, value: date, today: Optional[date] = None) -> bool:
        return is_plausible_expiration(
            value,
            today or self.today(),
            max_past_months=self.max_past_months,
            max_future_years=self.max_future_years,
        )

    def extract_date(self, text: str) -> Optional[Candidate]:
        """
        Extract the most likely expiration date.

        Each date prefix found in the text ("EXP", "BEST BY", ...) gets its own
        first-match pass over the next few characters with a confidence boost;
        the whole text also gets an unboosted first-match pass. Implausible
        dates are dropped and the highest confidence wins.

        Args:
            text: Raw OCR text

        Returns:
            Best Candidate (value is a datetime.date) or None
        """
        if not text or not text.strip():
            return None

        try:
            normalized = normalize_label(text)
            today = self.today()
            candidates: List[Candidate] = []

            for prefix in self.date_prefixes:
                index = normalized.find(prefix)
                if index == -1:
                    continue
                window_start = index + len(prefix)
                raw_window = normalized[window_start:window_start + self.prefix_window]
                offset = window_start + len(raw_window) - len(raw_window.lstrip())
                candidate = first_match(raw_window.strip(), self.date_patterns, boost=self.prefix_boost)
                if candidate is not None:
                    start, end = candidate.span
                    candidates.append(replace(candidate, span=(start + offset, end + offset)))

            standalone = first_match(normalized, self.date_patterns)
            if standalone is not None:
                candidates.append(standalone)

            plausible = [c for c in candidates if self.is_plausible(c.value, today)]
            best = select_best_candidate(plausible)

            if best is not None:
                logger.debug("Extracted expiration date", extra={
                    "date": best.value.isoformat(),
                    "rule_id": best.rule_id,
                    "confidence": best.confidence,
                    "candidates": len(candidates),
                })
            return best

        except (re.error, ValueError, AttributeError):
            logger.warning("Error extracting expiration date", exc_info=True)
            return None

    def find_all_dates(self, text: str) -> List[Candidate]:
        """
        Find every plausible date in the text, one candidate per calendar day.

        Args:
            text: Raw OCR text

        Returns:
            Candidates in rule order (earlier rules win duplicate days)
        """
        if not text or not text.strip():
            return []

        today = self.today()
        return find_all(
            normalize_label(text),
            self.date_patterns,
            accept=lambda value: self.is_plausible(value, today),
        )

    def manual_candidate(self, value: date) -> Candidate:
        """Wrap a date typed in by the user as a fully confident candidate."""
        return Candidate(
            value=value,
            original_text="Manual entry",
            confidence=1.0,
            rule_id='manual',
            format_used='manual',
            rule_order=len(self.date_patterns),
        )

    @staticmethod
    def format_date(value: date, include_year: bool = True) -> str:
        """
        Format for display: "Dec 25, 2024" (or "Dec 25" without the year).
        """
        month = MONTH_ABBREVIATIONS[value.month - 1].title()
        if include_year:
            return f"{month} {value.day}, {value.year}"
        return f"{month} {value.day}"

    def days_until_expiration(self, value: date, today: Optional[date] = None) -> int:
        """Whole days from today until value (negative once expired)."""
        return (value - (today or self.today())).days

    def expiration_status_text(self, value: date, today: Optional[date] = None) -> str:
        """Short human-readable status, e.g. "Expires in 2 weeks"."""
        days = self.days_until_expiration(value, today)

        if days < 0:
            return f"Expired {-days} day{'s' if days != -1 else ''} ago"
        if days == 0:
            return "Expires today"
        if days == 1:
            return "Expires tomorrow"
        if days <= 7:
            return f"Expires in {days} days"
        if days <= 30:
            return f"Expires in {days // 7} week{'s' if days >= 14 else ''}"
        if days <= 365:
            return f"Expires in {days // 30} month{'s' if days >= 60 else ''}"
        return f"Expires in {days // 365} year{'s' if days >= 730 else ''}"
