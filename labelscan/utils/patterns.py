"""
Pattern library primitives and the candidate extractor.

A PatternRule pairs a compiled regex with a parse routine and a base
confidence. Rules are declared in priority order (most specific or most
likely format first); the declaration index is kept on the rule and breaks
confidence ties during selection.
"""

import re
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Hashable, List, Optional, Sequence

from .candidates import Candidate, create_candidate

logger = logging.getLogger(__name__)


class RuleDomain(str, Enum):
    DATE = "date"
    NUTRITION = "nutrition"
    UNIT = "unit"
    RECEIPT = "receipt"


@dataclass(frozen=True)
class PatternRule:
    """A named regex rule with its parser, base confidence and documentation."""
    id: str
    domain: RuleDomain
    pattern: str
    parse: Callable[[re.Match], Any] = field(compare=False, repr=False)
    base_confidence: float = 0.5
    case_sensitive: bool = False
    format: Optional[str] = None
    example: Optional[str] = None
    notes: Optional[str] = None
    order: int = 0
    compiled: re.Pattern = field(default=None, init=False, compare=False, repr=False)

    def __post_init__(self):
        flags = 0 if self.case_sensitive else re.IGNORECASE
        object.__setattr__(self, 'compiled', re.compile(self.pattern, flags))

    @property
    def format_label(self) -> str:
        return self.format or self.id

    def try_parse(self, match: re.Match) -> Any:
        """
        Run the rule's parser, treating parse errors as a non-match.

        Returns:
            Parsed value, or None if the matched text is malformed
            (e.g. February 30th)
        """
        try:
            return self.parse(match)
        except (ValueError, OverflowError, IndexError, KeyError) as e:
            logger.debug("Rule rejected match", extra={
                "rule_id": self.id,
                "matched": match.group(0),
                "reason": str(e),
            })
            return None


def rule_table(*rules: PatternRule) -> tuple[PatternRule, ...]:
    """Freeze rules into a priority-ordered table, stamping declaration order."""
    return tuple(replace(rule, order=index) for index, rule in enumerate(rules))


def first_match(
    text: str,
    rules: Sequence[PatternRule],
    boost: float = 0.0,
) -> Optional[Candidate]:
    """
    Return the candidate from the first rule (in order) that matches and parses.

    Only the first occurrence of each rule is tried; a rule whose first
    occurrence fails to parse falls through to the next rule.

    Args:
        text: Normalized text
        rules: Ordered rule table
        boost: Confidence added to the rule's base confidence (capped at 1.0)

    Returns:
        Candidate or None
    """
    if not text:
        return None

    for rule in rules:
        match = rule.compiled.search(text)
        if match is None:
            continue
        value = rule.try_parse(match)
        if value is None:
            continue
        return create_candidate(
            value=value,
            rule=rule,
            original_text=match.group(0),
            confidence=rule.base_confidence + boost,
            span=match.span(),
        )
    return None


def find_all(
    text: str,
    rules: Sequence[PatternRule],
    key: Optional[Callable[[Any], Hashable]] = None,
    accept: Optional[Callable[[Any], bool]] = None,
) -> List[Candidate]:
    """
    Apply every rule to the whole text and collect all parsed matches.

    Candidates are deduplicated by value (or by key(value)); the first
    occurrence wins, so earlier rules are authoritative.

    Args:
        text: Normalized text
        rules: Ordered rule table
        key: Optional dedup key function over the parsed value
        accept: Optional plausibility filter applied before dedup

    Returns:
        List of candidates in rule order
    """
    if not text:
        return []

    key = key or (lambda value: value)
    seen = set()
    results: List[Candidate] = []

    for rule in rules:
        for match in rule.compiled.finditer(text):
            value = rule.try_parse(match)
            if value is None:
                continue
            if accept is not None and not accept(value):
                logger.debug("Dropped implausible candidate", extra={
                    "rule_id": rule.id,
                    "value": str(value),
                })
                continue
            dedup_key = key(value)
            if dedup_key in seen:
                continue
            seen.add(dedup_key)
            results.append(create_candidate(
                value=value,
                rule=rule,
                original_text=match.group(0),
                span=match.span(),
            ))

    return results
