"""
Candidate dataclasses for extraction scoring.

Each candidate represents a potential extracted value with the provenance
(rule and matched text) used for ranking and selection.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Optional


def clamp_confidence(value: float) -> float:
    """Clamp a confidence score to [0.0, 1.0]."""
    return max(0.0, min(1.0, float(value)))


@dataclass(frozen=True)
class Candidate:
    """
    A typed value extracted from text.

    Attributes:
        value: Typed payload (datetime.date, NutrientValue, ShoppingItem, ...)
        original_text: Substring the rule matched
        confidence: Extraction certainty in [0, 1]
        rule_id: Id of the PatternRule that produced the value
        format_used: Human-readable format label (e.g. "MM/dd/yyyy")
        rule_order: Declaration index of the rule; lower wins ties
        span: (start, end) of the match in the normalized text
    """
    value: Any
    original_text: str
    confidence: float
    rule_id: str
    format_used: str
    rule_order: int = 0
    span: Optional[tuple[int, int]] = field(default=None, compare=False)

    def __post_init__(self):
        object.__setattr__(self, 'confidence', clamp_confidence(self.confidence))

    def with_confidence(self, confidence: float) -> "Candidate":
        """Copy with an adjusted (clamped) confidence."""
        return replace(self, confidence=clamp_confidence(confidence))

    def boosted(self, boost: float) -> "Candidate":
        """Copy with confidence raised by boost, capped at 1.0."""
        return self.with_confidence(self.confidence + boost)


@dataclass(frozen=True)
class NutrientValue:
    """One nutrition-facts field: canonical field name, amount and unit."""
    field: str
    amount: float
    unit: Optional[str] = None


@dataclass(frozen=True)
class ShoppingItem:
    """
    Shopping-list item parsed from a spoken or typed utterance.

    quantity defaults to 1.0 when no quantity word is present;
    unit is a canonical unit ("gal", "lb", "pack", ...) or None.
    """
    name: str
    quantity: float = 1.0
    unit: Optional[str] = None
    raw_text: str = ""

    def display(self) -> str:
        """Format as "2 gal Milk" (whole quantities shown without decimals)."""
        qty = self.quantity
        qty_text = str(int(qty)) if qty == int(qty) else str(qty)
        parts = [qty_text]
        if self.unit:
            parts.append(self.unit)
        parts.append(self.name)
        return ' '.join(parts)


def create_candidate(
    value: Any,
    rule,
    original_text: str,
    confidence: Optional[float] = None,
    span: Optional[tuple[int, int]] = None,
    format_used: Optional[str] = None,
) -> Candidate:
    """
    Create a Candidate carrying a rule's provenance.

    Args:
        value: Parsed value
        rule: PatternRule that matched
        original_text: Matched substring
        confidence: Override for the rule's base confidence
        span: Character span of the match
        format_used: Override for the rule's format label

    Returns:
        Candidate with clamped confidence
    """
    return Candidate(
        value=value,
        original_text=original_text,
        confidence=rule.base_confidence if confidence is None else confidence,
        rule_id=rule.id,
        format_used=format_used or rule.format_label,
        rule_order=rule.order,
        span=span,
    )
