"""
OCR text normalization.

Every extractor works on normalized text, and every keyword it looks for
(prefixes, month names, label phrases, units) is normalized the same way
before it is compiled into a pattern. That keeps matching consistent even
though the OCR-confusion substitution is lossy:

- LABEL (packaging dates): uppercase, O->0, L->1, I->1
- NUTRITION (nutrition panels): LABEL plus S->5
- VOICE (spoken shopping lists): lowercase only, no substitution
"""

from enum import Enum
import re


class TextDomain(str, Enum):
    """Which normalization rules apply."""
    LABEL = "label"
    NUTRITION = "nutrition"
    VOICE = "voice"


_WHITESPACE_RE = re.compile(r'\s+')

# Applied unconditionally, not only next to digits
_LABEL_CONFUSIONS = str.maketrans({'O': '0', 'L': '1', 'I': '1'})
_NUTRITION_CONFUSIONS = str.maketrans({'O': '0', 'L': '1', 'I': '1', 'S': '5'})


def collapse_whitespace(text: str) -> str:
    """Collapse runs of whitespace (including newlines) to one space and trim."""
    return _WHITESPACE_RE.sub(' ', text).strip()


def normalize(text: str, domain: TextDomain = TextDomain.LABEL) -> str:
    """
    Canonicalize raw OCR/voice text for matching.

    Idempotent: normalize(normalize(x, d), d) == normalize(x, d).

    Args:
        text: Raw recognized text
        domain: Normalization profile

    Returns:
        Normalized text ('' for empty input)

    Examples:
        >>> normalize("Best by  12/2O/2024")
        'BEST BY 12/20/2024'
        >>> normalize("Sodium 5mg", TextDomain.NUTRITION)
        '50D1UM 5MG'
    """
    if not text:
        return ''

    domain = TextDomain(domain)

    if domain == TextDomain.VOICE:
        return collapse_whitespace(text.lower())

    folded = collapse_whitespace(text.upper())
    if domain == TextDomain.NUTRITION:
        return folded.translate(_NUTRITION_CONFUSIONS)
    return folded.translate(_LABEL_CONFUSIONS)


def normalize_label(text: str) -> str:
    return normalize(text, TextDomain.LABEL)


def normalize_nutrition(text: str) -> str:
    return normalize(text, TextDomain.NUTRITION)


def normalize_voice(text: str) -> str:
    return normalize(text, TextDomain.VOICE)


def keyword_pattern(*phrases: str, domain: TextDomain = TextDomain.LABEL) -> str:
    """
    Build a regex alternation matching any of the phrases after normalization.

    Words inside a phrase may be separated by any amount of whitespace
    (including none, as OCR often drops spaces).
    """
    alternatives = []
    for phrase in phrases:
        words = normalize(phrase, domain).split(' ')
        alternatives.append(r'\s*'.join(re.escape(w) for w in words if w))
    return '(?:' + '|'.join(alternatives) + ')'
