"""
Nutrition facts panel parser.

Every field has its own ordered list of label variants (full word first,
abbreviations and alternate phrasings after). Label phrases and units are
normalized with the NUTRITION profile before compilation, so they match
text that went through the same S->5 / O->0 substitution.
"""

import re
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Optional, Sequence

from labelscan.utils.candidates import Candidate, NutrientValue
from labelscan.utils.derivations import canonical_unit, salt_to_sodium_mg
from labelscan.utils.normalize import TextDomain, keyword_pattern, normalize_nutrition
from labelscan.utils.patterns import PatternRule, RuleDomain, first_match, find_all, rule_table
from labelscan.utils.validation import validate_nutrient

logger = logging.getLogger(__name__)

NUMBER = r'(\d+(?:\.\d+)?)'
MAX_EXPECTED_FIELDS = 18

NUTRIENT_FIELDS = [
    'calories', 'total_fat', 'saturated_fat', 'trans_fat', 'cholesterol',
    'sodium', 'total_carbohydrates', 'dietary_fiber', 'total_sugars',
    'added_sugars', 'protein', 'vitamin_d', 'calcium', 'iron', 'potassium',
    'vitamin_a', 'vitamin_c',
]


class LabelFormat(str, Enum):
    US = "US"
    EU = "EU"
    CANADIAN = "CANADIAN"
    UK = "UK"
    AUSTRALIAN = "AUSTRALIAN"
    UNKNOWN = "UNKNOWN"

    @property
    def display_name(self) -> str:
        return {
            "US": "US FDA",
            "EU": "European",
            "CANADIAN": "Canadian",
            "UK": "UK",
            "AUSTRALIAN": "Australian",
            "UNKNOWN": "Unknown",
        }[self.value]


@dataclass(frozen=True)
class LabelFormatSignal:
    """Indicator hit counts per labelling standard and the format they imply."""
    us: int
    eu: int
    canadian: int
    uk: int
    label_format: LabelFormat


@dataclass
class NutritionFacts:
    """All fields read from one nutrition panel. Missing fields are None."""
    serving_size: Optional[float] = None
    serving_size_unit: Optional[str] = None
    servings_per_container: Optional[float] = None
    calories: Optional[float] = None
    total_fat: Optional[float] = None
    saturated_fat: Optional[float] = None
    trans_fat: Optional[float] = None
    cholesterol: Optional[float] = None
    sodium: Optional[float] = None
    total_carbohydrates: Optional[float] = None
    dietary_fiber: Optional[float] = None
    total_sugars: Optional[float] = None
    added_sugars: Optional[float] = None
    protein: Optional[float] = None
    vitamin_d: Optional[float] = None
    calcium: Optional[float] = None
    iron: Optional[float] = None
    potassium: Optional[float] = None
    vitamin_a: Optional[float] = None
    vitamin_c: Optional[float] = None
    label_format: LabelFormat = LabelFormat.US
    confidence: float = 0.0
    raw_text: str = ""
    field_sources: Dict[str, str] = field(default_factory=dict)
    candidates: Dict[str, Candidate] = field(default_factory=dict, repr=False)

    @property
    def has_minimum_data(self) -> bool:
        return any(v is not None for v in (
            self.calories, self.total_fat, self.protein, self.total_carbohydrates
        ))

    @property
    def field_count(self) -> int:
        values = [self.serving_size] + [getattr(self, name) for name in NUTRIENT_FIELDS]
        return sum(1 for v in values if v is not None)

    def nutrients(self) -> Dict[str, Optional[float]]:
        return {name: getattr(self, name) for name in NUTRIENT_FIELDS}


def _nutrient_rule(
    rule_id: str,
    nutrient: str,
    labels: Sequence[str],
    units: Sequence[str],
    unit: str,
    base_confidence: float,
    word_boundary: bool = False,
) -> PatternRule:
    """Build "<label>[: ]<number> <unit>" with label and unit in normalized space."""
    label = keyword_pattern(*labels, domain=TextDomain.NUTRITION)
    suffix = keyword_pattern(*units, domain=TextDomain.NUTRITION)
    pattern = (r'\b' if word_boundary else '') + label + r'[:\s]+' + NUMBER + r'\s*' + suffix

    return PatternRule(
        id=rule_id,
        domain=RuleDomain.NUTRITION,
        pattern=pattern,
        parse=lambda m: NutrientValue(nutrient, float(m.group(1)), unit),
        base_confidence=base_confidence,
        format=f"{labels[0]} {units[0]}",
        example=f"{labels[0]} 10{units[0]}",
    )


def _grams(rule_id, nutrient, labels, base_confidence=0.9):
    return _nutrient_rule(rule_id, nutrient, labels, ['g'], 'g', base_confidence)


def _milligrams(rule_id, nutrient, labels, base_confidence=0.9, word_boundary=False):
    return _nutrient_rule(rule_id, nutrient, labels, ['mg'], 'mg', base_confidence, word_boundary)


def _keyword(*phrases) -> str:
    return keyword_pattern(*phrases, domain=TextDomain.NUTRITION)


def _serving_size(m: re.Match) -> NutrientValue:
    return NutrientValue('serving_size', float(m.group(1)), canonical_unit(m.group(2)))


def _count(nutrient: str, unit: Optional[str] = None):
    return lambda m: NutrientValue(nutrient, float(m.group(1)), unit)


SERVING_SIZE_RULES = rule_table(
    PatternRule('serving_size', RuleDomain.NUTRITION,
                _keyword('Serving Size') + r'[:\s]+' + NUMBER + r'\s*(\w+)',
                _serving_size, 0.9, example='Serving Size 28 g'),
    PatternRule('serving', RuleDomain.NUTRITION,
                _keyword('Serving') + r'[:\s]+' + NUMBER + r'\s*(\w+)',
                _serving_size, 0.8, example='Serving: 1 cup'),
    PatternRule('per_quantity', RuleDomain.NUTRITION,
                _keyword('Per') + r'\s+' + NUMBER + r'\s*(\w+)',
                _serving_size, 0.7, example='Per 100g'),
    PatternRule('portion', RuleDomain.NUTRITION,
                _keyword('Portion') + r'[:\s]+' + NUMBER + r'\s*(\w+)',
                _serving_size, 0.7, example='Portion: 30g'),
)

SERVINGS_PER_CONTAINER_RULES = rule_table(
    PatternRule('servings_per_container', RuleDomain.NUTRITION,
                r'(?:' + _keyword('About') + r'\s+)?' + NUMBER + r'\s*'
                + _keyword('servings', 'serving') + r'\s*' + _keyword('per container'),
                _count('servings_per_container'), 0.9, example='About 8 servings per container'),
    PatternRule('servings_per_container_label', RuleDomain.NUTRITION,
                _keyword('Servings per container', 'Serving per container') + r'[:\s]+(?:'
                + _keyword('about') + r'\s+)?' + NUMBER,
                _count('servings_per_container'), 0.85, example='Servings Per Container: 8'),
    PatternRule('portions', RuleDomain.NUTRITION,
                NUMBER + r'\s*' + _keyword('portions', 'portion'),
                _count('servings_per_container'), 0.6, example='8 portions'),
)

CALORIE_RULES = rule_table(
    PatternRule('calories', RuleDomain.NUTRITION,
                _keyword('Calories') + r'[:\s]+(\d+)',
                _count('calories', 'kcal'), 0.9, example='Calories 200'),
    PatternRule('energy_kcal', RuleDomain.NUTRITION,
                _keyword('Energy') + r'[:\s]+(\d+)\s*' + _keyword('kcal', 'Cal'),
                _count('calories', 'kcal'), 0.85, example='Energy 200 kcal'),
    PatternRule('number_cal', RuleDomain.NUTRITION,
                r'(\d+)\s*' + _keyword('Calories', 'Cal'),
                _count('calories', 'kcal'), 0.7, example='200 Cal'),
    PatternRule('number_kcal', RuleDomain.NUTRITION,
                r'(\d+)\s*' + _keyword('kcal'),
                _count('calories', 'kcal'), 0.7, example='200kcal'),
)

FIELD_RULES: Dict[str, tuple] = {
    'calories': CALORIE_RULES,
    'total_fat': rule_table(
        _grams('total_fat', 'total_fat', ['Total Fat']),
        _grams('fat', 'total_fat', ['Fat'], 0.8),
        _grams('fats', 'total_fat', ['Fats'], 0.8),
    ),
    'saturated_fat': rule_table(
        _grams('saturated_fat', 'saturated_fat', ['Saturated Fat']),
        _grams('sat_fat', 'saturated_fat', ['Sat. Fat', 'Sat Fat'], 0.8),
        _grams('of_which_saturates', 'saturated_fat', ['of which saturates'], 0.85),
    ),
    'trans_fat': rule_table(
        _grams('trans_fat', 'trans_fat', ['Trans Fat']),
        _grams('trans_fat_hyphen', 'trans_fat', ['Trans-Fat'], 0.85),
    ),
    'cholesterol': rule_table(
        _milligrams('cholesterol', 'cholesterol', ['Cholesterol']),
        _milligrams('cholest', 'cholesterol', ['Cholest.', 'Cholest'], 0.75),
    ),
    'sodium': rule_table(
        _milligrams('sodium', 'sodium', ['Sodium']),
        _milligrams('na', 'sodium', ['Na'], 0.7, word_boundary=True),
    ),
    'total_carbohydrates': rule_table(
        _grams('total_carbohydrate', 'total_carbohydrates', ['Total Carbohydrates', 'Total Carbohydrate']),
        _grams('carbohydrate', 'total_carbohydrates', ['Carbohydrates', 'Carbohydrate'], 0.85),
        _grams('total_carbs', 'total_carbohydrates', ['Total Carbs', 'Total Carb'], 0.85),
        _grams('carbs', 'total_carbohydrates', ['Carbs', 'Carb'], 0.75),
    ),
    'dietary_fiber': rule_table(
        _grams('dietary_fiber', 'dietary_fiber', ['Dietary Fiber', 'Dietary Fibre']),
        _grams('fiber', 'dietary_fiber', ['Fiber', 'Fibre'], 0.8),
        _grams('of_which_fibre', 'dietary_fiber', ['of which fibre'], 0.8),
    ),
    'total_sugars': rule_table(
        _grams('total_sugars', 'total_sugars', ['Total Sugars', 'Total Sugar']),
        _grams('sugars', 'total_sugars', ['Sugars', 'Sugar'], 0.8),
        _grams('of_which_sugars', 'total_sugars', ['of which sugars', 'of which sugar'], 0.8),
    ),
    'added_sugars': rule_table(
        _grams('added_sugars', 'added_sugars', ['Added Sugars', 'Added Sugar']),
        _grams('add_sugars', 'added_sugars', ['Add Sugars', 'Add Sugar'], 0.75),
    ),
    'protein': rule_table(
        _grams('protein', 'protein', ['Protein']),
        _grams('prot', 'protein', ['Prot.', 'Prot'], 0.75),
    ),
    'vitamin_d': rule_table(
        _nutrient_rule('vitamin_d', 'vitamin_d', ['Vitamin D'], ['mcg', 'µg', 'IU'], 'mcg', 0.9),
        _nutrient_rule('vit_d', 'vitamin_d', ['Vit. D', 'Vit D'], ['mcg', 'µg', 'IU'], 'mcg', 0.75),
    ),
    'calcium': rule_table(
        _milligrams('calcium', 'calcium', ['Calcium']),
        _milligrams('ca', 'calcium', ['Ca'], 0.7, word_boundary=True),
    ),
    'iron': rule_table(
        _milligrams('iron', 'iron', ['Iron']),
        _milligrams('fe', 'iron', ['Fe'], 0.7, word_boundary=True),
    ),
    'potassium': rule_table(
        _milligrams('potassium', 'potassium', ['Potassium']),
        _milligrams('k', 'potassium', ['K'], 0.7, word_boundary=True),
    ),
    'vitamin_a': rule_table(
        _nutrient_rule('vitamin_a', 'vitamin_a', ['Vitamin A'], ['mcg', 'µg', 'IU', '%', 'RAE'], 'mcg', 0.9),
        _nutrient_rule('vit_a', 'vitamin_a', ['Vit. A', 'Vit A'], ['mcg', 'µg', 'IU', '%'], 'mcg', 0.75),
    ),
    'vitamin_c': rule_table(
        _milligrams('vitamin_c', 'vitamin_c', ['Vitamin C']),
        _milligrams('vit_c', 'vitamin_c', ['Vit. C', 'Vit C'], 0.75),
        _milligrams('ascorbic_acid', 'vitamin_c', ['Ascorbic Acid'], 0.8),
    ),
}

# EU panels print salt instead of sodium
SALT_RULE = PatternRule(
    'salt', RuleDomain.NUTRITION,
    _keyword('Salt') + r'[:\s]+' + NUMBER + r'\s*' + _keyword('g'),
    lambda m: NutrientValue('sodium', salt_to_sodium_mg(float(m.group(1))), 'mg'),
    0.7,
    format='Salt g',
    example='Salt 1.0g',
    notes='Converted to sodium (40% of salt by mass)',
)

US_LABEL_INDICATORS = [
    _keyword('Nutrition Facts'),
    _keyword('Amount per serving'),
    r'%\s*' + _keyword('Daily Value'),
]
EU_LABEL_INDICATORS = [
    _keyword('Nutrition Information', 'Nutritional Information',
             'Nutrition Declaration', 'Nutritional Declaration'),
    _keyword('per') + r'\s*100\s*' + _keyword('g', 'ml'),
    _keyword('Energy') + '.*' + _keyword('kJ'),
    _keyword('of which saturates'),
]
CANADIAN_LABEL_INDICATORS = [
    _keyword('Valeur nutritive'),
    _keyword('Nutrition Facts') + '.*' + _keyword('Valeur'),
]
UK_LABEL_INDICATORS = [
    _keyword('Reference intake'),
    _keyword('RI') + r'\s*\(',
    _keyword('Traffic light'),
]


class NutritionParser:
    """Parses nutrition facts panels (US, EU, UK and Canadian layouts)."""

    def __init__(self):
        self.field_rules = FIELD_RULES
        self.serving_size_rules = SERVING_SIZE_RULES
        self.servings_per_container_rules = SERVINGS_PER_CONTAINER_RULES
        self._indicators = {
            LabelFormat.US: [re.compile(p, re.IGNORECASE) for p in US_LABEL_INDICATORS],
            LabelFormat.EU: [re.compile(p, re.IGNORECASE) for p in EU_LABEL_INDICATORS],
            LabelFormat.CANADIAN: [re.compile(p, re.IGNORECASE) for p in CANADIAN_LABEL_INDICATORS],
            LabelFormat.UK: [re.compile(p, re.IGNORECASE) for p in UK_LABEL_INDICATORS],
        }

    def detect_label_format(self, text: str) -> LabelFormatSignal:
        """
        Score the text against each standard's indicator phrases.

        Canadian (bilingual) indicators win outright, then UK; otherwise the
        higher of the US and EU counts wins, with US taking a 0-0 tie.
        """
        normalized = normalize_nutrition(text)
        counts = {
            label_format: sum(1 for p in patterns if p.search(normalized))
            for label_format, patterns in self._indicators.items()
        }
        us, eu = counts[LabelFormat.US], counts[LabelFormat.EU]

        if counts[LabelFormat.CANADIAN]:
            label_format = LabelFormat.CANADIAN
        elif counts[LabelFormat.UK]:
            label_format = LabelFormat.UK
        elif us > eu:
            label_format = LabelFormat.US
        elif eu > us:
            label_format = LabelFormat.EU
        else:
            label_format = LabelFormat.US

        return LabelFormatSignal(
            us=us,
            eu=eu,
            canadian=counts[LabelFormat.CANADIAN],
            uk=counts[LabelFormat.UK],
            label_format=label_format,
        )

    def parse_nutrition_label(self, text: str) -> NutritionFacts:
        """
        Parse every field of a nutrition panel.

        Each field takes the first variant that matches. When no sodium line
        is present, a salt line is converted to sodium.

        Args:
            text: Raw OCR text of the panel

        Returns:
            NutritionFacts (unvalidated; see validate())
        """
        facts = NutritionFacts(raw_text=text or "")
        if not text or not text.strip():
            facts.label_format = LabelFormat.UNKNOWN
            return facts

        normalized = normalize_nutrition(text)
        facts.label_format = self.detect_label_format(text).label_format

        serving = first_match(normalized, self.serving_size_rules)
        if serving is not None:
            facts.serving_size = serving.value.amount
            facts.serving_size_unit = serving.value.unit
            self._record(facts, 'serving_size', serving)

        servings = first_match(normalized, self.servings_per_container_rules)
        if servings is not None:
            facts.servings_per_container = servings.value.amount
            self._record(facts, 'servings_per_container', servings)

        for name, rules in self.field_rules.items():
            candidate = first_match(normalized, rules)
            if candidate is None and name == 'sodium':
                candidate = first_match(normalized, [SALT_RULE])
            if candidate is None:
                continue
            setattr(facts, name, candidate.value.amount)
            self._record(facts, name, candidate)

        facts.confidence = self._confidence(facts)

        logger.debug("Parsed nutrition label", extra={
            "label_format": facts.label_format.value,
            "fields_found": len(facts.field_sources),
            "confidence": facts.confidence,
        })
        return facts

    def validate(self, facts: NutritionFacts) -> NutritionFacts:
        """
        Drop nutrient values outside their plausible range.

        Returns:
            Copy of facts with out-of-range fields set to None
        """
        updates = {}
        sources = dict(facts.field_sources)
        candidates = dict(facts.candidates)

        for name in NUTRIENT_FIELDS:
            value = getattr(facts, name)
            if value is not None and validate_nutrient(name, value) is None:
                logger.debug("Dropped out-of-range nutrient", extra={"field": name, "value": value})
                updates[name] = None
                sources.pop(name, None)
                candidates.pop(name, None)

        if not updates:
            return facts

        validated = replace(facts, field_sources=sources, candidates=candidates, **updates)
        validated.confidence = self._confidence(validated)
        return validated

    def find_all_fields(self, text: str) -> List[Candidate]:
        """
        Every nutrient reading in the text, one candidate per (field, amount).

        Used by live scanning, where repeated readings of the same value
        accumulate confidence.
        """
        if not text or not text.strip():
            return []

        normalized = normalize_nutrition(text)
        key = lambda v: (v.field, v.amount)
        in_range = lambda v: validate_nutrient(v.field, v.amount) is not None

        results: List[Candidate] = []
        for name, rules in self.field_rules.items():
            found = find_all(normalized, rules, key=key, accept=in_range)
            if not found and name == 'sodium':
                found = find_all(normalized, [SALT_RULE], key=key, accept=in_range)
            results.extend(found)
        return results

    @staticmethod
    def _record(facts: NutritionFacts, name: str, candidate: Candidate):
        facts.field_sources[name] = candidate.rule_id
        facts.candidates[name] = candidate

    @staticmethod
    def _confidence(facts: NutritionFacts) -> float:
        """fields_found / 18 weighted 0.8, plus 0.2 once a label format is known."""
        names = ['serving_size', 'servings_per_container'] + NUTRIENT_FIELDS
        found = sum(1 for name in names if getattr(facts, name) is not None)
        field_confidence = min(1.0, found / MAX_EXPECTED_FIELDS)
        format_confidence = 0.2 if facts.label_format != LabelFormat.UNKNOWN else 0.0
        return max(0.0, min(1.0, field_confidence * 0.8 + format_confidence))

