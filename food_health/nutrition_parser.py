"""
Extraction of numeric nutrition facts from model-written prose.

The vision model describes nutrition in free text ("Calories: 800, Protein: 30g",
"approximately 150-160 calories and 12 grams of protein", ...). Every nutrient is
described by one row of NUTRIENT_TABLE; each row is expanded into regexes of the
pattern kinds it lists and evaluated in order:

- value_first: "<number>[-<number>] [unit] [of] <label>"   e.g. "30g protein"
- label_first: "<label>[:] [approx] <number>[-<number>]"   e.g. "Protein: 30-35g"

On a line that starts with a label ("Calories 500 Protein 20g") a number sitting
between two labels belongs to the one before it.

A range resolves to the mean of its bounds. A nutrient with no match is 0; when
all nutrients are 0 the text is rejected with ParseError.
"""

import logging
import re
from typing import NamedTuple, Optional

from food_health.config import CALORIE_TOLERANCE
from food_health.errors import ParseError
from food_health.schemas import ParsedNutrition

logger = logging.getLogger(__name__)

VALUE_FIRST = "value_first"
LABEL_FIRST = "label_first"

# Plain numbers, decimals and "1,200"-style thousands
_NUMBER = r"\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?"
_RANGE_SEP = r"(?:-|–|—|to)"
_QUALIFIER = r"(?:~|approx(?:imately|\.)?|about|around|roughly|estimated|est\.)"
# Label and number must be on the same line
_GAP = r"[ \t]*"


class NutrientPattern(NamedTuple):
    field: str
    labels: tuple[str, ...]
    units: tuple[str, ...]
    kinds: tuple[str, ...] = (VALUE_FIRST, LABEL_FIRST)


_GRAMS = ("grams?", "gms?", "g")

NUTRIENT_TABLE: tuple[NutrientPattern, ...] = (
    NutrientPattern("calories", ("calories", "calorie", "kcals?", "cals?", "energy"), ("kcals?", "cals?")),
    NutrientPattern("protein", ("proteins?",), _GRAMS),
    NutrientPattern("carbohydrates", ("carbohydrates?", "carbs?"), _GRAMS),
    NutrientPattern("sugar", ("(?:total )?sugars?",), _GRAMS),
    NutrientPattern("fat", ("(?<!saturated )(?<!trans )(?:total )?fats?",), _GRAMS),
)


def _alternation(parts: tuple[str, ...]) -> str:
    return "(?:" + "|".join(parts) + ")"


def _range_tail(units: str) -> str:
    return rf"(?:{_GAP}{units}?{_GAP}{_RANGE_SEP}{_GAP}(?P<hi>{_NUMBER}))?"


def _value_first_pattern(entry: NutrientPattern) -> str:
    labels = _alternation(entry.labels)
    units = _alternation(entry.units)
    return (
        rf"(?<![\d.])(?P<lo>{_NUMBER}){_range_tail(units)}"
        rf"{_GAP}{units}?{_GAP}(?:of{_GAP})?\b{labels}\b(?!{_GAP}[:=])"
        rf"(?=(?P<trail>{_GAP}(?:{_QUALIFIER}{_GAP})?\d)?)"
    )


def _label_first_pattern(entry: NutrientPattern) -> str:
    labels = _alternation(entry.labels)
    units = _alternation(entry.units)
    return (
        rf"\b{labels}\b(?:{_GAP}\({units}\))?{_GAP}(?:content|intake|count)?"
        rf"{_GAP}(?:[:=\-–]|is|of)?{_GAP}(?:{_QUALIFIER}{_GAP})?"
        rf"(?P<lo>{_NUMBER}){_range_tail(units)}"
    )


PATTERN_BUILDERS = {
    VALUE_FIRST: _value_first_pattern,
    LABEL_FIRST: _label_first_pattern,
}


def _compile_table(table: tuple[NutrientPattern, ...]) -> dict[str, list[re.Pattern]]:
    return {
        entry.field: [
            re.compile(PATTERN_BUILDERS[kind](entry), re.IGNORECASE)
            for kind in entry.kinds
        ]
        for entry in table
    }


_COMPILED = _compile_table(NUTRIENT_TABLE)

# First number or nutrient label on a line: tells "Calories 500 Protein 20g"
# (label-led) apart from "500 kcal 30g protein 10g carbs" (number-led)
_ALL_LABELS = _alternation(tuple(label for entry in NUTRIENT_TABLE for label in entry.labels))
_FIRST_TOKEN = re.compile(
    rf"(?<![\d.])\d|\b{_ALL_LABELS}\b",
    re.IGNORECASE,
)


def _to_float(raw: str) -> float:
    return float(raw.replace(",", ""))


def _belongs_to_previous_label(match: re.Match) -> bool:
    """
    In "Calories 500 Protein 20g" the 500 is followed by "Protein 20" but it is
    the value of "Calories": on a label-led line a number that sits between two
    labels belongs to the one before it.
    """
    if match.groupdict().get("trail") is None:
        return False
    text = match.string
    line_start = text.rfind("\n", 0, match.start()) + 1
    first = _FIRST_TOKEN.search(text, line_start, match.start())
    return first is not None and not first.group().isdigit()


def _extract_value(patterns: list[re.Pattern], text: str) -> float:
    for pattern in patterns:
        match = next(
            (m for m in pattern.finditer(text) if not _belongs_to_previous_label(m)),
            None,
        )
        if not match:
            continue
        low = _to_float(match.group("lo"))
        high = match.group("hi")
        if high is not None and _to_float(high) >= low:
            return (low + _to_float(high)) / 2
        return low
    return 0.0


def parse_nutrition(text: str) -> ParsedNutrition:
    """
    Parse free-form nutrition text into ParsedNutrition.

    Each nutrient is extracted independently and defaults to 0. Raises
    ParseError (carrying the original text) when nothing could be extracted.
    """
    text = text or ""
    values = {field: _extract_value(patterns, text) for field, patterns in _COMPILED.items()}

    if all(value == 0 for value in values.values()):
        logger.warning("No nutrient found in analysis text: %r", text)
        raise ParseError(
            "Could not parse nutritional information from the analysis. "
            f"The format might be unexpected. The response was: {text}",
            text,
        )

    logger.info("Parsed nutrition: %s", values)
    return ParsedNutrition(**values)


def macro_calories(nutrition: ParsedNutrition) -> float:
    """Calories implied by macronutrients: protein*4 + carbs*4 + fat*9."""
    return nutrition.protein * 4 + nutrition.carbohydrates * 4 + nutrition.fat * 9


def recalculate_calories(
    nutrition: ParsedNutrition, tolerance: float = CALORIE_TOLERANCE
) -> Optional[float]:
    """
    Return the macro-derived calorie figure when the stated calories contradict it.

    Stated calories of 0 with non-zero macros always count as a contradiction.
    Returns None when the stated value is consistent or macros are all 0.
    """
    estimate = round(macro_calories(nutrition), 1)
    if estimate <= 0:
        return None
    if nutrition.calories <= 0:
        return estimate
    if abs(nutrition.calories - estimate) / estimate > tolerance:
        return estimate
    return None
