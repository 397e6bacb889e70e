"""Text normalization, fuzzy similarity, and unit-aware value comparators.

All functions here are pure: scores depend only on the two strings passed in.
Scores are integers on a 0-100 scale, 100 meaning identical after normalization.
"""

import math
import re
from typing import Optional, Tuple

from rapidfuzz.distance import Levenshtein


# Smart quotes mapped to their ASCII equivalents
_SINGLE_QUOTES = re.compile(r"[‘’‚‛]")
_DOUBLE_QUOTES = re.compile(r"[“”„‟]")

# Anything other than letters, digits, whitespace and apostrophes
_PUNCTUATION = re.compile(r"[^\w\s']|_")
_WHITESPACE = re.compile(r"\s+")

# "45% Alc./Vol." -> 45, "13.5 % ALC. BY VOL." -> 13.5
ALCOHOL_PERCENT_PATTERN = re.compile(r"(\d+\.?\d*)\s*%")

# "750 mL", "1.75L", "75 cl", "12 FL. OZ."
NET_CONTENTS_PATTERN = re.compile(
    r"(\d+\.?\d*)\s*(ml|l|fl\.?\s*oz\.?|oz\.?|cl)",
    re.IGNORECASE,
)

# Metric units scale to milliliters; ounces stay in their own family
_ML_FACTORS = {"ml": 1.0, "cl": 10.0, "l": 1000.0}
_FLOZ_UNITS = {"oz", "floz"}


def normalize(text: str) -> str:
    """
    Canonicalize text for comparison.

    Lowercases, straightens smart quotes, replaces punctuation (except
    apostrophes) with spaces and collapses whitespace.
    """
    text = text.lower()
    text = _SINGLE_QUOTES.sub("'", text)
    text = _DOUBLE_QUOTES.sub('"', text)
    text = _PUNCTUATION.sub(" ", text)
    text = _WHITESPACE.sub(" ", text)
    return text.strip()


def round_score(ratio: float) -> int:
    """Convert a 0-1 ratio to a 0-100 score, rounding halves up."""
    return int(math.floor(ratio * 100 + 0.5))


def edit_similarity(a: str, b: str) -> int:
    """Levenshtein similarity of two already-prepared strings (0-100)."""
    if a == b:
        return 100
    max_len = max(len(a), len(b))
    if max_len == 0:
        return 100
    distance = Levenshtein.distance(a, b)
    return round_score(1 - distance / max_len)


def similarity_score(expected: str, extracted: str) -> int:
    """
    Fuzzy similarity between two strings after normalization.

    Args:
        expected: Value from the application
        extracted: Value read from the label

    Returns:
        Score from 0 to 100 (100 = identical after normalization)
    """
    return edit_similarity(normalize(expected), normalize(extracted))


def extract_alcohol_percentage(text: str) -> Optional[float]:
    """
    Extract the first percentage value from an alcohol content statement.

    "40% ALC/VOL" -> 40.0, "Alc. 13.5% by Vol." -> 13.5
    """
    match = ALCOHOL_PERCENT_PATTERN.search(text)
    return float(match.group(1)) if match else None


def extract_net_contents(text: str) -> Optional[Tuple[float, str]]:
    """
    Extract value and unit from a net contents statement.

    Units are lowercased with dots and spaces removed, so "12 FL. OZ."
    yields (12.0, "floz").
    """
    match = NET_CONTENTS_PATTERN.search(text)
    if not match:
        return None
    unit = re.sub(r"[.\s]", "", match.group(2).lower())
    return float(match.group(1)), unit


def compare_alcohol_content(expected: str, extracted: str) -> int:
    """
    Compare alcohol statements by their percentage value.

    Returns 100 when the percentages are equal and 0 when they differ.
    Falls back to text similarity when either side has no percentage.
    """
    a = extract_alcohol_percentage(expected)
    b = extract_alcohol_percentage(extracted)
    if a is None or b is None:
        return similarity_score(expected, extracted)
    return 100 if a == b else 0


def _unit_family(unit: str) -> str:
    return "floz" if unit in _FLOZ_UNITS else "ml"


def _to_family_value(value: float, unit: str) -> float:
    return value * _ML_FACTORS.get(unit, 1.0)


def compare_net_contents(expected: str, extracted: str) -> int:
    """
    Compare net contents by value after unit normalization.

    Metric units (ml, cl, l) are converted to milliliters; fl oz and oz
    form a separate family compared on raw value. There is no conversion
    between the two families: "750 mL" vs "25 fl oz" falls back to text
    similarity on the original strings.
    """
    a = extract_net_contents(expected)
    b = extract_net_contents(extracted)
    if a is None or b is None:
        return similarity_score(expected, extracted)

    family_a = _unit_family(a[1])
    family_b = _unit_family(b[1])
    if family_a != family_b:
        return similarity_score(expected, extracted)

    value_a = _to_family_value(*a)
    value_b = _to_family_value(*b)
    return 100 if value_a == value_b else 0
