"""Tests for text normalization, similarity scoring, and value comparators."""

import pytest
from labelcheck.services.matching import (
    normalize,
    similarity_score,
    extract_alcohol_percentage,
    extract_net_contents,
    compare_alcohol_content,
    compare_net_contents,
)


class TestNormalize:
    """Test text normalization."""

    def test_lowercases_and_strips_punctuation(self):
        assert normalize("OLD TOM DISTILLERY, INC.") == "old tom distillery inc"

    def test_keeps_apostrophes(self):
        assert normalize("STONE'S THROW") == "stone's throw"

    def test_smart_quotes_become_straight(self):
        assert normalize("Stone’s Throw") == "stone's throw"
        assert normalize("“Reserve”") == "reserve"

    def test_collapses_whitespace(self):
        assert normalize("  Kentucky \t Straight\n\nBourbon  ") == "kentucky straight bourbon"

    def test_underscore_is_punctuation(self):
        assert normalize("OLD_TOM") == "old tom"

    def test_keeps_accented_letters(self):
        assert normalize("CHÂTEAU MARGAUX") == "château margaux"

    @pytest.mark.parametrize("text", [
        "45% Alc./Vol. (90 Proof)",
        "  Stone’s   Throw!! ",
        "“GOVERNMENT WARNING:”",
        "Produced & Bottled by: Old Tom Distillery, Bardstown, KY",
        "",
        "---",
    ])
    def test_idempotent(self, text):
        once = normalize(text)
        assert normalize(once) == once


class TestSimilarityScore:
    """Test Levenshtein-based similarity."""

    def test_case_and_punctuation_insensitive(self):
        assert similarity_score("OLD TOM DISTILLERY", "old tom distillery") == 100
        assert similarity_score("Old Tom Distillery.", "OLD TOM DISTILLERY") == 100

    def test_identical_strings(self):
        assert similarity_score("Kentucky Straight Bourbon", "Kentucky Straight Bourbon") == 100

    def test_both_empty(self):
        assert similarity_score("", "") == 100
        assert similarity_score("...", "  ") == 100

    def test_one_empty(self):
        assert similarity_score("abc", "") == 0

    def test_known_distance(self):
        # kitten -> sitting: 3 edits over 7 characters
        assert similarity_score("kitten", "sitting") == 57

    def test_single_typo(self):
        # One deletion over 18 characters
        assert similarity_score("OLD TOM DISTILLERY", "OLD TOM DISTILERY") == 94

    def test_completely_different(self):
        assert similarity_score("OLD TOM DISTILLERY", "JACK DANIELS") < 50

    @pytest.mark.parametrize("a,b", [
        ("OLD TOM DISTILLERY", "OLD TOM DISTILERY"),
        ("Napa Valley", "Sonoma Valley"),
        ("750 mL", "25 fl oz"),
        ("", "Bardstown"),
    ])
    def test_symmetric(self, a, b):
        assert similarity_score(a, b) == similarity_score(b, a)

    def test_no_memory_between_calls(self):
        first = similarity_score("Napa Valley", "Sonoma Valley")
        similarity_score("something", "else entirely")
        assert similarity_score("Napa Valley", "Sonoma Valley") == first


class TestAlcoholContent:
    """Test alcohol content parsing and comparison."""

    def test_extract_integer(self):
        assert extract_alcohol_percentage("40% ALC/VOL") == 40.0

    def test_extract_decimal(self):
        assert extract_alcohol_percentage("Alc. 13.5% by Vol.") == 13.5

    def test_extract_with_space_before_percent(self):
        assert extract_alcohol_percentage("12.5 % ALC. BY VOL.") == 12.5

    def test_extract_first_value(self):
        assert extract_alcohol_percentage("45% ALC/VOL, bottled at 46%") == 45.0

    def test_no_percentage(self):
        assert extract_alcohol_percentage("90 Proof") is None

    def test_same_percentage_different_wording(self):
        assert compare_alcohol_content("45% Alc./Vol.", "45% ALC/VOL") == 100

    def test_different_percentage(self):
        assert compare_alcohol_content("45% Alc./Vol.", "40% ALC/VOL") == 0

    def test_decimal_equivalence(self):
        assert compare_alcohol_content("45.0% ABV", "45% ALC/VOL") == 100

    def test_falls_back_to_text_when_unparseable(self):
        assert compare_alcohol_content("90 Proof", "90 PROOF") == 100
        assert compare_alcohol_content("90 Proof", "45% ALC/VOL") == similarity_score("90 Proof", "45% ALC/VOL")


class TestNetContents:
    """Test net contents parsing and unit-aware comparison."""

    @pytest.mark.parametrize("text,expected", [
        ("750 mL", (750.0, "ml")),
        ("750ML", (750.0, "ml")),
        ("1.75L", (1.75, "l")),
        ("75 cl", (75.0, "cl")),
        ("12 FL. OZ.", (12.0, "floz")),
        ("12 fl oz", (12.0, "floz")),
        ("16 OZ", (16.0, "oz")),
    ])
    def test_extract(self, text, expected):
        assert extract_net_contents(text) == expected

    def test_extract_no_unit(self):
        assert extract_net_contents("seven fifty") is None

    def test_spacing_difference(self):
        assert compare_net_contents("750 mL", "750mL") == 100

    def test_liters_to_milliliters(self):
        assert compare_net_contents("750 mL", "0.75 L") == 100

    def test_centiliters_to_milliliters(self):
        assert compare_net_contents("750 mL", "75 cl") == 100

    def test_metric_mismatch(self):
        assert compare_net_contents("750 mL", "700 mL") == 0

    def test_ounce_family(self):
        assert compare_net_contents("12 FL OZ", "12 oz") == 100
        assert compare_net_contents("12 FL OZ", "16 fl oz") == 0

    def test_no_cross_family_conversion(self):
        # 25 fl oz is close to 750 mL but families are never reconciled
        score = compare_net_contents("750 mL", "25 fl oz")
        assert score < 100
        assert score == similarity_score("750 mL", "25 fl oz")

    def test_falls_back_to_text_when_unparseable(self):
        assert compare_net_contents("750 mL", "seven fifty") == similarity_score("750 mL", "seven fifty")
