"""
Tests for the keyword intent classifier and its text normalisation.
"""
import pytest

from storedesk.chat.intent import (
    IntentResult,
    classify_intent,
    classify_intent_with_confidence,
    extract_search_terms,
    has_size_measurement,
    is_low_confidence,
    map_category,
    neutralize_vowels,
    normalize_text,
)


class TestNormalization:
    def test_latin_is_transliterated(self):
        assert normalize_text("Khaan Bank!") == "хаан банк"

    def test_digraphs_before_single_letters(self):
        assert normalize_text("tsamts") == "цамц"
        assert normalize_text("shuudan") == "шуудан"

    def test_punctuation_and_whitespace_collapse(self):
        assert normalize_text("  Сайн   байна уу?!  ") == "сайн байна уу"

    def test_digits_survive(self):
        assert normalize_text("60кг, 165см") == "60кг 165см"

    def test_none_is_empty(self):
        assert normalize_text(None) == ""

    def test_neutralize_vowels(self):
        assert neutralize_vowels("хэмжээ") == "хемжее"
        assert neutralize_vowels("өмд үү") == "омд уу"


class TestClassification:
    @pytest.mark.parametrize("message,intent", [
        ("Сайн байна уу", "greeting"),
        ("sain baina uu", "greeting"),
        ("захиалга хаана явсан", "order_status"),
        ("баярлалаа", "thanks"),
        ("60кг 165см", "size_info"),
        ("хүргэлт хэдэн хоног", "shipping"),
    ])
    def test_common_messages(self, message, intent):
        assert classify_intent(message) == intent

    def test_no_keywords_is_general_with_zero_confidence(self):
        result = classify_intent_with_confidence("qwrtpsdf")
        assert result.intent == "general"
        assert result.confidence == 0

    def test_empty_message_is_general(self):
        assert classify_intent("") == "general"

    def test_body_measurement_boosts_size(self):
        with_measure = classify_intent_with_confidence("60кг")
        assert with_measure.intent == "size_info"
        assert with_measure.confidence >= 2


class TestLowConfidence:
    def test_lone_prefix_hit_is_low(self):
        assert is_low_confidence(IntentResult("product_search", 0.5)) is True

    def test_zero_is_not_low(self):
        assert is_low_confidence(IntentResult("general", 0)) is False

    def test_full_hit_is_not_low(self):
        assert is_low_confidence(IntentResult("greeting", 1)) is False


class TestSizeMeasurement:
    def test_cyrillic_units(self):
        assert has_size_measurement("60 кг жинтэй")

    def test_latin_units(self):
        assert has_size_measurement("170cm")

    def test_plain_numbers(self):
        assert not has_size_measurement("2 ширхэг")


class TestSearchTerms:
    def test_stop_words_removed(self):
        assert extract_search_terms("цамц байна уу") == "цамц"

    def test_single_letters_dropped(self):
        assert extract_search_terms("a хар цамц") == "хар цамц"

    def test_only_stop_words(self):
        assert extract_search_terms("бараа байна уу") == ""


class TestCategoryMap:
    def test_shoes(self):
        assert map_category("Гутал байна уу") == "shoes"

    def test_latin_typed_category(self):
        assert map_category("tsamts") == "clothing"

    def test_unknown(self):
        assert map_category("юм байна уу") is None
