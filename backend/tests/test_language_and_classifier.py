import sys
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.append(str(BASE_DIR))

from medistock.ai.classifier import PHARMACY_KEYWORDS, is_domain_specific
from medistock.ai.language import detect_language


def test_bengali_code_point_selects_bengali():
    assert detect_language("নাপা কি?") == "bn"
    assert detect_language("Is napa ok? ধন্যবাদ") == "bn"


def test_everything_else_is_english():
    assert detect_language("What is the dose of Napa?") == "en"
    assert detect_language("") == "en"
    assert detect_language("¿Qué es?") == "en"


def test_symptom_keywords_are_domain_specific():
    assert is_domain_specific("I have a fever")
    assert is_domain_specific("HEADACHE since morning")
    assert is_domain_specific("Which brand of blood pressure tablet?")


def test_business_questions_are_not_domain_specific():
    assert not is_domain_specific("How do I grow monthly sales?")
    assert not is_domain_specific("")
    assert not is_domain_specific("   ")


def test_substring_matching_is_coarse():
    # "ace" is a keyword, so unrelated words containing it match too.
    assert is_domain_specific("Should I replace the shelf?")


def test_custom_keyword_list():
    assert is_domain_specific("refill the insulin", keywords=("insulin",))
    assert not is_domain_specific("I have a fever", keywords=("insulin",))
    assert "fever" in PHARMACY_KEYWORDS
