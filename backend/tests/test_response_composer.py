"""
Unit tests for user-facing text: PLU explanations, chat context, scan report, advice parsing.
Run: python -m pytest backend/tests/test_response_composer.py -v
"""


def test_plu_explanation_variants():
    from core.plu import lookup_plu
    from core.response_composer import compose_plu_explanation
    assert "starts with 9" in compose_plu_explanation(lookup_plu("94011"))
    assert "four-digit" in compose_plu_explanation(lookup_plu("4011"))
    assert "does not start with 9" in compose_plu_explanation(lookup_plu("84011"))


def test_chat_context():
    from core.response_composer import build_chat_context
    assert build_chat_context(None, None) == ""
    assert build_chat_context("banana", None) == "Current produce being discussed: banana. "
    assert build_chat_context(None, "ORGANIC") == (
        "Current produce being discussed: Unknown. Organic status: ORGANIC. "
    )


def test_scan_report_uses_verdict_over_model():
    """Report shows the reconciled verdict, not the raw model guess."""
    from core.response_composer import compose_scan_report
    report = compose_scan_report({
        "produce_label": "apple",
        "produce_confidence": 0.9,
        "model_organic_prediction": "ORGANIC",
        "model_organic_confidence": 0.8,
        "detected_plu": "4131",
        "plu_meaning": "Apple, Fuji, large (conventionally grown)",
        "verdict": {
            "verdict": "NON_ORGANIC", "verdict_confidence": 0.85,
            "match": "DISAGREEMENT_PLU_TRUSTED", "reliability": "HIGH",
            "reasoning": "PLU wins.", "recommendation": "Wash thoroughly.",
        },
        "automatic_advice": "",
        "timestamp": "2025-05-01T10:30:00+00:00",
    })
    assert report.startswith("AgriScan AI Report")
    assert "Produce: apple" in report
    assert "Confidence: 90.0%" in report
    assert "Organic Status: NON_ORGANIC" in report
    assert "Confidence: 85.0%" in report
    assert "PLU Code: 4131" in report
    assert "Match: DISAGREEMENT_PLU_TRUSTED" in report
    assert "Wash thoroughly." in report
    assert "Scanned: 2025-05-01 10:30:00" in report


def test_scan_report_without_verdict_or_plu():
    from core.response_composer import compose_scan_report
    report = compose_scan_report({
        "produce_label": "carrot",
        "produce_confidence": 0.8,
        "organic_label": "Non-Organic",
        "organic_confidence": 0.65,
    })
    assert "Organic Status: Non-Organic" in report
    assert "Confidence: 65.0%" in report
    assert "PLU Code: Not Detected" in report
    assert "Scanned: unknown" in report


def test_advice_sections_extracted():
    from core.advice_parser import extract_nutrition_facts, extract_cleaning_tips
    advice = (
        "**Nutrition:** High in potassium.\nGood source of B6.\n"
        "**Cleaning Tip:** Rinse the peel before cutting."
    )
    assert extract_nutrition_facts(advice) == "High in potassium.\nGood source of B6."
    assert extract_cleaning_tips(advice) == "Rinse the peel before cutting."


def test_advice_paragraph_fallbacks():
    from core.advice_parser import extract_nutrition_facts, extract_cleaning_tips, FALLBACK_CLEANING
    advice = "**Bananas** are rich in fiber.\n\nPeel and enjoy."
    assert extract_nutrition_facts(advice) == "Bananas are rich in fiber."
    assert extract_cleaning_tips(advice) == "Peel and enjoy."
    assert extract_cleaning_tips("One paragraph only.") == FALLBACK_CLEANING


def test_advice_defaults_when_empty():
    from core.advice_parser import (
        extract_nutrition_facts, extract_cleaning_tips, DEFAULT_NUTRITION, DEFAULT_CLEANING,
    )
    assert extract_nutrition_facts("") == DEFAULT_NUTRITION
    assert extract_cleaning_tips(None) == DEFAULT_CLEANING
