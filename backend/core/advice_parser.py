"""
Split the classifier's markdown advice into nutrition facts and cleaning tips.
Sections look like '**Nutrition:** ...' and '**Cleaning Tips:** ...'; a section
runs until the next line that starts with '**'.
"""
import re
from typing import Optional

DEFAULT_NUTRITION = "Rich in vitamins and minerals. Nutrition facts vary by produce type."
DEFAULT_CLEANING = "Rinse thoroughly under cool running water. Gently scrub with your hands or a soft brush."
FALLBACK_CLEANING = "Rinse thoroughly under running water."

_NUTRITION_RE = re.compile(r"\*\*Nutrition:\*\*\s*([^\n]*(?:\n(?!\*\*)[^\n]*)*)")
_CLEANING_RE = re.compile(r"\*\*Cleaning Tips?:\*\*\s*([^\n]*(?:\n(?!\*\*)[^\n]*)*)")


def extract_nutrition_facts(advice: Optional[str]) -> str:
    if not advice:
        return DEFAULT_NUTRITION
    m = _NUTRITION_RE.search(advice)
    if m:
        return m.group(1).strip()
    return advice.split("\n\n")[0].replace("**", "")


def extract_cleaning_tips(advice: Optional[str]) -> str:
    if not advice:
        return DEFAULT_CLEANING
    m = _CLEANING_RE.search(advice)
    if m:
        return m.group(1).strip()
    paragraphs = advice.split("\n\n")
    if len(paragraphs) > 1:
        return paragraphs[1].replace("**", "")
    return FALLBACK_CLEANING
