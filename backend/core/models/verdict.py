"""
Structured organic verdict. Single format for automatic scans and manual PLU re-checks.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any

from core.models.observation import OrganicLabel


class MatchType(str, Enum):
    PERFECT_MATCH = "PERFECT_MATCH"
    DISAGREEMENT_PLU_TRUSTED = "DISAGREEMENT_PLU_TRUSTED"
    # Declared outcome; no reconciliation rule produces it.
    DISAGREEMENT_MODEL_TRUSTED = "DISAGREEMENT_MODEL_TRUSTED"
    NO_PLU_CODE = "NO_PLU_CODE"


class Reliability(str, Enum):
    VERY_HIGH = "VERY_HIGH"
    HIGH = "HIGH"
    MODERATE = "MODERATE"


@dataclass(frozen=True)
class Verdict:
    verdict: OrganicLabel
    verdict_confidence: float
    match: MatchType
    reliability: Reliability
    reasoning: str
    recommendation: str

    @property
    def is_organic(self) -> bool:
        return self.verdict is OrganicLabel.ORGANIC

    def to_dict(self) -> dict[str, Any]:
        return {
            "verdict": self.verdict.value,
            "verdict_confidence": self.verdict_confidence,
            "match": self.match.value,
            "reliability": self.reliability.value,
            "reasoning": self.reasoning,
            "recommendation": self.recommendation,
        }
