"""
Reliability tier from verdict confidence. Inclusive lower bounds: >=0.90 VERY_HIGH, >=0.70 HIGH, else MODERATE.
"""
from core.models.observation import check_confidence
from core.models.verdict import Reliability

VERY_HIGH_THRESHOLD = 0.90
HIGH_THRESHOLD = 0.70


def reliability_for(confidence: float) -> Reliability:
    confidence = check_confidence(confidence, "confidence")
    if confidence >= VERY_HIGH_THRESHOLD:
        return Reliability.VERY_HIGH
    if confidence >= HIGH_THRESHOLD:
        return Reliability.HIGH
    return Reliability.MODERATE
