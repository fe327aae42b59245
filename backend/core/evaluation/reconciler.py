"""
Deterministic verdict reconciliation. Cross-checks the vision model's organic
prediction against the PLU-derived label.
Priority: 1) no usable PLU -> model 2) PLU agrees -> boosted 3) PLU disagrees -> PLU wins.
Pure: no I/O, no clock, no randomness.
"""
from dataclasses import replace
from typing import Callable, Optional
import logging

from core.errors import PLUNotFoundError, ValidationError
from core.models.observation import ProduceObservation, is_valid_plu_shape
from core.models.verdict import MatchType, Reliability, Verdict
from core.plu.plu_registry import lookup_plu
from core.plu.plu_schema import PLULookupResult
from core.evaluation.reliability import reliability_for
from core import response_composer

logger = logging.getLogger(__name__)

PLULookup = Callable[[str], PLULookupResult]

MATCH_CONFIDENCE_WEIGHT = 0.9
MATCH_CONFIDENCE_FLOOR = 0.1
MATCH_CONFIDENCE_CAP = 0.95
# Corroborated confidence is reported to 4 decimals so 0.92 gives 0.928 rather
# than 0.9280000000000002; 0.12345 gives 0.2111.
MATCH_CONFIDENCE_DIGITS = 4
DISAGREEMENT_CONFIDENCE = 0.85
# A typed code is treated as a clean read of the sticker.
MANUAL_PLU_CONFIDENCE = 0.95


def perfect_match_confidence(model_confidence: float) -> float:
    """Corroborated confidence: model_conf * 0.9 + 0.1, capped at 0.95, rounded to 4 decimals."""
    raw = min(model_confidence * MATCH_CONFIDENCE_WEIGHT + MATCH_CONFIDENCE_FLOOR, MATCH_CONFIDENCE_CAP)
    return round(raw, MATCH_CONFIDENCE_DIGITS)


def _no_plu_verdict(observation: ProduceObservation, unknown_code: Optional[str] = None) -> Verdict:
    prediction = observation.model_organic_prediction
    return Verdict(
        verdict=prediction,
        verdict_confidence=observation.model_organic_confidence,
        match=MatchType.NO_PLU_CODE,
        reliability=reliability_for(observation.model_organic_confidence),
        reasoning=response_composer.compose_no_plu_reasoning(observation, unknown_code=unknown_code),
        recommendation=response_composer.compose_washing_advice(prediction),
    )


def reconcile(observation: ProduceObservation, plu_lookup: Optional[PLULookup] = None) -> Verdict:
    """
    Combine model prediction and PLU code into one verdict.
    - plu_lookup: code -> PLULookupResult, raising PLUNotFoundError for unknown codes.
      Defaults to the static PLU table.
    Unknown codes are treated as "no PLU"; ValidationError propagates.
    """
    if not isinstance(observation, ProduceObservation):
        raise ValidationError(f"expected ProduceObservation, got {type(observation).__name__}")
    lookup = plu_lookup or lookup_plu

    code = observation.detected_plu
    if code is None:
        verdict = _no_plu_verdict(observation)
    else:
        try:
            plu = lookup(code)
        except PLUNotFoundError:
            logger.info("RECONCILE unknown_plu code=%s falling back to model", code)
            verdict = _no_plu_verdict(observation, unknown_code=code)
        else:
            if plu.is_organic == observation.model_says_organic:
                verdict = Verdict(
                    verdict=plu.label,
                    verdict_confidence=perfect_match_confidence(observation.model_organic_confidence),
                    match=MatchType.PERFECT_MATCH,
                    reliability=Reliability.VERY_HIGH,
                    reasoning=response_composer.compose_match_reasoning(observation, plu),
                    recommendation=response_composer.compose_washing_advice(plu.label),
                )
            else:
                verdict = Verdict(
                    verdict=plu.label,
                    verdict_confidence=DISAGREEMENT_CONFIDENCE,
                    match=MatchType.DISAGREEMENT_PLU_TRUSTED,
                    reliability=Reliability.HIGH,
                    reasoning=response_composer.compose_disagreement_reasoning(observation, plu),
                    recommendation=response_composer.compose_disagreement_advice(plu),
                )

    logger.info(
        "RECONCILE produce=%s model=%s model_conf=%.2f plu=%s match=%s verdict=%s confidence=%.4f reliability=%s",
        observation.produce_label, observation.model_organic_prediction.value,
        observation.model_organic_confidence, code, verdict.match.value,
        verdict.verdict.value, verdict.verdict_confidence, verdict.reliability.value,
    )
    return verdict


def reconcile_with_manual_plu(
    observation: ProduceObservation,
    manual_code: str,
    plu_lookup: Optional[PLULookup] = None,
) -> Verdict:
    """
    Re-run reconciliation with a user-typed PLU in place of the OCR result.
    manual_code must already be digits only (4-5). The result supersedes the automatic verdict.
    """
    if not isinstance(observation, ProduceObservation):
        raise ValidationError(f"expected ProduceObservation, got {type(observation).__name__}")
    if not is_valid_plu_shape(manual_code):
        raise ValidationError(f"PLU codes are 4-5 digits long, got {manual_code!r}", field="plu_code")
    manual = replace(observation, detected_plu=manual_code, plu_confidence=MANUAL_PLU_CONFIDENCE)
    logger.info("RECONCILE manual_plu code=%s previous=%s", manual_code, observation.detected_plu)
    return reconcile(manual, plu_lookup=plu_lookup)
