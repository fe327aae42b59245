"""
User-facing text for organic verdicts: reasoning, washing recommendations,
PLU explanations, chat context and the plain-text scan report.
Pure string building; no decisions are made here.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from core.models.observation import OrganicLabel, ProduceObservation
from core.plu.plu_schema import PLULookupResult

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Washing advice
# ---------------------------------------------------------------------------
_ADVICE_ORGANIC = "This organic produce can be rinsed lightly with water before consumption."
_ADVICE_CONVENTIONAL = "Wash thoroughly with water and a vegetable brush to remove pesticide residues."
_ADVICE_PLU_ORGANIC = "Despite model uncertainty, PLU code confirms organic status. Light rinse recommended."
_ADVICE_PLU_CONVENTIONAL = (
    "PLU code indicates conventional produce. Wash thoroughly to remove potential pesticide residues."
)

_LABEL_TEXT: Dict[OrganicLabel, str] = {
    OrganicLabel.ORGANIC: "organic",
    OrganicLabel.NON_ORGANIC: "non-organic",
}

_LABEL_DISPLAY: Dict[OrganicLabel, str] = {
    OrganicLabel.ORGANIC: "Organic",
    OrganicLabel.NON_ORGANIC: "Non-Organic",
}


def _pct(confidence: Optional[float]) -> str:
    if confidence is None:
        return "n/a"
    return f"{confidence * 100:.0f}%"


def label_text(label: OrganicLabel) -> str:
    return _LABEL_TEXT[label]


# ---------------------------------------------------------------------------
# Reasoning
# ---------------------------------------------------------------------------

def compose_no_plu_reasoning(observation: ProduceObservation, unknown_code: Optional[str] = None) -> str:
    prediction = _LABEL_DISPLAY[observation.model_organic_prediction]
    base = (
        f"AI model predicted {prediction} ({_pct(observation.model_organic_confidence)} confidence) "
        f"for {observation.produce_label}."
    )
    if unknown_code:
        return (
            f"{base} PLU code {unknown_code} was read but is not in the PLU database, "
            "so the prediction could not be cross-verified."
        )
    return f"{base} No PLU code was found to cross-verify the prediction."


def compose_match_reasoning(observation: ProduceObservation, plu: PLULookupResult) -> str:
    return (
        f"Both AI model ({_pct(observation.model_organic_confidence)} confidence) and PLU code "
        f"{plu.code} agree this produce is {label_text(plu.label)}."
    )


def compose_disagreement_reasoning(observation: ProduceObservation, plu: PLULookupResult) -> str:
    return (
        f"AI model predicted {_LABEL_DISPLAY[observation.model_organic_prediction]} "
        f"({_pct(observation.model_organic_confidence)} confidence), but PLU code {plu.code} "
        f"indicates {_LABEL_DISPLAY[plu.label]}. PLU codes are generally more reliable as they "
        "are standardized industry labels."
    )


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------

def compose_washing_advice(label: OrganicLabel) -> str:
    return _ADVICE_ORGANIC if label is OrganicLabel.ORGANIC else _ADVICE_CONVENTIONAL


def compose_disagreement_advice(plu: PLULookupResult) -> str:
    return _ADVICE_PLU_ORGANIC if plu.is_organic else _ADVICE_PLU_CONVENTIONAL


def compose_plu_explanation(plu: PLULookupResult) -> str:
    if plu.is_organic:
        return (
            f"PLU {plu.code} has five digits and starts with 9, which marks certified organic produce: "
            f"{plu.meaning}."
        )
    if len(plu.code) == 5:
        return (
            f"PLU {plu.code} has five digits but does not start with 9, so it is not an organic code: "
            f"{plu.meaning}."
        )
    return f"PLU {plu.code} is a four-digit code for conventionally grown produce: {plu.meaning}."


# ---------------------------------------------------------------------------
# Chat context
# ---------------------------------------------------------------------------

def build_chat_context(produce_name: Optional[str], organic_status: Optional[str]) -> str:
    """Context string for the chat relay. Empty when nothing is known about the produce."""
    if not produce_name and not organic_status:
        return ""
    context = f"Current produce being discussed: {produce_name or 'Unknown'}. "
    if organic_status:
        context += f"Organic status: {organic_status}. "
    return context


# ---------------------------------------------------------------------------
# Plain-text scan report
# ---------------------------------------------------------------------------

def _format_timestamp(value: Any) -> str:
    if not value:
        return "unknown"
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).strftime("%Y-%m-%d %H:%M:%S")
    except ValueError:
        return str(value)


def _percent_1dp(value: Any) -> str:
    try:
        return f"{float(value) * 100:.1f}%"
    except (TypeError, ValueError):
        return "n/a"


def compose_scan_report(scan: Dict[str, Any]) -> str:
    """
    Shareable report for one scan. Organic status and confidence come from the
    embedded verdict when present, else from the raw model prediction.
    """
    verdict = scan.get("verdict") or {}
    if verdict:
        organic_label = verdict.get("verdict", "Unknown")
        organic_conf = verdict.get("verdict_confidence", 0)
    else:
        organic_label = scan.get("model_organic_prediction") or scan.get("organic_label") or "Unknown"
        organic_conf = scan.get("model_organic_confidence") or scan.get("organic_confidence") or 0

    lines = [
        "AgriScan AI Report",
        "==================",
        "",
        f"Produce: {scan.get('produce_label', 'Unknown')}",
        f"Confidence: {_percent_1dp(scan.get('produce_confidence'))}",
        "",
        f"Organic Status: {organic_label}",
        f"Confidence: {_percent_1dp(organic_conf)}",
        "",
        f"PLU Code: {scan.get('detected_plu') or 'Not Detected'}",
        f"Meaning: {scan.get('plu_meaning') or 'No PLU sticker found in the image.'}",
    ]
    if verdict:
        lines += [
            "",
            f"Match: {verdict.get('match', '')}",
            f"Reliability: {verdict.get('reliability', '')}",
            f"Reasoning: {verdict.get('reasoning', '')}",
        ]
    lines += [
        "",
        "Advice:",
        scan.get("automatic_advice") or verdict.get("recommendation") or "",
        "",
        f"Scanned: {_format_timestamp(scan.get('timestamp'))}",
    ]
    return "\n".join(lines).strip()
