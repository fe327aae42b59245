"""
Scan history and fraud reports on top of the record store.
- History is per user, newest first. Each record embeds the observation, the
  verdict shown to the user, and the advice split into nutrition/cleaning.
- Accepts snake_case and the camelCase keys older clients send.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from core.advice_parser import extract_cleaning_tips, extract_nutrition_facts
from core.errors import ValidationError
from core.record_store import RecordStore

logger = logging.getLogger(__name__)

HISTORY_SCOPE = "history"
FRAUD_SCOPE = "fraud_reports"

_FRAUD_REQUIRED = ("produce_label", "organic_label", "vendor_name", "location")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _pick(data: dict, snake: str, camel: Optional[str] = None) -> Any:
    value = data.get(snake)
    if value is None and camel:
        value = data.get(camel)
    return value


def _first(*values: Any) -> Any:
    for v in values:
        if v is not None:
            return v
    return None


def _newest_first(records: List[dict]) -> List[dict]:
    return sorted(records, key=lambda r: r.get("created_at") or "", reverse=True)


def save_scan(store: RecordStore, user_id: Optional[str], scan: Dict[str, Any]) -> Dict[str, Any]:
    """Persist one scan for user_id. Returns the stored record (with id and created_at)."""
    if not user_id:
        raise ValidationError("user_id is required", field="user_id")
    produce_label = _pick(scan, "produce_label", "produceLabel")
    if not produce_label:
        raise ValidationError("produce_label is required", field="produce_label")
    advice = _pick(scan, "automatic_advice", "automaticAdvice") or ""
    record = {
        "id": str(uuid.uuid4()),
        "user_id": user_id,
        "produce_label": produce_label,
        "produce_confidence": _pick(scan, "produce_confidence", "produceConfidence"),
        "model_organic_prediction": _first(
            _pick(scan, "model_organic_prediction"), _pick(scan, "organic_label", "organicLabel"),
        ),
        "model_organic_confidence": _first(
            _pick(scan, "model_organic_confidence"), _pick(scan, "organic_confidence", "organicConfidence"),
        ),
        "detected_plu": _pick(scan, "detected_plu", "detectedPlu"),
        "plu_confidence": _pick(scan, "plu_confidence", "pluConfidence"),
        "plu_meaning": _pick(scan, "plu_meaning", "pluMeaning"),
        "verdict": scan.get("verdict"),
        "automatic_advice": advice,
        "nutrition_facts": _pick(scan, "nutrition_facts", "nutritionFacts") or extract_nutrition_facts(advice),
        "cleaning_tips": _pick(scan, "cleaning_tips", "cleaningTips") or extract_cleaning_tips(advice),
        "image_url": _pick(scan, "image_url", "imageUrl"),
        "created_at": _now_iso(),
    }
    store.append(HISTORY_SCOPE, record)
    logger.info("HISTORY_SAVE user_id=%s id=%s produce=%s", user_id, record["id"], produce_label)
    return record


def get_history(store: RecordStore, user_id: str) -> List[Dict[str, Any]]:
    if not user_id:
        raise ValidationError("user_id is required", field="user_id")
    records = [r for r in store.get(HISTORY_SCOPE) if r.get("user_id") == user_id]
    return _newest_first(records)


def save_fraud_report(store: RecordStore, report: Dict[str, Any]) -> Dict[str, Any]:
    """Validate and persist a fraud report. Required: produce_label, organic_label, vendor_name, location."""
    for key in _FRAUD_REQUIRED:
        value = report.get(key)
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"{key} is required", field=key)
    record = {
        "id": str(uuid.uuid4()),
        "user_id": report.get("user_id"),
        "email": report.get("email"),
        "produce_label": report["produce_label"].strip(),
        "organic_label": report["organic_label"].strip(),
        "vendor_name": report["vendor_name"].strip(),
        "location": report["location"].strip(),
        "description": report.get("description"),
        "created_at": _now_iso(),
    }
    store.append(FRAUD_SCOPE, record)
    logger.info("FRAUD_REPORT_SAVE id=%s vendor=%s location=%s", record["id"], record["vendor_name"], record["location"])
    return record


def list_fraud_reports(store: RecordStore) -> List[Dict[str, Any]]:
    return _newest_first(store.get(FRAUD_SCOPE))
