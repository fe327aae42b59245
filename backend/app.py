"""
AgriScan FastAPI application.

Endpoints:
    GET  /health                 Health check (PLU table loaded, version)
    POST /infer-image            base64 image -> classifier -> organic verdict
    POST /scan                   multipart image -> classifier -> organic verdict
    POST /reconcile              observation JSON -> organic verdict
    POST /reconcile/manual-plu   observation + typed PLU -> superseding verdict
    POST /verify-plu             PLU code -> meaning, organic flag, explanation
    POST /login                  login, auto-registering unknown emails
    GET  /history                scan history for a user (newest first)
    POST /history                save a scan for a user
    GET  /fraud-reports          list fraud reports
    POST /fraud-reports          file a fraud report
    POST /chat                   produce/food-safety assistant (LLM relay)
    POST /report                 plain-text scan report
"""
from fastapi import Body, FastAPI, UploadFile, File, HTTPException
from fastapi.responses import PlainTextResponse
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from typing import Any, Dict, Optional
from datetime import datetime, timezone
import logging
import re
from dotenv import load_dotenv
from pathlib import Path

# Load env vars
load_dotenv(Path(__file__).parent / ".env")

# Initialize App
app = FastAPI(title="AgriScan Organic Verification API")

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Logger
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

from core.config import log_config
from core.errors import (
    AuthenticationError,
    ClassifierUnavailableError,
    PLUNotFoundError,
    RecordStoreError,
    ValidationError,
)
from core.models.observation import ProduceObservation
from core.models.verdict import Verdict
from core.plu import get_default_registry
from core.evaluation.reconciler import reconcile, reconcile_with_manual_plu
from core.response_composer import build_chat_context, compose_plu_explanation, compose_scan_report
from core.record_store import get_default_store
from core.history_storage import get_history, list_fraud_reports, save_fraud_report, save_scan
from core.user_storage import login_or_register
from core.llm_chat import get_chat_completion

# Service imports (flat modules in backend/)
from classifier_client import ClassifierClient, ClassifierResult, decode_data_url

log_config()

plu_registry = get_default_registry()
classifier = ClassifierClient()
record_store = get_default_store()


# --- Request Models ---
class ImageRequest(BaseModel):
    image: str


class ObservationBody(BaseModel):
    produce_label: Optional[str] = None
    produce_confidence: Optional[float] = None
    model_organic_prediction: Optional[str] = None
    model_organic_confidence: Optional[float] = None
    detected_plu: Optional[str] = None
    plu_confidence: Optional[float] = None
    # legacy keys
    organic_label: Optional[str] = None
    organic_confidence: Optional[float] = None


class ManualPLURequest(BaseModel):
    observation: ObservationBody
    plu_code: str


class VerifyPLURequest(BaseModel):
    plu_code: str


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ChatRequest(BaseModel):
    message: Optional[str] = None
    produceName: Optional[str] = None
    organicStatus: Optional[str] = None
    context: Optional[str] = None


class FraudReportBody(BaseModel):
    produce_label: Optional[str] = None
    organic_label: Optional[str] = None
    vendor_name: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    email: Optional[str] = None
    user_id: Optional[str] = None


# --- Helper Functions ---

def _digits_only(code: str) -> str:
    return re.sub(r"\D", "", code or "")


def _observation(body: ObservationBody) -> ProduceObservation:
    return ProduceObservation.from_dict(body.model_dump())


def _could_not_analyze(e: ValidationError) -> HTTPException:
    logger.info("VALIDATION_FAILED field=%s error=%s", e.field, e)
    return HTTPException(status_code=422, detail=f"Could not analyze: {e}")


def _scan_result(result: ClassifierResult, verdict: Verdict) -> Dict[str, Any]:
    obs = result.observation
    return {
        **obs.to_dict(),
        "plu_meaning": result.plu_meaning,
        "verdict": verdict.to_dict(),
        "automatic_advice": result.advice or verdict.recommendation,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def _analyze(image_bytes: bytes) -> Dict[str, Any]:
    """Classifier -> reconciler. No verdict is returned when either step fails."""
    try:
        result = classifier.classify(image_bytes)
        verdict = reconcile(result.observation, plu_lookup=plu_registry.lookup)
    except ValidationError as e:
        raise _could_not_analyze(e)
    except ClassifierUnavailableError as e:
        logger.error("Classifier unavailable: %s", e)
        raise HTTPException(status_code=503, detail="Image classifier is unavailable; please try again.")
    return _scan_result(result, verdict)


# --- Endpoints ---

@app.get("/health")
def health_check():
    return {
        "status": "ok",
        "service": "AgriScan",
        "plu_codes": len(plu_registry),
        "plu_table_version": plu_registry.get_version(),
    }


@app.post("/infer-image")
def infer_image(request: ImageRequest):
    """base64 data URL -> classifier -> reconciled verdict."""
    try:
        image_bytes = decode_data_url(request.image)
    except ValidationError as e:
        raise _could_not_analyze(e)
    logger.info("Infer request bytes=%d", len(image_bytes))
    return _analyze(image_bytes)


@app.post("/scan")
def scan_image(file: UploadFile = File(...)):
    """Multipart upload -> classifier -> reconciled verdict."""
    logger.info("Scan request filename=%s", file.filename)
    return _analyze(file.file.read())


@app.post("/reconcile")
def reconcile_observation(body: ObservationBody):
    """Reconcile an observation the caller already has."""
    try:
        verdict = reconcile(_observation(body), plu_lookup=plu_registry.lookup)
    except ValidationError as e:
        raise _could_not_analyze(e)
    return verdict.to_dict()


@app.post("/reconcile/manual-plu")
def reconcile_manual_plu(request: ManualPLURequest):
    """Typed PLU replaces the OCR result; the returned verdict supersedes the automatic one."""
    try:
        verdict = reconcile_with_manual_plu(
            _observation(request.observation),
            _digits_only(request.plu_code),
            plu_lookup=plu_registry.lookup,
        )
    except ValidationError as e:
        raise _could_not_analyze(e)
    return verdict.to_dict()


@app.post("/verify-plu")
def verify_plu(request: VerifyPLURequest):
    code = _digits_only(request.plu_code)
    try:
        plu = plu_registry.lookup(code)
    except ValidationError:
        raise HTTPException(status_code=422, detail="PLU codes are 4-5 digits long")
    except PLUNotFoundError:
        raise HTTPException(status_code=404, detail="PLU code not found in database")
    return {
        "plu_code": plu.code,
        "meaning": plu.meaning,
        "is_organic": plu.is_organic,
        "explanation": compose_plu_explanation(plu),
    }


@app.post("/login")
def login(request: LoginRequest):
    try:
        user = login_or_register(record_store, request.email, request.password)
    except AuthenticationError:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    except RecordStoreError as e:
        logger.error("Login failed: %s", e)
        raise HTTPException(status_code=503, detail="Account storage unavailable")
    return {"success": True, "email": user["email"], "userId": user["user_id"]}


@app.get("/history")
def history(userId: Optional[str] = None):
    if not userId:
        raise HTTPException(status_code=401, detail="User ID required")
    try:
        return {"history": get_history(record_store, userId)}
    except Exception as e:
        logger.error("Fetch history failed: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch history")


@app.post("/history")
def save_history(scan: Dict[str, Any] = Body(...)):
    user_id = scan.get("userId") or scan.get("user_id")
    if not user_id:
        raise HTTPException(status_code=401, detail="User ID required")
    try:
        record = save_scan(record_store, user_id, scan)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.error("Save history failed: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to save history")
    return {"success": True, "message": "Scan saved", "id": record["id"]}


@app.get("/fraud-reports")
def fraud_reports():
    try:
        return {"reports": list_fraud_reports(record_store)}
    except Exception as e:
        logger.error("Fetch fraud reports failed: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch fraud reports")


@app.post("/fraud-reports")
def create_fraud_report(body: FraudReportBody):
    try:
        report = save_fraud_report(record_store, body.model_dump())
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.error("Save fraud report failed: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to save fraud report")
    return {"success": True, "report": report}


@app.post("/chat")
def chat(request: ChatRequest):
    if not request.message or not request.message.strip():
        raise HTTPException(status_code=400, detail="Message is required")
    context = request.context or build_chat_context(request.produceName, request.organicStatus)
    logger.info("Chat message_len=%d produce=%s", len(request.message), request.produceName)
    reply = get_chat_completion(request.message, context or None)
    if reply is None:
        raise HTTPException(status_code=502, detail="Failed to get chat response")
    return {"response": reply, "timestamp": datetime.now(timezone.utc).isoformat()}


@app.post("/report", response_class=PlainTextResponse)
def scan_report(scan: Dict[str, Any] = Body(...)):
    return compose_scan_report(scan)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app:app", host="0.0.0.0", port=8000, reload=True)
